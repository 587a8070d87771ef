"""FastAPI HTTP server for the terminogrid dashboard.

Routes:

    GET  /api/containers              -> {"containers": [...]}
    POST /api/containers/{id}/start   -> 204
    POST /api/containers/{id}/stop    -> 204
    WS   /api/containers/{id}/exec    <-> interactive terminal
    GET  /api/health                  -> {"status": "ok", ...} | 503
    GET  /ui/...                      static dashboard
    GET  /                            302 -> /ui/

If the container runtime cannot be reached at startup the server still
comes up; runtime routes answer 503 until it is restarted.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, Request, Response, WebSocket, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from terminogrid.api.websocket import WebSocketClientStream
from terminogrid.config.settings import Settings
from terminogrid.runtime.base import (
    ContainerRuntime,
    NotFoundError,
    RuntimeBackendError,
    UnavailableError,
)
from terminogrid.session.bootstrap import BootstrapInjector, build_bootstrap_script
from terminogrid.session.bridge import BridgeCancelledError, TerminalBridge
from terminogrid.session.protocol import StreamError
from terminogrid.session.registry import SessionRegistry
from terminogrid.session.shell import NegotiationFailedError, ShellNegotiator, color_env

logger = logging.getLogger(__name__)

UNAVAILABLE_DETAIL = "Docker daemon unavailable (mount /var/run/docker.sock)"

# Errors that end a terminal session and are reported to the client in-band
SESSION_ERRORS = (
    RuntimeBackendError,
    NegotiationFailedError,
    StreamError,
    BridgeCancelledError,
)


class HealthResponse(BaseModel):
    status: str = "ok"
    runtime: str = ""
    sessions: int = 0


def build_runtime(settings: Settings) -> ContainerRuntime:
    """Instantiate the runtime backend named in the settings."""
    if settings.runtime.backend == "demo":
        from terminogrid.runtime.memory import MemoryRuntime
        return MemoryRuntime()
    from terminogrid.runtime.docker import DockerRuntime
    return DockerRuntime(
        url=settings.runtime.docker_url,
        ping_timeout=settings.runtime.ping_timeout,
    )


def create_app(
    runtime: ContainerRuntime | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        runtime: Optional pre-built runtime (for testing). If None, one is
                 built from ``settings.runtime`` at startup.
        settings: Application settings. Defaults to ``Settings()``.
    """
    settings = settings or Settings()
    terminal = settings.terminal

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Startup
        r = app.state.runtime or build_runtime(settings)
        try:
            await r.connect()
            app.state.runtime = r
        except UnavailableError as e:
            # Do not crash; keep None to signal 503 on runtime routes
            logger.warning("Container runtime unavailable: %s", e)
            app.state.runtime = None
        app.state.shutdown = asyncio.Event()
        logger.info("Server started (runtime=%s)", r.name if app.state.runtime else "none")
        yield
        # Shutdown
        app.state.shutdown.set()
        if app.state.runtime is not None:
            await app.state.runtime.close()
        logger.info("Server stopped")

    app = FastAPI(
        title="terminogrid",
        description="Container dashboard backend with interactive terminals",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.runtime = runtime
    app.state.settings = settings
    app.state.registry = SessionRegistry()
    app.state.shutdown = asyncio.Event()
    app.state.injector = BootstrapInjector(
        app.state.registry,
        script=build_bootstrap_script(
            term=terminal.term_env,
            force_color=terminal.force_color,
            custom_prompt=terminal.custom_prompt,
        ),
        settle_delay=terminal.settle_delay,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(RuntimeBackendError)
    async def runtime_error_handler(request: Request, exc: RuntimeBackendError) -> JSONResponse:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
        if isinstance(exc, NotFoundError):
            code = status.HTTP_404_NOT_FOUND
        elif isinstance(exc, UnavailableError):
            code = status.HTTP_503_SERVICE_UNAVAILABLE
        return JSONResponse(status_code=code, content={"detail": str(exc)})

    def require_runtime() -> ContainerRuntime:
        r = app.state.runtime
        if r is None:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=UNAVAILABLE_DETAIL)
        return r

    @app.get("/api/health")
    async def health_check() -> HealthResponse:
        r = require_runtime()
        await r.ping()
        return HealthResponse(status="ok", runtime=r.name, sessions=len(app.state.registry))

    @app.get("/api/containers")
    async def list_containers() -> dict[str, list[dict]]:
        r = require_runtime()
        containers = await r.list_containers()
        return {"containers": [c.to_wire() for c in containers]}

    @app.post("/api/containers/{container_id}/start", status_code=status.HTTP_204_NO_CONTENT)
    async def start_container(container_id: str) -> Response:
        await require_runtime().start(container_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/api/containers/{container_id}/stop", status_code=status.HTTP_204_NO_CONTENT)
    async def stop_container(container_id: str) -> Response:
        await require_runtime().stop(container_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.websocket("/api/containers/{container_id}/exec")
    async def exec_terminal(websocket: WebSocket, container_id: str) -> None:
        r = app.state.runtime
        if r is None:
            # Refuse the upgrade; nothing has been accepted yet
            await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER, reason=UNAVAILABLE_DETAIL)
            return
        await websocket.accept()
        client = WebSocketClientStream(websocket)
        negotiator = ShellNegotiator(
            r,
            candidates=terminal.shell_candidates,
            env=color_env(terminal.term_env, terminal.force_color),
        )

        with app.state.registry.track(container_id) as session:
            logger.info("Terminal session %s opened", session.session_key)
            hook = app.state.injector.hook(session.session_key) if terminal.bootstrap else None
            bridge = TerminalBridge(r, negotiator)
            try:
                await bridge.run(client, container_id, setup_hook=hook, cancel=app.state.shutdown)
            except SESSION_ERRORS as e:
                logger.warning("Terminal session %s failed: %s", session.session_key, e)
                await client.send_error(e)
            logger.info("Terminal session %s closed", session.session_key)
        await client.close()

    @app.get("/", include_in_schema=False)
    async def index() -> RedirectResponse:
        return RedirectResponse(url="/ui/", status_code=status.HTTP_302_FOUND)

    ui_dir = settings.server.ui_dir
    if ui_dir.is_dir():
        app.mount("/ui", StaticFiles(directory=ui_dir, html=True), name="ui")
    else:
        logger.debug("UI directory %s not found; /ui is not served", ui_dir)

    return app
