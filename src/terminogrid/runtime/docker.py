"""Docker container runtime backed by aiodocker.

Talks to the local Docker daemon (``DOCKER_HOST`` or the default unix
socket) for container listing, start/stop and interactive exec sessions.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Mapping, Sequence

import aiodocker
import aiodocker.exceptions
import aiohttp

from terminogrid.domain.models import Container, Port
from terminogrid.runtime.base import (
    ContainerRuntime,
    Execution,
    NotFoundError,
    ProcessHandle,
    RuntimeBackendError,
    UnavailableError,
)

logger = logging.getLogger(__name__)

SYSTEM_LABEL = "grid.system"
SYSTEM_NAME = "terminogrid"

# Failures that mean the daemon itself is unreachable
_CONNECTION_ERRORS = (aiohttp.ClientConnectionError, OSError, asyncio.TimeoutError)


def is_not_found(e: Exception) -> bool:
    """Check if exception indicates container not found."""
    return isinstance(e, aiodocker.exceptions.DockerError) and e.status == 404


def _field(container: Any, key: str, default: Any) -> Any:
    try:
        value = container[key]
    except KeyError:
        return default
    return default if value is None else value


def is_system_container(names: list[str], image: str, labels: Mapping[str, str]) -> bool:
    """Whether a container belongs to terminogrid itself or its build helpers."""
    if labels.get(SYSTEM_LABEL, "").strip().lower() == "true":
        return True
    project = labels.get("com.docker.compose.project", "").lower()
    service = labels.get("com.docker.compose.service", "").lower()
    if SYSTEM_NAME in project or SYSTEM_NAME in service:
        return True
    for name in names:
        name = name.lstrip("/").lower()
        if (
            name == SYSTEM_NAME
            or name.startswith(f"{SYSTEM_NAME}-")
            or name.startswith("buildx_buildkit")
        ):
            return True
    image = image.lower()
    return SYSTEM_NAME in image or "buildkit" in image


def container_from_summary(summary: Any) -> Container:
    """Normalize one entry of the Docker container list."""
    names = _field(summary, "Names", [])
    ports = [
        Port(
            public_port=p.get("PublicPort") or None,
            private_port=p.get("PrivatePort") or None,
            protocol=p.get("Type") or "tcp",
        )
        for p in _field(summary, "Ports", [])
    ]
    return Container(
        id=_field(summary, "Id", ""),
        name=names[0].lstrip("/") if names else "",
        image=_field(summary, "Image", ""),
        status=_field(summary, "State", ""),
        labels=dict(_field(summary, "Labels", {})),
        ports=ports,
    )


class DockerProcessHandle(ProcessHandle):
    """An attached ``docker exec`` stream in tty mode."""

    def __init__(self, exec_: Any, stream: Any, stack: contextlib.AsyncExitStack) -> None:
        self._exec = exec_
        self._stream = stream
        self._stack = stack
        self._closed = False

    async def read(self) -> bytes:
        if self._closed:
            return b""
        try:
            message = await self._stream.read_out()
        except (aiodocker.exceptions.DockerError, aiohttp.ClientError) as e:
            raise RuntimeBackendError(f"exec read failed: {e}", backend="docker") from e
        if message is None:
            return b""
        return message.data

    async def write(self, data: bytes) -> None:
        try:
            await self._stream.write_in(data)
        except (aiodocker.exceptions.DockerError, aiohttp.ClientError, RuntimeError, OSError) as e:
            raise RuntimeBackendError(f"exec write failed: {e}", backend="docker") from e

    async def resize(self, cols: int, rows: int) -> None:
        try:
            await self._exec.resize(h=rows, w=cols)
        except aiodocker.exceptions.DockerError as e:
            raise RuntimeBackendError(f"exec resize failed: {e}", backend="docker") from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._stack.aclose()
        logger.debug("Closed exec stream %s", self._exec.id)


class DockerRuntime(ContainerRuntime):
    """Container runtime on the local Docker daemon."""

    name = "docker"

    def __init__(self, url: str | None = None, ping_timeout: float = 2.0) -> None:
        self._url = url
        self._ping_timeout = ping_timeout
        self._docker: aiodocker.Docker | None = None

    @property
    def docker(self) -> aiodocker.Docker:
        if self._docker is None:
            raise UnavailableError("Docker client is not connected", backend="docker")
        return self._docker

    async def connect(self) -> None:
        """Create the aiodocker client and ping the daemon."""
        try:
            self._docker = aiodocker.Docker(url=self._url)
        except ValueError as e:
            # Raised when neither DOCKER_HOST nor a local socket is available
            raise UnavailableError(f"Docker daemon unavailable: {e}", backend="docker") from e
        try:
            await self.ping()
        except UnavailableError:
            await self.close()
            raise
        logger.info("Docker client initialized")

    async def close(self) -> None:
        if self._docker is not None:
            await self._docker.close()
            self._docker = None

    async def ping(self) -> None:
        try:
            await asyncio.wait_for(self.docker.version(), timeout=self._ping_timeout)
        except (aiodocker.exceptions.DockerError, *_CONNECTION_ERRORS) as e:
            raise UnavailableError(f"Docker daemon unavailable: {e}", backend="docker") from e

    async def list_containers(self) -> list[Container]:
        try:
            summaries = await self.docker.containers.list(all=True)
        except aiodocker.exceptions.DockerError as e:
            raise RuntimeBackendError(f"container list failed: {e}", backend="docker") from e
        except _CONNECTION_ERRORS as e:
            raise UnavailableError(f"Docker daemon unavailable: {e}", backend="docker") from e
        out = []
        for summary in summaries:
            if is_system_container(
                _field(summary, "Names", []),
                _field(summary, "Image", ""),
                _field(summary, "Labels", {}),
            ):
                continue
            out.append(container_from_summary(summary))
        return out

    async def start(self, target_id: str) -> None:
        container = await self._get(target_id)
        try:
            await container.start()
        except aiodocker.exceptions.DockerError as e:
            raise self._translate(e, target_id) from e
        logger.info("Started container %s", target_id)

    async def stop(self, target_id: str) -> None:
        container = await self._get(target_id)
        try:
            await container.stop()
        except aiodocker.exceptions.DockerError as e:
            raise self._translate(e, target_id) from e
        logger.info("Stopped container %s", target_id)

    async def exists(self, target_id: str) -> bool:
        try:
            await self._get(target_id)
        except NotFoundError:
            return False
        return True

    async def create_exec(
        self,
        target_id: str,
        command: Sequence[str],
        env: Mapping[str, str],
    ) -> Execution:
        container = await self._get(target_id)
        try:
            exec_ = await container.exec(
                cmd=list(command),
                stdin=True,
                stdout=True,
                stderr=True,
                tty=True,
                environment=[f"{k}={v}" for k, v in env.items()],
            )
        except aiodocker.exceptions.DockerError as e:
            raise self._translate(e, target_id) from e
        if not exec_.id:
            raise RuntimeBackendError(
                f"exec create for {target_id} returned no ID", backend="docker"
            )
        return Execution(
            exec_id=exec_.id,
            target_id=target_id,
            command=tuple(command),
            backend=exec_,
        )

    async def attach(self, execution: Execution) -> ProcessHandle:
        exec_ = execution.backend
        stack = contextlib.AsyncExitStack()
        try:
            stream = await stack.enter_async_context(exec_.start(detach=False))
        except (aiodocker.exceptions.DockerError, aiohttp.ClientError) as e:
            await stack.aclose()
            raise self._translate(e, execution.target_id) from e
        logger.debug("Attached to exec %s in %s", execution.exec_id, execution.target_id)
        return DockerProcessHandle(exec_, stream, stack)

    async def _get(self, target_id: str) -> Any:
        try:
            return await self.docker.containers.get(target_id)
        except aiodocker.exceptions.DockerError as e:
            raise self._translate(e, target_id) from e
        except _CONNECTION_ERRORS as e:
            raise UnavailableError(f"Docker daemon unavailable: {e}", backend="docker") from e

    @staticmethod
    def _translate(e: Exception, target_id: str) -> RuntimeBackendError:
        if is_not_found(e):
            return NotFoundError(f"container {target_id} not found", backend="docker")
        return RuntimeBackendError(str(e), backend="docker")
