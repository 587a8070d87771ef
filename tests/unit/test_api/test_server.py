"""Tests for the FastAPI server."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from terminogrid.api.server import create_app
from terminogrid.config.settings import ServerConfig, Settings, TerminalConfig
from terminogrid.runtime.base import UnavailableError
from terminogrid.runtime.memory import DEMO_GREETING, MemoryRuntime

from conftest import FakeRuntime


class UnreachableRuntime(FakeRuntime):
    name = "unreachable"

    async def connect(self) -> None:
        raise UnavailableError("Docker daemon unavailable: no socket", backend="unreachable")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        server=ServerConfig(ui_dir=tmp_path / "ui"),
        terminal=TerminalConfig(bootstrap=False, settle_delay=0),
    )


@pytest.fixture
def client(settings: Settings):
    app = create_app(runtime=MemoryRuntime(), settings=settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def offline_client(settings: Settings):
    app = create_app(runtime=UnreachableRuntime(), settings=settings)
    with TestClient(app) as c:
        yield c


class TestRestRoutes:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "runtime": "memory", "sessions": 0}

    def test_list_containers(self, client: TestClient) -> None:
        resp = client.get("/api/containers")
        assert resp.status_code == 200
        containers = resp.json()["containers"]
        assert [c["id"] for c in containers] == ["demo-alpine", "demo-u1", "demo-u2"]
        assert containers[1]["ports"] == [{"PublicPort": 10022, "PrivatePort": 22, "Type": "tcp"}]

    def test_start_and_stop(self, client: TestClient) -> None:
        assert client.post("/api/containers/demo-u2/start").status_code == 204
        assert client.post("/api/containers/demo-u1/stop").status_code == 204
        status = {c["id"]: c["status"] for c in client.get("/api/containers").json()["containers"]}
        assert status["demo-u2"] == "running"
        assert status["demo-u1"] == "exited"

    def test_unknown_container(self, client: TestClient) -> None:
        resp = client.post("/api/containers/nope/start")
        assert resp.status_code == 404
        assert "nope" in resp.json()["detail"]

    def test_root_redirects_to_ui(self, client: TestClient) -> None:
        resp = client.get("/", follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/ui/"

    def test_runtime_unavailable(self, offline_client: TestClient) -> None:
        assert offline_client.get("/api/health").status_code == 503
        assert offline_client.get("/api/containers").status_code == 503
        assert offline_client.post("/api/containers/c1/start").status_code == 503


def test_serves_ui_directory(tmp_path: Path) -> None:
    ui_dir = tmp_path / "ui"
    ui_dir.mkdir()
    (ui_dir / "index.html").write_text("<h1>grid</h1>")
    app = create_app(runtime=MemoryRuntime(), settings=Settings(server=ServerConfig(ui_dir=ui_dir)))
    with TestClient(app) as c:
        resp = c.get("/ui/")
    assert resp.status_code == 200
    assert "grid" in resp.text


class TestTerminalWebSocket:
    def test_echo_session(self, client: TestClient) -> None:
        with client.websocket_connect("/api/containers/demo-u1/exec") as ws:
            assert ws.receive_bytes() == b"[shell] /bin/bash -li\n"
            assert ws.receive_bytes() == DEMO_GREETING
            ws.send_text('{"type":"resize","cols":120,"rows":40}')
            assert ws.receive_bytes().endswith(b" resize 120x40\n")
            ws.send_text("ls\n")
            assert ws.receive_bytes() == b"ls\n"
            ws.send_bytes(b"\x03")
            assert ws.receive_bytes() == b"\x03"

    def test_missing_container(self, client: TestClient) -> None:
        with client.websocket_connect("/api/containers/nope/exec") as ws:
            line = ws.receive_bytes()
            assert line.startswith(b"[exec error] ")
            assert b"nope" in line
            with pytest.raises(WebSocketDisconnect):
                ws.receive_bytes()

    def test_refused_when_runtime_unavailable(self, offline_client: TestClient) -> None:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with offline_client.websocket_connect("/api/containers/c1/exec"):
                pass
        assert exc_info.value.code == 1013
