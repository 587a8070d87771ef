"""Shared test fixtures for the terminogrid test suite.

Provides in-memory stand-ins for the container runtime, an attached
shell process and a terminal client so the session bridge can be
driven step by step without Docker or a real WebSocket.
"""

from __future__ import annotations

import asyncio
from typing import Mapping, Sequence

import pytest

from terminogrid.domain.models import Container
from terminogrid.runtime.base import (
    ContainerRuntime,
    Execution,
    NotFoundError,
    ProcessHandle,
    RuntimeBackendError,
)
from terminogrid.session.protocol import ClientFrame, ClientStream, StreamError


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeProcessHandle(ProcessHandle):
    """Scriptable shell process.

    Tests push output with :meth:`emit`/:meth:`finish`/:meth:`fail` and
    observe input via :attr:`written` or :meth:`next_input`.
    """

    def __init__(self) -> None:
        self._output: asyncio.Queue[bytes | Exception] = asyncio.Queue()
        self._input: asyncio.Queue[bytes] = asyncio.Queue()
        self.written: list[bytes] = []
        self.resizes: list[tuple[int, int]] = []
        self.write_error: Exception | None = None
        self.resize_error: Exception | None = None
        self.close_count = 0

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    def emit(self, data: bytes) -> None:
        self._output.put_nowait(data)

    def finish(self) -> None:
        self._output.put_nowait(b"")

    def fail(self, error: Exception) -> None:
        self._output.put_nowait(error)

    async def next_input(self, timeout: float = 1.0) -> bytes:
        return await asyncio.wait_for(self._input.get(), timeout)

    async def read(self) -> bytes:
        if self.closed:
            return b""
        item = await self._output.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def write(self, data: bytes) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.written.append(data)
        self._input.put_nowait(data)

    async def resize(self, cols: int, rows: int) -> None:
        if self.resize_error is not None:
            raise self.resize_error
        self.resizes.append((cols, rows))

    async def close(self) -> None:
        self.close_count += 1
        self._output.put_nowait(b"")


class FakeRuntime(ContainerRuntime):
    """Runtime with a fixed set of targets and scriptable exec rejections."""

    name = "fake"

    def __init__(
        self,
        targets: Sequence[str] = ("c1",),
        rejected: Sequence[Sequence[str]] = (),
        handle: ProcessHandle | None = None,
    ) -> None:
        self.targets = set(targets)
        self.rejected = {tuple(c) for c in rejected}
        self.handle = handle or FakeProcessHandle()
        self.attempts: list[tuple[str, ...]] = []
        self.envs: list[dict[str, str]] = []
        self.attached: list[Execution] = []
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def ping(self) -> None:
        pass

    async def list_containers(self) -> list[Container]:
        return [Container(id=t, name=t, status="running") for t in sorted(self.targets)]

    async def start(self, target_id: str) -> None:
        if target_id not in self.targets:
            raise NotFoundError(f"container {target_id} not found", backend="fake")

    async def stop(self, target_id: str) -> None:
        if target_id not in self.targets:
            raise NotFoundError(f"container {target_id} not found", backend="fake")

    async def exists(self, target_id: str) -> bool:
        return target_id in self.targets

    async def create_exec(
        self,
        target_id: str,
        command: Sequence[str],
        env: Mapping[str, str],
    ) -> Execution:
        command = tuple(command)
        self.attempts.append(command)
        self.envs.append(dict(env))
        if command in self.rejected:
            raise RuntimeBackendError(f"exec {command[0]}: no such file", backend="fake")
        return Execution(exec_id=f"exec-{len(self.attempts)}", target_id=target_id, command=command)

    async def attach(self, execution: Execution) -> ProcessHandle:
        self.attached.append(execution)
        return self.handle


class FakeClientStream(ClientStream):
    """Terminal client driven by the test."""

    def __init__(self) -> None:
        self._incoming: asyncio.Queue[ClientFrame | None | Exception] = asyncio.Queue()
        self._sent: asyncio.Queue[bytes] = asyncio.Queue()
        self.sent: list[bytes] = []
        self.send_error: Exception | None = None

    def feed_text(self, text: str) -> None:
        self._incoming.put_nowait(ClientFrame.text(text))

    def feed_binary(self, data: bytes) -> None:
        self._incoming.put_nowait(ClientFrame.binary(data))

    def disconnect(self) -> None:
        self._incoming.put_nowait(None)

    def break_connection(self, error: Exception) -> None:
        self._incoming.put_nowait(error)

    async def next_sent(self, timeout: float = 1.0) -> bytes:
        return await asyncio.wait_for(self._sent.get(), timeout)

    async def receive(self) -> ClientFrame | None:
        item = await self._incoming.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def send_bytes(self, data: bytes) -> None:
        if self.send_error is not None:
            raise StreamError(str(self.send_error), side="client")
        self.sent.append(data)
        self._sent.put_nowait(data)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def handle() -> FakeProcessHandle:
    return FakeProcessHandle()


@pytest.fixture
def runtime(handle: FakeProcessHandle) -> FakeRuntime:
    return FakeRuntime(targets=["c1"], handle=handle)


@pytest.fixture
def client_stream() -> FakeClientStream:
    return FakeClientStream()
