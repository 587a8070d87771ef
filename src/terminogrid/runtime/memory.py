"""In-memory demo runtime.

Serves a fixed set of demo containers and an echo "shell" so the
dashboard can be exercised on a machine without a Docker daemon.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from datetime import datetime
from typing import Mapping, Sequence

from terminogrid.domain.models import Container, ContainerStatus, Port
from terminogrid.runtime.base import (
    ContainerRuntime,
    Execution,
    NotFoundError,
    ProcessHandle,
    RuntimeBackendError,
)

logger = logging.getLogger(__name__)

DEMO_GREETING = b"Demo session connected. Input is echoed back.\n"


def demo_containers() -> list[Container]:
    return [
        Container(
            id="demo-u1",
            name="u1",
            image="ubuntu:24.04",
            status=ContainerStatus.RUNNING.value,
            ports=[Port(public_port=10022, private_port=22, protocol="tcp")],
        ),
        Container(
            id="demo-u2",
            name="u2",
            image="ubuntu:24.04",
            status=ContainerStatus.EXITED.value,
        ),
        Container(
            id="demo-alpine",
            name="alpine",
            image="alpine:3.20",
            status=ContainerStatus.RUNNING.value,
        ),
    ]


class EchoProcessHandle(ProcessHandle):
    """Loopback handle: everything written comes straight back out.

    Resizes are reported as a timestamped note line in the output.
    """

    def __init__(self, greeting: bytes = b"") -> None:
        self._output: asyncio.Queue[bytes] = asyncio.Queue()
        self._closed = False
        self.size: tuple[int, int] | None = None
        if greeting:
            self._output.put_nowait(greeting)

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def read(self) -> bytes:
        if self._closed:
            return b""
        return await self._output.get()

    async def write(self, data: bytes) -> None:
        if self._closed:
            raise RuntimeBackendError("echo session is closed", backend="memory")
        if data:
            self._output.put_nowait(data)

    async def resize(self, cols: int, rows: int) -> None:
        self.size = (cols, rows)
        note = f"{datetime.now():%H:%M:%S} resize {cols}x{rows}\n"
        self._output.put_nowait(note.encode())

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Wake a reader blocked on the queue
        self._output.put_nowait(b"")


class MemoryRuntime(ContainerRuntime):
    """Demo runtime keeping container state in a process-local list."""

    name = "memory"

    def __init__(self, containers: list[Container] | None = None) -> None:
        self._lock = threading.RLock()
        self._items = list(containers) if containers is not None else demo_containers()
        self._exec_ids = itertools.count(1)

    async def connect(self) -> None:
        logger.info("Using in-memory demo runtime (%d containers)", len(self._items))

    async def close(self) -> None:
        pass

    async def ping(self) -> None:
        pass

    async def list_containers(self) -> list[Container]:
        """Return a snapshot, running containers first, then by name."""
        with self._lock:
            out = list(self._items)
        out.sort(key=lambda c: (not c.is_running, c.name.lower()))
        return out

    async def start(self, target_id: str) -> None:
        self._set_status(target_id, ContainerStatus.RUNNING.value)

    async def stop(self, target_id: str) -> None:
        self._set_status(target_id, ContainerStatus.EXITED.value)

    async def exists(self, target_id: str) -> bool:
        with self._lock:
            return any(c.id == target_id for c in self._items)

    async def create_exec(
        self,
        target_id: str,
        command: Sequence[str],
        env: Mapping[str, str],
    ) -> Execution:
        if not await self.exists(target_id):
            raise NotFoundError(f"container {target_id} not found", backend="memory")
        return Execution(
            exec_id=f"demo-exec-{next(self._exec_ids)}",
            target_id=target_id,
            command=tuple(command),
        )

    async def attach(self, execution: Execution) -> ProcessHandle:
        return EchoProcessHandle(greeting=DEMO_GREETING)

    def _set_status(self, target_id: str, status: str) -> None:
        with self._lock:
            for i, item in enumerate(self._items):
                if item.id == target_id:
                    self._items[i] = item.model_copy(update={"status": status})
                    return
        raise NotFoundError(f"container {target_id} not found", backend="memory")
