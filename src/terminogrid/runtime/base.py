"""Abstract interfaces for the container runtime.

The terminal bridge and the HTTP API only ever talk to a runtime through
these classes, so the Docker backend and the in-memory demo backend can
be swapped without touching anything else.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from terminogrid.domain.models import Container

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Execution:
    """A negotiated, not yet attached, command invocation inside a target.

    ``backend`` carries whatever the concrete runtime needs to attach
    later (for Docker, the aiodocker ``Exec`` object).
    """

    exec_id: str
    target_id: str
    command: tuple[str, ...]
    backend: Any = field(default=None, repr=False, compare=False)


class ProcessHandle(ABC):
    """A live, attached duplex connection to a remote process.

    Owned by exactly one terminal bridge, which must close it on every
    exit path.
    """

    @abstractmethod
    async def read(self) -> bytes:
        """Read the next chunk of process output.

        Returns:
            A non-empty chunk, or ``b""`` once the output stream has ended.

        Raises:
            RuntimeBackendError: If the stream fails for any other reason.
        """
        ...

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """Write raw bytes to the process's standard input."""
        ...

    @abstractmethod
    async def resize(self, cols: int, rows: int) -> None:
        """Resize the pseudo-terminal the process is attached to."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the connection. Safe to call more than once."""
        ...

    async def __aenter__(self) -> ProcessHandle:
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.close()


class ContainerRuntime(ABC):
    """Abstract interface to the container runtime on this host.

    Example usage::

        async with DockerRuntime() as runtime:
            execution = await runtime.create_exec("c1", ["/bin/sh", "-i"], env)
            handle = await runtime.attach(execution)
    """

    name: str = "runtime"

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection to the runtime and verify it answers.

        Raises:
            UnavailableError: If the runtime cannot be reached.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the runtime connection. Safe to call more than once."""
        ...

    @abstractmethod
    async def ping(self) -> None:
        """Check the runtime is reachable, raising UnavailableError if not."""
        ...

    @abstractmethod
    async def list_containers(self) -> list[Container]:
        """List containers, stopped ones included."""
        ...

    @abstractmethod
    async def start(self, target_id: str) -> None:
        ...

    @abstractmethod
    async def stop(self, target_id: str) -> None:
        ...

    @abstractmethod
    async def exists(self, target_id: str) -> bool:
        """Whether ``target_id`` names an existing container."""
        ...

    @abstractmethod
    async def create_exec(
        self,
        target_id: str,
        command: Sequence[str],
        env: Mapping[str, str],
    ) -> Execution:
        """Create an interactive tty execution context for ``command``.

        The context has stdin, stdout and stderr attached and a
        pseudo-terminal allocated. It is not started until attached.

        Raises:
            NotFoundError: If the target does not exist.
            RuntimeBackendError: If the runtime rejects the command.
        """
        ...

    @abstractmethod
    async def attach(self, execution: Execution) -> ProcessHandle:
        """Start ``execution`` in tty mode and return its live handle."""
        ...

    async def __aenter__(self) -> ContainerRuntime:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.close()


class RuntimeBackendError(Exception):
    """Raised when a container runtime operation fails."""

    def __init__(self, message: str, backend: str = "") -> None:
        super().__init__(message)
        self.backend = backend


class NotFoundError(RuntimeBackendError):
    """Raised when the target container does not exist."""


class UnavailableError(RuntimeBackendError):
    """Raised when the container runtime cannot be reached."""
