"""Container runtime module for terminogrid.

Abstracts the container engine behind a small async interface used by
both the HTTP API and the terminal bridge.

Public API:
    ContainerRuntime -- Abstract base class
    ProcessHandle -- Attached process stream
    DockerRuntime -- aiodocker backend
    MemoryRuntime -- In-memory demo backend
"""

from terminogrid.runtime.base import (
    ContainerRuntime,
    Execution,
    NotFoundError,
    ProcessHandle,
    RuntimeBackendError,
    UnavailableError,
)
from terminogrid.runtime.memory import MemoryRuntime

__all__ = [
    "ContainerRuntime",
    "DockerRuntime",
    "Execution",
    "MemoryRuntime",
    "NotFoundError",
    "ProcessHandle",
    "RuntimeBackendError",
    "UnavailableError",
]


def __getattr__(name: str) -> type:
    """Lazy import for the Docker backend so aiodocker is only loaded when used."""
    if name == "DockerRuntime":
        from terminogrid.runtime.docker import DockerRuntime
        return DockerRuntime
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
