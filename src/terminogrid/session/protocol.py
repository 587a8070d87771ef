"""Client side of the terminal protocol.

A terminal client speaks over a message-framed duplex connection with
two frame kinds. Binary frames carry raw terminal bytes in both
directions; text frames from the client may carry a JSON control
envelope (see :func:`terminogrid.domain.models.parse_control_message`)
and are otherwise raw terminal input too.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass

SHELL_NOTICE_PREFIX = "[shell] "
EXEC_ERROR_PREFIX = "[exec error] "


class FrameKind(str, enum.Enum):
    TEXT = "text"
    BINARY = "binary"


@dataclass(frozen=True)
class ClientFrame:
    """One message received from the client."""

    kind: FrameKind
    payload: bytes

    @classmethod
    def text(cls, data: str) -> ClientFrame:
        return cls(FrameKind.TEXT, data.encode("utf-8"))

    @classmethod
    def binary(cls, data: bytes) -> ClientFrame:
        return cls(FrameKind.BINARY, data)


class ClientStream(ABC):
    """The client's end of a terminal session.

    Not safe for concurrent writers; the bridge serializes every
    :meth:`send_bytes` call through one lock.
    """

    @abstractmethod
    async def receive(self) -> ClientFrame | None:
        """Receive the next frame.

        Returns:
            The next frame, or None once the client has disconnected.

        Raises:
            StreamError: If the connection fails other than by a close.
        """
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None:
        """Send ``data`` as one binary frame.

        Raises:
            StreamError: If the frame cannot be sent.
        """
        ...


def shell_notice(command: tuple[str, ...] | list[str]) -> bytes:
    """Informational line naming the shell that was picked."""
    return f"{SHELL_NOTICE_PREFIX}{' '.join(command)}\n".encode()


def exec_error_line(error: BaseException) -> bytes:
    """Diagnostic line sent to the client when a session fails."""
    return f"{EXEC_ERROR_PREFIX}{error}\n".encode()


class StreamError(Exception):
    """Raised when reading from or writing to either side of a session fails."""

    def __init__(self, message: str, side: str = "") -> None:
        super().__init__(message)
        self.side = side
