"""Core domain models for the terminogrid system.

These models represent the data flowing between the dashboard and the
container runtime: the normalized container listing emitted to the UI
and the control messages a terminal client multiplexes over its
WebSocket alongside raw keystrokes.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ContainerStatus(str, enum.Enum):
    """Container states the dashboard cares about.

    The runtime may report others (paused, restarting, dead); those are
    passed through as plain strings.
    """

    RUNNING = "running"
    EXITED = "exited"
    CREATED = "created"


# ---------------------------------------------------------------------------
# Container Listing Models
# ---------------------------------------------------------------------------


class Port(BaseModel):
    """A published port mapping.

    Serialized with the Docker list-entry keys (``PublicPort``,
    ``PrivatePort``, ``Type``) that the frontend already understands.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    public_port: int | None = Field(
        default=None, serialization_alias="PublicPort", description="Host-side port, if published"
    )
    private_port: int | None = Field(
        default=None, serialization_alias="PrivatePort", description="Container-side port"
    )
    protocol: str = Field(default="tcp", serialization_alias="Type", description="tcp or udp")


class Container(BaseModel):
    """Normalized container shape emitted to the UI."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Runtime container ID")
    name: str = Field(default="", description="Primary name without the leading slash")
    image: str = Field(default="", description="Image reference the container runs")
    status: str = Field(default="", description="Runtime state, e.g. running or exited")
    labels: dict[str, str] = Field(default_factory=dict)
    ports: list[Port] = Field(default_factory=list)

    @property
    def is_running(self) -> bool:
        return self.status == ContainerStatus.RUNNING.value

    def to_wire(self) -> dict:
        """Dump using the wire keys, omitting unset port fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Terminal Control Messages
# ---------------------------------------------------------------------------


class ControlMessage(BaseModel):
    """A JSON envelope sent as a text frame by the terminal client.

    ``{"type": "resize", "cols": 80, "rows": 24}`` is the only
    recognized message. Dimensions must be JSON integers; non-positive
    sizes still make it a control message but are not applied.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    type: str
    cols: int
    rows: int

    @property
    def is_resize(self) -> bool:
        return self.type.lower() == "resize"

    @property
    def has_valid_size(self) -> bool:
        return self.cols > 0 and self.rows > 0


def parse_control_message(payload: bytes | str) -> ControlMessage | None:
    """Return the resize message carried by ``payload``, or None.

    None means the payload is not a control message and must be treated
    as terminal data. This includes malformed JSON, missing or
    non-integer dimensions, and any ``type`` other than ``resize``.
    A resize with non-positive dimensions is still returned.
    """
    try:
        message = ControlMessage.model_validate_json(payload)
    except ValidationError:
        return None
    if not message.is_resize:
        return None
    return message
