"""Domain models for terminogrid.

This package contains the container listing shapes and the terminal
control message envelope. All models use Pydantic v2 for validation
and serialization.
"""

from terminogrid.domain.models import (
    Container,
    ContainerStatus,
    ControlMessage,
    Port,
    parse_control_message,
)

__all__ = [
    "Container",
    "ContainerStatus",
    "ControlMessage",
    "Port",
    "parse_control_message",
]
