"""Interactive terminal sessions for terminogrid.

Turns a client connection into a live, resizable terminal attached to a
shell inside a container.

Public API:
    TerminalBridge -- Pumps one session in both directions
    ShellNegotiator -- Picks the first shell a container accepts
    BootstrapInjector -- Sends the one-time shell setup script
    SessionRegistry -- Tracks live sessions
"""

from terminogrid.session.bootstrap import BootstrapInjector, build_bootstrap_script
from terminogrid.session.bridge import BridgeCancelledError, BridgeState, TerminalBridge
from terminogrid.session.protocol import ClientFrame, ClientStream, FrameKind, StreamError
from terminogrid.session.registry import Session, SessionRegistry
from terminogrid.session.shell import (
    DEFAULT_SHELL_CANDIDATES,
    NegotiatedShell,
    NegotiationFailedError,
    ShellNegotiator,
    color_env,
)

__all__ = [
    "DEFAULT_SHELL_CANDIDATES",
    "BootstrapInjector",
    "BridgeCancelledError",
    "BridgeState",
    "ClientFrame",
    "ClientStream",
    "FrameKind",
    "NegotiatedShell",
    "NegotiationFailedError",
    "Session",
    "SessionRegistry",
    "ShellNegotiator",
    "StreamError",
    "TerminalBridge",
    "build_bootstrap_script",
    "color_env",
]
