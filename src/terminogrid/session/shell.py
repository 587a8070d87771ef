"""Shell negotiation for terminal sessions.

Containers ship with different shells in different places, so a session
tries a fixed list of invocations in priority order and keeps the first
one the runtime accepts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence

from terminogrid.runtime.base import (
    ContainerRuntime,
    Execution,
    NotFoundError,
    RuntimeBackendError,
)

logger = logging.getLogger(__name__)

DEFAULT_SHELL_CANDIDATES: tuple[tuple[str, ...], ...] = (
    ("/bin/bash", "-li"),
    ("/usr/bin/bash", "-li"),
    ("/bin/sh", "-i"),
    ("/usr/bin/sh", "-i"),
)


def color_env(term: str = "xterm-256color", force_color: bool = True) -> dict[str, str]:
    """Environment injected into every negotiated shell."""
    env = {"TERM": term, "COLORTERM": "truecolor"}
    if force_color:
        env["CLICOLOR_FORCE"] = "1"
        env["FORCE_COLOR"] = "1"
    return env


@dataclass(frozen=True)
class NegotiatedShell:
    """The shell candidate the runtime accepted and its execution context."""

    execution: Execution
    command: tuple[str, ...]


class ShellNegotiator:
    """Picks the first shell candidate a target accepts."""

    def __init__(
        self,
        runtime: ContainerRuntime,
        candidates: Sequence[Sequence[str]] = DEFAULT_SHELL_CANDIDATES,
        env: Mapping[str, str] | None = None,
    ) -> None:
        if not candidates:
            raise ValueError("at least one shell candidate is required")
        self._runtime = runtime
        self._candidates = tuple(tuple(c) for c in candidates)
        self._env = dict(env) if env is not None else color_env()

    @property
    def candidates(self) -> tuple[tuple[str, ...], ...]:
        return self._candidates

    async def negotiate(self, target_id: str) -> NegotiatedShell:
        """Create an execution context for the first accepted candidate.

        Raises:
            NotFoundError: If the target does not exist. No candidate is
                tried in that case.
            NegotiationFailedError: If every candidate was rejected.
        """
        if not await self._runtime.exists(target_id):
            raise NotFoundError(f"container {target_id} not found", backend=self._runtime.name)

        last_error: RuntimeBackendError | None = None
        for command in self._candidates:
            try:
                execution = await self._runtime.create_exec(target_id, command, self._env)
            except NotFoundError:
                raise
            except RuntimeBackendError as e:
                logger.debug("Shell %s rejected by %s: %s", " ".join(command), target_id, e)
                last_error = e
                continue
            logger.info("Negotiated shell %s for %s", " ".join(command), target_id)
            return NegotiatedShell(execution=execution, command=command)

        raise NegotiationFailedError(
            f"no shell accepted by {target_id}: {last_error}",
            last_error=last_error,
        ) from last_error


class NegotiationFailedError(Exception):
    """Raised when no shell candidate was accepted by the target."""

    def __init__(self, message: str, last_error: Exception | None = None) -> None:
        super().__init__(message)
        self.last_error = last_error
