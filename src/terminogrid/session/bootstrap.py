"""One-time shell bootstrap for terminal sessions.

Right after a shell is attached, a short script is typed into it that
turns on colors, sets up a few aliases and installs a colored prompt.
It is sent at most once per session no matter how many times the setup
hook runs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from terminogrid.runtime.base import ProcessHandle
from terminogrid.session.registry import SessionRegistry

logger = logging.getLogger(__name__)

SetupHook = Callable[[ProcessHandle], Awaitable[None]]

DEFAULT_SETTLE_DELAY = 0.1

APT_COLOR_DIR = "/etc/apt/apt.conf.d"

# Truecolor cyan user, grey @, blue host, green cwd
PROMPT = (
    r"PS1='\[\e[38;2;52;226;226m\]\u\[\e[0m\]"
    r"\[\e[38;2;85;87;83m\]@\[\e[0m\]"
    r"\[\e[38;2;114;159;207m\]\h\[\e[0m\] "
    r"\[\e[38;2;138;226;52m\]\w\[\e[0m\] \$ '"
)


def build_bootstrap_script(
    term: str = "xterm-256color",
    force_color: bool = True,
    custom_prompt: bool = True,
) -> str:
    """Assemble the bootstrap script as one shell line per statement.

    Alias setup may fail on minimal shells; the script carries on.
    """
    exports = f"export TERM={term} COLORTERM=truecolor"
    if force_color:
        exports += " CLICOLOR_FORCE=1 FORCE_COLOR=1"
    lines = [
        f"{exports};",
        "alias ls='ls --color=auto'; alias grep='grep --color=auto' 2>/dev/null || true;",
        "export LESS='-R';",
        f"if [ -d {APT_COLOR_DIR} ]; then printf 'APT::Color \"1\";\\n' > {APT_COLOR_DIR}/99tg-color; fi;",
    ]
    if custom_prompt:
        lines.append(PROMPT)
    return " \\\n".join(lines) + "\n"


class BootstrapInjector:
    """Sends the bootstrap script into a session's shell exactly once."""

    def __init__(
        self,
        registry: SessionRegistry,
        script: str | None = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
    ) -> None:
        self._registry = registry
        self._script = script if script is not None else build_bootstrap_script()
        self._settle_delay = settle_delay

    @property
    def script(self) -> str:
        return self._script

    async def inject(self, session_key: str, handle: ProcessHandle) -> bool:
        """Send the bootstrap if this session has not had it yet.

        Returns:
            True if this call sent the script, False if it was a no-op.

        Raises:
            RuntimeBackendError: If writing to the shell fails.
        """
        if not self._registry.try_consume_bootstrap(session_key):
            return False
        # Give the shell time to print its first prompt
        await asyncio.sleep(self._settle_delay)
        await handle.write((self._script + "\n").encode())
        logger.debug("Bootstrap sent for session %s", session_key)
        return True

    def hook(self, session_key: str) -> SetupHook:
        """Setup hook for the bridge, bound to one session."""

        async def _setup(handle: ProcessHandle) -> None:
            await self.inject(session_key, handle)

        return _setup
