"""Bidirectional terminal bridge.

Connects a client stream to a shell running inside a container:

    client --(text: resize JSON | raw input)--> bridge --> shell stdin
    client <--(binary: raw output)------------- bridge <-- shell stdout

A bridge is single-shot. It negotiates a shell, attaches to it, runs the
optional setup hook, then pumps both directions until one side finishes
or cancellation is signalled. The process handle is closed on every
exit path; the client stream is left for the caller to close.
"""

from __future__ import annotations

import asyncio
import enum
import logging

from terminogrid.domain.models import parse_control_message
from terminogrid.runtime.base import ContainerRuntime, ProcessHandle, RuntimeBackendError
from terminogrid.session.bootstrap import SetupHook
from terminogrid.session.protocol import (
    ClientStream,
    FrameKind,
    StreamError,
    shell_notice,
)
from terminogrid.session.shell import ShellNegotiator

logger = logging.getLogger(__name__)


class BridgeState(str, enum.Enum):
    NEGOTIATING = "negotiating"
    ATTACHED = "attached"
    BRIDGING = "bridging"
    CLOSED = "closed"


class TerminalBridge:
    """Runs one terminal session between a client and a container shell.

    Example usage::

        bridge = TerminalBridge(runtime, negotiator)
        await bridge.run(client, "c1", setup_hook=injector.hook(key))
    """

    def __init__(self, runtime: ContainerRuntime, negotiator: ShellNegotiator) -> None:
        self._runtime = runtime
        self._negotiator = negotiator
        self._state = BridgeState.NEGOTIATING
        self._write_lock = asyncio.Lock()

    @property
    def state(self) -> BridgeState:
        return self._state

    async def run(
        self,
        client: ClientStream,
        target_id: str,
        setup_hook: SetupHook | None = None,
        cancel: asyncio.Event | None = None,
    ) -> None:
        """Bridge ``client`` to a shell in ``target_id`` until the session ends.

        Returns None when the shell exits or the client disconnects.

        Raises:
            NotFoundError: If the target does not exist.
            NegotiationFailedError: If no shell candidate was accepted.
            StreamError: If either side fails mid-session.
            BridgeCancelledError: If ``cancel`` was set first.
        """
        if self._state is not BridgeState.NEGOTIATING:
            raise RuntimeError("a TerminalBridge can only run once")
        try:
            shell = await self._negotiator.negotiate(target_id)
            handle = await self._runtime.attach(shell.execution)
            self._state = BridgeState.ATTACHED
            try:
                await self._notify_shell(client, shell.command)
                if setup_hook is not None:
                    await setup_hook(handle)
                self._state = BridgeState.BRIDGING
                await self._pump(client, handle, cancel)
            finally:
                await handle.close()
        finally:
            self._state = BridgeState.CLOSED

    async def _notify_shell(self, client: ClientStream, command: tuple[str, ...]) -> None:
        # Informational only; a client that already left is caught by the pumps
        try:
            await self._send(client, shell_notice(command))
        except StreamError as e:
            logger.debug("Could not send shell notice: %s", e)

    async def _send(self, client: ClientStream, data: bytes) -> None:
        async with self._write_lock:
            await client.send_bytes(data)

    async def _pump(
        self,
        client: ClientStream,
        handle: ProcessHandle,
        cancel: asyncio.Event | None,
    ) -> None:
        remote_to_client = asyncio.create_task(
            self._remote_to_client(client, handle), name="remote-to-client"
        )
        client_to_remote = asyncio.create_task(
            self._client_to_remote(client, handle), name="client-to-remote"
        )
        waiters: set[asyncio.Future] = {remote_to_client, client_to_remote}
        cancelled: asyncio.Task | None = None
        if cancel is not None:
            cancelled = asyncio.create_task(cancel.wait(), name="bridge-cancel")
            waiters.add(cancelled)

        try:
            done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            if remote_to_client in done:
                logger.debug("Remote stream finished first")
                remote_to_client.result()
                return
            if client_to_remote in done:
                logger.debug("Client stream finished first; closing remote handle")
                await handle.close()
                client_to_remote.result()
                return
            raise BridgeCancelledError("terminal session cancelled")
        finally:
            for task in waiters:
                task.cancel()
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                # The pending cancellation belongs to the caller's cancel scope
                logger.debug("Bridge cancelled; not waiting for pump tasks")
            else:
                await asyncio.gather(*waiters, return_exceptions=True)

    async def _remote_to_client(self, client: ClientStream, handle: ProcessHandle) -> None:
        while True:
            try:
                chunk = await handle.read()
            except RuntimeBackendError as e:
                raise StreamError(f"read from shell failed: {e}", side="remote") from e
            if not chunk:
                return
            await self._send(client, chunk)

    async def _client_to_remote(self, client: ClientStream, handle: ProcessHandle) -> None:
        while True:
            frame = await client.receive()
            if frame is None:
                return
            if frame.kind is FrameKind.TEXT:
                message = parse_control_message(frame.payload)
                if message is not None:
                    if message.has_valid_size:
                        await self._apply_resize(handle, message.cols, message.rows)
                    else:
                        logger.debug("Ignoring resize to %dx%d", message.cols, message.rows)
                    continue
            try:
                await handle.write(frame.payload)
            except RuntimeBackendError as e:
                raise StreamError(f"write to shell failed: {e}", side="remote") from e

    @staticmethod
    async def _apply_resize(handle: ProcessHandle, cols: int, rows: int) -> None:
        # Best effort: a failed resize leaves the old size and the session running
        try:
            await handle.resize(cols, rows)
        except RuntimeBackendError as e:
            logger.debug("Resize to %dx%d failed: %s", cols, rows, e)


class BridgeCancelledError(Exception):
    """Raised when a session is stopped by an external cancellation signal."""
