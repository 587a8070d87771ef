"""Adapts a FastAPI WebSocket to the terminal client stream interface."""

from __future__ import annotations

import logging

from fastapi import WebSocket
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from terminogrid.session.protocol import ClientFrame, ClientStream, StreamError, exec_error_line

logger = logging.getLogger(__name__)

# What Starlette/uvicorn raise when the peer is already gone
_SEND_ERRORS = (WebSocketDisconnect, RuntimeError, OSError)


class WebSocketClientStream(ClientStream):
    """Client stream over an accepted WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self._ws = websocket
        self._disconnected = False

    @property
    def is_connected(self) -> bool:
        return (
            not self._disconnected
            and self._ws.client_state is WebSocketState.CONNECTED
            and self._ws.application_state is WebSocketState.CONNECTED
        )

    async def receive(self) -> ClientFrame | None:
        if self._disconnected:
            return None
        try:
            message = await self._ws.receive()
        except _SEND_ERRORS as e:
            raise StreamError(f"websocket receive failed: {e}", side="client") from e
        if message["type"] == "websocket.disconnect":
            self._disconnected = True
            logger.debug("Client disconnected (code=%s)", message.get("code"))
            return None
        if message.get("text") is not None:
            return ClientFrame.text(message["text"])
        return ClientFrame.binary(message.get("bytes") or b"")

    async def send_bytes(self, data: bytes) -> None:
        try:
            await self._ws.send_bytes(data)
        except _SEND_ERRORS as e:
            raise StreamError(f"websocket send failed: {e}", side="client") from e

    async def send_error(self, error: BaseException) -> None:
        """Send the one-line session failure diagnostic, if the client is still there."""
        if not self.is_connected:
            return
        try:
            await self.send_bytes(exec_error_line(error))
        except StreamError as e:
            logger.debug("Could not deliver diagnostic: %s", e)

    async def close(self, code: int = 1000) -> None:
        if not self.is_connected:
            return
        try:
            await self._ws.close(code=code)
        except _SEND_ERRORS as e:
            logger.debug("WebSocket close failed: %s", e)
