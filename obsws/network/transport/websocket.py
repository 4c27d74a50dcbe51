"""WebSocket transport implementation."""

from __future__ import annotations

import logging
from typing import Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed
from websockets.typing import Subprotocol

from obsws.config import ClientSettings
from obsws.network.transport.base import BaseTransport, TransportClosed
from obsws.protocol.constants import NORMAL_CLOSURE, WebSocketCloseCode

LOGGER = logging.getLogger(__name__)


def _closed_from(exc: ConnectionClosed) -> TransportClosed:
    frame = exc.rcvd
    if frame is None:
        return TransportClosed(int(WebSocketCloseCode.ABNORMAL_CLOSURE), "connection lost")
    return TransportClosed(frame.code, frame.reason)


class WebSocketTransport(BaseTransport):
    """WebSocket-based transport speaking the ``obswebsocket.json`` subprotocol."""

    def __init__(self, settings: ClientSettings) -> None:
        self._settings = settings
        self._ws: Optional[ClientConnection] = None

    async def connect(self, url: str) -> None:
        LOGGER.info("Connecting to OBS WebSocket at %s", url)
        self._ws = await connect(
            url,
            subprotocols=[Subprotocol(self._settings.subprotocol)],
            open_timeout=self._settings.open_timeout_seconds,
            max_size=self._settings.max_message_bytes,
        )

    async def send(self, data: str) -> None:
        if not self._ws:
            raise RuntimeError("WebSocket transport not connected")
        LOGGER.debug("WebSocket send: %s", data)
        try:
            await self._ws.send(data)
        except ConnectionClosed as exc:
            raise _closed_from(exc) from exc

    async def receive(self) -> str | bytes:
        if not self._ws:
            raise RuntimeError("WebSocket transport not connected")
        try:
            raw = await self._ws.recv()
        except ConnectionClosed as exc:
            raise _closed_from(exc) from exc
        LOGGER.debug("WebSocket receive: %s", raw)
        return raw

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        if self._ws:
            LOGGER.info("Closing WebSocket transport (code %s)", code)
            await self._ws.close(code=code, reason=reason)
            self._ws = None
