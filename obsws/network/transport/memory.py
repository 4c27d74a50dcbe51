"""In-process transport used for tests and offline runs."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

from obsws.network.transport.base import BaseTransport, TransportClosed
from obsws.protocol.constants import NORMAL_CLOSURE

LOGGER = logging.getLogger(__name__)


class MemoryTransport(BaseTransport):
    """Queue-backed transport; the peer side is driven through ``push*`` helpers."""

    def __init__(self, settings=None, *, connect_error: Optional[Exception] = None) -> None:
        self._settings = settings
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()
        self._connect_error = connect_error
        self.url: Optional[str] = None
        self.sent: list[str] = []
        self.closed_with: Optional[tuple[int, str]] = None

    @property
    def is_open(self) -> bool:
        return self.url is not None and self.closed_with is None

    async def connect(self, url: str) -> None:
        LOGGER.debug("Memory transport connect(%s)", url)
        if self._connect_error is not None:
            raise self._connect_error
        self.url = url

    async def send(self, data: str) -> None:
        if self.closed_with is not None:
            raise TransportClosed(*self.closed_with)
        LOGGER.debug("Memory transport send(): %s", data)
        self.sent.append(data)

    async def receive(self) -> str | bytes:
        item = await self._inbox.get()
        if isinstance(item, TransportClosed):
            self.closed_with = (item.code, item.reason)
            raise item
        return item

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        LOGGER.debug("Memory transport close(%s)", code)
        if self.closed_with is None:
            self.closed_with = (code, reason)
            self._inbox.put_nowait(TransportClosed(code, reason))

    def push(self, frame: dict[str, Any] | str | bytes) -> None:
        """Queue a frame as if the server had sent it."""

        if isinstance(frame, dict):
            frame = json.dumps(frame)
        self._inbox.put_nowait(frame)

    def push_close(self, code: int, reason: str = "") -> None:
        """Queue a close from the server side."""

        self._inbox.put_nowait(TransportClosed(code, reason))

    def sent_messages(self) -> list[dict[str, Any]]:
        return [json.loads(item) for item in self.sent]
