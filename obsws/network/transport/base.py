"""Transport abstractions for the OBS WebSocket session."""

from __future__ import annotations

from abc import ABC, abstractmethod

from obsws.protocol.constants import NORMAL_CLOSURE


class TransportClosed(Exception):
    """Raised by a transport once the underlying channel has closed."""

    def __init__(self, code: int, reason: str = "") -> None:
        super().__init__(f"transport closed with code {code}: {reason}" if reason else f"transport closed with code {code}")
        self.code = code
        self.reason = reason


class BaseTransport(ABC):
    """Abstract framed text channel consumed by the session.

    ``receive`` returns one complete frame per call and raises
    ``TransportClosed`` when the peer closes the channel.
    """

    @abstractmethod
    async def connect(self, url: str) -> None:
        ...

    @abstractmethod
    async def send(self, data: str) -> None:
        ...

    @abstractmethod
    async def receive(self) -> str | bytes:
        ...

    @abstractmethod
    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        ...
