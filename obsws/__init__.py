"""Asyncio client core for the OBS WebSocket v5 protocol."""

from obsws.config import ClientSettings, get_settings
from obsws.errors import (
    AuthenticationRequiredError,
    ConnectionClosedError,
    NotConnectedError,
    ObsWebSocketError,
    RequestFailure,
)
from obsws.network import Session, SessionEvent, SessionState
from obsws.protocol import EventSubscription

__all__ = [
    "ClientSettings",
    "get_settings",
    "Session",
    "SessionEvent",
    "SessionState",
    "EventSubscription",
    "ObsWebSocketError",
    "AuthenticationRequiredError",
    "ConnectionClosedError",
    "NotConnectedError",
    "RequestFailure",
]
