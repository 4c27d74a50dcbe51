"""Network stack (transport/session/correlation) for OBS WebSocket v5."""

from obsws.network.correlator import RequestCorrelator
from obsws.network.events import EventDispatcher, SessionEvent
from obsws.network.handshake import HandshakeController
from obsws.network.reconnect import ReconnectionSupervisor
from obsws.network.session import Session
from obsws.network.session_state import SessionState, SessionTracker
from obsws.network.transport.base import BaseTransport
from obsws.network.transport.memory import MemoryTransport
from obsws.network.transport.websocket import WebSocketTransport

__all__ = [
    "Session",
    "SessionEvent",
    "SessionState",
    "SessionTracker",
    "EventDispatcher",
    "HandshakeController",
    "ReconnectionSupervisor",
    "RequestCorrelator",
    "BaseTransport",
    "MemoryTransport",
    "WebSocketTransport",
]
