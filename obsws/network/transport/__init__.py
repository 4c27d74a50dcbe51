from .base import BaseTransport, TransportClosed
from .memory import MemoryTransport
from .websocket import WebSocketTransport

__all__ = ["BaseTransport", "TransportClosed", "MemoryTransport", "WebSocketTransport"]
