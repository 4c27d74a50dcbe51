"""Exception taxonomy shared by the session, correlator and transports."""

from __future__ import annotations

from typing import Optional


class ObsWebSocketError(RuntimeError):
    """Base class for every error raised by the client."""


class ConnectionError(ObsWebSocketError):
    """Raised when the transport fails to open or closes before Identified."""


class AuthenticationRequiredError(ConnectionError):
    """Raised when the server asks for authentication and no password is set."""

    def __init__(self, message: str = "Server requires authentication but no password provided") -> None:
        super().__init__(message)


class AlreadyConnectedError(ObsWebSocketError):
    def __init__(self, message: str = "Already connected or connecting") -> None:
        super().__init__(message)


class NotConnectedError(ObsWebSocketError):
    def __init__(self, message: str = "Not connected to OBS WebSocket") -> None:
        super().__init__(message)


class ConnectionClosedError(ObsWebSocketError):
    """Raised against every outstanding request when the transport closes."""

    def __init__(self, code: int, reason: str = "") -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(f"Connection closed (code: {code}){detail}")
        self.code = code
        self.reason = reason


class RequestFailure(ObsWebSocketError):
    """Carries the status the server reported for a failed request."""

    def __init__(self, code: int, comment: str, request_type: str) -> None:
        super().__init__(f'OBS request "{request_type}" failed: {comment} (code: {code})')
        self.code = code
        self.comment = comment
        self.request_type = request_type


class ProtocolParseError(ObsWebSocketError):
    """Raised when an inbound frame cannot be decoded into a protocol message."""

    def __init__(self, message: str, *, raw: Optional[str] = None) -> None:
        super().__init__(message)
        self.raw = raw


class UnknownOpcodeError(ProtocolParseError):
    def __init__(self, op: object, *, raw: Optional[str] = None) -> None:
        super().__init__(f"Unknown message opcode: {op!r}", raw=raw)
        self.op = op


__all__ = [
    "ObsWebSocketError",
    "ConnectionError",
    "AuthenticationRequiredError",
    "AlreadyConnectedError",
    "NotConnectedError",
    "ConnectionClosedError",
    "RequestFailure",
    "ProtocolParseError",
    "UnknownOpcodeError",
]
