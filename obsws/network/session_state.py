"""Session state tracking for one OBS WebSocket client."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


class SessionState(enum.Enum):
    """Client-side handshake state machine."""

    IDLE = "IDLE"
    SOCKET_CONNECTING = "SOCKET_CONNECTING"
    AWAITING_HELLO = "AWAITING_HELLO"
    AWAITING_IDENTIFIED = "AWAITING_IDENTIFIED"
    IDENTIFIED = "IDENTIFIED"
    CLOSED = "CLOSED"


@dataclass
class SessionTracker:
    """In-memory session metadata."""

    state: SessionState = SessionState.IDLE
    attempt: int = 0
    server_version: Optional[str] = None
    negotiated_rpc_version: Optional[int] = None
    last_transition_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def transition(self, next_state: SessionState) -> None:
        """Move the session into a new state, validating allowed transitions."""

        if not self._is_valid_transition(self.state, next_state):
            raise ValueError(f"Invalid transition {self.state.value} → {next_state.value}")
        if next_state is SessionState.SOCKET_CONNECTING:
            self.attempt += 1
            self.server_version = None
            self.negotiated_rpc_version = None
        self.state = next_state
        self.last_transition_at = datetime.now(tz=timezone.utc)

    @staticmethod
    def _is_valid_transition(current: SessionState, nxt: SessionState) -> bool:
        allowed = {
            SessionState.IDLE: {SessionState.SOCKET_CONNECTING, SessionState.CLOSED},
            SessionState.SOCKET_CONNECTING: {SessionState.AWAITING_HELLO, SessionState.CLOSED},
            SessionState.AWAITING_HELLO: {SessionState.AWAITING_IDENTIFIED, SessionState.CLOSED},
            SessionState.AWAITING_IDENTIFIED: {SessionState.IDENTIFIED, SessionState.CLOSED},
            SessionState.IDENTIFIED: {SessionState.CLOSED},
            SessionState.CLOSED: {SessionState.SOCKET_CONNECTING},
        }
        return nxt in allowed.get(current, set())
