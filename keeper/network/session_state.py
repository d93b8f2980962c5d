"""Session tracking for the authenticated service connection."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

LOGGER = logging.getLogger(__name__)


class SessionState(enum.Enum):
    """Connection/logon lifecycle, driven only by transport events."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    LOGGING_ON = "LOGGING_ON"
    LOGGED_ON = "LOGGED_ON"
    LOGGING_OFF = "LOGGING_OFF"


@dataclass
class SessionTracker:
    """In-memory session metadata."""

    state: SessionState = SessionState.DISCONNECTED
    last_transition_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def transition(self, next_state: SessionState, *, strict: bool = True) -> None:
        """Move the session into a new state, validating allowed transitions.

        With ``strict=False`` an unexpected transition is logged and applied,
        since the event that caused it already happened on the wire.
        """

        if not self._is_valid_transition(self.state, next_state):
            if strict:
                raise ValueError(f"Invalid transition {self.state.value} → {next_state.value}")
            LOGGER.warning("Unexpected session transition %s → %s", self.state.value, next_state.value)
        self.state = next_state
        self.last_transition_at = datetime.now(tz=timezone.utc)

    @staticmethod
    def _is_valid_transition(current: SessionState, nxt: SessionState) -> bool:
        if nxt is SessionState.DISCONNECTED:
            return True
        allowed = {
            SessionState.DISCONNECTED: {SessionState.CONNECTING, SessionState.CONNECTED},
            SessionState.CONNECTING: {SessionState.CONNECTED},
            SessionState.CONNECTED: {SessionState.LOGGING_ON},
            SessionState.LOGGING_ON: {SessionState.LOGGED_ON, SessionState.CONNECTED},
            SessionState.LOGGED_ON: {SessionState.LOGGING_OFF},
            SessionState.LOGGING_OFF: {SessionState.LOGGING_OFF},
        }
        return nxt in allowed.get(current, set())
