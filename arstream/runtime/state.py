# arstream/runtime/state.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional

from arstream.model.endpoint import Endpoint


class SessionPhase(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    DISCONNECTED = "disconnected"
    FAILED = "failed"


# Allowed phase transitions (from -> to)
TRANSITIONS: Dict[SessionPhase, FrozenSet[SessionPhase]] = {
    SessionPhase.IDLE: frozenset({SessionPhase.CONNECTING, SessionPhase.DISCONNECTED}),
    SessionPhase.CONNECTING: frozenset(
        {SessionPhase.STREAMING, SessionPhase.FAILED, SessionPhase.DISCONNECTED}
    ),
    SessionPhase.STREAMING: frozenset({SessionPhase.FAILED, SessionPhase.DISCONNECTED}),
    SessionPhase.DISCONNECTED: frozenset({SessionPhase.CONNECTING}),
    SessionPhase.FAILED: frozenset({SessionPhase.CONNECTING, SessionPhase.DISCONNECTED}),
}


def can_transition(src: SessionPhase, dst: SessionPhase) -> bool:
    return dst in TRANSITIONS[src]


@dataclass(frozen=True)
class SessionState:
    """
    Snapshot of the connection lifecycle, safe to share across threads.

    reason is set only for FAILED.
    """
    phase: SessionPhase
    reason: Optional[str] = None
    endpoint: Optional[Endpoint] = None

    @property
    def is_active(self) -> bool:
        """True while start() must be refused."""
        return self.phase in (SessionPhase.CONNECTING, SessionPhase.STREAMING)

    @property
    def label(self) -> str:
        if self.phase is SessionPhase.CONNECTING:
            target = self.endpoint.url if self.endpoint else "server"
            return f"Connecting to {target}..."
        if self.phase is SessionPhase.STREAMING:
            return "Streaming"
        if self.phase is SessionPhase.FAILED:
            return f"Failed: {self.reason or 'unknown error'}"
        if self.phase is SessionPhase.DISCONNECTED:
            return "Disconnected"
        return "Idle"


IDLE = SessionState(SessionPhase.IDLE)
DISCONNECTED = SessionState(SessionPhase.DISCONNECTED)


@dataclass(frozen=True)
class SessionStats:
    """
    Per-session cycle counters.
    """
    ticks: int = 0
    cycles_started: int = 0
    ticks_skipped: int = 0
    sent: int = 0
    capture_failures: int = 0
    encode_failures: int = 0
    send_failures: int = 0
    discarded: int = 0
