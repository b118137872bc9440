from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

# kinds reported by a streaming session
SENT = "sent"
TICK_SKIPPED = "tick_skipped"
CAPTURE_FAILED = "capture_failed"
ENCODE_FAILED = "encode_failed"
SEND_FAILED = "send_failed"
DISCARDED = "discarded"


@dataclass(frozen=True, slots=True)
class CycleEvent:
    """
    What happened on one tick. kind is one of the module constants;
    detail carries the error text or byte count.
    """
    kind: str
    tick: int
    detail: Optional[str] = None
    ts_utc: Optional[str] = None


class CycleSink(Protocol):
    def on_cycle(self, event: CycleEvent) -> None: ...
    def close(self) -> None: ...
