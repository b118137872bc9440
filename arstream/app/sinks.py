from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import FrozenSet, Optional

from arstream.core.recording.async_writer import AsyncWriter
from arstream.interfaces.cycle_sink import SENT, TICK_SKIPPED, CycleEvent, CycleSink


class LoggingCycleSink(CycleSink):
    """
    Routes cycle outcomes into a logger.

    Successful sends and skipped ticks are DEBUG; failures and discards are INFO
    (the session itself already logs failures at WARNING with context).
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger("arstream.cycles")

    def on_cycle(self, event: CycleEvent) -> None:
        level = logging.DEBUG if event.kind in (SENT, TICK_SKIPPED) else logging.INFO
        self._log.log(level, "CYCLE kind=%s tick=%d detail=%s", event.kind, event.tick, event.detail)

    def close(self) -> None:
        return None


@dataclass
class CycleTraceLogger(CycleSink):
    """
    Writes cycle events to a JSONL file through an AsyncWriter.

    kinds restricts the trace to some event kinds (None keeps all of them).
    Without file_path the sink accepts events and records nothing.
    """
    logger: logging.Logger
    file_path: Optional[Path] = None
    flush_interval_s: float = 0.5
    kinds: Optional[FrozenSet[str]] = None

    def __post_init__(self) -> None:
        self.events_traced = 0
        self._writer: Optional[AsyncWriter] = None
        if self.file_path is None:
            return
        self.file_path = Path(self.file_path)
        self._writer = AsyncWriter(self.file_path, self.flush_interval_s, logger=self.logger)
        self.logger.info("CYCLE_TRACE_OPEN path=%s", self.file_path)

    def on_cycle(self, event: CycleEvent) -> None:
        writer = self._writer
        if writer is None or (self.kinds is not None and event.kind not in self.kinds):
            return

        row = {
            "tick": event.tick,
            "kind": event.kind,
            "ts_utc": event.ts_utc or datetime.now(timezone.utc).isoformat(),
        }
        if event.detail is not None:
            row["detail"] = event.detail

        if writer.write(json.dumps(row, ensure_ascii=False)):
            self.events_traced += 1

    def close(self) -> None:
        writer, self._writer = self._writer, None
        if writer is not None:
            writer.close()
