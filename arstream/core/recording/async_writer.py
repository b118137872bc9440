# arstream/core/recording/async_writer.py
from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from queue import Empty, SimpleQueue
from typing import List, Optional


class AsyncWriter:
    """
    Line appender that keeps file I/O off the caller's thread.

    Callers queue text lines; a daemon thread appends them to `path` once per
    `flush_interval` seconds, or as soon as `max_batch` lines are pending.
    close() drains everything that was queued before it.
    """

    def __init__(
        self,
        path: Path,
        flush_interval: float = 0.5,
        *,
        max_batch: int = 256,
        logger: Optional[logging.Logger] = None,
    ):
        self._path = Path(path)
        self._flush_interval = max(0.0, float(flush_interval))
        self._max_batch = max(1, int(max_batch))
        self._log = logger or logging.getLogger(__name__)

        self._pending: SimpleQueue[str] = SimpleQueue()
        self._closing = threading.Event()
        self._lines_written = 0
        self._batches_dropped = 0

        self._thread = threading.Thread(target=self._drain_loop, name="arstream-writer", daemon=True)
        self._thread.start()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lines_written(self) -> int:
        return self._lines_written

    @property
    def batches_dropped(self) -> int:
        return self._batches_dropped

    @property
    def closed(self) -> bool:
        return self._closing.is_set()

    def write(self, line: str) -> bool:
        """Queue one line. Returns False once close() has been called."""
        if self._closing.is_set():
            return False
        self._pending.put(line)
        return True

    def close(self) -> None:
        if self._closing.is_set():
            return
        self._closing.set()
        self._thread.join()

    def _drain_loop(self) -> None:
        batch: List[str] = []
        flush_at = time.monotonic() + self._flush_interval

        while True:
            closing = self._closing.is_set()
            if closing:
                wait = 0.0
            elif batch:
                wait = max(0.0, flush_at - time.monotonic())
            else:
                wait = 0.1
            try:
                batch.append(self._pending.get(timeout=wait) if wait > 0 else self._pending.get_nowait())
            except Empty:
                if closing:
                    break

            if batch and (closing or len(batch) >= self._max_batch or time.monotonic() >= flush_at):
                self._append(batch)
                batch = []
                flush_at = time.monotonic() + self._flush_interval

        if batch:
            self._append(batch)

    def _append(self, batch: List[str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.writelines(line + "\n" for line in batch)
        except OSError:
            # the batch is lost; later batches are still attempted
            self._batches_dropped += 1
            self._log.exception("ASYNC_WRITER_APPEND_FAILED path=%s lines=%d", self._path, len(batch))
            return
        self._lines_written += len(batch)
