from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from arstream.core.recording.async_writer import AsyncWriter

from .base import MessageTransport
from .errors import TransportIOError, TransportOpenError


class JsonlTransport(MessageTransport):
    """
    Dry-run transport: appends every outbound message as one line to a file.

    `url` is accepted for parity with WebSocketTransport and recorded in the log only.
    """

    def __init__(
        self,
        path: str | Path,
        url: str = "",
        flush_interval_s: float = 0.5,
        logger: Optional[logging.Logger] = None,
    ):
        self.path = Path(path)
        self.url = url
        self.flush_interval_s = flush_interval_s
        self._log = logger or logging.getLogger(__name__)
        self._writer: Optional[AsyncWriter] = None

    def open(self) -> None:
        if self._writer is not None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
        except OSError as e:
            raise TransportOpenError(f"cannot open {self.path}: {e}") from None
        self._writer = AsyncWriter(self.path, flush_interval=self.flush_interval_s, logger=self._log)
        self._log.info("JSONL_TRANSPORT_OPEN path=%s url=%s", self.path, self.url)

    def close(self) -> None:
        writer = self._writer
        self._writer = None
        if writer is not None:
            writer.close()

    def is_open(self) -> bool:
        return self._writer is not None

    def send_text(self, text: str) -> None:
        writer = self._writer
        if writer is None or not writer.write(text):
            raise TransportIOError("send while transport not open")
