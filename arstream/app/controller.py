from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Callable, Optional

from arstream.model.reading import SensorReading
from arstream.runtime.connection import ConnectionManager, StateCallback
from arstream.runtime.frame_source import FrameSource
from arstream.runtime.sensor_feed import SensorFeed
from arstream.runtime.state import SessionState, SessionStats


class StreamerController:
    """
    Shell-facing facade.

    Holds the process-lifetime collaborators (sensor feed, frame source) and the
    connection manager. Every method is safe to call from a UI/render thread.
    """

    def __init__(
        self,
        *,
        manager: ConnectionManager,
        feed: SensorFeed,
        frame_source: FrameSource,
        logger: Optional[logging.Logger] = None,
    ):
        self._manager = manager
        self._feed = feed
        self._frames = frame_source
        self._log = logger or logging.getLogger(__name__)
        self._closed = False

    @property
    def manager(self) -> ConnectionManager:
        return self._manager

    @property
    def feed(self) -> SensorFeed:
        return self._feed

    def start(self, host_text: str) -> "Future[SessionState]":
        return self._manager.start(host_text)

    def stop(self) -> None:
        self._manager.stop()

    def current_state(self) -> SessionState:
        return self._manager.current_state()

    def latest_sensor_reading(self) -> SensorReading:
        return self._feed.current()

    def stats(self) -> SessionStats:
        return self._manager.stats()

    def subscribe_state(self, cb: StateCallback) -> Callable[[], None]:
        return self._manager.subscribe_state(cb)

    def close(self) -> None:
        """Process shutdown: stop the session, release camera and sensor."""
        if self._closed:
            return
        self._closed = True

        try:
            self._manager.stop()
        except Exception:
            self._log.exception("SESSION_STOP_ERROR")

        self._frames.close()
        self._feed.detach()

    def __enter__(self) -> "StreamerController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
