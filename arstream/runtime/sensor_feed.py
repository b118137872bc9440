from __future__ import annotations

import logging
from typing import Optional

from arstream.interfaces.motion_source import MotionSource
from arstream.model.reading import SensorReading, ZERO_READING


class SensorFeed:
    """
    Latest-value cell for motion readings.

    The producer replaces the held reading by reference; readings are immutable,
    so current() needs no lock and never sees a torn value. History is not kept.
    The subscription lives for the whole process, not for a streaming session.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)
        self._latest: SensorReading = ZERO_READING
        self._samples_seen = 0
        self._source: Optional[MotionSource] = None

    @property
    def samples_seen(self) -> int:
        return self._samples_seen

    @property
    def attached(self) -> bool:
        return self._source is not None

    def attach(self, source: MotionSource) -> None:
        if self._source is source:
            return
        if self._source is not None:
            raise RuntimeError("SensorFeed already attached to a motion source")
        source.start(self.push)
        self._source = source
        self._log.info("SENSOR_FEED_ATTACHED source=%s", type(source).__name__)

    def detach(self) -> None:
        source = self._source
        self._source = None
        if source is None:
            return
        try:
            source.stop()
        except Exception:
            self._log.exception("SENSOR_FEED_DETACH_FAILED")

    def push(self, reading: SensorReading) -> None:
        self._latest = reading
        self._samples_seen += 1

    def current(self) -> SensorReading:
        return self._latest

    latest = current
