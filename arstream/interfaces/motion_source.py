from __future__ import annotations

from typing import Callable, Protocol

from arstream.model.reading import SensorReading

ReadingCallback = Callable[[SensorReading], None]


class MotionSource(Protocol):
    """
    Continuous 3-axis motion producer.

    start(cb) begins pushing readings to cb from the source's own thread;
    stop() ends it. Both are idempotent.
    """
    def start(self, callback: ReadingCallback) -> None: ...
    def stop(self) -> None: ...
