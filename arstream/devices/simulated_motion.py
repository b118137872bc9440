from __future__ import annotations

import logging
import math
import threading
import time
from typing import Optional

from arstream.interfaces.motion_source import ReadingCallback
from arstream.model.reading import SensorReading


class SimulatedMotionSource:
    """Gyro stand-in: three phase-shifted sine waves at a fixed rate."""

    def __init__(
        self,
        rate_hz: float = 50.0,
        amplitude: float = 0.5,
        period_s: float = 4.0,
        logger: Optional[logging.Logger] = None,
    ):
        if rate_hz <= 0:
            raise ValueError("rate_hz must be > 0")
        self.rate_hz = float(rate_hz)
        self.amplitude = float(amplitude)
        self.period_s = float(period_s)
        self._log = logger or logging.getLogger(__name__)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def sample(self, t: float) -> SensorReading:
        w = 2.0 * math.pi / self.period_s
        a = self.amplitude
        return SensorReading(
            x=a * math.sin(w * t),
            y=a * math.sin(w * t + 2.0 * math.pi / 3.0),
            z=a * math.sin(w * t + 4.0 * math.pi / 3.0),
            captured_at=time.time(),
        )

    def start(self, callback: ReadingCallback) -> None:
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            args=(callback,),
            name="arstream-sim-imu",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout=1.0)
        self._thread = None

    def _run(self, callback: ReadingCallback) -> None:
        t0 = time.monotonic()
        dt = 1.0 / self.rate_hz
        while not self._stop_event.is_set():
            try:
                callback(self.sample(time.monotonic() - t0))
            except Exception:
                self._log.exception("SIM_MOTION_CALLBACK_ERROR")
            self._stop_event.wait(dt)
