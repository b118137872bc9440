from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SensorReading:
    """
    One 3-axis motion sample (gyroscope, rad/s).

    Instances are immutable so a holder can swap them by reference without a lock.
    """
    x: float
    y: float
    z: float
    captured_at: float = 0.0  # epoch seconds

    @classmethod
    def now(cls, x: float, y: float, z: float, *, captured_at: Optional[float] = None) -> "SensorReading":
        return cls(
            x=float(x),
            y=float(y),
            z=float(z),
            captured_at=time.time() if captured_at is None else float(captured_at),
        )

    def format(self, digits: int = 2) -> str:
        return f"Gyro X: {self.x:.{digits}f}, Y: {self.y:.{digits}f}, Z: {self.z:.{digits}f}"


ZERO_READING = SensorReading(0.0, 0.0, 0.0, 0.0)


@dataclass(frozen=True)
class FrameBuffer:
    """
    Encoded still image from one capture call.

    error is set when the capture produced nothing usable.
    """
    data: bytes
    captured_at: float
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and isinstance(self.data, (bytes, bytearray)) and len(self.data) > 0

    @property
    def size(self) -> int:
        return len(self.data) if isinstance(self.data, (bytes, bytearray)) else 0
