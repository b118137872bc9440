from __future__ import annotations

import base64
import binascii
import json
import math
from dataclasses import dataclass
from typing import Any, Dict, Tuple, Union

from arstream.core.errors import EncodeError
from .reading import FrameBuffer, SensorReading

AXES = ("x", "y", "z")


@dataclass(frozen=True)
class OutboundMessage:
    """
    One wire message: base64 JPEG plus the gyro axes sampled for it.
    """
    frame: str
    gyro: Tuple[float, float, float]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "frame": self.frame,
            "gyro": dict(zip(AXES, self.gyro)),
        }

    def to_json(self) -> str:
        return json.dumps(self.as_dict(), allow_nan=False, separators=(",", ":"))


def encode_message(frame: Union[FrameBuffer, bytes, bytearray], reading: SensorReading) -> OutboundMessage:
    """
    Combine a capture result and a sensor reading into an OutboundMessage.

    Pure and synchronous. Raises EncodeError when the frame is unusable or an
    axis is not a finite number (JSON has no NaN/Infinity).
    """
    if isinstance(frame, FrameBuffer):
        if not frame.ok:
            raise EncodeError(
                "Capture result has no image data.",
                details={"error": frame.error, "size": frame.size},
            )
        data = frame.data
    else:
        data = frame

    if not isinstance(data, (bytes, bytearray)) or not data:
        raise EncodeError(
            "Frame must be non-empty bytes.",
            details={"type": type(data).__name__},
        )

    try:
        gyro = (float(reading.x), float(reading.y), float(reading.z))
    except (AttributeError, TypeError, ValueError) as e:
        raise EncodeError("Sensor reading is malformed.", hint=str(e)) from None

    if not all(math.isfinite(v) for v in gyro):
        raise EncodeError(
            "Sensor reading has a non-finite axis.",
            details={"gyro": gyro},
        )

    return OutboundMessage(
        frame=base64.b64encode(bytes(data)).decode("ascii"),
        gyro=gyro,
    )


def decode_message(text: Union[str, bytes]) -> Tuple[bytes, SensorReading]:
    """
    Parse wire text back into (jpeg_bytes, reading). Collector-side helper.
    """
    try:
        obj = json.loads(text)
        frame = base64.b64decode(obj["frame"], validate=True)
        g = obj["gyro"]
        reading = SensorReading(float(g["x"]), float(g["y"]), float(g["z"]))
    except (ValueError, KeyError, TypeError, binascii.Error) as e:
        raise EncodeError("Malformed message.", hint=str(e)) from None
    return frame, reading
