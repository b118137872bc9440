from __future__ import annotations

import threading
from typing import Optional

import cv2

from .errors import CameraError


class OpenCVCamera:
    """
    Still capture from a V4L2/AVFoundation/DirectShow device via OpenCV.

    Each capture_still() grabs the newest frame and JPEG-encodes it in memory.
    Default size is the "medium" preset (720x480).
    """

    def __init__(
        self,
        index: int = 0,
        width: int = 720,
        height: int = 480,
        jpeg_quality: int = 80,
    ):
        self.index = int(index)
        self.width = int(width)
        self.height = int(height)
        self.jpeg_quality = int(jpeg_quality)
        self.cap: Optional[cv2.VideoCapture] = None
        self._lock = threading.Lock()

    def open(self) -> None:
        with self._lock:
            if self.cap is not None:
                return
            cap = cv2.VideoCapture(self.index)
            if not cap.isOpened():
                cap.release()
                raise CameraError(f"camera index {self.index} could not be opened")
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
            self.cap = cap

    def close(self) -> None:
        with self._lock:
            if self.cap is not None:
                try:
                    self.cap.release()
                finally:
                    self.cap = None

    def is_open(self) -> bool:
        return self.cap is not None

    def capture_still(self) -> bytes:
        with self._lock:
            if self.cap is None:
                raise CameraError("camera not open")

            ok, frame = self.cap.read()
            if not ok or frame is None:
                raise CameraError("camera returned no frame")

            ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality])
            if not ok:
                raise CameraError("JPEG encoding failed")
            return buf.tobytes()
