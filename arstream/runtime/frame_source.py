from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from arstream.core.errors import CaptureError, DeviceError
from arstream.devices.errors import CameraError
from arstream.interfaces.camera import Camera
from arstream.model.reading import FrameBuffer


class FrameSource:
    """
    On-demand still capture on top of a Camera.

    Responsibilities:
      - open/close the camera and track readiness
      - refuse overlapping capture() calls instead of queueing them
      - translate driver failures into CaptureError (per-cycle, non-fatal)
    """

    def __init__(self, camera: Camera, *, logger: Optional[logging.Logger] = None):
        self._camera = camera
        self._log = logger or logging.getLogger(__name__)
        self._ready = False
        self._busy = threading.Lock()

    @property
    def camera(self) -> Camera:
        return self._camera

    @property
    def is_ready(self) -> bool:
        return self._ready

    def open(self) -> None:
        if self._ready:
            return
        try:
            self._camera.open()
        except PermissionError as e:
            raise DeviceError(
                "Camera permission required.",
                hint="Grant camera access to this process and retry.",
                details={"camera": type(self._camera).__name__, "error": str(e)},
            ) from None
        except (CameraError, OSError) as e:
            raise DeviceError(
                "Could not open camera.",
                hint=str(e),
                details={"camera": type(self._camera).__name__},
            ) from None
        self._ready = True
        self._log.info("CAMERA_OPEN camera=%s", type(self._camera).__name__)

    def close(self) -> None:
        if not self._ready:
            return
        self._ready = False
        try:
            self._camera.close()
        except Exception:
            self._log.exception("CAMERA_CLOSE_FAILED")

    def capture(self) -> FrameBuffer:
        if not self._ready:
            raise CaptureError("Camera not ready.")

        if not self._busy.acquire(blocking=False):
            raise CaptureError("A capture is already in progress.")
        try:
            try:
                data = self._camera.capture_still()
            except PermissionError as e:
                raise CaptureError("Camera access not authorized.", hint=str(e)) from None
            except Exception as e:
                raise CaptureError(
                    "Camera capture failed.",
                    hint=str(e),
                    details={"camera": type(self._camera).__name__},
                ) from None
        finally:
            self._busy.release()

        if not self._ready:
            # closed while the driver call was running
            raise CaptureError("Camera was closed during capture.")

        frame = FrameBuffer(data=data, captured_at=time.time())
        if not frame.ok:
            raise CaptureError("Camera returned no image data.")
        return frame
