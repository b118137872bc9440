from __future__ import annotations

class DeviceDriverError(Exception):
    """Base class for device-adapter failures."""

class CameraError(DeviceDriverError):
    pass

class MotionSourceError(DeviceDriverError):
    pass
