from __future__ import annotations

from typing import Protocol


class Camera(Protocol):
    """
    Still-image capability.

    capture_still() returns one encoded (JPEG) image. Implementations raise
    CameraError (or PermissionError when access was never granted).
    """
    def open(self) -> None: ...
    def close(self) -> None: ...
    def capture_still(self) -> bytes: ...
