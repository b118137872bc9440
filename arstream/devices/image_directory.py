from __future__ import annotations

import threading
from pathlib import Path
from typing import List, Optional

from .errors import CameraError


class ImageDirectoryCamera:
    """
    Replays JPEG files from a directory as if they were live captures.

    Files are served in name order; with loop=False the camera fails once exhausted.
    """

    def __init__(self, directory: str | Path, pattern: str = "*.jpg", loop: bool = True):
        self.directory = Path(directory)
        self.pattern = pattern
        self.loop = loop
        self._files: Optional[List[Path]] = None
        self._next = 0
        self._lock = threading.Lock()

    def open(self) -> None:
        with self._lock:
            if not self.directory.is_dir():
                raise CameraError(f"image directory not found: {self.directory}")
            files = sorted(p for p in self.directory.glob(self.pattern) if p.is_file())
            if not files:
                raise CameraError(f"no '{self.pattern}' files in {self.directory}")
            self._files = files
            self._next = 0

    def close(self) -> None:
        with self._lock:
            self._files = None

    def is_open(self) -> bool:
        return self._files is not None

    def capture_still(self) -> bytes:
        with self._lock:
            if self._files is None:
                raise CameraError("camera not open")
            if self._next >= len(self._files):
                if not self.loop:
                    raise CameraError("image directory exhausted")
                self._next = 0
            path = self._files[self._next]
            self._next += 1

        try:
            return path.read_bytes()
        except OSError as e:
            raise CameraError(f"failed to read {path.name}: {e}") from None
