from __future__ import annotations

import numpy as np
import pytest

import arstream.devices.opencv_camera as cam_mod
from arstream.devices.errors import CameraError
from arstream.devices.opencv_camera import OpenCVCamera


class FakeCapture:
    def __init__(self, index, opened=True, frame=None):
        self.index = index
        self.opened = opened
        self.frame = frame if frame is not None else np.zeros((4, 4, 3), dtype=np.uint8)
        self.props = {}
        self.released = False

    def isOpened(self):
        return self.opened

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def read(self):
        if self.frame is False:
            return False, None
        return True, self.frame

    def release(self):
        self.released = True


def test_open_sets_requested_size(monkeypatch):
    caps = []

    def fake_capture(index):
        caps.append(FakeCapture(index))
        return caps[-1]

    monkeypatch.setattr(cam_mod.cv2, "VideoCapture", fake_capture)

    cam = OpenCVCamera(index=2, width=640, height=360)
    cam.open()

    assert cam.is_open()
    assert caps[0].index == 2
    assert caps[0].props[cam_mod.cv2.CAP_PROP_FRAME_WIDTH] == 640
    assert caps[0].props[cam_mod.cv2.CAP_PROP_FRAME_HEIGHT] == 360


def test_open_missing_device_raises(monkeypatch):
    cap = FakeCapture(7, opened=False)
    monkeypatch.setattr(cam_mod.cv2, "VideoCapture", lambda index: cap)

    with pytest.raises(CameraError, match="index 7"):
        OpenCVCamera(index=7).open()
    assert cap.released


def test_capture_returns_jpeg_bytes(monkeypatch):
    monkeypatch.setattr(cam_mod.cv2, "VideoCapture", lambda index: FakeCapture(index))
    cam = OpenCVCamera()
    cam.open()
    try:
        data = cam.capture_still()
    finally:
        cam.close()

    assert data[:2] == b"\xff\xd8"
    assert not cam.is_open()


def test_capture_without_frame_raises(monkeypatch):
    monkeypatch.setattr(cam_mod.cv2, "VideoCapture", lambda index: FakeCapture(index, frame=False))
    cam = OpenCVCamera()
    cam.open()
    with pytest.raises(CameraError, match="no frame"):
        cam.capture_still()


def test_capture_before_open_raises():
    with pytest.raises(CameraError):
        OpenCVCamera().capture_still()
