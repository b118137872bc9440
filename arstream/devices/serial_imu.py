from __future__ import annotations

import json
import logging
import re
import threading
from typing import Optional

import serial
from serial import SerialException

from arstream.interfaces.motion_source import ReadingCallback
from arstream.model.reading import SensorReading

from .errors import MotionSourceError

_SPLIT_RE = re.compile(r"[,;\s]+")


def parse_imu_line(line: bytes | str) -> Optional[SensorReading]:
    """
    Parse one IMU text line into a SensorReading.

    Accepted forms:
      - "x,y,z" (comma, semicolon or whitespace separated)
      - {"x": .., "y": .., "z": ..}
      - {"gyro": {"x": .., "y": .., "z": ..}, ...}
    Returns None for anything else (partial lines, banners, blanks).
    """
    if isinstance(line, (bytes, bytearray)):
        text = bytes(line).decode("ascii", errors="ignore")
    else:
        text = line
    text = text.strip()
    if not text:
        return None

    try:
        if text.startswith("{"):
            obj = json.loads(text)
            g = obj.get("gyro", obj)
            return SensorReading.now(g["x"], g["y"], g["z"])

        parts = [p for p in _SPLIT_RE.split(text) if p]
        if len(parts) != 3:
            return None
        return SensorReading.now(*(float(p) for p in parts))
    except (ValueError, KeyError, TypeError, AttributeError):
        return None


class SerialImuSource:
    """
    Gyroscope stream over a serial line, implemented via pyserial.

    A daemon thread reads newline-terminated samples and pushes each parsed
    reading to the callback. Unparseable lines are dropped.
    """

    def __init__(
        self,
        port: str,
        baudrate: int = 115200,
        timeout: float = 0.05,
        logger: Optional[logging.Logger] = None,
    ):
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.ser: Optional[serial.Serial] = None
        self._log = logger or logging.getLogger(__name__)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.lines_dropped = 0

    def start(self, callback: ReadingCallback) -> None:
        if self._thread is not None:
            return
        try:
            self.ser = serial.Serial(self.port, baudrate=self.baudrate, timeout=self.timeout)
            self.ser.reset_input_buffer()
        except SerialException as e:
            self.ser = None
            raise MotionSourceError(str(e)) from None

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            args=(callback,),
            name="arstream-imu",
            daemon=True,
        )
        self._thread.start()
        self._log.info("IMU_SERIAL_STARTED port=%s baudrate=%d", self.port, self.baudrate)

    def stop(self) -> None:
        self._stop_event.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout=1.0)
        self._thread = None
        if self.ser is not None:
            try:
                self.ser.close()
            finally:
                self.ser = None

    def _run(self, callback: ReadingCallback) -> None:
        while not self._stop_event.is_set():
            ser = self.ser
            if ser is None:
                return
            try:
                line = ser.readline()
            except SerialException:
                self._log.exception("IMU_SERIAL_READ_FAILED port=%s", self.port)
                return
            if not line:
                continue

            reading = parse_imu_line(line)
            if reading is None:
                self.lines_dropped += 1
                continue

            try:
                callback(reading)
            except Exception:
                self._log.exception("IMU_CALLBACK_ERROR")
