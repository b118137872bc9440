from __future__ import annotations

import json
import queue
import socket
import threading
import time
from contextlib import contextmanager

import pytest
from websockets.sync.server import serve

from arstream.model.codec import decode_message
from arstream.model.reading import SensorReading
from arstream.runtime.connection import ConnectionManager
from arstream.runtime.frame_source import FrameSource
from arstream.runtime.sensor_feed import SensorFeed
from arstream.runtime.state import SessionPhase
from arstream.transport.websocket import WebSocketTransport

JPEG = b"\xff\xd8server\xff\xd9"


def wait_until(pred, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if pred():
            return True
        time.sleep(0.005)
    return pred()


@contextmanager
def running_server(handler, **kwargs):
    server = serve(handler, "127.0.0.1", 0, **kwargs)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server.socket.getsockname()[1]
    finally:
        server.shutdown()
        thread.join(5.0)


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class FakeCamera:
    def __init__(self, payload=JPEG):
        self.payload = payload

    def open(self):
        pass

    def close(self):
        pass

    def capture_still(self):
        return self.payload


def make_manager(port, camera=None, feed=None, interval_s=0.02, write_grace_s=1.0):
    frames = FrameSource(camera or FakeCamera())
    frames.open()
    return ConnectionManager(
        frame_source=frames,
        feed=feed or SensorFeed(),
        transport_factory=lambda ep: WebSocketTransport(ep.url, open_timeout=2.0, close_timeout=0.5),
        port=port,
        interval_s=interval_s,
        write_grace_s=write_grace_s,
    )


@pytest.mark.filterwarnings("error::DeprecationWarning")
def test_transport_round_trip_against_local_server():
    received = queue.Queue()

    def handler(ws):
        for message in ws:
            received.put(message)

    with running_server(handler) as port:
        t = WebSocketTransport(f"ws://127.0.0.1:{port}", open_timeout=2.0, close_timeout=0.5)
        t.open()
        try:
            t.send_text('{"frame":"QQ==","gyro":{"x":0.0,"y":0.0,"z":0.0}}')
            assert received.get(timeout=3.0) == '{"frame":"QQ==","gyro":{"x":0.0,"y":0.0,"z":0.0}}'
        finally:
            t.close()
        assert not t.is_open()


def test_wire_messages_carry_frame_and_latest_gyro():
    received = queue.Queue()

    def handler(ws):
        for message in ws:
            received.put(message)

    feed = SensorFeed()
    feed.push(SensorReading(0.5, -0.25, 2.0))

    with running_server(handler) as port:
        mgr = make_manager(port, feed=feed)
        try:
            state = mgr.start("127.0.0.1").result(5.0)
            assert state.phase is SessionPhase.STREAMING
            assert state.endpoint.url == f"ws://127.0.0.1:{port}"
            text = received.get(timeout=3.0)
        finally:
            mgr.stop()

    assert isinstance(text, str)
    obj = json.loads(text)
    assert set(obj) == {"frame", "gyro"}
    assert set(obj["gyro"]) == {"x", "y", "z"}

    frame, reading = decode_message(text)
    assert frame == JPEG
    assert (reading.x, reading.y, reading.z) == (0.5, -0.25, 2.0)


def test_refused_port_fails_the_session():
    mgr = make_manager(free_port())

    state = mgr.start("127.0.0.1").result(5.0)

    assert state.phase is SessionPhase.FAILED
    assert state.reason == "connection refused"
    assert mgr.current_state().label == "Failed: connection refused"
    assert mgr.stats().sent == 0


def test_server_close_mid_stream_counts_send_failures():
    def handler(ws):
        ws.recv()

    with running_server(handler) as port:
        mgr = make_manager(port)
        try:
            assert mgr.start("127.0.0.1").result(5.0).phase is SessionPhase.STREAMING
            assert wait_until(lambda: mgr.stats().send_failures >= 2, 5.0)
            assert mgr.current_state().phase is SessionPhase.STREAMING
            assert mgr.stats().sent >= 1
        finally:
            mgr.stop()

    assert mgr.current_state().phase is SessionPhase.DISCONNECTED


def test_stop_returns_while_peer_is_not_reading():
    release = threading.Event()

    def handler(ws):
        release.wait(10.0)

    big_frame = b"\xff\xd8" + bytes(2_000_000) + b"\xff\xd9"

    with running_server(handler, max_queue=1, max_size=None) as port:
        mgr = make_manager(port, camera=FakeCamera(big_frame), interval_s=0.01, write_grace_s=0.2)
        try:
            assert mgr.start("127.0.0.1").result(5.0).phase is SessionPhase.STREAMING
            assert wait_until(lambda: mgr.stats().ticks >= 5, 5.0)
            # let the socket buffers fill
            time.sleep(0.5)

            stopped = threading.Event()
            stopper = threading.Thread(target=lambda: (mgr.stop(), stopped.set()), daemon=True)
            started = time.monotonic()
            stopper.start()

            assert stopped.wait(5.0)
            assert time.monotonic() - started < 5.0
            assert mgr.current_state().phase is SessionPhase.DISCONNECTED
        finally:
            release.set()
