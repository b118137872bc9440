from __future__ import annotations

import json
import threading
from concurrent.futures import Future

import pytest

from arstream.core.errors import HandshakeError
from arstream.interfaces.cycle_sink import CAPTURE_FAILED, DISCARDED, ENCODE_FAILED, SEND_FAILED, SENT
from arstream.model.codec import OutboundMessage
from arstream.model.endpoint import Endpoint
from arstream.model.reading import SensorReading
from arstream.runtime.frame_source import FrameSource
from arstream.runtime.sensor_feed import SensorFeed
from arstream.runtime.session import StreamingSession
from arstream.transport.base import MessageTransport
from arstream.transport.errors import TransportIOError, TransportOpenError

JPEG = b"\xff\xd8session\xff\xd9"


class InlineExecutor:
    def submit(self, fn, *args):
        fut = Future()
        fut.set_result(fn(*args))
        return fut

    def shutdown(self, wait=True, cancel_futures=False):
        pass


class FakeTransport(MessageTransport):
    def __init__(self, fail_open=None, fail_send=False):
        self.fail_open = fail_open
        self.fail_send = fail_send
        self.sent = []
        self.opened = 0
        self.closed = 0
        self._open = False

    def open(self):
        if self.fail_open:
            raise TransportOpenError(self.fail_open)
        self.opened += 1
        self._open = True

    def close(self):
        self.closed += 1
        self._open = False

    def is_open(self):
        return self._open

    def send_text(self, text):
        if self.fail_send:
            raise TransportIOError("connection closed: 1006")
        if not self._open:
            raise TransportIOError("send while transport not open")
        self.sent.append(text)


class StalledTransport(FakeTransport):
    """send_text blocks like a full socket buffer until abort() is called."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.aborted = threading.Event()

    def abort(self):
        self.aborted.set()

    def send_text(self, text):
        self.entered.set()
        if not self.aborted.wait(5.0):
            raise AssertionError("send was never aborted")
        raise TransportIOError("WebSocket send failed: [Errno 32] Broken pipe")


class FakeCamera:
    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.calls = 0

    def open(self):
        pass

    def close(self):
        pass

    def capture_still(self):
        self.calls += 1
        if self.calls in self.fail_on:
            raise RuntimeError(f"capture #{self.calls} failed")
        return JPEG


class BlockingCamera(FakeCamera):
    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def capture_still(self):
        self.entered.set()
        assert self.release.wait(5.0)
        return JPEG


class RecordingSink:
    def __init__(self):
        self.events = []
        self.closed = 0

    def on_cycle(self, event):
        self.events.append(event)

    def close(self):
        self.closed += 1


def make_session(camera=None, transport=None, feed=None, sinks=(), write_grace_s=1.0):
    frames = FrameSource(camera or FakeCamera())
    frames.open()
    session = StreamingSession(
        endpoint=Endpoint("10.0.0.5"),
        transport=transport or FakeTransport(),
        frame_source=frames,
        feed=feed or SensorFeed(),
        interval_s=60.0,
        initial_delay_s=60.0,
        sinks=sinks,
        executor=InlineExecutor(),
        write_grace_s=write_grace_s,
    )
    return session


def start(session):
    session.open()
    session.begin(lambda msg, tick: session.write(msg, tick=tick))


def test_open_failure_becomes_handshake_error():
    session = make_session(transport=FakeTransport(fail_open="connection refused"))
    with pytest.raises(HandshakeError) as ei:
        session.open()
    assert ei.value.message == "connection refused"
    assert "ws://10.0.0.5:8765" in ei.value.hint


def test_cycle_sends_frame_with_latest_reading():
    feed = SensorFeed()
    feed.push(SensorReading(0.5, -0.25, 2.0))
    transport = FakeTransport()
    sink = RecordingSink()
    session = make_session(transport=transport, feed=feed, sinks=[sink])
    start(session)
    try:
        session.run_cycle(1)
    finally:
        session.shutdown()

    assert len(transport.sent) == 1
    obj = json.loads(transport.sent[0])
    assert obj["gyro"] == {"x": 0.5, "y": -0.25, "z": 2.0}
    assert [e.kind for e in sink.events] == [SENT]

    st = session.stats()
    assert st.sent == 1
    assert st.cycles_started == 1


def test_capture_failure_skips_only_that_cycle():
    transport = FakeTransport()
    sink = RecordingSink()
    session = make_session(camera=FakeCamera(fail_on={2}), transport=transport, sinks=[sink])
    start(session)
    try:
        for n in (1, 2, 3):
            session.run_cycle(n)
    finally:
        session.shutdown()

    assert len(transport.sent) == 2
    assert [e.kind for e in sink.events] == [SENT, CAPTURE_FAILED, SENT]
    assert session.stats().capture_failures == 1


def test_non_finite_reading_is_encode_failure():
    feed = SensorFeed()
    feed.push(SensorReading(float("nan"), 0.0, 0.0))
    sink = RecordingSink()
    session = make_session(feed=feed, sinks=[sink])
    start(session)
    try:
        session.run_cycle(1)
    finally:
        session.shutdown()

    assert session.stats().encode_failures == 1
    assert [e.kind for e in sink.events] == [ENCODE_FAILED]


def test_send_failure_is_counted_and_streaming_continues():
    transport = FakeTransport(fail_send=True)
    sink = RecordingSink()
    session = make_session(transport=transport, sinks=[sink])
    start(session)
    try:
        session.run_cycle(1)
        transport.fail_send = False
        session.run_cycle(2)
    finally:
        session.shutdown()

    assert [e.kind for e in sink.events] == [SEND_FAILED, SENT]
    assert sink.events[0].detail == "connection closed: 1006"
    st = session.stats()
    assert st.send_failures == 1
    assert st.sent == 1


def test_write_after_shutdown_is_refused():
    transport = FakeTransport()
    session = make_session(transport=transport)
    start(session)
    session.run_cycle(1)
    session.shutdown()

    session.run_cycle(2)

    assert len(transport.sent) == 1
    assert session.write(OutboundMessage("QQ==", (0.0, 0.0, 0.0)), tick=3) is False
    assert len(transport.sent) == 1
    assert transport.closed >= 1


def test_capture_finishing_after_shutdown_is_discarded():
    cam = BlockingCamera()
    transport = FakeTransport()
    sink = RecordingSink()
    session = make_session(camera=cam, transport=transport, sinks=[sink])
    start(session)

    t = threading.Thread(target=session.run_cycle, args=(1,))
    t.start()
    assert cam.entered.wait(2.0)
    session.shutdown()
    cam.release.set()
    t.join(2.0)

    assert transport.sent == []
    assert session.stats().discarded == 1
    assert sink.events[-1].kind == DISCARDED


def test_shutdown_is_idempotent_and_closes_sinks_once():
    sink = RecordingSink()
    transport = FakeTransport()
    session = make_session(transport=transport, sinks=[sink])
    start(session)

    session.shutdown()
    session.shutdown()

    assert sink.closed == 1
    assert not transport.is_open()
    assert session.scheduler.stopped


def test_begin_after_shutdown_does_nothing():
    session = make_session()
    session.shutdown()
    session.begin(lambda msg, tick: True)
    assert session.scheduler is None
    assert session.write(OutboundMessage("QQ==", (0.0, 0.0, 0.0))) is False


def test_shutdown_aborts_a_write_stalled_past_the_grace_period():
    transport = StalledTransport()
    sink = RecordingSink()
    session = make_session(transport=transport, sinks=[sink], write_grace_s=0.05)
    start(session)

    t = threading.Thread(target=session.run_cycle, args=(1,))
    t.start()
    assert transport.entered.wait(2.0)

    done = threading.Event()
    stopper = threading.Thread(target=lambda: (session.shutdown(), done.set()))
    stopper.start()

    assert done.wait(3.0)
    t.join(2.0)
    assert transport.aborted.is_set()
    assert transport.closed >= 1
    assert session.stats().send_failures == 1
    assert SEND_FAILED in [e.kind for e in sink.events]


def test_shutdown_does_not_abort_when_no_write_is_pending():
    transport = StalledTransport()
    session = make_session(transport=transport, write_grace_s=0.05)
    session.open()

    session.shutdown()

    assert not transport.aborted.is_set()
    assert transport.closed == 1
