from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from arstream.core.errors import CaptureError, EncodeError, HandshakeError, SendError
from arstream.interfaces.cycle_sink import (
    CAPTURE_FAILED,
    DISCARDED,
    ENCODE_FAILED,
    SEND_FAILED,
    SENT,
    TICK_SKIPPED,
    CycleEvent,
    CycleSink,
)
from arstream.model.codec import OutboundMessage, encode_message
from arstream.model.endpoint import Endpoint
from arstream.runtime.frame_source import FrameSource
from arstream.runtime.scheduler import CadenceScheduler, FaultCallback
from arstream.runtime.sensor_feed import SensorFeed
from arstream.runtime.state import SessionStats
from arstream.transport.base import MessageTransport
from arstream.transport.errors import TransportError, TransportIOError, TransportOpenError

Sender = Callable[[OutboundMessage, int], bool]  # (message, tick) -> written


class StreamingSession:
    """
    Everything bound to one endpoint for the life of one start()/stop() pair:
    transport, scheduler, cycle worker and counters.

    The frame source and sensor feed are shared, longer-lived collaborators;
    the session only reads from them.
    """

    def __init__(
        self,
        *,
        endpoint: Endpoint,
        transport: MessageTransport,
        frame_source: FrameSource,
        feed: SensorFeed,
        interval_s: float,
        initial_delay_s: float = 0.0,
        sinks: Sequence[CycleSink] = (),
        executor: Optional[Executor] = None,
        write_grace_s: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.endpoint = endpoint
        self._transport = transport
        self._frames = frame_source
        self._feed = feed
        self._interval_s = float(interval_s)
        self._initial_delay_s = float(initial_delay_s)
        self._write_grace_s = max(0.0, float(write_grace_s))
        self._sinks: List[CycleSink] = list(sinks)
        self._log = logger or logging.getLogger(__name__)

        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="arstream-cycle")
        self._scheduler: Optional[CadenceScheduler] = None
        self._sender: Optional[Sender] = None

        # guards the live flag against in-progress writes
        self._gate = threading.Lock()
        self._live = False
        self._closed = False

        self._stats_lock = threading.Lock()
        self._stats = SessionStats()

    @property
    def scheduler(self) -> Optional[CadenceScheduler]:
        return self._scheduler

    @property
    def transport(self) -> MessageTransport:
        return self._transport

    def stats(self) -> SessionStats:
        with self._stats_lock:
            sched = self._scheduler
            return replace(self._stats, ticks=sched.ticks if sched is not None else 0)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def open(self) -> None:
        """Perform the handshake. Raises HandshakeError."""
        self._log.info("HANDSHAKE_START url=%s", self.endpoint.url)
        try:
            self._transport.open()
        except TransportOpenError as e:
            raise HandshakeError(
                str(e) or "handshake failed",
                hint=f"Is the collector listening on {self.endpoint.url}?",
                details={"url": self.endpoint.url},
            ) from None
        except TransportError as e:
            raise HandshakeError(
                f"transport error: {e}",
                details={"url": self.endpoint.url},
            ) from None
        self._log.info("HANDSHAKE_OK url=%s", self.endpoint.url)

    def begin(self, sender: Sender, *, on_fault: Optional[FaultCallback] = None) -> None:
        """Start ticking. Cycles hand finished messages to `sender`."""
        if self._closed or self._scheduler is not None:
            return
        self._sender = sender
        with self._gate:
            self._live = True
        self._scheduler = CadenceScheduler(
            self._interval_s,
            self.run_cycle,
            self._executor,
            initial_delay_s=self._initial_delay_s,
            on_skip=self._on_skip,
            on_fault=on_fault,
            logger=self._log,
        )
        self._scheduler.start()

    def shutdown(self) -> None:
        """
        Stop ticking, stop writing and release the socket. Idempotent.

        Never waits for an in-flight capture. A write that is still blocked
        after write_grace_s (peer not reading) is aborted through the transport.
        """
        if self._closed:
            # a handshake may have completed after the first shutdown
            self._close_transport()
            return
        self._closed = True

        if self._scheduler is not None:
            self._scheduler.stop()

        self._close_gate()

        self._executor.shutdown(wait=False, cancel_futures=True)
        self._close_transport()

        for s in self._sinks:
            try:
                s.close()
            except Exception:
                self._log.exception("CYCLE_SINK_CLOSE_ERROR")

        st = self.stats()
        self._log.info(
            "SESSION_CLOSED url=%s ticks=%d sent=%d skipped=%d capture_failures=%d send_failures=%d",
            self.endpoint.url,
            st.ticks,
            st.sent,
            st.ticks_skipped,
            st.capture_failures,
            st.send_failures,
        )

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------
    def run_cycle(self, tick: int) -> None:
        """capture -> encode -> send for one tick. Never raises."""
        self._bump("cycles_started")

        try:
            frame = self._frames.capture()
        except CaptureError as e:
            self._bump("capture_failures")
            self._log.warning("CAPTURE_FAILED tick=%d err=%s", tick, e.message)
            self._report(CAPTURE_FAILED, tick, e.message)
            return

        if not self._live:
            self._discard(tick, "session stopped during capture")
            return

        try:
            message = encode_message(frame, self._feed.current())
        except EncodeError as e:
            self._bump("encode_failures")
            self._log.warning("ENCODE_FAILED tick=%d err=%s", tick, e.message)
            self._report(ENCODE_FAILED, tick, e.message)
            return

        sender = self._sender
        if not self._live or sender is None:
            self._discard(tick, "session stopped before send")
            return

        if sender(message, tick):
            self._report(SENT, tick, f"bytes={len(message.frame)}")

    def write(self, message: OutboundMessage, *, tick: int = 0) -> bool:
        """
        Best-effort socket write. Returns False (and reports) on failure.
        """
        text = message.to_json()
        with self._gate:
            if not self._live:
                return False
            try:
                self._transport.send_text(text)
            except TransportIOError as e:
                failure: Optional[SendError] = SendError(str(e), details={"url": self.endpoint.url, "tick": tick})
            else:
                failure = None

        if failure is not None:
            self._bump("send_failures")
            self._log.warning("SEND_FAILED url=%s err=%s", self.endpoint.url, failure.message)
            self._report(SEND_FAILED, tick, failure.message)
            return False

        self._bump("sent")
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _close_gate(self) -> None:
        if not self._gate.acquire(timeout=self._write_grace_s):
            self._log.warning(
                "SEND_STALLED url=%s grace_s=%g action=abort", self.endpoint.url, self._write_grace_s
            )
            self._transport.abort()
            self._gate.acquire()
        try:
            self._live = False
        finally:
            self._gate.release()

    def _close_transport(self) -> None:
        try:
            self._transport.close()
        except Exception:
            self._log.exception("TRANSPORT_CLOSE_FAILED url=%s", self.endpoint.url)

    def _on_skip(self, tick: int) -> None:
        self._bump("ticks_skipped")
        self._report(TICK_SKIPPED, tick, "previous cycle still in flight")

    def _discard(self, tick: int, why: str) -> None:
        self._bump("discarded")
        self._log.debug("CYCLE_DISCARDED tick=%d why=%s", tick, why)
        self._report(DISCARDED, tick, why)

    def _bump(self, field: str) -> None:
        with self._stats_lock:
            self._stats = replace(self._stats, **{field: getattr(self._stats, field) + 1})

    def _report(self, kind: str, tick: int, detail: Optional[str] = None) -> None:
        if not self._sinks:
            return
        event = CycleEvent(
            kind=kind,
            tick=tick,
            detail=detail,
            ts_utc=datetime.now(timezone.utc).isoformat(),
        )
        for s in list(self._sinks):
            try:
                s.on_cycle(event)
            except Exception:
                self._log.exception("CYCLE_SINK_ERROR")
