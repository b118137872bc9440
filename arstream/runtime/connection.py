from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Callable, List, Optional, Sequence

from arstream.core.errors import HandshakeError, SessionActiveError
from arstream.interfaces.cycle_sink import CycleSink
from arstream.model.codec import OutboundMessage
from arstream.model.endpoint import DEFAULT_PORT, Endpoint
from arstream.runtime.frame_source import FrameSource
from arstream.runtime.sensor_feed import SensorFeed
from arstream.runtime.session import StreamingSession
from arstream.runtime.state import (
    IDLE,
    SessionPhase,
    SessionState,
    SessionStats,
    can_transition,
)
from arstream.transport.base import MessageTransport

StateCallback = Callable[[SessionState], None]
TransportFactory = Callable[[Endpoint], MessageTransport]
SinkFactory = Callable[[Endpoint], Sequence[CycleSink]]


class ConnectionManager:
    """
    Owns the socket lifecycle and the session state machine.

        IDLE -> CONNECTING -> STREAMING -> DISCONNECTED
                     \\             \\
                      +-> FAILED <---+

    The cadence scheduler runs iff the phase is STREAMING. Observers are
    notified in transition order, from whichever thread made the transition.
    """

    def __init__(
        self,
        *,
        frame_source: FrameSource,
        feed: SensorFeed,
        transport_factory: TransportFactory,
        port: int = DEFAULT_PORT,
        interval_s: float = 0.066,
        initial_delay_s: float = 0.0,
        write_grace_s: float = 1.0,
        sink_factory: Optional[SinkFactory] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._frames = frame_source
        self._feed = feed
        self._transport_factory = transport_factory
        self._port = int(port)
        self._interval_s = float(interval_s)
        self._initial_delay_s = float(initial_delay_s)
        self._write_grace_s = float(write_grace_s)
        self._sink_factory = sink_factory
        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.RLock()
        self._state: SessionState = IDLE
        self._session: Optional[StreamingSession] = None
        self._last_session: Optional[StreamingSession] = None
        self._observers: List[StateCallback] = []

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    @property
    def port(self) -> int:
        return self._port

    def current_state(self) -> SessionState:
        return self._state

    def stats(self) -> SessionStats:
        with self._lock:
            session = self._session or self._last_session
        if session is None:
            return SessionStats()
        return session.stats()

    def subscribe_state(self, cb: StateCallback) -> Callable[[], None]:
        with self._lock:
            self._observers.append(cb)

        def _unsubscribe() -> None:
            with self._lock:
                if cb in self._observers:
                    self._observers.remove(cb)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------
    def start(self, host_text: str) -> "Future[SessionState]":
        """
        Begin a session towards ws://<host_text>:<port>.

        Raises InvalidEndpointError (no state change, no I/O) for bad host text
        and SessionActiveError while CONNECTING/STREAMING. The returned future
        resolves to the state reached by the handshake (STREAMING or FAILED,
        or DISCONNECTED if stop() won the race).
        """
        endpoint = Endpoint.parse(host_text, port=self._port)

        with self._lock:
            if self._state.is_active:
                raise SessionActiveError(
                    "A session is already running.",
                    hint="Call stop() before starting a new session.",
                    details={"state": self._state.phase.value},
                )

            transport = self._transport_factory(endpoint)
            sinks = list(self._sink_factory(endpoint)) if self._sink_factory else []
            session = StreamingSession(
                endpoint=endpoint,
                transport=transport,
                frame_source=self._frames,
                feed=self._feed,
                interval_s=self._interval_s,
                initial_delay_s=self._initial_delay_s,
                write_grace_s=self._write_grace_s,
                sinks=sinks,
                logger=self._log,
            )
            self._session = session
            self._last_session = session
            self._transition(SessionState(SessionPhase.CONNECTING, endpoint=endpoint))

        self._log.info("SESSION_START url=%s", endpoint.url)

        fut: "Future[SessionState]" = Future()
        t = threading.Thread(
            target=self._handshake,
            args=(session, fut),
            name="arstream-handshake",
            daemon=True,
        )
        t.start()
        return fut

    def stop(self) -> None:
        """
        Tear down the current session (if any) and go to DISCONNECTED.
        Idempotent from any state; never waits for an in-flight capture.
        """
        with self._lock:
            session = self._session
            self._session = None
            if self._state.phase is not SessionPhase.DISCONNECTED:
                self._log.info("SESSION_STOP state=%s", self._state.phase.value)
                self._transition(SessionState(SessionPhase.DISCONNECTED))

        if session is not None:
            session.shutdown()

    def send(self, message: OutboundMessage, tick: int = 0) -> bool:
        """
        Best-effort write of one message. Valid only while STREAMING;
        failures are logged and reported, never raised, never change state.
        """
        with self._lock:
            session = self._session
            streaming = self._state.phase is SessionPhase.STREAMING
        if not streaming or session is None:
            self._log.debug("SEND_IGNORED state=%s", self._state.phase.value)
            return False
        return session.write(message, tick=tick)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _handshake(self, session: StreamingSession, fut: "Future[SessionState]") -> None:
        reason: Optional[str] = None
        try:
            session.open()
        except HandshakeError as e:
            self._log.warning("HANDSHAKE_FAILED url=%s err=%s", session.endpoint.url, e.message)
            reason = e.message
        except Exception as e:
            self._log.exception("HANDSHAKE_UNEXPECTED_ERROR url=%s", session.endpoint.url)
            reason = str(e) or type(e).__name__

        if reason is not None:
            with self._lock:
                if self._session is session:
                    self._session = None
                    self._transition(
                        SessionState(SessionPhase.FAILED, reason=reason, endpoint=session.endpoint)
                    )
                state = self._state
            session.shutdown()
            fut.set_result(state)
            return

        with self._lock:
            current = self._session is session
            if current:
                self._transition(SessionState(SessionPhase.STREAMING, endpoint=session.endpoint))
                session.begin(self.send, on_fault=lambda reason: self._fail(session, reason))
            state = self._state

        if not current:
            # stop() ran while the handshake was in progress
            self._log.info("HANDSHAKE_DISCARDED url=%s", session.endpoint.url)
            session.shutdown()
        fut.set_result(state)

    def _fail(self, session: StreamingSession, reason: str) -> None:
        with self._lock:
            if self._session is not session:
                return
            self._session = None
            self._transition(SessionState(SessionPhase.FAILED, reason=reason, endpoint=session.endpoint))
        session.shutdown()

    def _transition(self, new: SessionState) -> None:
        # caller holds self._lock
        old = self._state
        if not can_transition(old.phase, new.phase):
            raise RuntimeError(f"illegal transition {old.phase.value} -> {new.phase.value}")
        self._state = new
        self._log.info(
            "STATE %s -> %s%s",
            old.phase.value,
            new.phase.value,
            f" reason={new.reason}" if new.reason else "",
        )
        for cb in list(self._observers):
            try:
                cb(new)
            except Exception:
                self._log.exception("STATE_OBSERVER_ERROR")
