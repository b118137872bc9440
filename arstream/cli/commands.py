from __future__ import annotations

import argparse
import logging
import threading
import time
from typing import Optional

from arstream.app.config import StreamerConfig
from arstream.app.drivers import make_transport_factory
from arstream.app.runner import build_controller
from arstream.model.endpoint import Endpoint
from arstream.runtime.state import SessionPhase, SessionState, SessionStats
from arstream.transport.errors import TransportOpenError


# ---------------- Status printing ----------------

def print_state(st: SessionState) -> None:
    print(f"[state] {st.label}", flush=True)


def format_stats(s: SessionStats) -> str:
    return (
        f"ticks={s.ticks} sent={s.sent} skipped={s.ticks_skipped} "
        f"capture_err={s.capture_failures} encode_err={s.encode_failures} "
        f"send_err={s.send_failures} discarded={s.discarded}"
    )


# ---------------- Commands ----------------

def cmd_stream(args: argparse.Namespace, cfg: StreamerConfig) -> int:
    log = logging.getLogger("arstream.cli")
    # bad host text fails here, before any device is opened
    Endpoint.parse(args.host, port=cfg.port)

    with build_controller(cfg) as ctl:
        done = threading.Event()

        def _on_state(st: SessionState) -> None:
            print_state(st)
            if st.phase in (SessionPhase.FAILED, SessionPhase.DISCONNECTED):
                done.set()

        ctl.subscribe_state(_on_state)

        ctl.start(args.host)
        print("Streaming… Press Ctrl+C to stop", flush=True)

        deadline: Optional[float] = time.monotonic() + args.secs if args.secs else None
        try:
            while not done.is_set():
                if deadline is not None and time.monotonic() >= deadline:
                    log.info("STREAM_TIME_LIMIT secs=%s", args.secs)
                    break
                timeout = 1.0 if deadline is None else max(0.0, min(1.0, deadline - time.monotonic()))
                done.wait(timeout)
                if ctl.current_state().phase is SessionPhase.STREAMING:
                    print(f"{ctl.latest_sensor_reading().format()}  |  {format_stats(ctl.stats())}", flush=True)
        except KeyboardInterrupt:
            pass

        state = ctl.current_state()
        ctl.stop()
        print(f"Summary: {format_stats(ctl.stats())}")

    return 1 if state.phase is SessionPhase.FAILED else 0


def cmd_probe(args: argparse.Namespace, cfg: StreamerConfig) -> int:
    endpoint = Endpoint.parse(args.host, port=cfg.port)
    transport = make_transport_factory(cfg)(endpoint)

    print_state(SessionState(SessionPhase.CONNECTING, endpoint=endpoint))
    try:
        transport.open()
    except TransportOpenError as e:
        print_state(SessionState(SessionPhase.FAILED, reason=str(e), endpoint=endpoint))
        return 1

    try:
        print_state(SessionState(SessionPhase.STREAMING, endpoint=endpoint))
        print(f"[probe] collector at {endpoint.url} accepted the connection")
    finally:
        transport.close()
    print_state(SessionState(SessionPhase.DISCONNECTED))
    return 0
