from __future__ import annotations

import argparse
from dataclasses import replace
from typing import Optional

from arstream.app.config import StreamerConfig, load_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arstream",
        description="Stream camera stills + gyro readings to a WebSocket collector.",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--host", required=True, help="Collector IP address or host name (e.g. 192.168.1.100).")
    common.add_argument("--config", default=None, help="YAML config file.")
    common.add_argument("--port", type=int, default=None, help="Collector port (default 8765).")
    common.add_argument("-v", "--verbose", action="count", default=0, help="-v INFO, -vv DEBUG.")
    common.add_argument("--log-file", default=None, help="Also write logs to this file.")

    devices = argparse.ArgumentParser(add_help=False)
    devices.add_argument("--camera", choices=["opencv", "images"], default=None)
    devices.add_argument("--camera-index", type=int, default=None)
    devices.add_argument("--images", default=None, help="Directory of *.jpg files for --camera images.")
    devices.add_argument("--motion", choices=["simulated", "serial", "none"], default=None)
    devices.add_argument("--serial-port", default=None, help="IMU serial port for --motion serial.")
    devices.add_argument("--baudrate", type=int, default=None)

    ps = sub.add_parser("stream", parents=[common, devices], help="Run a streaming session.")
    ps.add_argument("--secs", type=float, default=None, help="Stop after N seconds (default: until Ctrl+C).")
    ps.add_argument("--interval-ms", type=int, default=None, help="Cycle interval (default 66).")
    ps.add_argument("--transport", choices=["websocket", "jsonl"], default=None)
    ps.add_argument("--out", default=None, help="Output file for --transport jsonl.")
    ps.add_argument("--trace", default=None, help="Write per-cycle events as JSON lines to this file.")

    pp = sub.add_parser("probe", parents=[common], help="Check that the collector accepts a connection.")
    pp.add_argument("--timeout", type=float, default=None, help="Handshake timeout in seconds.")

    return parser


def config_from_args(args: argparse.Namespace, base: Optional[StreamerConfig] = None) -> StreamerConfig:
    """
    Load --config (if any) and apply CLI overrides on top of it.
    """
    cfg = base or load_config(args.config)

    top = {}
    if args.port is not None:
        top["port"] = args.port
    if args.log_file is not None:
        top["log_file"] = args.log_file
    if getattr(args, "interval_ms", None) is not None:
        top["interval_ms"] = args.interval_ms
    if getattr(args, "trace", None) is not None:
        top["trace_path"] = args.trace
    if getattr(args, "timeout", None) is not None:
        top["open_timeout_s"] = args.timeout

    camera = {}
    if getattr(args, "camera", None) is not None:
        camera["driver"] = args.camera
    if getattr(args, "camera_index", None) is not None:
        camera["index"] = args.camera_index
    if getattr(args, "images", None) is not None:
        camera["directory"] = args.images
        camera.setdefault("driver", "images")

    motion = {}
    if getattr(args, "motion", None) is not None:
        motion["driver"] = args.motion
    if getattr(args, "serial_port", None) is not None:
        motion["port"] = args.serial_port
        motion.setdefault("driver", "serial")
    if getattr(args, "baudrate", None) is not None:
        motion["baudrate"] = args.baudrate

    transport = {}
    if getattr(args, "transport", None) is not None:
        transport["driver"] = args.transport
    if getattr(args, "out", None) is not None:
        transport["path"] = args.out
        transport.setdefault("driver", "jsonl")

    if camera:
        top["camera"] = replace(cfg.camera, **camera)
    if motion:
        top["motion"] = replace(cfg.motion, **motion)
    if transport:
        top["transport"] = replace(cfg.transport, **transport)

    return replace(cfg, **top).validate()
