from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from arstream.app.config import StreamerConfig
from arstream.app.controller import StreamerController
from arstream.app.drivers import create_camera, create_motion_source, make_transport_factory
from arstream.app.sinks import CycleTraceLogger, LoggingCycleSink
from arstream.core.errors import DeviceError
from arstream.devices.errors import MotionSourceError
from arstream.interfaces.camera import Camera
from arstream.interfaces.cycle_sink import CycleSink
from arstream.interfaces.motion_source import MotionSource
from arstream.model.endpoint import Endpoint
from arstream.runtime.connection import ConnectionManager, TransportFactory
from arstream.runtime.frame_source import FrameSource
from arstream.runtime.sensor_feed import SensorFeed


def build_controller(
    cfg: StreamerConfig,
    *,
    camera: Optional[Camera] = None,
    motion: Optional[MotionSource] = None,
    transport_factory: Optional[TransportFactory] = None,
    logger: Optional[logging.Logger] = None,
) -> StreamerController:
    """
    Wire devices, feed, frame source and connection manager from config.

    camera / motion / transport_factory are injectable (tests, embedding);
    otherwise they are created from the config's driver keys. The camera is
    opened and the motion source attached here, once per process.
    """
    log = logger or logging.getLogger("arstream")
    cfg.validate()

    factory = transport_factory or make_transport_factory(cfg, logger=log)
    camera = camera if camera is not None else create_camera(cfg.camera)
    if motion is None:
        motion = create_motion_source(cfg.motion)

    feed = SensorFeed(logger=log)
    if motion is not None:
        try:
            feed.attach(motion)
        except MotionSourceError as e:
            raise DeviceError(
                "Could not start motion source.",
                hint=str(e),
                details={"driver": cfg.motion.driver},
            ) from None

    frames = FrameSource(camera, logger=log)
    try:
        frames.open()
    except DeviceError:
        feed.detach()
        raise

    trace_path = Path(cfg.trace_path) if cfg.trace_path else None

    def _sinks(endpoint: Endpoint) -> List[CycleSink]:
        sinks: List[CycleSink] = [LoggingCycleSink()]
        if trace_path is not None:
            sinks.append(CycleTraceLogger(logger=log, file_path=trace_path))
        return sinks

    manager = ConnectionManager(
        frame_source=frames,
        feed=feed,
        transport_factory=factory,
        port=cfg.port,
        interval_s=cfg.interval_s,
        initial_delay_s=cfg.initial_delay_s,
        write_grace_s=cfg.write_grace_s,
        sink_factory=_sinks,
        logger=log,
    )

    return StreamerController(manager=manager, feed=feed, frame_source=frames, logger=log)
