from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from arstream.app.config import CameraConfig, MotionConfig, StreamerConfig
from arstream.common.registry import DriverRegistry
from arstream.core.errors import ConfigError
from arstream.devices.image_directory import ImageDirectoryCamera
from arstream.devices.opencv_camera import OpenCVCamera
from arstream.devices.serial_imu import SerialImuSource
from arstream.devices.simulated_motion import SimulatedMotionSource
from arstream.interfaces.camera import Camera
from arstream.interfaces.motion_source import MotionSource
from arstream.model.endpoint import Endpoint
from arstream.transport.base import MessageTransport
from arstream.transport.jsonl import JsonlTransport
from arstream.transport.websocket import WebSocketTransport


def default_cameras() -> DriverRegistry[Camera]:
    return DriverRegistry("camera", {"opencv": OpenCVCamera, "images": ImageDirectoryCamera})


def default_motion_sources() -> DriverRegistry[MotionSource]:
    return DriverRegistry("motion", {"simulated": SimulatedMotionSource, "serial": SerialImuSource})


def default_transports() -> DriverRegistry[MessageTransport]:
    return DriverRegistry("transport", {"websocket": WebSocketTransport, "jsonl": JsonlTransport})


def create_camera(cfg: CameraConfig, registry: Optional[DriverRegistry[Camera]] = None) -> Camera:
    registry = registry or default_cameras()
    driver = cfg.driver.lower()
    if driver == "images":
        if not cfg.directory:
            raise ConfigError(
                "camera.directory is required for the 'images' camera.",
                details={"key": "camera.directory"},
            )
        return registry.create(driver, directory=cfg.directory)
    if driver == "opencv":
        return registry.create(
            driver,
            index=cfg.index,
            width=cfg.width,
            height=cfg.height,
            jpeg_quality=cfg.jpeg_quality,
        )
    return registry.create(driver)


def create_motion_source(
    cfg: MotionConfig,
    registry: Optional[DriverRegistry[MotionSource]] = None,
) -> Optional[MotionSource]:
    """Returns None for driver 'none' (the feed then stays at zero)."""
    driver = cfg.driver.lower()
    if driver == "none":
        return None
    registry = registry or default_motion_sources()
    if driver == "serial":
        if not cfg.port:
            raise ConfigError(
                "motion.port is required for the 'serial' motion source.",
                details={"key": "motion.port"},
            )
        return registry.create(driver, port=cfg.port, baudrate=cfg.baudrate)
    if driver == "simulated":
        return registry.create(driver, rate_hz=cfg.rate_hz)
    return registry.create(driver)


def make_transport_factory(
    cfg: StreamerConfig,
    registry: Optional[DriverRegistry[MessageTransport]] = None,
    *,
    logger: Optional[logging.Logger] = None,
):
    """
    Returns endpoint -> transport. Validates the driver up front so a bad
    config fails before the first start().
    """
    registry = registry or default_transports()
    driver = cfg.transport.driver.lower()
    registry.get_class(driver)

    if driver == "jsonl" and not cfg.transport.path:
        raise ConfigError(
            "transport.path is required for the 'jsonl' transport.",
            details={"key": "transport.path"},
        )

    def _factory(endpoint: Endpoint) -> MessageTransport:
        if driver == "websocket":
            return registry.create(
                driver,
                url=endpoint.url,
                open_timeout=cfg.open_timeout_s,
                close_timeout=cfg.close_timeout_s,
                logger=logger,
            )
        if driver == "jsonl":
            return registry.create(driver, path=Path(str(cfg.transport.path)), url=endpoint.url, logger=logger)
        return registry.create(driver, url=endpoint.url)

    return _factory
