from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from arstream.core.errors import ConfigError
from arstream.model.endpoint import DEFAULT_PORT


@dataclass(frozen=True)
class CameraConfig:
    driver: str = "opencv"
    index: int = 0
    width: int = 720
    height: int = 480
    jpeg_quality: int = 80
    directory: Optional[str] = None


@dataclass(frozen=True)
class MotionConfig:
    driver: str = "simulated"
    port: Optional[str] = None
    baudrate: int = 115200
    rate_hz: float = 50.0


@dataclass(frozen=True)
class TransportConfig:
    driver: str = "websocket"
    path: Optional[str] = None


@dataclass(frozen=True)
class StreamerConfig:
    port: int = DEFAULT_PORT
    interval_ms: int = 66
    initial_delay_ms: int = 0
    open_timeout_s: float = 5.0
    close_timeout_s: float = 1.0
    write_grace_s: float = 1.0
    camera: CameraConfig = field(default_factory=CameraConfig)
    motion: MotionConfig = field(default_factory=MotionConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    trace_path: Optional[str] = None
    log_file: Optional[str] = None

    @property
    def interval_s(self) -> float:
        return self.interval_ms / 1000.0

    @property
    def initial_delay_s(self) -> float:
        return self.initial_delay_ms / 1000.0

    def validate(self) -> "StreamerConfig":
        if not (0 < self.port < 65536):
            raise ConfigError(f"Invalid port {self.port}.", details={"key": "port"})
        if self.interval_ms <= 0:
            raise ConfigError("interval_ms must be > 0.", details={"key": "interval_ms"})
        if self.initial_delay_ms < 0:
            raise ConfigError("initial_delay_ms must be >= 0.", details={"key": "initial_delay_ms"})
        if self.open_timeout_s <= 0 or self.close_timeout_s <= 0:
            raise ConfigError("Timeouts must be > 0.", details={"key": "open_timeout_s/close_timeout_s"})
        if self.write_grace_s <= 0:
            raise ConfigError("write_grace_s must be > 0.", details={"key": "write_grace_s"})
        if not (1 <= self.camera.jpeg_quality <= 100):
            raise ConfigError("camera.jpeg_quality must be in 1..100.", details={"key": "camera.jpeg_quality"})
        if self.motion.rate_hz <= 0:
            raise ConfigError("motion.rate_hz must be > 0.", details={"key": "motion.rate_hz"})
        return self


_SECTIONS = {
    "camera": CameraConfig,
    "motion": MotionConfig,
    "transport": TransportConfig,
}


def _build(cls, data: Mapping[str, Any], *, prefix: str = ""):
    known = {f.name: f for f in fields(cls)}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            raise ConfigError(
                f"Unknown config key '{prefix}{key}'.",
                hint=f"Valid keys: {sorted(known)}",
                details={"key": f"{prefix}{key}"},
            )
        if key in _SECTIONS and cls is StreamerConfig:
            if value is None:
                continue
            if not isinstance(value, Mapping):
                raise ConfigError(f"'{key}' must be a mapping.", details={"key": key})
            kwargs[key] = _build(_SECTIONS[key], value, prefix=f"{key}.")
        else:
            kwargs[key] = value
    try:
        return cls(**kwargs)
    except TypeError as e:
        raise ConfigError("Invalid configuration.", hint=str(e)) from None


def _check_types(cfg: StreamerConfig) -> None:
    def _num(name: str, v: Any, kind) -> None:
        if isinstance(v, bool) or not isinstance(v, kind):
            raise ConfigError(f"'{name}' has the wrong type ({type(v).__name__}).", details={"key": name})

    _num("port", cfg.port, int)
    _num("interval_ms", cfg.interval_ms, int)
    _num("initial_delay_ms", cfg.initial_delay_ms, int)
    _num("open_timeout_s", cfg.open_timeout_s, (int, float))
    _num("close_timeout_s", cfg.close_timeout_s, (int, float))
    _num("write_grace_s", cfg.write_grace_s, (int, float))
    _num("camera.index", cfg.camera.index, int)
    _num("camera.jpeg_quality", cfg.camera.jpeg_quality, int)
    _num("motion.baudrate", cfg.motion.baudrate, int)
    _num("motion.rate_hz", cfg.motion.rate_hz, (int, float))
    for name, v in (
        ("camera.driver", cfg.camera.driver),
        ("motion.driver", cfg.motion.driver),
        ("transport.driver", cfg.transport.driver),
    ):
        if not isinstance(v, str) or not v:
            raise ConfigError(f"'{name}' must be a non-empty string.", details={"key": name})


def config_from_mapping(data: Optional[Mapping[str, Any]]) -> StreamerConfig:
    if data is None:
        return StreamerConfig()
    if not isinstance(data, Mapping):
        raise ConfigError("Config root must be a mapping.")
    cfg = _build(StreamerConfig, data)
    _check_types(cfg)
    return cfg.validate()


def load_config(path: str | Path | None = None) -> StreamerConfig:
    """
    Load a YAML config file. Missing keys take their defaults;
    no path means all defaults.
    """
    if path is None:
        return StreamerConfig()

    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(
            f"Cannot read config file '{p}'.",
            hint=str(e),
            details={"path": str(p)},
        ) from None

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Config file '{p}' is not valid YAML.",
            hint=str(e),
            details={"path": str(p)},
        ) from None

    return config_from_mapping(data)
