from __future__ import annotations

import pytest

from arstream.app.config import StreamerConfig, config_from_mapping, load_config
from arstream.core.errors import ConfigError


def test_no_path_means_defaults():
    cfg = load_config(None)
    assert cfg == StreamerConfig()
    assert cfg.port == 8765
    assert cfg.interval_s == pytest.approx(0.066)
    assert cfg.camera.width == 720 and cfg.camera.height == 480


def test_yaml_overrides_defaults(tmp_path):
    p = tmp_path / "arstream.yaml"
    p.write_text(
        "port: 9000\n"
        "interval_ms: 100\n"
        "camera:\n"
        "  driver: images\n"
        "  directory: ./frames\n"
        "motion:\n"
        "  driver: serial\n"
        "  port: /dev/ttyACM0\n",
        encoding="utf-8",
    )

    cfg = load_config(p)

    assert cfg.port == 9000
    assert cfg.interval_s == pytest.approx(0.1)
    assert cfg.camera.driver == "images"
    assert cfg.camera.directory == "./frames"
    assert cfg.motion.port == "/dev/ttyACM0"
    assert cfg.motion.baudrate == 115200
    assert cfg.transport.driver == "websocket"


def test_empty_file_is_defaults(tmp_path):
    p = tmp_path / "empty.yaml"
    p.write_text("", encoding="utf-8")
    assert load_config(p) == StreamerConfig()


@pytest.mark.parametrize(
    "data, key",
    [
        ({"bogus": 1}, "bogus"),
        ({"camera": {"fps": 30}}, "camera.fps"),
        ({"interval_ms": 0}, "interval_ms"),
        ({"port": 70000}, "port"),
        ({"interval_ms": "fast"}, "interval_ms"),
        ({"port": True}, "port"),
        ({"camera": {"jpeg_quality": 0}}, "camera.jpeg_quality"),
        ({"camera": "opencv"}, "camera"),
        ({"write_grace_s": 0}, "write_grace_s"),
        ({"write_grace_s": "1s"}, "write_grace_s"),
    ],
)
def test_bad_values_name_the_key(data, key):
    with pytest.raises(ConfigError) as ei:
        config_from_mapping(data)
    assert ei.value.details["key"] == key


def test_root_must_be_mapping():
    with pytest.raises(ConfigError):
        config_from_mapping(["port", 1])  # type: ignore[arg-type]


def test_missing_file_and_bad_yaml(tmp_path):
    with pytest.raises(ConfigError, match="Cannot read"):
        load_config(tmp_path / "missing.yaml")

    bad = tmp_path / "bad.yaml"
    bad.write_text("port: [1, 2\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="not valid YAML"):
        load_config(bad)
