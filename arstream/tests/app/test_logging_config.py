from __future__ import annotations

import logging

import pytest

from arstream.common.logging_config import configure_file_logging, configure_logging


@pytest.fixture
def clean_root():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield root
    for h in list(root.handlers):
        if h not in saved_handlers:
            root.removeHandler(h)
            h.close()
    root.setLevel(saved_level)


def test_file_logging_is_idempotent_per_path(tmp_path, clean_root):
    path = tmp_path / "logs" / "run.log"
    configure_file_logging(path)
    configure_file_logging(path)

    file_handlers = [h for h in clean_root.handlers if isinstance(h, logging.FileHandler)]
    assert len([h for h in file_handlers if h.baseFilename == str(path.resolve())]) == 1

    logging.getLogger("arstream.test").warning("SESSION_START url=%s", "ws://10.0.0.5:8765")
    for h in file_handlers:
        h.flush()
    assert "SESSION_START url=ws://10.0.0.5:8765" in path.read_text(encoding="utf-8")


def test_console_handler_added_once(clean_root):
    configure_logging(logging.INFO)
    configure_logging(logging.DEBUG)

    consoles = [h for h in clean_root.handlers if getattr(h, "_arstream_console", False)]
    assert len(consoles) == 1
    assert consoles[0].level == logging.DEBUG
