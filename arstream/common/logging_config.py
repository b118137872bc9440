# arstream/common/logging_config.py
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class LogDefaults:
    fmt: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    console_fmt: str = "[%(levelname)s] %(name)s: %(message)s"

DEFAULTS = LogDefaults()


def configure_file_logging(app_log_path: Path, level: int = logging.INFO) -> None:
    """
    Add a file handler to the root logger (idempotent per path).
    """
    root = logging.getLogger()
    app_log_path.parent.mkdir(parents=True, exist_ok=True)
    target = str(app_log_path.resolve())

    for h in root.handlers:
        if isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target:
            return

    fh = logging.FileHandler(app_log_path, encoding="utf-8", delay=True)
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter(DEFAULTS.fmt))
    root.addHandler(fh)

    if root.level > level:
        root.setLevel(level)


def configure_logging(level: int = logging.WARNING, log_file: Optional[Path] = None) -> None:
    """
    Console handler on stderr (added once) plus an optional file handler.
    """
    root = logging.getLogger()
    if not any(getattr(h, "_arstream_console", False) for h in root.handlers):
        ch = logging.StreamHandler(sys.stderr)
        ch.setFormatter(logging.Formatter(DEFAULTS.console_fmt))
        ch._arstream_console = True  # type: ignore[attr-defined]
        root.addHandler(ch)

    for h in root.handlers:
        if getattr(h, "_arstream_console", False):
            h.setLevel(level)

    root.setLevel(min(level, root.level) if root.level != logging.NOTSET else level)

    if log_file is not None:
        configure_file_logging(Path(log_file), level=min(level, logging.INFO))
