"""Loguru helpers: diagnostics always go to stderr, optionally also to a rotating file."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TextIO

from loguru import logger

LOG_DIR = Path.home() / ".sqlapigate" / "logs"
_STDERR_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{line} - {message}"

_SINK_IDS: dict[str, int] = {}


def configure_logging(level: str = "INFO", stream: TextIO | None = None) -> int:
    """Replace loguru's default sink with a single stderr sink (never stdout)."""
    logger.remove()
    _SINK_IDS.clear()
    return logger.add(
        stream or sys.stderr,
        level=level.upper(),
        format=_STDERR_FORMAT,
        backtrace=False,
        diagnose=False,
    )


def ensure_rotating_log_file(name: str, level: str = "INFO", log_dir: Path | None = None) -> Path:
    """Ensure a rotating log sink for the given command name."""
    directory = log_dir or LOG_DIR
    log_path = directory / f"{name}.log"
    if name in _SINK_IDS:
        return log_path
    directory.mkdir(parents=True, exist_ok=True)
    sink_id = logger.add(
        str(log_path),
        level=level.upper(),
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        encoding="utf-8",
        backtrace=False,
        diagnose=False,
    )
    _SINK_IDS[name] = sink_id
    return log_path
