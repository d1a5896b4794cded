"""Application logger: one ``sheetflow`` logger shared by the engine, IO and stores."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .settings import work_dir

LOG_FILE = "app.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_LOGGER: logging.Logger | None = None
_HANDLERS: list[logging.Handler] = []


def get_logger(log_dir: Path | None = None, level: str | int | None = None) -> logging.Logger:
    """Return the ``sheetflow`` logger, attaching its handlers on first use.

    The first call decides where ``app.log`` lives (``log_dir`` or the
    ``logs`` folder of the work directory). Later calls return the same
    logger and only change its level.
    """
    global _LOGGER
    if _LOGGER is not None:
        if level is not None:
            _LOGGER.setLevel(_level_value(level))
        return _LOGGER

    logger = logging.getLogger("sheetflow")
    logger.setLevel(_level_value(level or logging.INFO))
    logger.propagate = False

    base = Path(log_dir) if log_dir is not None else work_dir() / "logs"
    base.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    file_handler = RotatingFileHandler(base / LOG_FILE, maxBytes=2 * 1024 * 1024, backupCount=3, encoding="utf-8")
    console = logging.StreamHandler(sys.stdout)
    for handler in (file_handler, console):
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        _HANDLERS.append(handler)

    _LOGGER = logger
    return logger


def reset_logger() -> None:
    """Close the handlers installed by get_logger() so the next call starts fresh."""
    global _LOGGER
    if _LOGGER is not None:
        for handler in _HANDLERS:
            _LOGGER.removeHandler(handler)
            handler.close()
    _HANDLERS.clear()
    _LOGGER = None


def _level_value(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value
