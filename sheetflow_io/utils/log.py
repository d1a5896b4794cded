"""Logging helpers for the sheetflow_io package."""

# Module responsibilities:
# - Hand out loggers under the ``sheetflow.io`` namespace.
# - Reuse the core handler setup so IO logs land in the same rotating file.

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from sheetflow.core.logger import get_logger as core_get_logger


def get_logger(name: str, log_dir: Optional[Path] = None) -> logging.Logger:
    """Return a package-scoped logger.

    Args:
        name: Logger name suffix appended to ``sheetflow.io``.
        log_dir: Optional override for the logging directory.

    Returns:
        Configured logger scoped under ``sheetflow.io``.
    """

    return core_get_logger(log_dir).getChild(f"io.{name}")
