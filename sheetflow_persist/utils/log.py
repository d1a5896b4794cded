"""
RESPONSIBILITIES
- Provide a persistence-local logger helper reusing the core logging setup.
PROCESS OVERVIEW
1. Callers request get_logger(name, root).
2. ensure_structure() creates the log directory under the persistence root.
3. The core sheetflow logger is reused and a child logger is returned.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sheetflow.core.logger import get_logger as core_get_logger

from .paths import ensure_structure


def get_logger(name: str, root: Path | None = None) -> logging.Logger:
    """Return a namespaced logger for persistence modules."""

    directories = ensure_structure(root)
    return core_get_logger(directories["logs"]).getChild(f"persist.{name}")
