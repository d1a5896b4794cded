"""
RESPONSIBILITIES
- Locate the SheetFlow work directory used by the stores.
- Map store workbooks and per-result JSON documents onto it.
PROCESS OVERVIEW
1. resolve_root() takes an explicit root, else the work directory from settings.
2. ensure_structure() creates store/results/out/logs below it.
3. store_file_path() and result_file_path() build file locations inside those folders.
"""

from __future__ import annotations

import os
from pathlib import Path

from sheetflow.core.settings import work_dir

WORK_SUBDIRS: tuple[str, ...] = ("store", "results", "out", "logs")


def resolve_root(root: str | os.PathLike[str] | None = None) -> Path:
    if root is None:
        return work_dir()
    return Path(root).expanduser().resolve()


def ensure_structure(root: str | os.PathLike[str] | None = None) -> dict[str, Path]:
    """Create the work sub-folders and return them by name."""

    base = resolve_root(root)
    folders = {name: base / name for name in WORK_SUBDIRS}
    for folder in folders.values():
        folder.mkdir(parents=True, exist_ok=True)
    return folders


def store_file_path(filename: str, root: str | os.PathLike[str] | None = None) -> Path:
    return ensure_structure(root)["store"] / filename


def result_file_path(file_id: str, root: str | os.PathLike[str] | None = None) -> Path:
    """Path of the JSON document holding the full ProcessingResult for *file_id*."""

    return ensure_structure(root)["results"] / f"{file_id}.json"
