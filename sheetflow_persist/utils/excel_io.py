"""
RESPONSIBILITIES
- Read and write store workbooks via openpyxl with atomic replacement.
- Guard writers with an in-process lock plus a sidecar ``.lock`` file.
PROCESS OVERVIEW
1. workbook_lock() acquires the in-process and inter-process locks.
2. ensure_workbook() creates the workbook/sheet with its header row when missing.
3. read_sheet() loads data rows into dictionaries keyed by the header.
4. write_sheet() rewrites the sheet through a temporary file swap.
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Mapping, Sequence

from openpyxl import Workbook, load_workbook

from sheetflow_persist.stores.base_store import StoreLockedError

_LOCKS: dict[Path, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    with _LOCKS_GUARD:
        return _LOCKS.setdefault(path, threading.RLock())


@contextmanager
def workbook_lock(path: Path) -> Iterator[None]:
    """Hold exclusive access to *path* for the duration of the block."""

    path = path.resolve()
    inproc = _lock_for(path)
    if not inproc.acquire(timeout=10):
        raise StoreLockedError(f"Timeout acquiring in-process lock for {path}")
    lock_path = path.with_suffix(path.suffix + ".lock")
    fd: int | None = None
    try:
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError as exc:
            raise StoreLockedError(f"Workbook appears locked: {lock_path}") from exc
        os.write(fd, str(os.getpid()).encode("ascii"))
        yield
    finally:
        if fd is not None:
            os.close(fd)
            os.unlink(lock_path)
        inproc.release()


def _atomic_save(workbook: Workbook, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    workbook.save(tmp_path)
    os.replace(tmp_path, path)


def ensure_workbook(path: Path, sheet_name: str, columns: Sequence[str]) -> None:
    """Create the workbook and sheet with a header row if they do not exist yet."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with workbook_lock(path):
        if not path.exists():
            workbook = Workbook()
            worksheet = workbook.active
            worksheet.title = sheet_name
            worksheet.append(list(columns))
            _atomic_save(workbook, path)
            return
        workbook = load_workbook(path)
        try:
            if sheet_name not in workbook.sheetnames:
                worksheet = workbook.create_sheet(title=sheet_name)
                worksheet.append(list(columns))
                _atomic_save(workbook, path)
        finally:
            workbook.close()


def _read(path: Path, sheet_name: str, columns: Sequence[str]) -> list[dict[str, object]]:
    if not path.exists():
        return []
    workbook = load_workbook(path, data_only=True)
    try:
        if sheet_name not in workbook.sheetnames:
            return []
        rows = workbook[sheet_name].iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            return []
        positions = {str(cell).strip(): idx for idx, cell in enumerate(header) if cell is not None}
        records: list[dict[str, object]] = []
        for values in rows:
            if not any(cell is not None and str(cell).strip() for cell in values):
                continue
            record: dict[str, object] = {}
            for column in columns:
                idx = positions.get(column)
                value = values[idx] if idx is not None and idx < len(values) else None
                record[column] = "" if value is None else value
            records.append(record)
        return records
    finally:
        workbook.close()


def read_sheet(path: Path, sheet_name: str, columns: Sequence[str], *, use_lock: bool = True) -> list[dict[str, object]]:
    """Return worksheet content as dictionaries keyed by *columns*."""

    if use_lock:
        with workbook_lock(path):
            return _read(path, sheet_name, columns)
    return _read(path, sheet_name, columns)


def write_sheet(
    path: Path,
    sheet_name: str,
    rows: Iterable[Mapping[str, object]],
    columns: Sequence[str],
    *,
    use_lock: bool = True,
) -> None:
    """Replace the worksheet content with *rows*."""

    def _write() -> None:
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = sheet_name
        worksheet.append(list(columns))
        for row in rows:
            worksheet.append([row.get(column, "") for column in columns])
        _atomic_save(workbook, path)

    if use_lock:
        with workbook_lock(path):
            _write()
    else:
        _write()
