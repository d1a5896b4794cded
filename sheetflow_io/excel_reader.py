"""Spreadsheet input helpers."""

# Module responsibilities:
# - Parse XLSX/CSV sources into the grid-per-sheet Workbook used by the extraction engine.
# - Keep blank rows and pad rows so 1-indexed coordinates match the spreadsheet.
# - Emit structured logs for traceability.

from __future__ import annotations

import io
import math
import re
import zipfile
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, List, Union

import pandas as pd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from sheetflow.core.errors import WorkbookReadError
from sheetflow.services.extraction.grid import Workbook

from .utils.log import get_logger

logger = get_logger("excel_reader")

Source = Union[str, Path, bytes]

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
CSV_SUFFIXES = {".csv"}

# Leading zeros stay text, as a spreadsheet would keep an identifier like "007".
_INT_RE = re.compile(r"^-?(0|[1-9]\d*)$")
_FLOAT_RE = re.compile(r"^-?(0|[1-9]\d*)?\.\d+([eE][-+]?\d+)?$|^-?(0|[1-9]\d*)[eE][-+]?\d+$")


def normalize_cell(value: Any) -> Any:
    """Map a raw cell value onto the grid representation (``""`` for empty cells)."""

    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()
    return value


def csv_value(text: Any) -> Any:
    """Return CSV text as int or float when it reads as a plain number, like an XLSX numeric cell."""

    if not isinstance(text, str):
        return normalize_cell(text)
    stripped = text.strip()
    if _INT_RE.match(stripped):
        return int(stripped)
    if _FLOAT_RE.match(stripped):
        return float(stripped)
    return text


def _pad(rows: List[List[Any]]) -> List[List[Any]]:
    width = max((len(r) for r in rows), default=0)
    return [r + [""] * (width - len(r)) for r in rows]


def _read_excel(handle: Union[Path, io.BytesIO]) -> Workbook:
    try:
        wb = load_workbook(handle, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise WorkbookReadError(f"Failed to read workbook: {exc}") from exc
    try:
        sheets = {}
        for ws in wb.worksheets:
            rows = [
                [normalize_cell(value) for value in row]
                for row in ws.iter_rows(values_only=True)
            ]
            sheets[ws.title] = _pad(rows)
        return Workbook(sheets=sheets)
    finally:
        wb.close()


def _read_csv(handle: Union[Path, io.BytesIO], sheet_name: str) -> Workbook:
    try:
        frame = pd.read_csv(
            handle,
            header=None,
            dtype=object,
            keep_default_na=False,
            skip_blank_lines=False,
        )
    except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as exc:
        raise WorkbookReadError(f"Failed to read CSV: {exc}") from exc
    rows = [[csv_value(value) for value in row] for row in frame.itertuples(index=False, name=None)]
    return Workbook(sheets={sheet_name: _pad(rows)})


def parse_spreadsheet(source: Source, *, file_name: str | None = None) -> Workbook:
    """Parse a spreadsheet into a Workbook of 0-indexed grids.

    Args:
        source: Path to the file, or its raw bytes.
        file_name: Name used to pick the format (and the CSV sheet name) for raw bytes.

    Returns:
        Workbook with one grid per sheet, in workbook order.

    Raises:
        FileNotFoundError: When the path does not exist.
        WorkbookReadError: When the content cannot be parsed.
    """

    if isinstance(source, bytes):
        name = file_name or ""
        suffix = Path(name).suffix.lower()
        is_zip = source[:2] == b"PK"
        logger.info("Parsing spreadsheet bytes", extra={"file": name, "size": len(source)})
        if suffix in CSV_SUFFIXES or (not suffix and not is_zip):
            return _read_csv(io.BytesIO(source), Path(name).stem or "Sheet1")
        return _read_excel(io.BytesIO(source))

    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(f"Source workbook not found: {path}")

    suffix = path.suffix.lower()
    logger.info("Reading spreadsheet", extra={"path": str(path)})
    if suffix in CSV_SUFFIXES:
        workbook = _read_csv(path, path.stem)
    elif suffix in EXCEL_SUFFIXES:
        workbook = _read_excel(path)
    else:
        raise WorkbookReadError(f"Unsupported spreadsheet type: {path.suffix or path.name}")

    logger.info(
        "Spreadsheet loaded",
        extra={"sheets": workbook.sheet_names, "rows": {n: len(g) for n, g in workbook.sheets.items()}},
    )
    return workbook
