"""Record exporters for processing results."""

# Module responsibilities:
# - Write extracted records to JSON, CSV or XLSX files.
# - Build one column set from the union of record fields (first-seen order) for tabular formats.
# - Flatten batch results in rule order.

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

import pandas as pd

from sheetflow.core.errors import ExportError
from sheetflow.services.extraction.models import ProcessingResult, Record

from .utils.log import get_logger

logger = get_logger("exporter")

EXPORT_FORMATS = ("json", "csv", "xlsx")
XLSX_SHEET = "Data"


def collect_fields(records: Iterable[Record]) -> List[str]:
    """Return every field name present in *records*, in first-seen order."""

    fields: Dict[str, None] = {}
    for record in records:
        for key in record:
            fields.setdefault(key, None)
    return list(fields)


def flatten_results(results: Sequence[ProcessingResult], *, successful_only: bool = True) -> List[Record]:
    records: List[Record] = []
    for result in results:
        if successful_only and not result.success:
            continue
        records.extend(result.records)
    return records


def _tabular_value(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return "; ".join("" if item is None else str(item) for item in value)
    return value


def records_to_frame(records: Sequence[Record]) -> pd.DataFrame:
    """Build a DataFrame with one column per field; missing fields become empty cells."""

    columns = collect_fields(records)
    rows = [{key: _tabular_value(record.get(key, "")) for key in columns} for record in records]
    return pd.DataFrame(rows, columns=columns)


def export_json(records: Sequence[Record], out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(list(records), ensure_ascii=False, indent=2), encoding="utf-8")
    return out_path


def export_csv(records: Sequence[Record], out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    records_to_frame(records).to_csv(out_path, index=False, encoding="utf-8")
    return out_path


def export_xlsx(records: Sequence[Record], out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    records_to_frame(records).to_excel(out_path, sheet_name=XLSX_SHEET, index=False, engine="openpyxl")
    return out_path


def export_records(records: Sequence[Record], out_path: str | Path, fmt: str | None = None) -> Path:
    """Write records to *out_path*.

    Args:
        records: Records to export.
        out_path: Destination file.
        fmt: ``json``/``csv``/``xlsx``; inferred from the file suffix when omitted.

    Returns:
        The written path.

    Raises:
        ExportError: When the format is unknown or the file cannot be written.
    """

    path = Path(out_path)
    chosen = (fmt or path.suffix.lstrip(".")).lower()
    if chosen not in EXPORT_FORMATS:
        raise ExportError(f"Unsupported export format: {chosen or '<none>'}")

    writer = {"json": export_json, "csv": export_csv, "xlsx": export_xlsx}[chosen]
    try:
        written = writer(records, path)
    except OSError as exc:
        logger.error("Export failed", extra={"path": str(path), "error": str(exc)})
        raise ExportError(f"Failed to write {path}: {exc}") from exc

    logger.info("Records exported", extra={"path": str(written), "format": chosen, "rows": len(records)})
    return written
