"""`sheetflow_io` top-level package exports spreadsheet input, rule loading and record export helpers."""

# Module responsibilities:
# - Re-export the workbook provider, rule loader and exporters so consumers have a stable API surface.

from __future__ import annotations

from .excel_reader import parse_spreadsheet
from .exporter import collect_fields, export_records, flatten_results, records_to_frame
from .rules import load_rules, parse_rules

__all__ = [
    "parse_spreadsheet",
    "load_rules",
    "parse_rules",
    "collect_fields",
    "export_records",
    "flatten_results",
    "records_to_frame",
]

__version__ = "0.1.0"
