"""Rule-driven extraction service package."""

from .api import BatchProgress, process_batch, process_rule, process_sheet, resolve_sheet_name
from .grid import Workbook, cell_address, get_cell, is_empty
from .models import (
    CellPosition,
    CellRange,
    Condition,
    ExcelRule,
    MappingRule,
    ProcessingResult,
    SheetRule,
    SourceKind,
)
from .normalize import normalize_mapping_rule

__all__ = [
    "BatchProgress",
    "CellPosition",
    "CellRange",
    "Condition",
    "ExcelRule",
    "MappingRule",
    "ProcessingResult",
    "SheetRule",
    "SourceKind",
    "Workbook",
    "cell_address",
    "get_cell",
    "is_empty",
    "normalize_mapping_rule",
    "process_batch",
    "process_rule",
    "process_sheet",
    "resolve_sheet_name",
]
