"""
RESPONSIBILITIES
- Remember which sheet a rule was last run against for a given file name.
- Back ProcessingSession lookups so repeat runs reuse the user's sheet choice.
PROCESS OVERVIEW
1. init_store() ensures ~/SheetFlow/store/file_mappings.xlsx is ready.
2. upsert() merges one association keyed by rule_id + file_name.
3. lookup() returns the remembered sheet name, delete() drops a rule's associations.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional

import pandas as pd

from sheetflow_persist.schemas.history import FileMappingRecord, utcnow_iso
from sheetflow_persist.stores.base_store import BaseStore, StoreInitializationError, StoreValidationError
from sheetflow_persist.utils.excel_io import ensure_workbook, read_sheet, workbook_lock, write_sheet
from sheetflow_persist.utils.log import get_logger
from sheetflow_persist.utils.paths import store_file_path

MAPPING_WORKBOOK = "file_mappings.xlsx"
MAPPING_SHEET = "rule_file_mappings"
MAPPING_COLUMNS: tuple[str, ...] = ("rule_id", "file_name", "sheet_name", "created_at", "updated_at")


class FileMappingStore(BaseStore):
    """XLSX-backed rule/file -> sheet associations."""

    sheet_name = MAPPING_SHEET
    columns = MAPPING_COLUMNS

    def __init__(self, root: Path | str | None = None, *, logger: logging.Logger | None = None) -> None:
        resolved_root = Path(root).expanduser().resolve() if root else None
        super().__init__(logger=logger or get_logger("file_mapping_store", resolved_root))
        self._root = resolved_root
        self.path = store_file_path(MAPPING_WORKBOOK, self._root)

    def init_store(self) -> Path:
        try:
            ensure_workbook(self.path, self.sheet_name, self.columns)
        except OSError as exc:
            raise StoreInitializationError(str(exc)) from exc
        return self.path

    def _rows(self) -> list[dict[str, object]]:
        self.init_store()
        return read_sheet(self.path, self.sheet_name, self.columns)

    def upsert(self, rule_id: str, file_name: str, sheet_name: str) -> None:
        if not rule_id or not file_name or not sheet_name:
            raise StoreValidationError("rule_id, file_name and sheet_name are required")
        self.init_store()
        with workbook_lock(self.path):
            rows = read_sheet(self.path, self.sheet_name, self.columns, use_lock=False)
            for row in rows:
                if str(row["rule_id"]) == rule_id and str(row["file_name"]) == file_name:
                    row["sheet_name"] = sheet_name
                    row["updated_at"] = utcnow_iso()
                    break
            else:
                rows.append(FileMappingRecord(rule_id, file_name, sheet_name).to_dict())
            write_sheet(self.path, self.sheet_name, rows, self.columns, use_lock=False)
        self.logger.info("Remembered sheet %r for rule %s and file %s", sheet_name, rule_id, file_name)

    def lookup(self, rule_id: str, file_name: str) -> Optional[str]:
        for row in self._rows():
            if str(row["rule_id"]) == rule_id and str(row["file_name"]) == file_name:
                return str(row["sheet_name"]) or None
        return None

    def delete(self, rule_id: str) -> int:
        """Drop every association of *rule_id*, returning how many were removed."""

        self.init_store()
        with workbook_lock(self.path):
            rows = read_sheet(self.path, self.sheet_name, self.columns, use_lock=False)
            kept = [row for row in rows if str(row["rule_id"]) != rule_id]
            if len(kept) != len(rows):
                write_sheet(self.path, self.sheet_name, kept, self.columns, use_lock=False)
        return len(rows) - len(kept)

    def query(self, params: Mapping[str, object] | None = None) -> pd.DataFrame:
        params = params or {}
        rows = self._rows()
        if params.get("rule_id"):
            rows = [row for row in rows if str(row["rule_id"]) == str(params["rule_id"])]
        return pd.DataFrame(rows, columns=list(self.columns))
