"""
RESPONSIBILITIES
- Keep the history of processing runs: an XLSX index plus one JSON document per result.
- Serve recent runs for display and reload full results by file id.
PROCESS OVERVIEW
1. init_history_store() ensures ~/SheetFlow/store/history_store.xlsx is ready.
2. record() writes the result JSON under results/ and upserts the index row by file_id.
3. query() returns a pandas.DataFrame filtered by rule/success, newest first.
4. load_result() restores a ProcessingResult from its JSON document.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Mapping

import pandas as pd
from pydantic import ValidationError

from sheetflow.services.extraction.models import ProcessingResult
from sheetflow_persist.schemas.history import HistoryRecord
from sheetflow_persist.stores.base_store import BaseStore, StoreInitializationError, StoreValidationError
from sheetflow_persist.utils.excel_io import ensure_workbook, read_sheet, workbook_lock, write_sheet
from sheetflow_persist.utils.log import get_logger
from sheetflow_persist.utils.paths import result_file_path, store_file_path

HISTORY_WORKBOOK = "history_store.xlsx"
HISTORY_SHEET = "history"
HISTORY_COLUMNS: tuple[str, ...] = (
    "file_id",
    "file_name",
    "rule_id",
    "rule_name",
    "processed_at",
    "records_generated",
    "success",
    "error_message",
)


class HistoryStore(BaseStore):
    """Processing history backed by an XLSX index and JSON result documents."""

    sheet_name = HISTORY_SHEET
    columns = HISTORY_COLUMNS

    def __init__(self, root: Path | str | None = None, *, logger: logging.Logger | None = None) -> None:
        resolved_root = Path(root).expanduser().resolve() if root else None
        super().__init__(logger=logger or get_logger("history_store", resolved_root))
        self._root = resolved_root
        self.path = store_file_path(HISTORY_WORKBOOK, self._root)

    def init_store(self) -> Path:
        try:
            ensure_workbook(self.path, self.sheet_name, self.columns)
        except OSError as exc:
            raise StoreInitializationError(str(exc)) from exc
        return self.path

    def record(self, result: ProcessingResult) -> HistoryRecord:
        """Persist *result* and return its index row."""

        if not result.file_id:
            raise StoreValidationError("file_id is required")
        self.init_store()
        doc_path = result_file_path(result.file_id, self._root)
        doc_path.write_text(json.dumps(result.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")

        entry = HistoryRecord.from_result(result)
        with workbook_lock(self.path):
            rows = read_sheet(self.path, self.sheet_name, self.columns, use_lock=False)
            rows = [row for row in rows if str(row.get("file_id")) != entry.file_id]
            rows.append(entry.to_dict())
            write_sheet(self.path, self.sheet_name, rows, self.columns, use_lock=False)
        self.logger.info(
            "Recorded result %s (%s, %d records)",
            entry.file_id,
            "ok" if entry.success else "failed",
            entry.records_generated,
        )
        return entry

    def query(self, params: Mapping[str, object] | None = None) -> pd.DataFrame:
        """Return index rows newest first.

        Supported params: ``rule_id``, ``success`` (bool) and ``limit`` (int).
        """

        params = params or {}
        self.init_store()
        rows = [HistoryRecord.from_row(row) for row in read_sheet(self.path, self.sheet_name, self.columns)]
        if params.get("rule_id"):
            rows = [row for row in rows if row.rule_id == str(params["rule_id"])]
        if params.get("success") is not None:
            rows = [row for row in rows if row.success is bool(params["success"])]
        rows.sort(key=lambda row: row.processed_at, reverse=True)
        limit = params.get("limit")
        if limit:
            rows = rows[: int(limit)]
        frame = pd.DataFrame([row.to_dict() for row in rows], columns=list(self.columns))
        if not frame.empty:
            frame["success"] = frame["success"] == "true"
        return frame

    def load_result(self, file_id: str) -> ProcessingResult | None:
        doc_path = result_file_path(file_id, self._root)
        if not doc_path.exists():
            return None
        try:
            return ProcessingResult.model_validate_json(doc_path.read_text(encoding="utf-8"))
        except ValidationError as exc:
            raise StoreValidationError(f"Stored result {file_id} is invalid: {exc}") from exc


def init_history_store(root: Path | None = None) -> Path:
    return HistoryStore(root).init_store()


def record_result(result: ProcessingResult, *, root: Path | None = None) -> HistoryRecord:
    return HistoryStore(root).record(result)


def recent_history(limit: int = 20, *, root: Path | None = None) -> pd.DataFrame:
    return HistoryStore(root).query({"limit": limit})
