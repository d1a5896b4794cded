"""
RESPONSIBILITIES
- Define the index rows kept by the history and file-mapping stores.
PROCESS OVERVIEW
1. HistoryRecord.from_result() summarizes a ProcessingResult for the history index.
2. FileMappingRecord remembers which sheet a rule was run against for a file name.
3. to_dict() converts native types to string-friendly payloads for XLSX.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, MutableMapping

from sheetflow.services.extraction.models import ProcessingResult


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes"}


@dataclass(slots=True)
class HistoryRecord:
    file_id: str
    file_name: str
    rule_id: str
    rule_name: str
    processed_at: str
    records_generated: int
    success: bool
    error_message: str = ""

    @classmethod
    def from_result(cls, result: ProcessingResult) -> "HistoryRecord":
        return cls(
            file_id=result.file_id,
            file_name=result.file_name,
            rule_id=result.rule_id,
            rule_name=result.rule_name,
            processed_at=result.processed_at,
            records_generated=len(result.records),
            success=result.success,
            error_message=result.error_message or "",
        )

    @classmethod
    def from_row(cls, row: Mapping[str, object]) -> "HistoryRecord":
        return cls(
            file_id=str(row.get("file_id", "")),
            file_name=str(row.get("file_name", "")),
            rule_id=str(row.get("rule_id", "")),
            rule_name=str(row.get("rule_name", "")),
            processed_at=str(row.get("processed_at", "")),
            records_generated=int(row.get("records_generated") or 0),
            success=_as_bool(row.get("success", False)),
            error_message=str(row.get("error_message") or ""),
        )

    def to_dict(self) -> MutableMapping[str, object]:
        return {
            "file_id": self.file_id,
            "file_name": self.file_name,
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "processed_at": self.processed_at,
            "records_generated": self.records_generated,
            "success": "true" if self.success else "false",
            "error_message": self.error_message,
        }


@dataclass(slots=True)
class FileMappingRecord:
    rule_id: str
    file_name: str
    sheet_name: str
    created_at: str = field(default_factory=utcnow_iso)
    updated_at: str = field(default_factory=utcnow_iso)

    def to_dict(self) -> MutableMapping[str, object]:
        return {
            "rule_id": self.rule_id,
            "file_name": self.file_name,
            "sheet_name": self.sheet_name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
