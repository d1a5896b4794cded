"""Public API for the extraction service."""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from sheetflow.core.errors import SheetNotFoundError

from .assemble import assemble_records
from .classify import classify_rules
from .extract import extract_range_field, extract_scalar
from .grid import Workbook
from .models import ExcelRule, ExtractedField, ProcessingResult, Record, SheetRule
from .normalize import normalize_mapping_rule

LOGGER = logging.getLogger(__name__)

FileRef = str | os.PathLike[str]


@dataclass(slots=True)
class BatchProgress:
    """Progress snapshot reported before each rule of a batch runs."""

    current: int
    total: int
    rule_id: str
    rule_name: str


ProgressCB = Callable[[BatchProgress], None]
SheetResolver = Callable[[ExcelRule], Optional[str]]


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _file_name(file: FileRef) -> str:
    return Path(os.fspath(file)).name


def resolve_sheet_name(
    workbook: Workbook,
    sheet_rule: SheetRule,
    selected_sheet_name: Optional[str] = None,
) -> str:
    """Pick the sheet for a sheet-rule: explicit choice > sheetName > sheetIndex."""

    if selected_sheet_name:
        name = selected_sheet_name
    elif sheet_rule.sheet_name:
        name = sheet_rule.sheet_name
    else:
        names = workbook.sheet_names
        index = sheet_rule.sheet_index
        if index < 0 or index >= len(names):
            raise SheetNotFoundError(f"#{index}")
        name = names[index]
    if not workbook.has_sheet(name):
        raise SheetNotFoundError(name)
    return name


def process_sheet(
    workbook: Workbook,
    sheet_rule: SheetRule,
    selected_sheet_name: Optional[str] = None,
) -> List[Record]:
    """Run one sheet-rule against its sheet and return the assembled records."""

    sheet_name = resolve_sheet_name(workbook, sheet_rule, selected_sheet_name)
    grid = workbook.sheet_grid(sheet_name)

    normalized = [normalize_mapping_rule(rule) for rule in sheet_rule.mapping_rules]
    classified = classify_rules(normalized)
    LOGGER.info(
        "Sheet %r (%d rows): %d range rule(s), %d scalar rule(s)",
        sheet_name,
        len(grid),
        len(classified.range_rules),
        len(classified.scalar_rules),
    )

    extracted: Dict[int, ExtractedField] = {}
    for item in classified.range_rules:
        extracted[item.position] = extract_range_field(grid, item.rule)
    for item in classified.scalar_rules:
        extracted[item.position] = extract_scalar(grid, item.rule)

    # Authoring order decides field order in the records.
    return assemble_records([extracted[position] for position in sorted(extracted)])


def process_rule(
    file: FileRef,
    workbook: Workbook,
    rule: ExcelRule,
    selected_sheet_name: Optional[str] = None,
) -> ProcessingResult:
    """Apply *rule* to *workbook* and return an all-or-nothing result.

    Every sheet-rule is evaluated; if any of them fails, the result is marked
    unsuccessful, carries the first error message and no records.
    """

    file_id = str(uuid.uuid4())
    file_name = _file_name(file)
    records: List[Record] = []
    errors: List[str] = []

    LOGGER.info(
        "Processing %s with rule %r (%d sheet rule(s))",
        file_name,
        rule.name,
        len(rule.sheet_rules),
    )

    for sheet_rule in rule.sheet_rules:
        try:
            records.extend(process_sheet(workbook, sheet_rule, selected_sheet_name))
        except SheetNotFoundError as exc:
            LOGGER.error("Sheet rule %r failed: %s", sheet_rule.name, exc)
            errors.append(str(exc))
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Unexpected error in sheet rule %r", sheet_rule.name)
            errors.append(str(exc) or exc.__class__.__name__)

    if errors:
        return ProcessingResult(
            file_id=file_id,
            file_name=file_name,
            rule_id=rule.id,
            rule_name=rule.name,
            processed_at=_utcnow_iso(),
            records=[],
            success=False,
            error_message=errors[0],
        )

    LOGGER.info("Rule %r generated %d record(s)", rule.name, len(records))
    return ProcessingResult(
        file_id=file_id,
        file_name=file_name,
        rule_id=rule.id,
        rule_name=rule.name,
        processed_at=_utcnow_iso(),
        records=records,
        success=True,
    )


def process_batch(
    file: FileRef,
    workbook: Workbook,
    rules: Iterable[ExcelRule] | Mapping[str, ExcelRule],
    rule_ids: Sequence[str],
    selected_sheet_name: Optional[str] = None,
    progress_cb: Optional[ProgressCB] = None,
    sheet_resolver: Optional[SheetResolver] = None,
) -> List[ProcessingResult]:
    """Run several rules in the given order against one workbook.

    A failed rule is recorded and the loop moves on; unknown rule ids are
    skipped with a warning. Without an explicit sheet, ``sheet_resolver`` may
    supply a per-rule override (for example a remembered sheet).
    """

    if isinstance(rules, Mapping):
        by_id = dict(rules)
    else:
        by_id = {rule.id: rule for rule in rules}

    total = len(rule_ids)
    results: List[ProcessingResult] = []
    for position, rule_id in enumerate(rule_ids, start=1):
        rule = by_id.get(rule_id)
        if rule is None:
            LOGGER.warning("Rule id %s not found, skipping", rule_id)
            continue
        if progress_cb is not None:
            progress_cb(BatchProgress(current=position, total=total, rule_id=rule_id, rule_name=rule.name))
        LOGGER.info("Batch rule %d/%d: %s", position, total, rule.name)
        sheet = selected_sheet_name
        if sheet is None and sheet_resolver is not None:
            sheet = sheet_resolver(rule)
        result = process_rule(file, workbook, rule, sheet)
        if not result.success:
            LOGGER.error("Rule %r failed: %s", rule.name, result.error_message)
        results.append(result)
    return results


__all__ = [
    "BatchProgress",
    "ProgressCB",
    "SheetResolver",
    "process_batch",
    "process_rule",
    "process_sheet",
    "resolve_sheet_name",
]
