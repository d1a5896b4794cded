"""Field extraction: read the value(s) a single mapping rule sources."""

from __future__ import annotations

import logging
from typing import Any, List

from .classify import is_range_rule
from .grid import Grid, cell_address, get_cell, is_empty
from .models import CellRange, ExtractedField, NormalizedMappingRule, RangeShape, SourceKind

LOGGER = logging.getLogger(__name__)


def range_shape(cell_range: CellRange) -> RangeShape:
    return cell_range.shape


def _describe(cell_range: CellRange) -> str:
    return (
        f"{cell_address(cell_range.start_row, cell_range.start_column)}:"
        f"{cell_address(cell_range.end_row, cell_range.end_column)}"
    )


def _within_extent(grid: Grid, row: int) -> bool:
    return 1 <= row <= len(grid)


def _placeholder(value: Any) -> Any:
    return "" if is_empty(value) else value


def extract_range(grid: Grid, cell_range: CellRange) -> List[Any]:
    """Read a range according to its shape.

    * single column: one entry per non-empty row, empty rows are skipped;
    * single row: every column, empties kept as ``""`` placeholders;
    * rectangular: one list of column values per row inside the grid.
    """

    shape = cell_range.shape
    values: List[Any] = []

    if shape is RangeShape.SINGLE_COLUMN:
        column = cell_range.start_column
        for row in range(cell_range.start_row, cell_range.end_row + 1):
            value = get_cell(grid, row, column)
            if is_empty(value):
                continue
            values.append(value)
        return values

    if shape is RangeShape.SINGLE_ROW:
        row = cell_range.start_row
        if not _within_extent(grid, row):
            return values
        for column in range(cell_range.start_column, cell_range.end_column + 1):
            values.append(_placeholder(get_cell(grid, row, column)))
        return values

    for row in range(cell_range.start_row, cell_range.end_row + 1):
        if not _within_extent(grid, row):
            continue
        group = [
            _placeholder(get_cell(grid, row, column))
            for column in range(cell_range.start_column, cell_range.end_column + 1)
        ]
        if group:
            values.append(group)
    return values


def extract_scalar(grid: Grid, rule: NormalizedMappingRule) -> ExtractedField:
    """Resolve the single value of a cell, direct or formula rule."""

    extracted = ExtractedField(target_field=rule.target_field)
    value: Any = None

    if rule.source is SourceKind.CELL:
        if rule.cell is not None:
            value = get_cell(grid, rule.cell.row, rule.cell.column)
            LOGGER.debug(
                "Cell %s for %r -> %r",
                cell_address(rule.cell.row, rule.cell.column),
                rule.name,
                value,
            )
        else:
            LOGGER.warning("Rule %r has no usable cell position", rule.name)
        if is_empty(value):
            value = rule.default_value
    elif rule.source is SourceKind.DIRECT:
        if rule.direct_value is not None:
            value = rule.direct_value
            # An explicit empty direct value is intentional and stays in records.
            extracted.keep_empty = True
        else:
            value = rule.default_value
    elif rule.source is SourceKind.FORMULA:
        value = rule.formula or None
    else:
        LOGGER.warning("Rule %r is declared as a range but has no usable range", rule.name)

    if value is None or (is_empty(value) and not extracted.keep_empty):
        return extracted
    extracted.values.append(value)
    return extracted


def extract_range_field(grid: Grid, rule: NormalizedMappingRule) -> ExtractedField:
    """Read the vector of a rule classified as a range rule."""

    values = extract_range(grid, rule.range)
    LOGGER.debug(
        "Range %s (%s) for %r -> %d value(s)",
        _describe(rule.range),
        rule.range.shape.value,
        rule.name,
        len(values),
    )
    if not values:
        LOGGER.info("Range %s for %r produced no data", _describe(rule.range), rule.name)
    return ExtractedField(target_field=rule.target_field, values=values, is_range=True)


def extract_field(grid: Grid, rule: NormalizedMappingRule) -> ExtractedField:
    """Extract a single rule: a vector for range rules, at most one value otherwise."""

    if is_range_rule(rule):
        return extract_range_field(grid, rule)
    return extract_scalar(grid, rule)


__all__ = ["extract_field", "extract_range", "extract_range_field", "extract_scalar", "range_shape"]
