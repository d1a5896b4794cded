"""Record assembly: zip extracted field vectors into output records."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from .grid import is_empty
from .models import ExtractedField, Record

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class _Column:
    values: List[Any]
    keep_empty: bool


def record_count_bound(fields: Iterable[ExtractedField]) -> int:
    """Return the number of record slots: the longest range vector, or 1 without ranges."""

    lengths = [len(f.values) for f in fields if f.is_range]
    if not lengths:
        return 1
    return max(lengths)


def assemble_records(fields: List[ExtractedField]) -> List[Record]:
    """Build the records of one sheet.

    Scalar values are repeated across every slot, range vectors are read
    positionally. Empty values are left out of a record and records without
    any non-empty value are dropped. Field order follows the first time a
    target field appears in ``fields``.
    """

    max_length = record_count_bound(fields)

    columns: Dict[str, _Column] = {}
    for extracted in fields:
        if extracted.is_range:
            columns[extracted.target_field] = _Column(list(extracted.values), False)
        elif extracted.values:
            columns[extracted.target_field] = _Column(
                [extracted.values[0]] * max_length, extracted.keep_empty
            )

    records: List[Record] = []
    for index in range(max_length):
        record: Record = {}
        populated = False
        for name, column in columns.items():
            if index >= len(column.values):
                continue
            value = column.values[index]
            if is_empty(value):
                if column.keep_empty and value == "":
                    record[name] = value
                continue
            record[name] = value
            populated = True
        if populated:
            records.append(record)
        else:
            LOGGER.debug("Dropping empty record at position %d", index)

    LOGGER.debug("Assembled %d record(s) from %d slot(s)", len(records), max_length)
    return records


__all__ = ["assemble_records", "record_count_bound"]
