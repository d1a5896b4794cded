"""Data models used by the extraction service.

Rule models mirror the wire shape produced by the rule editor (camelCase keys),
while also accepting the snake_case column names used by the storage layer.
``cell``, ``range`` and ``conditions`` are kept untyped on the raw mapping rule
because persisted rules may carry them as JSON strings; the normalizer turns
them into the structured models below.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CellValue = Union[str, int, float, bool, None]
Record = Dict[str, Any]


class SourceKind(str, Enum):
    """Where a mapping rule takes its value from."""

    CELL = "cell"
    RANGE = "range"
    FORMULA = "formula"
    DIRECT = "direct"


class RangeShape(str, Enum):
    SINGLE_COLUMN = "single_column"
    SINGLE_ROW = "single_row"
    RECTANGULAR = "rectangular"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="allow",
    )


class CellPosition(_WireModel):
    """A single 1-indexed spreadsheet cell (column 1 is ``A``)."""

    model_config = ConfigDict(frozen=True)

    row: int = Field(ge=1)
    column: int = Field(ge=1)


class CellRange(_WireModel):
    """Inclusive 1-indexed cell range."""

    model_config = ConfigDict(frozen=True)

    start_row: int
    start_column: int
    end_row: int
    end_column: int

    @property
    def shape(self) -> RangeShape:
        if self.start_column == self.end_column:
            return RangeShape.SINGLE_COLUMN
        if self.start_row == self.end_row:
            return RangeShape.SINGLE_ROW
        return RangeShape.RECTANGULAR


class Condition(_WireModel):
    type: str
    value: CellValue = None


class MappingRule(_WireModel):
    """Raw mapping rule as authored or persisted."""

    id: str = ""
    name: str = ""
    target_field: Optional[str] = None
    source_type: Optional[str] = None
    cell: Any = None
    range: Any = None
    formula: Optional[str] = None
    direct_value: Optional[CellValue] = Field(
        default=None,
        validation_alias=AliasChoices("directValue", "direct_value"),
    )
    default_value: Optional[CellValue] = None
    conditions: Any = None


class SheetRule(_WireModel):
    id: str = ""
    name: str = ""
    sheet_index: int = 0
    sheet_name: Optional[str] = None
    mapping_rules: List[MappingRule] = Field(default_factory=list)


class ExcelRule(_WireModel):
    """Top-level user rule: one or more sheet-rules."""

    id: str
    name: str = ""
    description: str = ""
    sheet_rules: List[SheetRule] = Field(default_factory=list)
    folder_id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


class ProcessingResult(_WireModel):
    """Outcome of applying one rule to one workbook.

    Plain and JSON-serializable so it can be cached and shown again later.
    """

    model_config = ConfigDict(frozen=True)

    file_id: str
    file_name: str
    rule_id: str
    rule_name: str
    processed_at: str
    records: List[Record] = Field(default_factory=list)
    success: bool
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return the camelCase wire representation."""

        data = self.model_dump(mode="json", by_alias=True)
        if data.get("errorMessage") is None:
            data.pop("errorMessage", None)
        return data


@dataclass(frozen=True, slots=True)
class NormalizedMappingRule:
    """Mapping rule with parsed sub-structures and a resolved source kind."""

    id: str
    name: str
    target_field: str
    source: SourceKind
    cell: Optional[CellPosition] = None
    range: Optional[CellRange] = None
    formula: Optional[str] = None
    direct_value: CellValue = None
    default_value: CellValue = None
    conditions: tuple[Condition, ...] = ()


@dataclass(slots=True)
class ExtractedField:
    """Values produced by one mapping rule for one sheet.

    ``values`` holds one entry for scalar rules (or none when nothing was
    sourced) and the natural vector for range rules.
    """

    target_field: str
    values: List[Any] = field(default_factory=list)
    is_range: bool = False
    keep_empty: bool = False


__all__ = [
    "CellPosition",
    "CellRange",
    "CellValue",
    "Condition",
    "ExcelRule",
    "ExtractedField",
    "MappingRule",
    "NormalizedMappingRule",
    "ProcessingResult",
    "RangeShape",
    "Record",
    "SheetRule",
    "SourceKind",
]
