"""Grid access helpers for parsed workbooks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

Grid = Sequence[Sequence[Any]]


def is_empty(value: Any) -> bool:
    """Return True for values treated as an absent cell (``None`` or ``""``)."""

    return value is None or (isinstance(value, str) and value == "")


def get_cell(grid: Grid, row: int, column: int) -> Any:
    """Read a 1-indexed cell, returning ``None`` outside the populated extent."""

    if row < 1 or column < 1:
        return None
    row_index = row - 1
    if row_index >= len(grid):
        return None
    cells = grid[row_index]
    col_index = column - 1
    if col_index >= len(cells):
        return None
    return cells[col_index]


def column_letter(column: int) -> str:
    letters = ""
    while column > 0:
        column, remainder = divmod(column - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def cell_address(row: int, column: int) -> str:
    """Return ``A1`` notation for a 1-indexed position."""

    if row < 1 or column < 1:
        return f"R{row}C{column}"
    return f"{column_letter(column)}{row}"


@dataclass
class Workbook:
    """Parsed workbook: ordered sheet names mapped to 0-indexed row grids."""

    sheets: Dict[str, List[List[Any]]] = field(default_factory=dict)

    @property
    def sheet_names(self) -> List[str]:
        return list(self.sheets.keys())

    def has_sheet(self, name: str) -> bool:
        return name in self.sheets

    def sheet_grid(self, name: str) -> List[List[Any]]:
        """Return the grid for *name*; raises ``KeyError`` when absent."""

        return self.sheets[name]


__all__ = ["Grid", "Workbook", "cell_address", "column_letter", "get_cell", "is_empty"]
