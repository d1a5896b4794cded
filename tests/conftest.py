from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Iterator, List

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sheetflow.core import logger as core_logger
from sheetflow.services.extraction import Workbook


@pytest.fixture(autouse=True)
def _isolated_work_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point logs and stores at a temporary work directory."""

    work = tmp_path / "work"
    monkeypatch.setenv("SHEETFLOW_ROOT", str(work))
    for name in ("SHEETFLOW_LOG_LEVEL", "SHEETFLOW_EXPORT_FORMAT"):
        monkeypatch.delenv(name, raising=False)
    core_logger.reset_logger()
    yield work
    core_logger.reset_logger()


@pytest.fixture()
def work_root(_isolated_work_dir: Path) -> Path:
    return _isolated_work_dir


def _grid() -> List[List[Any]]:
    # A: names, B: amounts, C: blank column, row 4 has an empty name.
    return [
        ["Name", "Amount", "", "Team"],
        ["Alice", 10, "", "Blue"],
        ["Bob", 20, "", "Red"],
        ["", 30, "", ""],
        ["Dana", 40, "", "Green"],
    ]


@pytest.fixture()
def grid() -> List[List[Any]]:
    return _grid()


@pytest.fixture()
def workbook() -> Workbook:
    return Workbook(sheets={"Summary": _grid(), "Notes": [["Title", "Q1 report"], ["Owner", "Finance"]]})
