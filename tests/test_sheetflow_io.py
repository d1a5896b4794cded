from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pandas as pd
import pytest
from openpyxl import Workbook as XlsxWorkbook
from openpyxl import load_workbook

from sheetflow.core.errors import ExportError, RuleFormatError, WorkbookReadError
from sheetflow.services.extraction import ProcessingResult
from sheetflow_io import (
    collect_fields,
    export_records,
    flatten_results,
    load_rules,
    parse_rules,
    parse_spreadsheet,
    records_to_frame,
)
from sheetflow_io.excel_reader import csv_value, normalize_cell

RULES_YAML = """
rules:
  - id: people
    name: People
    sheetRules:
      - name: main
        sheetName: People
        mappingRules:
          - name: Name
            targetField: name
            range: '{"startRow": 2, "startColumn": 1, "endRow": 10, "endColumn": 1}'
          - name: Source
            directValue: import-x
  - id: meta
    name: Meta
    sheet_rules:
      - sheet_index: 1
        mapping_rules:
          - name: batch
            cell: {row: 1, column: 2}
"""


def _write_xlsx(path: Path) -> Path:
    wb = XlsxWorkbook()
    ws = wb.active
    ws.title = "People"
    ws.append(["Name", "Joined"])
    ws.append(["Alice", datetime(2024, 5, 10)])
    ws.append([None, None])
    ws.append(["Bob", 25])
    meta = wb.create_sheet("Meta")
    meta.append(["Batch", "B-7"])
    wb.save(path)
    return path


def test_parse_xlsx_keeps_order_blank_rows_and_normalizes_values(tmp_path):
    workbook = parse_spreadsheet(_write_xlsx(tmp_path / "people.xlsx"))

    assert workbook.sheet_names == ["People", "Meta"]
    grid = workbook.sheet_grid("People")
    assert grid[0] == ["Name", "Joined"]
    assert grid[1] == ["Alice", "2024-05-10T00:00:00"]
    assert grid[2] == ["", ""]
    assert grid[3] == ["Bob", 25]


def test_parse_xlsx_from_bytes(tmp_path):
    data = _write_xlsx(tmp_path / "people.xlsx").read_bytes()
    workbook = parse_spreadsheet(data, file_name="people.xlsx")
    assert workbook.sheet_grid("Meta") == [["Batch", "B-7"]]


def test_parse_csv_uses_file_stem_as_sheet(tmp_path):
    path = tmp_path / "ledger.csv"
    path.write_text("Name,Amount\nAlice,10\n,\nBob,\n", encoding="utf-8")

    workbook = parse_spreadsheet(path)

    assert workbook.sheet_names == ["ledger"]
    assert workbook.sheet_grid("ledger") == [["Name", "Amount"], ["Alice", 10], ["", ""], ["Bob", ""]]


def test_csv_numbers_match_excel_cells_but_codes_stay_text(tmp_path):
    path = tmp_path / "codes.csv"
    path.write_text("code,qty,price,note\n007,3,2.50,1e3\n-4,0,.5,12 kg\n", encoding="utf-8")

    grid = parse_spreadsheet(path).sheet_grid("codes")

    assert grid[1] == ["007", 3, 2.5, 1000.0]
    assert grid[2] == [-4, 0, 0.5, "12 kg"]


def test_csv_value():
    assert csv_value("42") == 42
    assert csv_value(" 42 ") == 42
    assert csv_value("00") == "00"
    assert csv_value("1.2.3") == "1.2.3"
    assert csv_value("") == ""
    assert csv_value(None) == ""

def test_parse_spreadsheet_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        parse_spreadsheet(tmp_path / "missing.xlsx")

    broken = tmp_path / "broken.xlsx"
    broken.write_bytes(b"not a zip file")
    with pytest.raises(WorkbookReadError):
        parse_spreadsheet(broken)

    text = tmp_path / "notes.txt"
    text.write_text("hello", encoding="utf-8")
    with pytest.raises(WorkbookReadError):
        parse_spreadsheet(text)


def test_normalize_cell():
    assert normalize_cell(None) == ""
    assert normalize_cell(float("nan")) == ""
    assert normalize_cell(3.5) == 3.5
    assert normalize_cell(datetime(2024, 1, 2)) == "2024-01-02T00:00:00"


def test_load_rules_yaml_accepts_both_key_styles(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text(RULES_YAML, encoding="utf-8")

    rules = load_rules(path)

    assert [r.id for r in rules] == ["people", "meta"]
    assert rules[0].sheet_rules[0].mapping_rules[1].direct_value == "import-x"
    assert rules[1].sheet_rules[0].sheet_index == 1


def test_load_rules_json_single_rule(tmp_path):
    path = tmp_path / "rule.json"
    path.write_text(json.dumps({"id": "one", "name": "One", "sheetRules": []}), encoding="utf-8")
    assert [r.id for r in load_rules(path)] == ["one"]


def test_rule_file_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_rules(tmp_path / "absent.yaml")

    bad_json = tmp_path / "bad.json"
    bad_json.write_text("{", encoding="utf-8")
    with pytest.raises(RuleFormatError):
        load_rules(bad_json)

    with pytest.raises(RuleFormatError, match="Rule #1"):
        parse_rules([{"name": "no id"}])
    with pytest.raises(RuleFormatError, match="Duplicate"):
        parse_rules([{"id": "a"}, {"id": "a"}])
    with pytest.raises(RuleFormatError):
        parse_rules("just text")


def _result(rule_id: str, records, success: bool = True) -> ProcessingResult:
    return ProcessingResult(
        file_id=f"f-{rule_id}",
        file_name="people.xlsx",
        rule_id=rule_id,
        rule_name=rule_id,
        processed_at="2024-05-10T00:00:00+00:00",
        records=records,
        success=success,
        error_message=None if success else "boom",
    )


def test_flatten_results_skips_failures():
    results = [_result("a", [{"x": 1}]), _result("b", [], success=False), _result("c", [{"y": 2}])]
    assert flatten_results(results) == [{"x": 1}, {"y": 2}]


def test_collect_fields_first_seen_order():
    assert collect_fields([{"b": 1, "a": 2}, {"c": 3, "a": 4}]) == ["b", "a", "c"]


def test_records_to_frame_joins_row_groups():
    frame = records_to_frame([{"pair": [["a", 1], ["b", 2]], "flat": ["x", "y"]}, {"other": "z"}])
    assert list(frame.columns) == ["pair", "flat", "other"]
    assert frame.loc[0, "flat"] == "x; y"
    assert frame.loc[0, "pair"] == "['a', 1]; ['b', 2]"
    assert frame.loc[1, "flat"] == ""


def test_export_json_csv_xlsx(tmp_path):
    records = [{"name": "Alice", "source": "import-x"}, {"name": "Bob", "memo": ""}]

    json_path = export_records(records, tmp_path / "out.json")
    assert json.loads(json_path.read_text(encoding="utf-8")) == records

    csv_path = export_records(records, tmp_path / "out.csv")
    frame = pd.read_csv(csv_path, keep_default_na=False)
    assert list(frame.columns) == ["name", "source", "memo"]
    assert frame["name"].tolist() == ["Alice", "Bob"]

    xlsx_path = export_records(records, tmp_path / "nested" / "records.xlsx")
    wb = load_workbook(xlsx_path)
    assert wb.sheetnames == ["Data"]
    assert [cell.value for cell in wb["Data"][1]] == ["name", "source", "memo"]


def test_export_unknown_format(tmp_path):
    with pytest.raises(ExportError):
        export_records([{"a": 1}], tmp_path / "out.parquet")
