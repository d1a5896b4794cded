"""CLI integration tests for spreadsheet processing."""

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest
from openpyxl import Workbook as XlsxWorkbook
from typer.testing import CliRunner

from sheetflow import cli
from sheetflow.core import logger as core_logger
from sheetflow_persist import FileMappingStore, HistoryStore

RULES = {
    "rules": [
        {
            "id": "people",
            "name": "People",
            "sheetRules": [
                {
                    "name": "main",
                    "sheetName": "People",
                    "mappingRules": [
                        {
                            "name": "Name",
                            "targetField": "name",
                            "range": {"startRow": 2, "startColumn": 1, "endRow": 20, "endColumn": 1},
                        },
                        {"name": "Source", "targetField": "source", "directValue": "import-x"},
                    ],
                }
            ],
        },
        {
            "id": "archive",
            "name": "Archive",
            "sheetRules": [{"name": "old", "sheetName": "Archive", "mappingRules": [{"name": "a", "cell": {"row": 1, "column": 1}}]}],
        },
        {
            "id": "first-cell",
            "name": "First cell",
            "sheetRules": [{"name": "any", "mappingRules": [{"name": "first", "cell": {"row": 1, "column": 1}}]}],
        },
    ]
}


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def people_xlsx(tmp_path: Path) -> Path:
    wb = XlsxWorkbook()
    ws = wb.active
    ws.title = "People"
    for row in (["Name", "Age"], ["Alice", 30], ["Bob", 25]):
        ws.append(row)
    wb.create_sheet("Meta").append(["Batch", "B-7"])
    path = tmp_path / "people.xlsx"
    wb.save(path)
    return path


@pytest.fixture
def rules_file(tmp_path: Path) -> Path:
    path = tmp_path / "rules.json"
    path.write_text(json.dumps(RULES), encoding="utf-8")
    return path


def _invoke(runner: CliRunner, args: list[str]):
    # Each invocation gets fresh handlers bound to the runner's streams.
    core_logger.reset_logger()
    return runner.invoke(cli.app, args)


def test_sheets_lists_sheet_names(cli_runner: CliRunner, people_xlsx: Path) -> None:
    result = _invoke(cli_runner, ["sheets", str(people_xlsx)])

    assert result.exit_code == 0, result.output
    assert "People" in result.output
    assert "Meta" in result.output


def test_process_exports_records_and_records_history(
    cli_runner: CliRunner, people_xlsx: Path, rules_file: Path, tmp_path: Path, work_root: Path
) -> None:
    output = tmp_path / "records.json"

    result = _invoke(
        cli_runner,
        ["process", str(people_xlsx), "--rules", str(rules_file), "--rule-id", "people", "--output", str(output)],
    )

    assert result.exit_code == 0, result.output
    assert json.loads(output.read_text(encoding="utf-8")) == [
        {"name": "Alice", "source": "import-x"},
        {"name": "Bob", "source": "import-x"},
    ]
    history = HistoryStore(work_root).query()
    assert history["rule_id"].tolist() == ["people"]
    assert history["records_generated"].tolist() == [2]


def test_process_batch_continues_after_failure(
    cli_runner: CliRunner, people_xlsx: Path, rules_file: Path, tmp_path: Path
) -> None:
    output = tmp_path / "records.csv"

    result = _invoke(
        cli_runner,
        [
            "process",
            str(people_xlsx),
            "--rules",
            str(rules_file),
            "--rule-id",
            "people",
            "--rule-id",
            "archive",
            "--output",
            str(output),
            "--no-history",
        ],
    )

    assert result.exit_code == 1
    assert 'Sheet "Archive" not found in workbook' in result.output
    lines = output.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "name,source"
    assert len(lines) == 3


def test_explicit_sheet_is_remembered_for_the_next_run(
    cli_runner: CliRunner, people_xlsx: Path, rules_file: Path, tmp_path: Path, work_root: Path
) -> None:
    first = tmp_path / "first.json"
    second = tmp_path / "second.json"

    result = _invoke(
        cli_runner,
        ["process", str(people_xlsx), "--rules", str(rules_file), "--rule-id", "first-cell", "--sheet", "Meta", "-o", str(first)],
    )
    assert result.exit_code == 0, result.output
    assert json.loads(first.read_text(encoding="utf-8")) == [{"first": "Batch"}]
    assert FileMappingStore(work_root).lookup("first-cell", "people.xlsx") == "Meta"

    result = _invoke(
        cli_runner,
        ["process", str(people_xlsx), "--rules", str(rules_file), "--rule-id", "first-cell", "-o", str(second)],
    )
    assert result.exit_code == 0, result.output
    assert json.loads(second.read_text(encoding="utf-8")) == [{"first": "Batch"}]


def test_process_default_output_goes_to_work_dir(
    cli_runner: CliRunner, people_xlsx: Path, rules_file: Path, work_root: Path
) -> None:
    result = _invoke(
        cli_runner,
        ["process", str(people_xlsx), "--rules", str(rules_file), "--rule-id", "people", "--format", "xlsx"],
    )

    assert result.exit_code == 0, result.output
    exported = list((work_root / "out").glob("people_*.xlsx"))
    assert len(exported) == 1


@pytest.mark.parametrize(
    "extra, hint",
    [
        (["--sheet", "Nope"], "Nope"),
        (["--rule-id", "ghost"], "ghost"),
        (["--format", "pdf"], "format"),
    ],
)
def test_process_rejects_bad_parameters(
    cli_runner: CliRunner, people_xlsx: Path, rules_file: Path, extra: list[str], hint: str
) -> None:
    result = _invoke(cli_runner, ["process", str(people_xlsx), "--rules", str(rules_file), *extra])

    assert result.exit_code == 2
    assert hint in result.output


def test_process_invalid_rule_file(cli_runner: CliRunner, people_xlsx: Path, tmp_path: Path) -> None:
    broken = tmp_path / "broken.yaml"
    broken.write_text("rules: [{name: missing id}]\n", encoding="utf-8")

    result = _invoke(cli_runner, ["process", str(people_xlsx), "--rules", str(broken)])

    assert result.exit_code == 2
    assert "Invalid rule file" in result.output


def test_history_lists_recent_runs(
    cli_runner: CliRunner, people_xlsx: Path, rules_file: Path, tmp_path: Path
) -> None:
    empty = _invoke(cli_runner, ["history"])
    assert empty.exit_code == 0, empty.output
    assert "No processing history yet." in empty.output

    _invoke(
        cli_runner,
        ["process", str(people_xlsx), "--rules", str(rules_file), "--rule-id", "people", "-o", str(tmp_path / "r.json")],
    )
    listed = _invoke(cli_runner, ["history", "--limit", "5"])

    assert listed.exit_code == 0, listed.output
    assert "people.xlsx" in listed.output
    assert "2 record(s)" in listed.output


def test_invalid_log_level_is_rejected(cli_runner: CliRunner, people_xlsx: Path) -> None:
    result = _invoke(cli_runner, ["--log-level", "LOUD", "sheets", str(people_xlsx)])
    assert result.exit_code == 2


def test_output_suffix_selects_export_format(
    cli_runner: CliRunner, people_xlsx: Path, rules_file: Path, tmp_path: Path
) -> None:
    output = tmp_path / "records.xlsx"

    result = _invoke(
        cli_runner,
        ["process", str(people_xlsx), "--rules", str(rules_file), "--rule-id", "people", "-o", str(output), "--no-history"],
    )

    assert result.exit_code == 0, result.output
    frame = pd.read_excel(output, sheet_name="Data", engine="openpyxl")
    assert frame["name"].tolist() == ["Alice", "Bob"]


def test_explicit_format_beats_output_suffix(
    cli_runner: CliRunner, people_xlsx: Path, rules_file: Path, tmp_path: Path
) -> None:
    output = tmp_path / "records.txt"

    result = _invoke(
        cli_runner,
        ["process", str(people_xlsx), "--rules", str(rules_file), "--rule-id", "people",
         "--format", "csv", "-o", str(output), "--no-history"],
    )

    assert result.exit_code == 0, result.output
    assert output.read_text(encoding="utf-8").splitlines()[0] == "name,source"


def test_settings_format_applies_to_default_output(
    cli_runner: CliRunner, people_xlsx: Path, rules_file: Path, work_root: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("SHEETFLOW_EXPORT_FORMAT", "csv")

    result = _invoke(
        cli_runner,
        ["process", str(people_xlsx), "--rules", str(rules_file), "--rule-id", "people", "--no-history"],
    )

    assert result.exit_code == 0, result.output
    exported = list((work_root / "out").glob("people_*.csv"))
    assert len(exported) == 1
    assert exported[0].read_text(encoding="utf-8").splitlines()[0] == "name,source"
