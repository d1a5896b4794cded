"""Typer based command line entry points for SheetFlow."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer

from sheetflow.core.errors import ConfigError, ExportError, RuleFormatError, WorkbookReadError
from sheetflow.core.logger import get_logger
from sheetflow.core.session import ProcessingSession
from sheetflow.core.settings import EXPORT_FORMATS, Settings, ensure_work_dirs, load_settings
from sheetflow.services.extraction import BatchProgress, ExcelRule, process_batch
from sheetflow_io import export_records, flatten_results, load_rules, parse_spreadsheet
from sheetflow_persist import FileMappingStore, HistoryStore

app = typer.Typer(help="Rule-driven spreadsheet extraction.")


def _settings(ctx: typer.Context) -> Settings:
    settings = ctx.obj if isinstance(ctx.obj, Settings) else None
    if settings is None:
        settings = load_settings()
        ctx.obj = settings
    return settings


@app.callback()
def main_callback(
    ctx: typer.Context,
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Set logging level (e.g. DEBUG/INFO/WARNING); defaults to settings.yaml.",
    ),
    config: Optional[Path] = typer.Option(None, "--config", help="Alternative settings.yaml."),
) -> None:
    """Load settings and configure logging before executing commands."""

    try:
        settings = load_settings(config)
    except ConfigError as exc:
        typer.secho(f"Invalid configuration: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc
    ctx.obj = settings

    dirs = ensure_work_dirs(settings.root)
    try:
        get_logger(dirs["logs"], level=log_level or settings.log_level)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc


def _load_workbook(file: Path):
    try:
        return parse_spreadsheet(file)
    except WorkbookReadError as exc:
        typer.secho(f"Unable to read {file.name}: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc


def _progress(progress: BatchProgress) -> None:
    typer.secho(f"[{progress.current}/{progress.total}] {progress.rule_name or progress.rule_id}", err=True)


def _default_output(settings: Settings, file: Path, fmt: str) -> Path:
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return ensure_work_dirs(settings.root)["out"] / f"{file.stem}_{stamp}.{fmt}"


@app.command("sheets")
def cli_sheets(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True, help="Spreadsheet file"),
) -> None:
    """List the sheet names of a spreadsheet."""

    workbook = _load_workbook(file)
    for name in workbook.sheet_names:
        typer.echo(name)


@app.command("process")
def cli_process(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True, help="Spreadsheet file"),
    rules_file: Path = typer.Option(..., "--rules", exists=True, dir_okay=False, help="YAML/JSON rule file"),
    rule_ids: Optional[List[str]] = typer.Option(None, "--rule-id", help="Rule id to run; repeat for a batch. Defaults to all rules."),
    sheet: Optional[str] = typer.Option(None, "--sheet", help="Force every sheet-rule onto this sheet."),
    fmt: Optional[str] = typer.Option(
        None,
        "--format",
        help="Export format: json, csv or xlsx. Defaults to the --output suffix, then settings.yaml.",
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Export file path."),
    history: bool = typer.Option(True, "--history/--no-history", help="Record results in the history store."),
) -> None:
    """Apply one or more rules to a spreadsheet and export the generated records."""

    settings = _settings(ctx)
    logger = get_logger()

    if fmt:
        export_format = fmt.lower()
    elif output is not None and output.suffix:
        export_format = output.suffix.lstrip(".").lower()
    else:
        export_format = settings.export_format
    if export_format not in EXPORT_FORMATS:
        raise typer.BadParameter(f"format must be one of {', '.join(EXPORT_FORMATS)}", param_hint="--format")

    try:
        rules = load_rules(rules_file)
    except RuleFormatError as exc:
        typer.secho(f"Invalid rule file: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc

    by_id = {rule.id: rule for rule in rules}
    selected = list(rule_ids) if rule_ids else list(by_id)
    unknown = [rule_id for rule_id in selected if rule_id not in by_id]
    if unknown:
        raise typer.BadParameter(f"Unknown rule id(s): {', '.join(unknown)}", param_hint="--rule-id")

    workbook = _load_workbook(file)
    if sheet is not None and not workbook.has_sheet(sheet):
        raise typer.BadParameter(
            f"Sheet '{sheet}' not found; available: {', '.join(workbook.sheet_names)}",
            param_hint="--sheet",
        )

    session = ProcessingSession(memory=FileMappingStore(settings.root) if settings.remember_sheets else None)

    def _remembered_sheet(rule: ExcelRule) -> Optional[str]:
        remembered = session.sheet_override(rule.id, file.name)
        if remembered and not workbook.has_sheet(remembered):
            logger.warning("Ignoring remembered sheet %r for rule %s: not in workbook", remembered, rule.id)
            return None
        return remembered

    results = process_batch(
        file,
        workbook,
        by_id,
        selected,
        selected_sheet_name=sheet,
        progress_cb=_progress,
        sheet_resolver=_remembered_sheet if settings.remember_sheets else None,
    )

    if sheet is not None and settings.remember_sheets:
        for result in results:
            if result.success:
                session.remember(result.rule_id, file.name, sheet)

    if history and settings.record_history:
        store = HistoryStore(settings.root)
        for result in results:
            store.record(result)

    failed = 0
    for result in results:
        if result.success:
            typer.secho(f"OK    {result.rule_name}: {len(result.records)} record(s)", fg=typer.colors.GREEN)
        else:
            failed += 1
            typer.secho(f"FAIL  {result.rule_name}: {result.error_message}", fg=typer.colors.RED)

    records = flatten_results(results)
    out_path = output or _default_output(settings, file, export_format)
    try:
        written = export_records(records, out_path, export_format)
    except ExportError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc
    typer.echo(f"{len(records)} record(s) written to {written}")

    if failed:
        raise typer.Exit(code=1)


@app.command("history")
def cli_history(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", min=1, help="Number of runs to show."),
) -> None:
    """Show the most recent processing runs."""

    settings = _settings(ctx)
    frame = HistoryStore(settings.root).query({"limit": limit})
    if frame.empty:
        typer.echo("No processing history yet.")
        return
    for row in frame.itertuples(index=False):
        status = "ok" if row.success else f"failed: {row.error_message}"
        typer.echo(
            f"{row.processed_at}  {row.file_name}  {row.rule_name}  "
            f"{row.records_generated} record(s)  {status}  [{row.file_id}]"
        )


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
