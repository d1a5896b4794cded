from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .errors import ConfigError


load_dotenv(override=False)

DEFAULT_SETTINGS_PATH = Path(__file__).resolve().parents[1] / "config" / "settings.yaml"
EXPORT_FORMATS = ("json", "csv", "xlsx")


@dataclass
class Settings:
    """Runtime settings for the CLI and the stores.

    Attributes:
        root: Base directory for logs, exports and the persistence stores.
        log_level: Level name applied to the ``sheetflow`` logger.
        export_format: Default export format (json/csv/xlsx).
        record_history: Whether processing results are written to the history store.
        remember_sheets: Whether explicit sheet choices are remembered per rule and file.
    """

    root: Path
    log_level: str = "INFO"
    export_format: str = "json"
    record_history: bool = True
    remember_sheets: bool = True


def work_dir() -> Path:
    env = os.getenv("SHEETFLOW_ROOT")
    if env:
        return Path(env).expanduser().resolve()
    return (Path.home() / "SheetFlow").resolve()


def ensure_work_dirs(root: Path | None = None) -> dict[str, Path]:
    base = Path(root) if root is not None else work_dir()
    out = base / "out"
    logs = base / "logs"
    store = base / "store"
    for p in (out, logs, store):
        p.mkdir(parents=True, exist_ok=True)
    return {"out": out, "logs": logs, "store": store}


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"配置项 {key} 必须是布尔值: {value!r}")


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from settings.yaml, then apply environment overrides.

    Environment variables win over the file: ``SHEETFLOW_ROOT``,
    ``SHEETFLOW_LOG_LEVEL`` and ``SHEETFLOW_EXPORT_FORMAT``.
    """
    cfg_path = Path(path) if path else DEFAULT_SETTINGS_PATH
    if not cfg_path.exists():
        raise ConfigError(f"settings.yaml 未找到: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError("settings.yaml 必须是字典结构")

    raw = dict(data.get("sheetflow", data))
    if os.getenv("SHEETFLOW_LOG_LEVEL"):
        raw["log_level"] = os.environ["SHEETFLOW_LOG_LEVEL"]
    if os.getenv("SHEETFLOW_EXPORT_FORMAT"):
        raw["export_format"] = os.environ["SHEETFLOW_EXPORT_FORMAT"]

    root_value = raw.get("root")
    if os.getenv("SHEETFLOW_ROOT") or not root_value:
        root = work_dir()
    else:
        root = Path(str(root_value)).expanduser().resolve()

    export_format = str(raw.get("export_format", "json")).lower()
    if export_format not in EXPORT_FORMATS:
        raise ConfigError(f"export_format 必须是 {', '.join(EXPORT_FORMATS)} 之一: {export_format}")

    return Settings(
        root=root,
        log_level=str(raw.get("log_level", "INFO")).upper(),
        export_format=export_format,
        record_history=_as_bool(raw.get("record_history", True), "record_history"),
        remember_sheets=_as_bool(raw.get("remember_sheets", True), "remember_sheets"),
    )
