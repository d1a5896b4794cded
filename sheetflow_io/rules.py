"""Rule file loading."""

# Module responsibilities:
# - Load ExcelRule definitions exported by the rule editor from YAML or JSON files.
# - Accept a single rule, a list of rules, or a ``rules:`` wrapper document.

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List

import yaml
from pydantic import ValidationError

from sheetflow.core.errors import RuleFormatError
from sheetflow.services.extraction.models import ExcelRule

from .utils.log import get_logger

logger = get_logger("rules")


def _read_payload(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise RuleFormatError(f"Invalid JSON in rule file {path}: {exc}") from exc
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise RuleFormatError(f"Invalid YAML in rule file {path}: {exc}") from exc


def parse_rules(payload: Any) -> List[ExcelRule]:
    """Validate a decoded rule document into ExcelRule models."""

    if isinstance(payload, dict) and "rules" in payload:
        payload = payload["rules"]
    if isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list):
        raise RuleFormatError("Rule document must be a rule, a list of rules, or a 'rules' mapping")

    rules: List[ExcelRule] = []
    for index, item in enumerate(payload):
        try:
            rules.append(ExcelRule.model_validate(item))
        except ValidationError as exc:
            raise RuleFormatError(f"Rule #{index + 1} is invalid: {exc}") from exc

    ids = [rule.id for rule in rules]
    duplicates = sorted({rule_id for rule_id in ids if ids.count(rule_id) > 1})
    if duplicates:
        raise RuleFormatError(f"Duplicate rule ids: {', '.join(duplicates)}")
    return rules


def load_rules(path: str | Path) -> List[ExcelRule]:
    """Load rules from a YAML or JSON file.

    Raises:
        FileNotFoundError: When the rule file does not exist.
        RuleFormatError: When the file cannot be decoded or validated.
    """

    rule_path = Path(path)
    if not rule_path.exists():
        raise FileNotFoundError(f"Rule file not found: {rule_path}")
    rules = parse_rules(_read_payload(rule_path))
    logger.info("Rules loaded", extra={"path": str(rule_path), "count": len(rules)})
    return rules
