"""Normalization of raw mapping rules into a resolved, typed form."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Mapping, Optional, TypeVar

from pydantic import ValidationError

from .models import (
    CellPosition,
    CellRange,
    Condition,
    MappingRule,
    NormalizedMappingRule,
    SourceKind,
)

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_VALID_KINDS = {kind.value: kind for kind in SourceKind}


def parse_if_string(
    value: Any,
    build: Callable[[Any], T],
    *,
    field_name: str,
    rule_name: str = "",
) -> Optional[T]:
    """Decode *value* when it is JSON text, then build the structured value.

    Returns ``None`` (and logs a warning) when decoding or building fails, so
    one malformed sub-structure never aborts the rest of the rule.
    """

    if value is None:
        return None
    payload = value
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            payload = json.loads(value)
        except json.JSONDecodeError as exc:
            LOGGER.warning("Failed to parse %s of rule %r: %s", field_name, rule_name, exc)
            return None
    if payload is None:
        return None
    try:
        return build(payload)
    except (ValidationError, TypeError, ValueError) as exc:
        LOGGER.warning("Ignoring invalid %s of rule %r: %s", field_name, rule_name, exc)
        return None


def _build_cell(payload: Any) -> CellPosition:
    if isinstance(payload, CellPosition):
        return payload
    return CellPosition.model_validate(payload)


def _build_range(payload: Any) -> CellRange:
    if isinstance(payload, CellRange):
        return payload
    return CellRange.model_validate(payload)


def _build_conditions(payload: Any) -> tuple[Condition, ...]:
    if not isinstance(payload, (list, tuple)):
        raise TypeError(f"conditions must be a list, got {type(payload).__name__}")
    return tuple(
        item if isinstance(item, Condition) else Condition.model_validate(item)
        for item in payload
    )


def resolve_source_kind(
    declared: Optional[str],
    *,
    has_direct: bool,
    has_range: bool,
    has_cell: bool,
) -> SourceKind:
    """Return the declared kind when valid, else infer direct > range > cell > formula."""

    if declared:
        kind = _VALID_KINDS.get(str(declared).strip().lower())
        if kind is not None:
            return kind
        LOGGER.warning("Unknown sourceType %r, inferring from populated fields", declared)
    if has_direct:
        return SourceKind.DIRECT
    if has_range:
        return SourceKind.RANGE
    if has_cell:
        return SourceKind.CELL
    return SourceKind.FORMULA


def normalize_mapping_rule(raw: MappingRule | Mapping[str, Any]) -> NormalizedMappingRule:
    """Parse sub-structures and resolve the source kind of one mapping rule."""

    rule = raw if isinstance(raw, MappingRule) else MappingRule.model_validate(dict(raw))
    label = rule.name or rule.id

    cell = parse_if_string(rule.cell, _build_cell, field_name="cell", rule_name=label)
    cell_range = parse_if_string(rule.range, _build_range, field_name="range", rule_name=label)
    conditions = parse_if_string(
        rule.conditions, _build_conditions, field_name="conditions", rule_name=label
    )

    source = resolve_source_kind(
        rule.source_type,
        has_direct=rule.direct_value is not None,
        has_range=cell_range is not None,
        has_cell=cell is not None,
    )
    target_field = rule.target_field or rule.name

    LOGGER.debug(
        "Normalized rule %r: source=%s target=%s range=%s cell=%s",
        label,
        source.value,
        target_field,
        cell_range is not None,
        cell is not None,
    )

    return NormalizedMappingRule(
        id=rule.id,
        name=rule.name,
        target_field=target_field,
        source=source,
        cell=cell,
        range=cell_range,
        formula=rule.formula,
        direct_value=rule.direct_value,
        default_value=rule.default_value,
        conditions=conditions or (),
    )


__all__ = ["normalize_mapping_rule", "parse_if_string", "resolve_source_kind"]
