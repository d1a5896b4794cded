"""Partition a sheet's mapping rules into range and scalar rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

from .models import NormalizedMappingRule


@dataclass(frozen=True, slots=True)
class PositionedRule:
    """A mapping rule with its authoring position inside the sheet-rule."""

    position: int
    rule: NormalizedMappingRule


@dataclass(slots=True)
class ClassifiedRules:
    range_rules: List[PositionedRule] = field(default_factory=list)
    scalar_rules: List[PositionedRule] = field(default_factory=list)


def is_range_rule(rule: NormalizedMappingRule) -> bool:
    """A rule with a parsed range is a range rule, whatever its declared source kind."""

    return rule.range is not None


def classify_rules(rules: Iterable[NormalizedMappingRule]) -> ClassifiedRules:
    """Split rules into range and scalar buckets, each in authoring order."""

    classified = ClassifiedRules()
    for position, rule in enumerate(rules):
        bucket = classified.range_rules if is_range_rule(rule) else classified.scalar_rules
        bucket.append(PositionedRule(position, rule))
    return classified


__all__ = ["ClassifiedRules", "PositionedRule", "classify_rules", "is_range_rule"]
