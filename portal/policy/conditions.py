"""
MORIS Policy — Condition Evaluation
=====================================
Pure predicates over (event, project). Deterministic, no side effects.

Field paths:
    event.<name>          event type ("event.type") or a payload field
    project.<name>        a field of the canonical project (case-insensitive)
    custom_field.<id>     a custom field value on the canonical project

Comparison is textual for equality and prefix/containment, numeric for
greater_than / less_than (non-numeric text compares as 0). An unknown
operator never matches.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from portal.policy.models import ConditionOperator, PolicyCondition

logger = logging.getLogger("moris.policy")


def _lookup(source: Optional[Mapping[str, Any]], name: str) -> Any:
    if not source:
        return None
    if name in source:
        return source[name]
    lowered = name.lower()
    for key, value in source.items():
        if isinstance(key, str) and key.lower() == lowered:
            return value
    return None


def extract_value(
    path: str,
    event: Optional[Mapping[str, Any]],
    project: Optional[Mapping[str, Any]],
) -> Any:
    source, sep, name = path.partition(".")
    if not sep or not name:
        return None
    if source == "event":
        return _lookup(event, name)
    if source == "project":
        return _lookup(project, name)
    if source == "custom_field":
        custom = _lookup(project, "custom_fields")
        if isinstance(custom, Mapping):
            return custom.get(name)
        return None
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0


def _is_in(value: Any, collection: Any) -> bool:
    if isinstance(collection, (str, bytes)) or not isinstance(collection, Iterable):
        return False
    return _text(value) in {_text(item) for item in collection}


def evaluate_condition(
    condition: PolicyCondition,
    event: Optional[Mapping[str, Any]],
    project: Optional[Mapping[str, Any]],
) -> bool:
    value = extract_value(condition.field, event, project)
    op = condition.operator

    if op == ConditionOperator.EQUALS:
        return _text(value) == _text(condition.value)
    if op == ConditionOperator.NOT_EQUALS:
        return _text(value) != _text(condition.value)
    if op == ConditionOperator.CONTAINS:
        return _text(condition.value) in _text(value)
    if op == ConditionOperator.STARTS_WITH:
        return _text(value).startswith(_text(condition.value))
    if op == ConditionOperator.GREATER_THAN:
        return _number(value) > _number(condition.value)
    if op == ConditionOperator.LESS_THAN:
        return _number(value) < _number(condition.value)
    if op == ConditionOperator.IN:
        return _is_in(value, condition.value)
    if op == ConditionOperator.NOT_IN:
        return not _is_in(value, condition.value)
    if op == ConditionOperator.EXISTS:
        return value is not None and value != ""
    if op == ConditionOperator.NOT_EXISTS:
        return value is None or value == ""

    logger.warning(f"Unknown policy condition operator: {op}")
    return False


def evaluate_conditions(
    conditions: Iterable[PolicyCondition],
    event: Optional[Mapping[str, Any]],
    project: Optional[Mapping[str, Any]],
) -> bool:
    """AND over all conditions. Empty → True."""
    return all(evaluate_condition(c, event, project) for c in conditions)
