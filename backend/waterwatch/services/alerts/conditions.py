"""
Evaluation of alert rule conditions against an alert.

A condition parameter is resolved first against the alert's own fields
(dotted paths reach into ``location``) and then against its ``metadata``,
so sensor readings carried in metadata (``ph``, ``turbidity_ntu``,
``risk_score`` ...) can be tested directly.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from waterwatch.core.exceptions import RuleEvaluationException
from waterwatch.models.alert import Alert
from waterwatch.models.alert_rule import RuleCondition

logger = logging.getLogger(__name__)

_MISSING = object()


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, str):
        return str(expected).lower() in actual.lower()
    if isinstance(actual, list | tuple | set | dict):
        return expected in actual
    return False


def _between(actual: Any, bounds: Any) -> bool:
    low, high = bounds
    return low <= actual <= high


# Comparison operators
OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    ">": lambda a, b: a > b,
    "<": lambda a, b: a < b,
    "=": lambda a, b: a == b,
    ">=": lambda a, b: a >= b,
    "<=": lambda a, b: a <= b,
    "!=": lambda a, b: a != b,
    "contains": _contains,
    "between": _between,
}


def resolve_parameter(alert: Alert, parameter: str) -> Any:
    """Look up *parameter* on the alert, then in its metadata."""
    document = alert.model_dump(mode="python")
    for source in (document, document.get("metadata") or {}):
        value: Any = source
        for part in parameter.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                value = _MISSING
                break
        if value is not _MISSING:
            return value
    return _MISSING


def evaluate_condition(alert: Alert, condition: RuleCondition) -> bool:
    """Return whether a single condition holds for *alert*.

    A parameter absent from the alert never matches.

    Raises:
        RuleEvaluationException: Unknown operator, malformed ``between``
            bounds, or values that cannot be compared.
    """
    op_func = OPERATORS.get(condition.operator)
    if op_func is None:
        raise RuleEvaluationException(condition.parameter, f"unknown operator '{condition.operator}'")

    if condition.operator == "between" and not (
        isinstance(condition.value, list | tuple) and len(condition.value) == 2
    ):
        raise RuleEvaluationException(condition.parameter, "'between' needs [low, high]")

    actual = resolve_parameter(alert, condition.parameter)
    if actual is _MISSING or actual is None:
        return False

    try:
        return bool(op_func(actual, condition.value))
    except TypeError as exc:
        raise RuleEvaluationException(condition.parameter, str(exc)) from exc


def evaluate_conditions(alert: Alert, conditions: Iterable[RuleCondition]) -> bool:
    """Return True when every condition holds (an empty list always holds)."""
    return all(evaluate_condition(alert, condition) for condition in conditions)
