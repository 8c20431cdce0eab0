"""Operator evaluation for rule conditions.

Every comparison is total: a type mismatch or a missing value evaluates to
``False`` instead of raising.
"""

from __future__ import annotations

from collections.abc import Mapping
from numbers import Real
from typing import Any

from alerts.fields import get_field_value
from alerts.models import AlertCondition, AlertContext, Operator

DISCRIMINATOR = "type"


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _discriminator(item: Any) -> Any:
    if isinstance(item, Mapping):
        return item.get(DISCRIMINATOR)
    return getattr(item, DISCRIMINATOR, None)


def compare_values(actual: Any, operator: Operator, expected: Any) -> bool:
    if operator in (Operator.GT, Operator.GTE, Operator.LT, Operator.LTE):
        if not (_is_number(actual) and _is_number(expected)):
            return False
        if operator is Operator.GT:
            return actual > expected
        if operator is Operator.GTE:
            return actual >= expected
        if operator is Operator.LT:
            return actual < expected
        return actual <= expected

    if operator is Operator.EQ:
        return bool(actual == expected)
    if operator is Operator.NEQ:
        return bool(actual != expected)

    if operator is Operator.CONTAINS:
        if not isinstance(expected, str):
            return False
        if isinstance(actual, str):
            return expected in actual
        if isinstance(actual, (list, tuple)):
            return any(
                item is not None and _discriminator(item) == expected for item in actual
            )
        return False

    if operator is Operator.IN:
        if not isinstance(expected, (list, tuple, set, frozenset)):
            return False
        try:
            return actual in expected
        except TypeError:
            # unhashable value tested against a set
            return False

    return False


def evaluate_condition(condition: AlertCondition, context: AlertContext) -> bool:
    """Evaluate ``condition`` against the snapshot in ``context`` (no duration gating)."""

    actual = get_field_value(context.metrics, condition.field)
    if actual is None:
        return False
    return compare_values(actual, condition.operator, condition.value)


__all__ = ["compare_values", "evaluate_condition"]
