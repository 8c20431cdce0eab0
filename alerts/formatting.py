"""Human-readable alert messages with unit-aware value rendering."""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Sequence

from alerts.fields import resolve_field
from alerts.models import AlertContext, AlertRule


def _number_text(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_value(value: float, unit: str) -> str:
    if unit == "ms":
        if value >= 60_000:
            return f"{value / 60_000:.1f} minutes"
        if value >= 1000:
            return f"{value / 1000:.1f} seconds"
        return f"{_number_text(value)} ms"
    if unit == "%":
        return f"{value:.1f}%"
    if unit == "gas":
        if value >= 1_000_000:
            return f"{value / 1_000_000:.2f}M gas"
        if value >= 1000:
            return f"{value / 1000:.1f}K gas"
        return f"{_number_text(value)} gas"
    if unit == "messages":
        return f"{_number_text(value)} messages"
    return _number_text(value)


def _text(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def format_sequence(values: Sequence[Any], path: str) -> str:
    if not values:
        return "none"
    if "alerts" in path and not isinstance(values[0], (str, int, float)):
        rendered = []
        for item in values:
            alert_type = getattr(item, "type", None)
            level = getattr(item, "level", None)
            count = getattr(item, "count", None)
            if alert_type is not None and level is not None:
                suffix = f" ({count})" if count else ""
                rendered.append(f"{_text(level)}: {_text(alert_type)}{suffix}")
            elif alert_type is not None:
                rendered.append(_text(alert_type))
            else:
                rendered.append("Unknown alert")
        return ", ".join(rendered)
    if len(values) <= 3:
        return ", ".join(_text(item) for item in values)
    head = ", ".join(_text(item) for item in values[:2])
    return f"{len(values)} items: {head}, ..."


def format_mapping(value: Mapping[Any, Any], path: str) -> str:
    if "error" in path and "message" in value:
        return str(value["message"])
    if not value:
        return "empty"
    if len(value) <= 3:
        return ", ".join(f"{_text(key)}: {_text(item)}" for key, item in value.items())
    return f"{len(value)} properties"


def describe_value(value: Any, path: str, unit: str) -> str:
    if isinstance(value, bool) or isinstance(value, (str, Enum)):
        return _text(value)
    if isinstance(value, (int, float)):
        return format_value(value, unit)
    if isinstance(value, (list, tuple)):
        return format_sequence(value, path)
    if is_dataclass(value) and not isinstance(value, type):
        return format_mapping(asdict(value), path)
    if isinstance(value, Mapping):
        return format_mapping(value, path)
    return str(value)


def build_alert_message(rule: AlertRule, context: AlertContext) -> str:
    """Rule description followed by the current value of every referenced field."""

    message = rule.description
    for condition in rule.conditions:
        accessor = resolve_field(condition.field)
        if accessor is None:
            continue
        actual = accessor(context.metrics)
        if actual is None:
            continue
        rendered = describe_value(actual, accessor.path, accessor.unit)
        message += f" Current {accessor.name}: {rendered}."
    window_minutes = context.time_window_ms / 60_000
    message += f" Data window: {_number_text(window_minutes)} minutes."
    return message


def extract_relevant_metrics(rule: AlertRule, context: AlertContext) -> Dict[str, Any]:
    """Snapshot excerpt stored in the alert metadata."""

    relevant: Dict[str, Any] = {}
    for condition in rule.conditions:
        accessor = resolve_field(condition.field)
        if accessor is None:
            continue
        value = accessor(context.metrics)
        if value is not None:
            relevant[accessor.path] = value
    status = context.metrics.status
    relevant["operational_status"] = status.operational_status
    relevant["health_level"] = status.health_level
    relevant["generated_at"] = status.generated_at
    return relevant


__all__ = [
    "build_alert_message",
    "describe_value",
    "extract_relevant_metrics",
    "format_mapping",
    "format_sequence",
    "format_value",
]
