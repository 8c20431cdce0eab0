"""Predefined alert rule templates and rule construction helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from alerts.fields import resolve_field
from alerts.models import (
    AlertCategory,
    AlertCondition,
    AlertRule,
    AlertSeverity,
    NotificationChannel,
    Operator,
)

MINUTE_MS = 60 * 1000


@dataclass(frozen=True, slots=True)
class TemplateCondition:
    field: str
    operator: Operator
    duration_ms: Optional[float] = None


@dataclass(frozen=True, slots=True)
class AlertRuleTemplate:
    name: str
    description: str
    category: AlertCategory
    severity: AlertSeverity
    conditions: Tuple[TemplateCondition, ...]
    default_values: Dict[str, Any] = field(default_factory=dict)


def _template(
    name: str,
    description: str,
    category: AlertCategory,
    severity: AlertSeverity,
    path: str,
    operator: Operator,
    value: Any,
    duration_ms: Optional[float] = None,
) -> AlertRuleTemplate:
    return AlertRuleTemplate(
        name=name,
        description=description,
        category=category,
        severity=severity,
        conditions=(TemplateCondition(path, operator, duration_ms),),
        default_values={"value": value},
    )


ALERT_RULE_TEMPLATES: Tuple[AlertRuleTemplate, ...] = (
    _template(
        "High Latency Alert",
        "Triggers when average latency exceeds threshold",
        AlertCategory.LATENCY,
        AlertSeverity.HIGH,
        "core_metrics.latency.average_latency_ms",
        Operator.GT,
        30_000,
        duration_ms=1 * MINUTE_MS,
    ),
    _template(
        "Critical Latency Alert",
        "Triggers when average latency is critically high",
        AlertCategory.LATENCY,
        AlertSeverity.CRITICAL,
        "core_metrics.latency.average_latency_ms",
        Operator.GT,
        120_000,
        duration_ms=30_000,
    ),
    _template(
        "Low Success Rate Alert",
        "Triggers when success rate drops below threshold",
        AlertCategory.THROUGHPUT,
        AlertSeverity.HIGH,
        "core_metrics.throughput.success_rate",
        Operator.LT,
        95,
        duration_ms=2 * MINUTE_MS,
    ),
    _template(
        "Critical Success Rate Alert",
        "Triggers when success rate is critically low",
        AlertCategory.THROUGHPUT,
        AlertSeverity.CRITICAL,
        "core_metrics.throughput.success_rate",
        Operator.LT,
        80,
        duration_ms=1 * MINUTE_MS,
    ),
    _template(
        "High Error Rate Alert",
        "Triggers when error rate exceeds threshold",
        AlertCategory.ERROR_RATE,
        AlertSeverity.MEDIUM,
        "health.error_summary.error_rate",
        Operator.GT,
        5,
        duration_ms=3 * MINUTE_MS,
    ),
    _template(
        "System Down Alert",
        "Triggers when operational status is DOWN",
        AlertCategory.SYSTEM_STATUS,
        AlertSeverity.CRITICAL,
        "status.operational_status",
        Operator.EQ,
        "DOWN",
    ),
    _template(
        "System Degraded Alert",
        "Triggers when operational status is DEGRADED",
        AlertCategory.SYSTEM_STATUS,
        AlertSeverity.HIGH,
        "status.operational_status",
        Operator.EQ,
        "DEGRADED",
        duration_ms=5 * MINUTE_MS,
    ),
    _template(
        "Consecutive Failures Alert",
        "Triggers when there are consecutive failures",
        AlertCategory.CONSECUTIVE_FAILURES,
        AlertSeverity.CRITICAL,
        "health.alerts",
        Operator.CONTAINS,
        "CONSECUTIVE_FAILURES",
    ),
    _template(
        "High Gas Usage Alert",
        "Triggers when average gas usage is unusually high",
        AlertCategory.GAS_USAGE,
        AlertSeverity.MEDIUM,
        "core_metrics.gas.average_send_gas",
        Operator.GT,
        1_000_000,
        duration_ms=10 * MINUTE_MS,
    ),
    _template(
        "Severe Timing Delays Alert",
        "Triggers when message timing is severely delayed",
        AlertCategory.TIMING,
        AlertSeverity.HIGH,
        "status.timing_status",
        Operator.EQ,
        "SEVERELY_DELAYED",
        duration_ms=3 * MINUTE_MS,
    ),
)

_SEVERITY_CHANNELS = {
    AlertSeverity.CRITICAL: (NotificationChannel.EMAIL, NotificationChannel.SLACK, NotificationChannel.SMS),
    AlertSeverity.HIGH: (NotificationChannel.EMAIL, NotificationChannel.SLACK),
    AlertSeverity.MEDIUM: (NotificationChannel.SLACK,),
    AlertSeverity.LOW: (NotificationChannel.SLACK,),
}

_SEVERITY_COOLDOWN_MS = {
    AlertSeverity.CRITICAL: 5 * MINUTE_MS,
    AlertSeverity.HIGH: 15 * MINUTE_MS,
    AlertSeverity.MEDIUM: 30 * MINUTE_MS,
    AlertSeverity.LOW: 60 * MINUTE_MS,
}


def default_channels_for_severity(severity: AlertSeverity) -> Tuple[NotificationChannel, ...]:
    return _SEVERITY_CHANNELS.get(severity, (NotificationChannel.SLACK,))


def cooldown_for_severity(severity: AlertSeverity) -> float:
    return _SEVERITY_COOLDOWN_MS.get(severity, 15 * MINUTE_MS)


def _conditions_from_template(
    template: AlertRuleTemplate, values: Mapping[str, Any]
) -> Tuple[AlertCondition, ...]:
    conditions = []
    for condition in template.conditions:
        key = condition.field.rsplit(".", 1)[-1]
        value = values.get(key)
        if value is None:
            value = values.get("value")
        if isinstance(value, list):
            value = tuple(value)
        conditions.append(
            AlertCondition(
                field=condition.field,
                operator=condition.operator,
                value=value,
                duration_ms=condition.duration_ms,
            )
        )
    return tuple(conditions)


def create_rule_from_template(
    template: AlertRuleTemplate,
    rule_id: str,
    custom_values: Optional[Mapping[str, Any]] = None,
) -> AlertRule:
    """Instantiate ``template`` as a rule.

    ``custom_values`` may override the threshold either under ``"value"`` or
    under the last segment of a condition's field path (``"success_rate"``).
    """

    values = dict(template.default_values)
    values.update(custom_values or {})
    return AlertRule(
        id=rule_id,
        name=template.name,
        description=template.description,
        category=template.category,
        severity=template.severity,
        conditions=_conditions_from_template(template, values),
        channels=default_channels_for_severity(template.severity),
        cooldown_ms=cooldown_for_severity(template.severity),
        enabled=True,
        metadata={"template": template.name, "custom_values": dict(custom_values or {})},
    )


def find_template(name: str) -> AlertRuleTemplate:
    for template in ALERT_RULE_TEMPLATES:
        if template.name == name:
            return template
    raise ValueError(f"Unknown alert rule template: {name}")


def create_alert_rule(
    id: str,
    name: str,
    description: str,
    category: AlertCategory,
    severity: AlertSeverity,
    conditions: Sequence[AlertCondition],
    channels: Optional[Iterable[NotificationChannel]] = None,
    cooldown_ms: Optional[float] = None,
    enabled: bool = True,
    metadata: Optional[Dict[str, Any]] = None,
) -> AlertRule:
    """Build a rule, filling channels and cooldown from the severity when omitted."""

    category = AlertCategory(category)
    severity = AlertSeverity(severity)
    return AlertRule(
        id=id,
        name=name,
        description=description,
        category=category,
        severity=severity,
        conditions=tuple(conditions),
        channels=(
            tuple(NotificationChannel(c) for c in channels)
            if channels is not None
            else default_channels_for_severity(severity)
        ),
        cooldown_ms=cooldown_ms if cooldown_ms is not None else cooldown_for_severity(severity),
        enabled=enabled,
        metadata=dict(metadata or {}),
    )


def rule_from_dict(data: Mapping[str, Any]) -> AlertRule:
    """Parse a rule from a config mapping; raises ``ValueError`` on bad input."""

    missing = [key for key in ("id", "name", "category", "severity", "conditions") if key not in data]
    if missing:
        raise ValueError(f"Alert rule is missing keys: {missing}")
    try:
        conditions = [AlertCondition.from_dict(item) for item in data["conditions"]]
    except KeyError as exc:
        raise ValueError(f"Alert rule {data['id']}: condition missing {exc}") from exc
    channels = data.get("channels")
    if channels is not None:
        channels = [str(channel).upper() for channel in channels]
    rule = create_alert_rule(
        id=str(data["id"]),
        name=str(data["name"]),
        description=str(data.get("description", data["name"])),
        category=AlertCategory(data["category"]),
        severity=AlertSeverity(data["severity"]),
        conditions=conditions,
        channels=channels,
        cooldown_ms=data.get("cooldown_ms"),
        enabled=bool(data.get("enabled", True)),
        metadata=data.get("metadata"),
    )
    errors = validate_alert_rule(rule)
    if errors:
        raise ValueError(f"Invalid alert rule {rule.id}: {'; '.join(errors)}")
    return rule


def validate_alert_rule(rule: AlertRule) -> List[str]:
    """Return every problem found with ``rule``; an empty list means valid."""

    errors: List[str] = []
    if not (rule.id or "").strip():
        errors.append("Rule ID is required")
    if not (rule.name or "").strip():
        errors.append("Rule name is required")
    if not (rule.description or "").strip():
        errors.append("Rule description is required")
    if not isinstance(rule.category, AlertCategory):
        errors.append("Invalid alert category")
    if not isinstance(rule.severity, AlertSeverity):
        errors.append("Invalid alert severity")
    if not rule.conditions:
        errors.append("At least one condition is required")

    for index, condition in enumerate(rule.conditions, start=1):
        if not (condition.field or "").strip():
            errors.append(f"Condition {index}: field is required")
        elif resolve_field(condition.field) is None:
            errors.append(f"Condition {index}: unknown field '{condition.field}'")
        if not isinstance(condition.operator, Operator):
            errors.append(f"Condition {index}: invalid operator")
        if condition.value is None:
            errors.append(f"Condition {index}: value is required")
        if condition.duration_ms is not None and condition.duration_ms < 0:
            errors.append(f"Condition {index}: duration must be positive")

    if not rule.channels:
        errors.append("At least one notification channel is required")
    for channel in rule.channels:
        if not isinstance(channel, NotificationChannel):
            errors.append(f"Invalid notification channel: {channel}")
    if rule.cooldown_ms < 0:
        errors.append("Cooldown must be positive")
    return errors


DEFAULT_ALERT_RULES: Tuple[AlertRule, ...] = tuple(
    AlertRule(
        id=f"rule_{template.category.value.lower()}_{index + 1}",
        name=template.name,
        description=template.description,
        category=template.category,
        severity=template.severity,
        conditions=_conditions_from_template(template, template.default_values),
        channels=default_channels_for_severity(template.severity),
        cooldown_ms=cooldown_for_severity(template.severity),
        enabled=True,
        metadata={"template": template.name, "auto_generated": True},
    )
    for index, template in enumerate(ALERT_RULE_TEMPLATES)
)


__all__ = [
    "ALERT_RULE_TEMPLATES",
    "AlertRuleTemplate",
    "DEFAULT_ALERT_RULES",
    "TemplateCondition",
    "cooldown_for_severity",
    "create_alert_rule",
    "create_rule_from_template",
    "default_channels_for_severity",
    "find_template",
    "rule_from_dict",
    "validate_alert_rule",
]
