"""Rule, alert and notification types used by the alert engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

from core.observations import Observation
from metrics.snapshot import MetricsSnapshot


class AlertSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AlertCategory(str, Enum):
    LATENCY = "LATENCY"
    THROUGHPUT = "THROUGHPUT"
    ERROR_RATE = "ERROR_RATE"
    SYSTEM_STATUS = "SYSTEM_STATUS"
    CONSECUTIVE_FAILURES = "CONSECUTIVE_FAILURES"
    GAS_USAGE = "GAS_USAGE"
    TIMING = "TIMING"


class NotificationChannel(str, Enum):
    EMAIL = "EMAIL"
    SLACK = "SLACK"
    WEBHOOK = "WEBHOOK"
    SMS = "SMS"
    DISCORD = "DISCORD"
    TELEGRAM = "TELEGRAM"


class Operator(str, Enum):
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    EQ = "eq"
    NEQ = "neq"
    CONTAINS = "contains"
    IN = "in"


ConditionValue = Union[int, float, str, bool, Sequence[Union[str, int, float]]]


@dataclass(frozen=True, slots=True)
class AlertCondition:
    """A single comparison against a snapshot field.

    ``duration_ms`` turns the condition into a sustained one: it only counts
    as satisfied after staying true for at least that long.
    """

    field: str
    operator: Operator
    value: ConditionValue
    duration_ms: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AlertCondition":
        value = data.get("value")
        if isinstance(value, list):
            value = tuple(value)
        duration = data.get("duration_ms")
        return cls(
            field=str(data["field"]),
            operator=Operator(data["operator"]),
            value=value,
            duration_ms=float(duration) if duration is not None else None,
        )

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "field": self.field,
            "operator": self.operator.value,
            "value": list(self.value) if isinstance(self.value, tuple) else self.value,
        }
        if self.duration_ms is not None:
            payload["duration_ms"] = self.duration_ms
        return payload


@dataclass(frozen=True, slots=True)
class AlertRule:
    """Declarative, AND-combined set of conditions."""

    id: str
    name: str
    description: str
    category: AlertCategory
    severity: AlertSeverity
    conditions: Tuple[AlertCondition, ...]
    channels: Tuple[NotificationChannel, ...] = ()
    cooldown_ms: float = 15 * 60 * 1000
    enabled: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Alert:
    id: str
    timestamp: float
    severity: AlertSeverity
    category: AlertCategory
    title: str
    message: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    resolved: bool = False


@dataclass(frozen=True, slots=True)
class AlertContext:
    """What a rule is evaluated against in one cycle."""

    metrics: MetricsSnapshot
    observations: Tuple[Observation, ...] = ()
    previous_metrics: Optional[MetricsSnapshot] = None
    time_window_ms: float = 60 * 60 * 1000


def create_alert_context(
    metrics: MetricsSnapshot,
    observations: Sequence[Observation] = (),
    previous_metrics: Optional[MetricsSnapshot] = None,
    time_window_ms: float = 60 * 60 * 1000,
) -> AlertContext:
    return AlertContext(
        metrics=metrics,
        observations=tuple(observations),
        previous_metrics=previous_metrics,
        time_window_ms=time_window_ms,
    )


@dataclass(frozen=True, slots=True)
class AlertNotification:
    alert: Alert
    rule: AlertRule
    context: AlertContext
    channels: Tuple[NotificationChannel, ...] = ()


@dataclass(frozen=True, slots=True)
class AlertEvaluationResult:
    rule: AlertRule
    triggered: bool
    alert: Optional[Alert] = None
    reason: Optional[str] = None


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    """Result of handing one notification to one channel."""

    channel: str
    ok: bool
    error: Optional[str] = None


NotificationCallback = Callable[[AlertNotification], Union[Awaitable[Any], Any]]


__all__ = [
    "Alert",
    "AlertCategory",
    "AlertCondition",
    "AlertContext",
    "AlertEvaluationResult",
    "AlertNotification",
    "AlertRule",
    "AlertSeverity",
    "ConditionValue",
    "DeliveryOutcome",
    "NotificationCallback",
    "NotificationChannel",
    "Operator",
    "create_alert_context",
]
