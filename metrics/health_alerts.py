"""Threshold-based health alerts attached to every snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional, Sequence

from core.config_models import MetricsConfig
from core.observations import Observation
from metrics.latency import LatencyMetrics
from metrics.throughput import ThroughputMetrics


class HealthLevel(str, Enum):
    HEALTHY = "HEALTHY"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    EMERGENCY = "EMERGENCY"


class HealthAlertType(str, Enum):
    CONSECUTIVE_FAILURES = "CONSECUTIVE_FAILURES"
    CRITICAL_FAILURE_RATE = "CRITICAL_FAILURE_RATE"
    HIGH_FAILURE_RATE = "HIGH_FAILURE_RATE"
    LOW_SUCCESS_RATE = "LOW_SUCCESS_RATE"
    DEGRADED_SUCCESS_RATE = "DEGRADED_SUCCESS_RATE"
    CRITICAL_LATENCY = "CRITICAL_LATENCY"
    HIGH_LATENCY = "HIGH_LATENCY"


@dataclass(frozen=True, slots=True)
class HealthAlert:
    level: HealthLevel
    type: HealthAlertType
    message: str
    count: int
    first_occurrence: float
    last_occurrence: float
    context: Mapping[str, Any] = field(default_factory=dict)


def has_consecutive_failures(observations: Sequence[Observation], threshold: int = 5) -> bool:
    """True when the last ``threshold`` observations all failed.

    With fewer than ``threshold`` observations the check passes only if every
    observation so far is a failure.
    """

    if not observations:
        return False
    if len(observations) < threshold:
        return all(not obs.success for obs in observations)
    return all(not obs.success for obs in observations[-threshold:])


def consecutive_failure_count(observations: Sequence[Observation]) -> int:
    count = 0
    for obs in reversed(observations):
        if obs.success:
            break
        count += 1
    return count


def _occurrence_span(failed: Sequence[Observation], now: float) -> tuple[float, float]:
    if not failed:
        return now, now
    stamps = [obs.timestamp for obs in failed]
    return min(stamps), max(stamps)


def generate_health_alerts(
    observations: Sequence[Observation],
    latency: LatencyMetrics,
    throughput: ThroughputMetrics,
    config: MetricsConfig,
    now: Optional[float] = None,
) -> List[HealthAlert]:
    """Build the independent health alerts for one window.

    Every alert family is evaluated on its own, so several of them can be
    present at once.
    """

    if now is None:
        now = observations[-1].timestamp if observations else 0.0
    alerts: List[HealthAlert] = []
    failure_rate = throughput.failure_rate
    failed = [obs for obs in observations if not obs.success]
    first_failed, last_failed = _occurrence_span(failed, now)

    if has_consecutive_failures(observations, config.consecutive_failure_threshold):
        streak = consecutive_failure_count(observations)
        all_failures = len(observations) < config.consecutive_failure_threshold
        if all_failures:
            message = f"System is DOWN: All {len(observations)} tracked attempts have failed"
        else:
            message = f"System is DOWN: {streak} consecutive failures detected"
        streak_first, _ = _occurrence_span(failed[-streak:] if streak else [], now)
        alerts.append(
            HealthAlert(
                level=HealthLevel.CRITICAL,
                type=HealthAlertType.CONSECUTIVE_FAILURES,
                message=message,
                count=streak,
                first_occurrence=streak_first,
                last_occurrence=last_failed,
                context={
                    "threshold": config.consecutive_failure_threshold,
                    "actual": streak,
                    "failed_messages": throughput.failed_messages,
                    "total_messages": throughput.total_messages,
                    "is_all_failures": all_failures,
                },
            )
        )

    if failure_rate > config.critical_failure_rate_threshold:
        alerts.append(
            HealthAlert(
                level=HealthLevel.CRITICAL,
                type=HealthAlertType.CRITICAL_FAILURE_RATE,
                message=f"Failure rate is critically high at {failure_rate:.1f}%",
                count=throughput.failed_messages,
                first_occurrence=first_failed,
                last_occurrence=last_failed,
                context={
                    "threshold": config.critical_failure_rate_threshold,
                    "actual": failure_rate,
                    "failed_messages": throughput.failed_messages,
                    "total_messages": throughput.total_messages,
                    "success_rate": throughput.success_rate,
                },
            )
        )
    elif failure_rate > config.max_healthy_failure_rate_threshold:
        alerts.append(
            HealthAlert(
                level=HealthLevel.WARNING,
                type=HealthAlertType.HIGH_FAILURE_RATE,
                message=f"Failure rate is above healthy threshold at {failure_rate:.1f}%",
                count=throughput.failed_messages,
                first_occurrence=first_failed,
                last_occurrence=last_failed,
                context={
                    "threshold": config.max_healthy_failure_rate_threshold,
                    "actual": failure_rate,
                    "failed_messages": throughput.failed_messages,
                    "total_messages": throughput.total_messages,
                    "success_rate": throughput.success_rate,
                },
            )
        )

    if throughput.success_rate < config.critical_success_rate_threshold:
        alerts.append(
            HealthAlert(
                level=HealthLevel.CRITICAL,
                type=HealthAlertType.LOW_SUCCESS_RATE,
                message=f"Success rate is critically low at {throughput.success_rate:.1f}%",
                count=throughput.failed_messages,
                first_occurrence=first_failed,
                last_occurrence=last_failed,
                context={
                    "threshold": config.critical_success_rate_threshold,
                    "actual": throughput.success_rate,
                    "failed_messages": throughput.failed_messages,
                    "total_messages": throughput.total_messages,
                },
            )
        )
    elif throughput.success_rate < config.healthy_success_rate_threshold:
        alerts.append(
            HealthAlert(
                level=HealthLevel.WARNING,
                type=HealthAlertType.DEGRADED_SUCCESS_RATE,
                message=f"Success rate is below healthy threshold at {throughput.success_rate:.1f}%",
                count=throughput.failed_messages,
                first_occurrence=first_failed,
                last_occurrence=last_failed,
                context={
                    "threshold": config.healthy_success_rate_threshold,
                    "actual": throughput.success_rate,
                },
            )
        )

    if latency.average_latency_ms > config.critical_latency_ms:
        alerts.append(
            HealthAlert(
                level=HealthLevel.CRITICAL,
                type=HealthAlertType.CRITICAL_LATENCY,
                message=(
                    "Average latency is critically high at "
                    f"{latency.average_latency_ms / 1000:.1f}s"
                ),
                count=1,
                first_occurrence=now,
                last_occurrence=now,
                context={
                    "threshold": config.critical_latency_ms,
                    "actual": latency.average_latency_ms,
                    "p95": latency.p95_latency_ms,
                    "p99": latency.p99_latency_ms,
                },
            )
        )
    elif latency.average_latency_ms > config.max_healthy_latency_ms:
        alerts.append(
            HealthAlert(
                level=HealthLevel.WARNING,
                type=HealthAlertType.HIGH_LATENCY,
                message=(
                    "Average latency is above healthy threshold at "
                    f"{latency.average_latency_ms / 1000:.1f}s"
                ),
                count=1,
                first_occurrence=now,
                last_occurrence=now,
                context={
                    "threshold": config.max_healthy_latency_ms,
                    "actual": latency.average_latency_ms,
                },
            )
        )

    return alerts


__all__ = [
    "HealthAlert",
    "HealthAlertType",
    "HealthLevel",
    "consecutive_failure_count",
    "generate_health_alerts",
    "has_consecutive_failures",
]
