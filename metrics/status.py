"""Operational status and health level derivation."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Sequence

from core.config_models import MetricsConfig
from core.observations import Observation
from metrics.health_alerts import HealthAlert, HealthLevel, has_consecutive_failures
from metrics.latency import LatencyMetrics
from metrics.throughput import ThroughputMetrics


class OperationalStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DEGRADED = "DEGRADED"
    DOWN = "DOWN"
    UNKNOWN = "UNKNOWN"


def determine_operational_status(
    throughput: ThroughputMetrics,
    latency: LatencyMetrics,
    config: MetricsConfig,
    observations: Sequence[Observation],
) -> OperationalStatus:
    """Classify the probed path.

    A failure streak overrides everything else; then any critical threshold
    means DOWN and any healthy threshold breach means DEGRADED.
    """

    if throughput.total_messages == 0:
        return OperationalStatus.UNKNOWN

    if has_consecutive_failures(observations, config.consecutive_failure_threshold):
        return OperationalStatus.DOWN

    failure_rate = throughput.failure_rate

    if throughput.success_rate == 0:
        return OperationalStatus.DOWN

    if (
        throughput.success_rate < config.critical_success_rate_threshold
        or latency.average_latency_ms > config.critical_latency_ms
        or failure_rate > config.critical_failure_rate_threshold
    ):
        return OperationalStatus.DOWN

    if (
        throughput.success_rate < config.healthy_success_rate_threshold
        or latency.average_latency_ms > config.max_healthy_latency_ms
        or failure_rate > config.max_healthy_failure_rate_threshold
    ):
        return OperationalStatus.DEGRADED

    return OperationalStatus.ACTIVE


_LEVEL_PRIORITY = (HealthLevel.EMERGENCY, HealthLevel.CRITICAL, HealthLevel.WARNING)


def determine_health_level(alerts: Iterable[HealthAlert]) -> HealthLevel:
    levels = {alert.level for alert in alerts}
    for level in _LEVEL_PRIORITY:
        if level in levels:
            return level
    return HealthLevel.HEALTHY


__all__ = ["OperationalStatus", "determine_health_level", "determine_operational_status"]
