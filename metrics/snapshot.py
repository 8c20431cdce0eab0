"""Assemble every calculator into one immutable metrics snapshot per cycle."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from core.config_models import MetricsConfig
from core.observations import Observation
from metrics.errors import ErrorSummary, calculate_error_summary
from metrics.gas import GasMetrics, calculate_gas_metrics
from metrics.health_alerts import HealthAlert, HealthLevel, generate_health_alerts
from metrics.latency import LatencyMetrics, calculate_latency_metrics
from metrics.recommendations import generate_recommendations
from metrics.status import OperationalStatus, determine_health_level, determine_operational_status
from metrics.throughput import ThroughputMetrics, calculate_throughput_metrics
from metrics.timing import TimingMetrics, TimingStatus, calculate_timing_metrics

NO_DATA_RECOMMENDATION = "No data available for analysis"


@dataclass(frozen=True, slots=True)
class StatusSection:
    operational_status: OperationalStatus = OperationalStatus.UNKNOWN
    timing_status: TimingStatus = TimingStatus.ON_TIME
    health_level: HealthLevel = HealthLevel.HEALTHY
    generated_at: float = 0.0
    window_start: float = 0.0
    window_end: float = 0.0


@dataclass(frozen=True, slots=True)
class CoreMetrics:
    latency: LatencyMetrics = field(default_factory=LatencyMetrics)
    gas: GasMetrics = field(default_factory=GasMetrics)
    throughput: ThroughputMetrics = field(default_factory=ThroughputMetrics)
    timing: TimingMetrics = field(default_factory=TimingMetrics)


@dataclass(frozen=True, slots=True)
class HealthSection:
    alerts: Tuple[HealthAlert, ...] = ()
    error_summary: ErrorSummary = field(default_factory=ErrorSummary)
    recommendations: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class MetricsSnapshot:
    """Derived statistics and status for one evaluation cycle."""

    status: StatusSection = field(default_factory=StatusSection)
    core_metrics: CoreMetrics = field(default_factory=CoreMetrics)
    health: HealthSection = field(default_factory=HealthSection)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view: enums become their values, mapping keys strings."""

        return _plain(asdict(self))


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(_plain(k)): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def generate_empty_metrics(now: Optional[float] = None) -> MetricsSnapshot:
    ts = time.time() if now is None else now
    return MetricsSnapshot(
        status=StatusSection(generated_at=ts, window_start=ts, window_end=ts),
        health=HealthSection(recommendations=(NO_DATA_RECOMMENDATION,)),
    )


def generate_metrics(
    observations: Iterable[Observation],
    config: Optional[MetricsConfig] = None,
    now: Optional[float] = None,
) -> MetricsSnapshot:
    """Compute a snapshot from an arbitrary observation sequence.

    Only the newest ``config.max_window_size`` observations are used. The
    function is pure apart from reading the clock when ``now`` is omitted.
    """

    config = config or MetricsConfig()
    window = tuple(observations)[-config.max_window_size:]
    generated_at = time.time() if now is None else now
    if not window:
        return generate_empty_metrics(generated_at)

    latency = calculate_latency_metrics(window)
    gas = calculate_gas_metrics(window)
    throughput = calculate_throughput_metrics(window)
    timing = calculate_timing_metrics(window, config)
    error_summary = calculate_error_summary(window)
    alerts = generate_health_alerts(window, latency, throughput, config, now=generated_at)

    operational_status = determine_operational_status(throughput, latency, config, window)
    health_level = determine_health_level(alerts)
    stamps = [obs.timestamp for obs in window]
    recommendations = generate_recommendations(operational_status, alerts, throughput, latency)

    return MetricsSnapshot(
        status=StatusSection(
            operational_status=operational_status,
            timing_status=timing.timing_status,
            health_level=health_level,
            generated_at=generated_at,
            window_start=min(stamps),
            window_end=max(stamps),
        ),
        core_metrics=CoreMetrics(latency=latency, gas=gas, throughput=throughput, timing=timing),
        health=HealthSection(
            alerts=tuple(alerts),
            error_summary=error_summary,
            recommendations=tuple(recommendations),
        ),
    )


__all__ = [
    "CoreMetrics",
    "HealthSection",
    "MetricsSnapshot",
    "NO_DATA_RECOMMENDATION",
    "StatusSection",
    "generate_empty_metrics",
    "generate_metrics",
]
