"""Convenience imports for the statistics and status layer."""

from .errors import ErrorSummary, calculate_error_summary
from .gas import GasMetrics, calculate_gas_metrics
from .health_alerts import (
    HealthAlert,
    HealthAlertType,
    HealthLevel,
    consecutive_failure_count,
    generate_health_alerts,
    has_consecutive_failures,
)
from .latency import LatencyMetrics, calculate_latency_metrics
from .percentile import percentile
from .recommendations import generate_recommendations
from .snapshot import MetricsSnapshot, generate_empty_metrics, generate_metrics
from .status import OperationalStatus, determine_health_level, determine_operational_status
from .throughput import ThroughputMetrics, calculate_throughput_metrics
from .timing import TimingMetrics, TimingStatus, calculate_timing_metrics

__all__ = [
    "ErrorSummary",
    "GasMetrics",
    "HealthAlert",
    "HealthAlertType",
    "HealthLevel",
    "LatencyMetrics",
    "MetricsSnapshot",
    "OperationalStatus",
    "ThroughputMetrics",
    "TimingMetrics",
    "TimingStatus",
    "calculate_error_summary",
    "calculate_gas_metrics",
    "calculate_latency_metrics",
    "calculate_throughput_metrics",
    "calculate_timing_metrics",
    "consecutive_failure_count",
    "determine_health_level",
    "determine_operational_status",
    "generate_empty_metrics",
    "generate_health_alerts",
    "generate_metrics",
    "generate_recommendations",
    "has_consecutive_failures",
    "percentile",
]
