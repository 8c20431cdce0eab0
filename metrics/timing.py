"""On-time / delayed classification of successful probes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from core.config_models import MetricsConfig
from core.observations import Observation
from metrics.latency import successful_latencies

SEVERE_SHARE_LIMIT = 0.1
DELAYED_SHARE_LIMIT = 0.2


class TimingStatus(str, Enum):
    ON_TIME = "ON_TIME"
    DELAYED = "DELAYED"
    SEVERELY_DELAYED = "SEVERELY_DELAYED"


@dataclass(frozen=True, slots=True)
class TimingMetrics:
    on_time_messages: int = field(default=0, metadata={"unit": "messages"})
    delayed_messages: int = field(default=0, metadata={"unit": "messages"})
    severely_delayed_messages: int = field(default=0, metadata={"unit": "messages"})
    average_delay_ms: float = field(default=0.0, metadata={"unit": "ms"})
    timing_status: TimingStatus = TimingStatus.ON_TIME


def classify_latency(latency_ms: float, config: MetricsConfig) -> TimingStatus:
    if latency_ms <= config.delay_threshold_ms:
        return TimingStatus.ON_TIME
    if latency_ms <= config.severe_delay_threshold_ms:
        return TimingStatus.DELAYED
    return TimingStatus.SEVERELY_DELAYED


def calculate_timing_metrics(
    observations: Iterable[Observation], config: MetricsConfig
) -> TimingMetrics:
    latencies = successful_latencies(observations)
    if not latencies:
        return TimingMetrics()

    counts = {status: 0 for status in TimingStatus}
    for latency in latencies:
        counts[classify_latency(latency, config)] += 1

    n = len(latencies)
    if counts[TimingStatus.SEVERELY_DELAYED] > n * SEVERE_SHARE_LIMIT:
        status = TimingStatus.SEVERELY_DELAYED
    elif counts[TimingStatus.DELAYED] > n * DELAYED_SHARE_LIMIT:
        status = TimingStatus.DELAYED
    else:
        status = TimingStatus.ON_TIME

    return TimingMetrics(
        on_time_messages=counts[TimingStatus.ON_TIME],
        delayed_messages=counts[TimingStatus.DELAYED],
        severely_delayed_messages=counts[TimingStatus.SEVERELY_DELAYED],
        average_delay_ms=sum(latencies) / n,
        timing_status=status,
    )


__all__ = ["TimingMetrics", "TimingStatus", "calculate_timing_metrics", "classify_latency"]
