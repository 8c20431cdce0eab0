"""Latency statistics over successful observations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

import numpy as np

from core.observations import Observation
from metrics.percentile import percentile

_MS = {"unit": "ms"}


@dataclass(frozen=True, slots=True)
class LatencyMetrics:
    average_latency_ms: float = field(default=0.0, metadata=_MS)
    median_latency_ms: float = field(default=0.0, metadata=_MS)
    min_latency_ms: float = field(default=0.0, metadata=_MS)
    max_latency_ms: float = field(default=0.0, metadata=_MS)
    p95_latency_ms: float = field(default=0.0, metadata=_MS)
    p99_latency_ms: float = field(default=0.0, metadata=_MS)


def successful_latencies(observations: Iterable[Observation]) -> list[float]:
    """Latency values of successful observations, in window order."""

    return [
        float(obs.latency_ms)
        for obs in observations
        if obs.success and obs.latency_ms is not None
    ]


def calculate_latency_metrics(observations: Iterable[Observation]) -> LatencyMetrics:
    """Compute mean/median/min/max/p95/p99 latency.

    Only successful observations with a latency value contribute. An empty
    set of samples yields all zeros.
    """

    samples = np.sort(np.asarray(successful_latencies(observations), dtype=float))
    n = samples.size
    if n == 0:
        return LatencyMetrics()

    if n % 2 == 1:
        median = float(samples[n // 2])
    else:
        median = float((samples[n // 2 - 1] + samples[n // 2]) / 2)

    return LatencyMetrics(
        average_latency_ms=float(samples.mean()),
        median_latency_ms=median,
        min_latency_ms=float(samples[0]),
        max_latency_ms=float(samples[-1]),
        p95_latency_ms=percentile(samples, 0.95),
        p99_latency_ms=percentile(samples, 0.99),
    )


__all__ = ["LatencyMetrics", "calculate_latency_metrics", "successful_latencies"]
