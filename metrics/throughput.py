"""Message counts, success rate and hourly throughput."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from core.observations import Observation

MS_PER_HOUR = 3_600_000


@dataclass(frozen=True, slots=True)
class ThroughputMetrics:
    total_messages: int = field(default=0, metadata={"unit": "messages"})
    successful_messages: int = field(default=0, metadata={"unit": "messages"})
    failed_messages: int = field(default=0, metadata={"unit": "messages"})
    success_rate: float = field(default=0.0, metadata={"unit": "%"})
    messages_per_hour: float = field(default=0.0, metadata={"unit": "messages"})

    @property
    def failure_rate(self) -> float:
        return 100.0 - self.success_rate


def calculate_throughput_metrics(observations: Sequence[Observation]) -> ThroughputMetrics:
    total = len(observations)
    successful = sum(1 for obs in observations if obs.success)
    failed = total - successful
    success_rate = (successful / total) * 100 if total > 0 else 0.0

    # Timestamps are seconds; the rate is defined over the window span in ms.
    span_ms = 0.0
    if total > 1:
        stamps = [obs.timestamp for obs in observations]
        span_ms = (max(stamps) - min(stamps)) * 1000
    messages_per_hour = (total / span_ms) * MS_PER_HOUR if span_ms > 0 else 0.0

    return ThroughputMetrics(
        total_messages=total,
        successful_messages=successful,
        failed_messages=failed,
        success_rate=success_rate,
        messages_per_hour=messages_per_hour,
    )


__all__ = ["MS_PER_HOUR", "ThroughputMetrics", "calculate_throughput_metrics"]
