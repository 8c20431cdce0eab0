"""Send/relay cost statistics using arbitrary-precision integers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from core.observations import Observation

_GAS = {"unit": "gas"}


@dataclass(frozen=True, slots=True)
class GasMetrics:
    average_send_gas: int = field(default=0, metadata=_GAS)
    average_relay_gas: int = field(default=0, metadata=_GAS)
    total_gas_used: int = field(default=0, metadata=_GAS)
    min_send_gas: int = field(default=0, metadata=_GAS)
    max_send_gas: int = field(default=0, metadata=_GAS)
    min_relay_gas: int = field(default=0, metadata=_GAS)
    max_relay_gas: int = field(default=0, metadata=_GAS)


def _leg_stats(values: List[int]) -> Tuple[int, int, int, int]:
    """Return ``(sum, mean, min, max)``; the mean is floored like integer division."""

    if not values:
        return 0, 0, 0, 0
    total = sum(values)
    return total, total // len(values), min(values), max(values)


def calculate_gas_metrics(observations: Iterable[Observation]) -> GasMetrics:
    successful = [obs for obs in observations if obs.success]
    send_values = [int(obs.send_cost) for obs in successful if obs.send_cost is not None]
    relay_values = [int(obs.relay_cost) for obs in successful if obs.relay_cost is not None]

    send_total, send_avg, send_min, send_max = _leg_stats(send_values)
    relay_total, relay_avg, relay_min, relay_max = _leg_stats(relay_values)

    return GasMetrics(
        average_send_gas=send_avg,
        average_relay_gas=relay_avg,
        total_gas_used=send_total + relay_total,
        min_send_gas=send_min,
        max_send_gas=send_max,
        min_relay_gas=relay_min,
        max_relay_gas=relay_max,
    )


__all__ = ["GasMetrics", "calculate_gas_metrics"]
