"""Percentile helper with linear interpolation between ranks."""

from __future__ import annotations

from typing import Sequence

import numpy as np


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Return the ``p`` percentile (``0 <= p <= 1``) of ``sorted_values``.

    The rank ``p * (n - 1)`` is split into its floor and ceiling and the two
    neighbouring values are blended by the fractional part. Empty input
    yields ``0.0``.
    """

    values = np.asarray(sorted_values, dtype=float)
    n = values.size
    if n == 0:
        return 0.0
    if n == 1:
        return float(values[0])
    p = min(max(float(p), 0.0), 1.0)
    rank = p * (n - 1)
    lower = int(np.floor(rank))
    upper = int(np.ceil(rank))
    weight = rank - lower
    return float(values[lower] * (1 - weight) + values[upper] * weight)


__all__ = ["percentile"]
