"""Failure tallies split by probe phase."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Sequence

from core.observations import ErrorPhase, Observation, RelayErrorKind, SendErrorKind


@dataclass(frozen=True, slots=True)
class ErrorSummary:
    send_errors: Mapping[SendErrorKind, int] = field(default_factory=dict)
    relay_errors: Mapping[RelayErrorKind, int] = field(default_factory=dict)
    total_errors: int = field(default=0, metadata={"unit": "messages"})
    error_rate: float = field(default=0.0, metadata={"unit": "%"})


def calculate_error_summary(observations: Sequence[Observation]) -> ErrorSummary:
    """Count failures per error kind.

    Every failed observation counts towards ``total_errors``; failures that
    carry no error kind are only reflected there.
    """

    send_errors: Dict[SendErrorKind, int] = {}
    relay_errors: Dict[RelayErrorKind, int] = {}
    total_errors = 0

    for obs in observations:
        if obs.success:
            continue
        total_errors += 1
        kind = obs.error_kind
        if kind is None:
            continue
        if kind.phase is ErrorPhase.SEND:
            send_errors[kind] = send_errors.get(kind, 0) + 1
        else:
            relay_errors[kind] = relay_errors.get(kind, 0) + 1

    error_rate = (total_errors / len(observations)) * 100 if observations else 0.0
    return ErrorSummary(
        send_errors=send_errors,
        relay_errors=relay_errors,
        total_errors=total_errors,
        error_rate=error_rate,
    )


__all__ = ["ErrorSummary", "calculate_error_summary"]
