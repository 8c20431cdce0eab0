"""Probe observations and the bounded window they are aggregated over.

An observation is the outcome of one probe cycle: a message sent on the
origin system and (hopefully) its counterpart event seen on the destination
system. Failed cycles are still observations; they carry a typed error kind
so the statistics layer can split failures by phase.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Iterable, Iterator, Optional, Tuple, Union

DEFAULT_WINDOW_SIZE = 100


class ErrorPhase(str, Enum):
    """Which leg of the probe failed."""

    SEND = "send"
    RELAY = "relay"


class SendErrorKind(str, Enum):
    """Failures while submitting the probe on the origin system."""

    SEND_REJECTED = "SEND_REJECTED"
    SEND_TIMEOUT = "SEND_TIMEOUT"
    SEND_CONFIRMATION_FAILED = "SEND_CONFIRMATION_FAILED"
    SEND_EVENT_MISSING = "SEND_EVENT_MISSING"
    SEND_ERROR = "SEND_ERROR"

    @property
    def phase(self) -> ErrorPhase:
        return ErrorPhase.SEND


class RelayErrorKind(str, Enum):
    """Failures while waiting for the counterpart event on the destination."""

    RELAY_TIMEOUT = "RELAY_TIMEOUT"
    RELAY_WATCH_FAILED = "RELAY_WATCH_FAILED"
    RELAY_RECEIPT_FAILED = "RELAY_RECEIPT_FAILED"
    RELAY_ERROR = "RELAY_ERROR"

    @property
    def phase(self) -> ErrorPhase:
        return ErrorPhase.RELAY


ErrorKind = Union[SendErrorKind, RelayErrorKind]


def parse_error_kind(value: str) -> ErrorKind:
    """Resolve an error kind from its name, checking both phases."""

    for enum_cls in (SendErrorKind, RelayErrorKind):
        try:
            return enum_cls(value)
        except ValueError:
            continue
    raise ValueError(f"Unknown error kind: {value}")


_TRUE_STRINGS = {"true", "1", "yes"}
_FALSE_STRINGS = {"false", "0", "no"}


def _parse_success(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"success must be a boolean, got {value!r}")


@dataclass(frozen=True, slots=True)
class Observation:
    """One timestamped probe outcome."""

    timestamp: float
    success: bool
    latency_ms: Optional[float] = None
    send_cost: Optional[int] = None
    relay_cost: Optional[int] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    @classmethod
    def succeeded(
        cls,
        timestamp: float,
        latency_ms: float,
        send_cost: Optional[int] = None,
        relay_cost: Optional[int] = None,
    ) -> "Observation":
        return cls(
            timestamp=timestamp,
            success=True,
            latency_ms=latency_ms,
            send_cost=send_cost,
            relay_cost=relay_cost,
        )

    @classmethod
    def failed(
        cls, timestamp: float, error_kind: ErrorKind, error_message: Optional[str] = None
    ) -> "Observation":
        return cls(
            timestamp=timestamp,
            success=False,
            error_kind=error_kind,
            error_message=error_message,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Observation":
        kind = data.get("error_kind")
        return cls(
            timestamp=float(data["timestamp"]),
            success=_parse_success(data["success"]),
            latency_ms=float(data["latency_ms"]) if data.get("latency_ms") is not None else None,
            send_cost=int(data["send_cost"]) if data.get("send_cost") is not None else None,
            relay_cost=int(data["relay_cost"]) if data.get("relay_cost") is not None else None,
            error_kind=parse_error_kind(kind) if kind else None,
            error_message=data.get("error_message"),
        )


class ObservationWindow:
    """Bounded, arrival-ordered sequence of observations.

    Appending beyond ``capacity`` drops entries from the head so the oldest
    observation always goes first. Readers get tuple copies, never the live
    buffer.
    """

    def __init__(
        self, capacity: int = DEFAULT_WINDOW_SIZE, observations: Iterable[Observation] = ()
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._items: Deque[Observation] = deque()
        self.extend(observations)

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, observation: Observation) -> None:
        self._items.append(observation)
        while len(self._items) > self._capacity:
            self._items.popleft()

    def extend(self, observations: Iterable[Observation]) -> None:
        for observation in observations:
            self.append(observation)

    def snapshot(self) -> Tuple[Observation, ...]:
        return tuple(self._items)

    def latest(self) -> Optional[Observation]:
        return self._items[-1] if self._items else None

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Observation]:
        return iter(self.snapshot())


__all__ = [
    "DEFAULT_WINDOW_SIZE",
    "ErrorKind",
    "ErrorPhase",
    "Observation",
    "ObservationWindow",
    "RelayErrorKind",
    "SendErrorKind",
    "parse_error_kind",
]
