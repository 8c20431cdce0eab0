"""Threshold, endpoint and notifier models shared by the engine and the loader."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Dict, Optional


@dataclass(slots=True)
class MetricsConfig:
    """Thresholds driving timing classification and status derivation."""

    delay_threshold_ms: float = 60_000
    severe_delay_threshold_ms: float = 300_000
    healthy_success_rate_threshold: float = 95.0
    critical_success_rate_threshold: float = 80.0
    max_healthy_latency_ms: float = 30_000
    critical_latency_ms: float = 120_000
    max_healthy_failure_rate_threshold: float = 5.0
    critical_failure_rate_threshold: float = 20.0
    consecutive_failure_threshold: int = 5
    max_window_size: int = 100

    def __post_init__(self) -> None:
        if self.severe_delay_threshold_ms < self.delay_threshold_ms:
            raise ValueError("severe_delay_threshold_ms must be >= delay_threshold_ms")
        if self.consecutive_failure_threshold < 1:
            raise ValueError("consecutive_failure_threshold must be positive")
        if self.max_window_size < 1:
            raise ValueError("max_window_size must be positive")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> "MetricsConfig":
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown metrics settings: {sorted(unknown)}")
        return cls(**data)


@dataclass(slots=True)
class EndpointEntry:
    """One side of the probe path: where to send or where to watch."""

    name: str
    base_url: str
    path: str = ""

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.path}"


@dataclass(slots=True)
class ProbeEndpoints:
    """Origin/destination pair probed each cycle."""

    origin: EndpointEntry
    destination: EndpointEntry
    relay_timeout_seconds: float = 300.0
    poll_interval_seconds: float = 5.0

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "ProbeEndpoints":
        if "origin" not in data or "destination" not in data:
            raise ValueError("endpoints require 'origin' and 'destination'")
        origin = dict(data["origin"])
        destination = dict(data["destination"])
        origin.setdefault("path", "/messages")
        destination.setdefault("path", "/messages")
        return cls(
            origin=EndpointEntry(**origin),
            destination=EndpointEntry(**destination),
            relay_timeout_seconds=float(data.get("relay_timeout_seconds", 300.0)),
            poll_interval_seconds=float(data.get("poll_interval_seconds", 5.0)),
        )


@dataclass(slots=True)
class ProbeCredentials:
    """Bearer tokens for the origin and destination APIs."""

    origin_token: Optional[str] = None
    destination_token: Optional[str] = None

    @classmethod
    def from_env(
        cls, origin_env: Optional[str], destination_env: Optional[str]
    ) -> "ProbeCredentials":
        return cls(
            origin_token=os.getenv(origin_env) if origin_env else None,
            destination_token=os.getenv(destination_env) if destination_env else None,
        )


@dataclass(slots=True)
class NotifierSwitch:
    """A notifier channel and where its secrets live."""

    name: str
    enabled: bool
    url_env: Optional[str] = None
    channel: Optional[str] = None
    username: Optional[str] = None
    extra: Dict[str, object] = field(default_factory=dict)

    @property
    def url(self) -> Optional[str]:
        return os.getenv(self.url_env) if self.url_env else None


__all__ = [
    "EndpointEntry",
    "MetricsConfig",
    "NotifierSwitch",
    "ProbeCredentials",
    "ProbeEndpoints",
]
