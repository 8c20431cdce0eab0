import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.observations import (
    ErrorPhase,
    Observation,
    ObservationWindow,
    RelayErrorKind,
    SendErrorKind,
    parse_error_kind,
)


def _ok(ts: float) -> Observation:
    return Observation.succeeded(ts, latency_ms=1000)


def test_window_drops_oldest_first() -> None:
    window = ObservationWindow(capacity=3)
    for ts in range(5):
        window.append(_ok(float(ts)))
    assert len(window) == 3
    assert [obs.timestamp for obs in window.snapshot()] == [2.0, 3.0, 4.0]
    assert window.latest().timestamp == 4.0


def test_window_snapshot_is_detached() -> None:
    window = ObservationWindow(capacity=10, observations=[_ok(1.0)])
    before = window.snapshot()
    window.append(_ok(2.0))
    assert len(before) == 1
    assert len(window.snapshot()) == 2


def test_window_rejects_zero_capacity() -> None:
    with pytest.raises(ValueError):
        ObservationWindow(capacity=0)


def test_error_kinds_know_their_phase() -> None:
    assert SendErrorKind.SEND_TIMEOUT.phase is ErrorPhase.SEND
    assert RelayErrorKind.RELAY_TIMEOUT.phase is ErrorPhase.RELAY
    assert parse_error_kind("RELAY_WATCH_FAILED") is RelayErrorKind.RELAY_WATCH_FAILED
    with pytest.raises(ValueError):
        parse_error_kind("NOT_A_KIND")


def test_observation_from_dict() -> None:
    obs = Observation.from_dict(
        {"timestamp": 12, "success": False, "error_kind": "SEND_REJECTED", "error_message": "nope"}
    )
    assert obs.timestamp == 12.0
    assert obs.success is False
    assert obs.error_kind is SendErrorKind.SEND_REJECTED
    assert obs.latency_ms is None

    ok = Observation.from_dict({"timestamp": 1, "success": True, "latency_ms": 2500, "send_cost": "21000"})
    assert ok.latency_ms == 2500.0
    assert ok.send_cost == 21000


@pytest.mark.parametrize("raw, expected", [(True, True), (False, False), ("false", False), ("True", True)])
def test_observation_success_flag_parsing(raw, expected) -> None:
    obs = Observation.from_dict({"timestamp": 1, "success": raw})
    assert obs.success is expected


@pytest.mark.parametrize("raw", ["maybe", 1, None])
def test_observation_success_flag_rejects_non_booleans(raw) -> None:
    with pytest.raises(ValueError):
        Observation.from_dict({"timestamp": 1, "success": raw})
