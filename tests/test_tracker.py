import asyncio
import sys
from pathlib import Path
from typing import List

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from alerts.engine import AlertEngine
from core.config_models import MetricsConfig
from core.observations import Observation, RelayErrorKind, SendErrorKind
from metrics.status import OperationalStatus
from tracking.tracker import CycleOutcome, MetricsTracker
from tracking.transport import TransportError, observe


class _Clock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class _ScriptedSource:
    """Returns or raises the scripted items in order."""

    def __init__(self, clock: _Clock, script) -> None:
        self.clock = clock
        self.script = list(script)

    async def produce(self) -> Observation:
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return Observation.succeeded(self.clock.now, item)


def test_observe_converts_failures():
    clock = _Clock(5.0)
    source = _ScriptedSource(
        clock,
        [TransportError(RelayErrorKind.RELAY_TIMEOUT, "gave up"), ValueError("weird")],
    )
    timed_out = asyncio.run(observe(source, clock))
    assert timed_out.success is False
    assert timed_out.error_kind is RelayErrorKind.RELAY_TIMEOUT
    assert timed_out.timestamp == 5.0

    unexpected = asyncio.run(observe(source, clock))
    assert unexpected.error_kind is SendErrorKind.SEND_ERROR
    assert unexpected.error_message == "weird"


def test_cycles_wait_for_minimum_observations():
    clock = _Clock()
    outcomes: List[CycleOutcome] = []
    tracker = MetricsTracker(
        _ScriptedSource(clock, [1_000, 2_000]),
        engine=AlertEngine(now_func=clock),
        cycle_callback=outcomes.append,
        min_observations=2,
        now_func=clock,
    )

    first = asyncio.run(tracker.run_cycle())
    assert first.snapshot is None
    assert first.results == ()

    clock.now = 600
    second = asyncio.run(tracker.run_cycle())
    assert second.success
    assert second.snapshot.core_metrics.throughput.total_messages == 2
    assert second.snapshot.status.operational_status is OperationalStatus.ACTIVE
    assert len(second.results) == len(tracker.rules)
    assert second.triggered == []
    assert [o.iteration for o in outcomes] == [1, 2]


def test_failures_fire_alerts_through_notification_callback():
    clock = _Clock()
    notified = []
    script = [TransportError(SendErrorKind.SEND_REJECTED, "rejected") for _ in range(3)]
    tracker = MetricsTracker(
        _ScriptedSource(clock, script),
        engine=AlertEngine(now_func=clock),
        notification_callback=notified.append,
        now_func=clock,
    )
    outcome = asyncio.run(tracker.run_cycle())
    assert not outcome.success
    fired = {alert.title for alert in outcome.triggered}
    assert "System Down Alert" in fired
    assert "Consecutive Failures Alert" in fired
    assert len(notified) == len(outcome.triggered)


def test_status_report_and_run_forever():
    clock = _Clock()
    reports = []
    sleeps: List[float] = []

    async def _reporter(snapshot, iteration, uptime_minutes):
        reports.append((iteration, uptime_minutes))

    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)
        clock.now += seconds

    tracker = MetricsTracker(
        _ScriptedSource(clock, [1_000, 1_000, 1_000, 1_000]),
        engine=AlertEngine(now_func=clock),
        config=MetricsConfig(max_window_size=2),
        status_reporter=_reporter,
        status_report_every=2,
        now_func=clock,
    )
    asyncio.run(tracker.run_forever(interval_minutes=1, max_cycles=4, sleep=_sleep))

    assert sleeps == [60, 60, 60]
    assert reports == [(1, 0), (2, 1), (4, 3)]
    assert len(tracker.window) == 2


def test_run_forever_survives_cycle_errors():
    clock = _Clock()

    async def _sleep(seconds: float) -> None:
        clock.now += seconds

    class _BrokenEngine(AlertEngine):
        async def process_alerts(self, rules, context, notification_callback=None):
            raise RuntimeError("engine bug")

    tracker = MetricsTracker(
        _ScriptedSource(clock, [1_000, 1_000]),
        engine=_BrokenEngine(now_func=clock),
        now_func=clock,
    )
    asyncio.run(tracker.run_forever(interval_minutes=1, max_cycles=2, sleep=_sleep))
    assert tracker.iteration == 2


def test_status_report_skipped_while_alerts_fire():
    clock = _Clock()
    reports = []

    async def _reporter(snapshot, iteration, uptime_minutes):
        reports.append(iteration)

    script = [TransportError(SendErrorKind.SEND_REJECTED, "rejected"), 1_000]
    tracker = MetricsTracker(
        _ScriptedSource(clock, script),
        engine=AlertEngine(now_func=clock),
        status_reporter=_reporter,
        status_report_every=1,
        now_func=clock,
    )
    first = asyncio.run(tracker.run_cycle())
    assert first.triggered
    assert reports == []

    clock.now = 30
    second = asyncio.run(tracker.run_cycle())
    assert second.triggered == []
    assert reports == [2]


def test_cycle_logger_reports_alert_history(caplog):
    from alerts.history import AlertHistory
    from run import _cycle_logger

    clock = _Clock()
    history = AlertHistory()
    tracker = MetricsTracker(
        _ScriptedSource(clock, [TransportError(SendErrorKind.SEND_REJECTED, "rejected")]),
        engine=AlertEngine(now_func=clock, history=history),
        cycle_callback=_cycle_logger(history),
        now_func=clock,
    )
    with caplog.at_level("INFO", logger="run"):
        outcome = asyncio.run(tracker.run_cycle())

    assert outcome.triggered
    assert f"Alert history: {len(outcome.triggered)} total" in caplog.text
    assert "System Down Alert" in caplog.text
