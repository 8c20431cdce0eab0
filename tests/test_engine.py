import asyncio
import sys
from pathlib import Path
from typing import List

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from alerts.dispatcher import create_simple_notification_callback
from alerts.engine import AlertEngine
from alerts.history import AlertHistory
from alerts.models import (
    AlertCategory,
    AlertCondition,
    AlertNotification,
    AlertSeverity,
    NotificationChannel,
    Operator,
    create_alert_context,
)
from core.observations import Observation, SendErrorKind
from metrics.snapshot import generate_metrics
from rules.templates import DEFAULT_ALERT_RULES, create_alert_rule


class _Clock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _rule(rule_id: str):
    return next(rule for rule in DEFAULT_ALERT_RULES if rule.id == rule_id)


def _down_context():
    observations = [Observation.failed(float(i), SendErrorKind.SEND_REJECTED) for i in range(5)]
    return create_alert_context(generate_metrics(observations, now=10.0))


def _latency_context(latency_ms: float):
    observations = [Observation.succeeded(float(i), latency_ms) for i in range(3)]
    return create_alert_context(generate_metrics(observations, now=10.0))


def _process(engine, rules, context, callback=None):
    return asyncio.run(engine.process_alerts(rules, context, callback))


def test_rule_fires_then_respects_cooldown():
    clock = _Clock()
    engine = AlertEngine(now_func=clock)
    rule = _rule("rule_system_status_6")

    first = _process(engine, [rule], _down_context())[0]
    assert first.triggered
    assert first.alert.id.startswith("rule_system_status_6_1000000_")
    assert first.alert.message == (
        "Triggers when operational status is DOWN Current operational_status: DOWN."
        " Data window: 60 minutes."
    )
    assert first.alert.metadata["rule_id"] == rule.id
    assert first.alert.metadata["template"] == "System Down Alert"
    assert first.alert.metadata["metrics_snapshot"]["status.operational_status"] == "DOWN"

    clock.now += 60
    assert _process(engine, [rule], _down_context())[0].reason == "cooldown"

    clock.now += 5 * 60
    assert _process(engine, [rule], _down_context())[0].triggered


def test_duration_gated_condition_needs_sustained_truth():
    clock = _Clock(0.0)
    engine = AlertEngine(now_func=clock)
    rule = _rule("rule_latency_2")  # > 120000 ms for 30 s
    hot = _latency_context(200_000)

    assert _process(engine, [rule], hot)[0].reason == "conditions_not_met"
    clock.now = 10
    assert not _process(engine, [rule], hot)[0].triggered
    clock.now = 31
    result = _process(engine, [rule], hot)[0]
    assert result.triggered
    assert "Current average_latency_ms: 3.3 minutes." in result.alert.message


def test_false_cycle_resets_duration():
    clock = _Clock(0.0)
    engine = AlertEngine(now_func=clock)
    rule = _rule("rule_latency_2")
    hot, cool = _latency_context(200_000), _latency_context(1_000)

    _process(engine, [rule], hot)
    clock.now = 20
    _process(engine, [rule], cool)
    clock.now = 40
    assert not _process(engine, [rule], hot)[0].triggered
    clock.now = 60
    assert not _process(engine, [rule], hot)[0].triggered
    clock.now = 71
    assert _process(engine, [rule], hot)[0].triggered


def test_disabled_and_filtered_rules():
    engine = AlertEngine(now_func=_Clock(), enabled_categories=[AlertCategory.LATENCY])
    disabled = create_alert_rule(
        id="off",
        name="Off",
        description="never runs",
        category=AlertCategory.SYSTEM_STATUS,
        severity=AlertSeverity.LOW,
        conditions=[AlertCondition("status.operational_status", Operator.EQ, "DOWN")],
        enabled=False,
    )
    results = _process(engine, [disabled, _rule("rule_system_status_6")], _down_context())
    assert [r.reason for r in results] == ["disabled", "category_disabled"]


def test_rate_limit_caps_alerts_per_minute():
    engine = AlertEngine(now_func=_Clock(), max_alerts_per_minute=1)
    rules = [_rule("rule_system_status_6"), _rule("rule_consecutive_failures_8")]
    results = _process(engine, rules, _down_context())
    assert results[0].triggered
    assert results[1].reason == "rate_limited"


def test_callback_receives_rule_channels_and_failures_are_swallowed():
    engine = AlertEngine(now_func=_Clock())
    seen: List[AlertNotification] = []

    def _callback(notification: AlertNotification) -> None:
        seen.append(notification)
        raise RuntimeError("channel exploded")

    results = _process(engine, [_rule("rule_system_status_6")], _down_context(), _callback)
    assert results[0].triggered
    assert seen[0].channels == (
        NotificationChannel.EMAIL,
        NotificationChannel.SLACK,
        NotificationChannel.SMS,
    )


def test_history_records_delivery_outcomes():
    history = AlertHistory(max_entries=10)
    engine = AlertEngine(now_func=_Clock(), history=history)

    async def _slack(notification):
        return None

    callback = create_simple_notification_callback({NotificationChannel.SLACK: _slack})
    _process(engine, [_rule("rule_system_status_6")], _down_context(), callback)

    assert len(history) == 1
    entry = history.entries[0]
    channels = {outcome.channel: outcome.ok for outcome in entry.deliveries}
    assert channels == {"SLACK": True}
    stats = history.statistics()
    assert stats.total_alerts == 1
    assert stats.by_severity == {"CRITICAL": 1}
    assert stats.last_alert_at == 1000.0
    assert stats.active_alerts == 1
    assert stats.resolved_alerts == 0

    assert history.resolve(entry.alert.id)
    assert not history.resolve("missing")
    stats = history.statistics()
    assert stats.active_alerts == 0
    assert stats.resolved_alerts == 1
    assert history.entries[0].alert.resolved


def test_stale_state_is_pruned():
    clock = _Clock(0.0)
    engine = AlertEngine(now_func=clock)
    rule = _rule("rule_system_status_6")
    _process(engine, [rule], _down_context())
    assert engine.store.cooldown_count == 1

    clock.now = 24 * 60 * 60 + 1
    _process(engine, [rule], _latency_context(1_000))
    assert engine.store.cooldown_count == 0
