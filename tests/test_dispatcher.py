import asyncio
import logging
import sys
from pathlib import Path
from typing import List

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from alerts.dispatcher import NotificationDispatcher, create_simple_notification_callback
from alerts.models import (
    Alert,
    AlertCategory,
    AlertNotification,
    AlertSeverity,
    NotificationChannel,
    create_alert_context,
)
from metrics.snapshot import generate_empty_metrics
from rules.templates import DEFAULT_ALERT_RULES


def _notification(channels=()) -> AlertNotification:
    rule = DEFAULT_ALERT_RULES[0]
    alert = Alert(
        id="a1",
        timestamp=0.0,
        severity=AlertSeverity.HIGH,
        category=AlertCategory.LATENCY,
        title=rule.name,
        message="slow",
    )
    return AlertNotification(
        alert=alert,
        rule=rule,
        context=create_alert_context(generate_empty_metrics(0.0)),
        channels=tuple(channels),
    )


def test_one_failing_channel_does_not_block_the_others():
    calls: List[str] = []

    async def _email(notification):
        calls.append("email")

    def _slack(notification):
        calls.append("slack")
        raise RuntimeError("webhook down")

    async def _webhook(notification):
        await asyncio.sleep(0)
        calls.append("webhook")

    dispatcher = create_simple_notification_callback(
        {
            NotificationChannel.EMAIL: _email,
            NotificationChannel.SLACK: _slack,
            NotificationChannel.WEBHOOK: _webhook,
        }
    )
    outcomes = asyncio.run(dispatcher(_notification()))

    assert sorted(calls) == ["email", "slack", "webhook"]
    assert [(o.channel, o.ok) for o in outcomes] == [
        ("EMAIL", True),
        ("SLACK", False),
        ("WEBHOOK", True),
    ]
    assert "webhook down" in outcomes[1].error


def test_explicit_channels_limit_delivery(caplog: pytest.LogCaptureFixture):
    calls: List[str] = []

    async def _email(notification):
        calls.append("email")

    async def _slack(notification):
        calls.append("slack")

    dispatcher = NotificationDispatcher({"email": _email, NotificationChannel.SLACK: _slack})
    with caplog.at_level(logging.WARNING):
        outcomes = asyncio.run(
            dispatcher.dispatch(_notification([NotificationChannel.SLACK, NotificationChannel.SMS]))
        )

    assert calls == ["slack"]
    assert [o.channel for o in outcomes] == ["SLACK"]
    assert "SMS" in caplog.text


def test_no_registered_callbacks_yields_no_outcomes():
    dispatcher = NotificationDispatcher({})
    assert asyncio.run(dispatcher.dispatch(_notification())) == []
