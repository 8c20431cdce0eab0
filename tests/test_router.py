import asyncio
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from alerts import slack
from alerts.engine import AlertEngine
from alerts.models import AlertNotification, NotificationChannel, create_alert_context
from alerts.notifiers.base import NotificationMessage, Notifier, NotifierTestResult
from alerts.router import NotificationDeliveryError, NotificationService
from alerts.slack import SlackNotifier
from alerts.webhook import WebhookNotifier
from core.config_models import NotifierSwitch
from core.observations import Observation, SendErrorKind
from metrics.snapshot import generate_metrics
from rules.templates import DEFAULT_ALERT_RULES


@dataclass
class _FakeNotifier(Notifier):
    name: str
    enabled_flag: bool = True
    succeed: bool = True
    messages: List[NotificationMessage] = field(default_factory=list)

    def enabled(self) -> bool:
        return self.enabled_flag

    async def send(self, message: NotificationMessage) -> bool:
        self.messages.append(message)
        return self.succeed

    async def self_test(self) -> NotifierTestResult:
        return NotifierTestResult(ok=True, detail="fake")


def _snapshot():
    observations = [Observation.failed(float(i), SendErrorKind.SEND_REJECTED) for i in range(5)]
    return generate_metrics(observations, now=1_700_000_000.0)


def _notification() -> AlertNotification:
    rule = next(r for r in DEFAULT_ALERT_RULES if r.id == "rule_system_status_6")
    context = create_alert_context(_snapshot())
    result = AlertEngine(now_func=lambda: 1_700_000_000.0).evaluate_rule(rule, context)
    return AlertNotification(alert=result.alert, rule=rule, context=context, channels=rule.channels)


def test_alert_rendered_and_sent_through_channel_callback():
    fake = _FakeNotifier(name="slack")
    service = NotificationService([NotifierSwitch(name="slack", enabled=True)], notifiers={"slack": fake})
    callbacks = service.channel_callbacks()
    assert list(callbacks) == [NotificationChannel.SLACK]

    asyncio.run(callbacks[NotificationChannel.SLACK](_notification()))

    message = fake.messages[0]
    assert message.title == "[CRITICAL] System Down Alert"
    assert message.severity == "CRITICAL"
    assert "*Category:* SYSTEM_STATUS" in message.body
    assert "*Time (UTC):* 2023-11-14 22:13:20" in message.body
    assert "• Operational status: DOWN" in message.body
    assert "*Data Window:* 60 minutes" in message.body


def test_failed_send_raises_delivery_error():
    fake = _FakeNotifier(name="slack", succeed=False)
    service = NotificationService([], notifiers={"slack": fake})
    callback = service.channel_callbacks()[NotificationChannel.SLACK]
    with pytest.raises(NotificationDeliveryError):
        asyncio.run(callback(_notification()))


def test_disabled_and_unmapped_notifiers_get_no_callback():
    service = NotificationService(
        [],
        notifiers={
            "slack": _FakeNotifier(name="slack", enabled_flag=False),
            "pager": _FakeNotifier(name="pager"),
        },
    )
    assert service.channel_callbacks() == {}


def test_status_report_goes_to_enabled_notifiers():
    on, off = _FakeNotifier(name="slack"), _FakeNotifier(name="webhook", enabled_flag=False)
    service = NotificationService([], notifiers={"slack": on, "webhook": off})
    delivered = asyncio.run(service.send_status_report(_snapshot(), iteration=10, uptime_minutes=42))
    assert delivered == ["slack"]
    assert "• Operational Status: DOWN" in on.messages[0].body
    assert "*Uptime:* 42 minutes" in on.messages[0].body
    assert off.messages == []


def test_switches_build_slack_notifier(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("TEST_ROUTER_HOOK", "https://hooks.example.com/x")
    service = NotificationService(
        [
            NotifierSwitch(name="slack", enabled=True, url_env="TEST_ROUTER_HOOK", channel="#ops"),
            NotifierSwitch(name="carrier_pigeon", enabled=True),
        ]
    )
    notifier = service.notifiers["slack"]
    assert isinstance(notifier, SlackNotifier)
    assert notifier.channel == "#ops"
    assert notifier.enabled()
    assert "carrier_pigeon" not in service.notifiers


def test_slack_notifier_posts_attachment(monkeypatch: pytest.MonkeyPatch):
    posted = []

    async def _fake_post(webhook: str, payload: dict) -> None:
        posted.append((webhook, payload))

    monkeypatch.setattr(slack, "post_message", _fake_post)
    notifier = SlackNotifier(webhook="https://hooks.example.com/x", enabled_flag=True)
    ok = asyncio.run(notifier.send(NotificationMessage(title="t", body="b", severity="CRITICAL")))

    assert ok is True
    webhook, payload = posted[0]
    assert webhook == "https://hooks.example.com/x"
    assert payload["icon_emoji"] == ":rotating_light:"
    assert payload["attachments"][0]["color"] == "danger"
    assert payload["attachments"][0]["text"] == "b"


def test_slack_notifier_without_webhook_is_disabled():
    notifier = SlackNotifier(webhook=None, enabled_flag=True)
    assert notifier.enabled() is False
    assert asyncio.run(notifier.send(NotificationMessage(title="t", body="b"))) is False


def test_webhook_notifier_posts_json(monkeypatch: pytest.MonkeyPatch):
    sent = []

    async def _fake_post(self, message):
        sent.append(self._payload(message))

    monkeypatch.setattr(WebhookNotifier, "_post", _fake_post)
    notifier = WebhookNotifier(url="https://example.com/hook", enabled_flag=True)
    message = NotificationMessage(title="t", body="b", category="alert", severity="HIGH")
    assert asyncio.run(notifier.send(message)) is True
    assert sent == [{"title": "t", "body": "b", "category": "alert", "severity": "HIGH"}]
    assert asyncio.run(WebhookNotifier(url=None, enabled_flag=True).send(message)) is False
