"""Routing of fired alerts and status reports to configured notifiers."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional

from alerts.models import AlertNotification, NotificationChannel
from alerts.notifiers.base import Notifier, NotificationMessage, NotifierTestResult
from alerts.slack import SlackNotifier
from alerts.webhook import WebhookNotifier
from core.config_models import NotifierSwitch
from metrics.snapshot import MetricsSnapshot

LOGGER = logging.getLogger(__name__)


class NotificationDeliveryError(RuntimeError):
    """A notifier reported that it could not deliver a message."""

    def __init__(self, channel: str, title: str) -> None:
        super().__init__(f"{channel} failed to deliver '{title}'")
        self.channel = channel
        self.title = title


def _timestamp(ts: float) -> str:
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def _metric_line(key: str, value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        text = getattr(value, "value", value)
        return f"• {key}: {text}"
    if key.endswith("_ms"):
        return f"• {key}: {value / 1000:.2f}s"
    if "rate" in key:
        return f"• {key}: {value:.1f}%"
    return f"• {key}: {value}"


def render_alert(notification: AlertNotification) -> NotificationMessage:
    """Render a fired alert as a Slack-flavoured markdown message."""

    alert = notification.alert
    lines = [
        f"*{alert.title}*",
        f"*Severity:* {alert.severity.value}",
        f"*Category:* {alert.category.value}",
        f"*Time (UTC):* {_timestamp(alert.timestamp)}",
        f"*Message:* {alert.message}",
    ]
    excerpt = alert.metadata.get("metrics_snapshot") or {}
    if excerpt:
        lines.append("")
        lines.append("*Current Metrics:*")
        for key in ("operational_status", "health_level"):
            if key in excerpt:
                lines.append(_metric_line(key.replace("_", " ").capitalize(), excerpt[key]))
        for key, value in excerpt.items():
            name = key.rsplit(".", 1)[-1]
            if name in ("operational_status", "health_level", "generated_at"):
                continue
            lines.append(_metric_line(name, value))
    lines.append("")
    lines.append(f"*Data Window:* {notification.context.time_window_ms / 60_000:g} minutes")
    return NotificationMessage(
        title=f"[{alert.severity.value}] {alert.title}",
        body="\n".join(lines),
        category="alert",
        severity=alert.severity.value,
    )


def render_status(snapshot: MetricsSnapshot, iteration: int, uptime_minutes: int) -> NotificationMessage:
    status = snapshot.status
    core = snapshot.core_metrics
    body = "\n".join(
        [
            "*Interop Status Report*",
            f"*Iteration:* {iteration}",
            f"*Time (UTC):* {_timestamp(status.generated_at)}",
            f"*Uptime:* {uptime_minutes} minutes",
            "",
            "*Current Status:*",
            f"• Operational Status: {status.operational_status.value}",
            f"• Health Level: {status.health_level.value}",
            f"• Timing Status: {status.timing_status.value}",
            "",
            "*Key Metrics:*",
            f"• Success Rate: {core.throughput.success_rate:.1f}%",
            f"• Avg Latency: {core.latency.average_latency_ms / 1000:.1f}s",
            f"• Total Messages: {core.throughput.total_messages}",
            f"• Error Rate: {snapshot.health.error_summary.error_rate:.1f}%",
        ]
    )
    return NotificationMessage(
        title=f"Interop status: {status.operational_status.value}",
        body=body,
        category="status",
    )


ChannelCallback = Callable[[AlertNotification], Awaitable[None]]


class NotificationService:
    """Build notifiers from config switches and expose one callback per channel."""

    def __init__(
        self,
        switches: Iterable[NotifierSwitch],
        notifiers: Optional[Mapping[str, Notifier]] = None,
    ) -> None:
        self.switches = list(switches)
        if notifiers is None:
            self._notifiers: Dict[str, Notifier] = self._build_notifiers(self.switches)
        else:
            self._notifiers = dict(notifiers)
        LOGGER.info("NotificationService initialized with channels: %s", list(self._notifiers))

    def _build_notifiers(self, switches: Iterable[NotifierSwitch]) -> Dict[str, Notifier]:
        registry: Dict[str, Notifier] = {}
        for switch in switches:
            notifier = self._create_notifier(switch)
            if notifier:
                registry[notifier.name] = notifier
        return registry

    def _create_notifier(self, switch: NotifierSwitch) -> Optional[Notifier]:
        name = switch.name.lower()
        if name == "slack":
            kwargs = {}
            if switch.channel:
                kwargs["channel"] = switch.channel
            if switch.username:
                kwargs["username"] = switch.username
            return SlackNotifier(webhook=switch.url, enabled_flag=switch.enabled, **kwargs)
        if name == "webhook":
            headers = {str(k): str(v) for k, v in dict(switch.extra.get("headers") or {}).items()}
            return WebhookNotifier(url=switch.url, enabled_flag=switch.enabled, headers=headers)
        LOGGER.warning("Unknown notifier channel: %s", switch.name)
        return None

    @property
    def notifiers(self) -> Dict[str, Notifier]:
        return dict(self._notifiers)

    def _make_callback(self, notifier: Notifier) -> ChannelCallback:
        async def _callback(notification: AlertNotification) -> None:
            message = render_alert(notification)
            if not await notifier.send(message):
                raise NotificationDeliveryError(notifier.name, message.title)
            LOGGER.info("Delivered alert %s via %s", notification.alert.id, notifier.name)

        return _callback

    def channel_callbacks(self) -> Dict[NotificationChannel, ChannelCallback]:
        """Callbacks for every enabled notifier whose name is a known channel."""

        callbacks: Dict[NotificationChannel, ChannelCallback] = {}
        for name, notifier in self._notifiers.items():
            if not notifier.enabled():
                LOGGER.debug("Notifier %s unavailable or disabled", name)
                continue
            try:
                channel = NotificationChannel(name.upper())
            except ValueError:
                LOGGER.warning("Notifier %s does not map to a notification channel", name)
                continue
            callbacks[channel] = self._make_callback(notifier)
        return callbacks

    async def send_status_report(
        self, snapshot: MetricsSnapshot, iteration: int, uptime_minutes: int
    ) -> List[str]:
        """Send a periodic status message to every enabled notifier.

        Returns the names of notifiers that accepted it.
        """

        message = render_status(snapshot, iteration, uptime_minutes)
        delivered: List[str] = []
        for name, notifier in self._notifiers.items():
            if not notifier.enabled():
                continue
            if await notifier.send(message):
                delivered.append(name)
            else:
                LOGGER.warning("Failed to deliver status report via %s", name)
        return delivered

    async def self_test(self) -> Dict[str, NotifierTestResult]:
        return {name: await notifier.self_test() for name, notifier in self._notifiers.items()}


__all__ = [
    "NotificationDeliveryError",
    "NotificationService",
    "render_alert",
    "render_status",
]
