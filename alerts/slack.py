"""Slack incoming-webhook notifier."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from alerts.notifiers.base import Notifier, NotifierTestResult, NotificationMessage

LOGGER = logging.getLogger(__name__)

DEFAULT_CHANNEL = "#alerts"
DEFAULT_USERNAME = "Interop Alerts"

_SEVERITY_COLORS = {
    "CRITICAL": "danger",
    "HIGH": "warning",
    "MEDIUM": "#ff9500",
    "LOW": "good",
}
_SEVERITY_EMOJI = {
    "CRITICAL": ":rotating_light:",
    "HIGH": ":warning:",
    "MEDIUM": ":large_orange_diamond:",
    "LOW": ":information_source:",
}


def severity_color(severity: Optional[str]) -> str:
    return _SEVERITY_COLORS.get((severity or "").upper(), "#36a64f")


def severity_emoji(severity: Optional[str]) -> str:
    return _SEVERITY_EMOJI.get((severity or "").upper(), ":bell:")


def build_payload(
    message: NotificationMessage,
    channel: str = DEFAULT_CHANNEL,
    username: str = DEFAULT_USERNAME,
    now: Optional[float] = None,
) -> dict:
    ts = int(time.time() if now is None else now)
    return {
        "username": username,
        "icon_emoji": severity_emoji(message.severity),
        "channel": channel,
        "attachments": [
            {
                "color": severity_color(message.severity),
                "title": message.title,
                "text": message.body,
                "ts": ts,
            }
        ],
    }


async def post_message(webhook: str, payload: dict) -> None:
    async with httpx.AsyncClient(timeout=10) as client:
        response = await client.post(webhook, json=payload)
        response.raise_for_status()


@dataclass(slots=True)
class SlackNotifier(Notifier):
    webhook: Optional[str]
    enabled_flag: bool
    channel: str = DEFAULT_CHANNEL
    username: str = DEFAULT_USERNAME
    name: str = "slack"

    def enabled(self) -> bool:
        return self.enabled_flag and bool(self.webhook)

    async def send(self, message: NotificationMessage) -> bool:
        if not self.enabled():
            LOGGER.info("Slack notifier disabled or missing webhook; skip send")
            return False
        try:
            await post_message(self.webhook or "", build_payload(message, self.channel, self.username))
        except httpx.HTTPError as exc:
            LOGGER.error("Failed to send Slack message: %s", exc)
            return False
        LOGGER.info("Slack message sent: %s", message.title)
        return True

    async def self_test(self) -> NotifierTestResult:
        if not self.webhook:
            return NotifierTestResult(ok=False, detail="Missing webhook for Slack")
        probe = NotificationMessage(
            title="[TEST] Notification self-test",
            body="Slack channel reachable",
            category="status",
        )
        try:
            await post_message(self.webhook, build_payload(probe, self.channel, self.username))
        except httpx.HTTPError as exc:
            LOGGER.exception("Slack self-test failed: %s", exc)
            return NotifierTestResult(ok=False, detail=str(exc))
        return NotifierTestResult(ok=True, detail="Slack webhook reachable")


__all__ = ["SlackNotifier", "build_payload", "post_message", "severity_color", "severity_emoji"]
