"""Generic JSON webhook notifier."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

from alerts.notifiers.base import Notifier, NotifierTestResult, NotificationMessage

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class WebhookNotifier(Notifier):
    """POSTs ``{title, body, category, severity}`` to an arbitrary endpoint."""

    url: Optional[str]
    enabled_flag: bool
    headers: Dict[str, str] = field(default_factory=dict)
    name: str = "webhook"

    def enabled(self) -> bool:
        return self.enabled_flag and bool(self.url)

    def _payload(self, message: NotificationMessage) -> dict:
        return {
            "title": message.title,
            "body": message.body,
            "category": message.category,
            "severity": message.severity,
        }

    async def _post(self, message: NotificationMessage) -> None:
        async with httpx.AsyncClient(timeout=10, headers=self.headers) as client:
            response = await client.post(self.url or "", json=self._payload(message))
            response.raise_for_status()

    async def send(self, message: NotificationMessage) -> bool:
        if not self.enabled():
            LOGGER.info("Webhook notifier disabled or missing url; skip send")
            return False
        try:
            await self._post(message)
        except httpx.HTTPError as exc:
            LOGGER.error("Failed to deliver webhook notification: %s", exc)
            return False
        return True

    async def self_test(self) -> NotifierTestResult:
        if not self.url:
            return NotifierTestResult(ok=False, detail="Missing webhook url")
        try:
            await self._post(NotificationMessage(title="[TEST]", body="Webhook reachable", category="status"))
        except httpx.HTTPError as exc:
            return NotifierTestResult(ok=False, detail=str(exc))
        return NotifierTestResult(ok=True, detail="Webhook reachable")


__all__ = ["WebhookNotifier"]
