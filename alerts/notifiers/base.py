"""Notifier abstraction so alert channels stay pluggable."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(slots=True)
class NotificationMessage:
    """Channel-neutral payload rendered once and reused by every notifier."""

    title: str
    body: str
    category: str = "alert"  # alert | status
    severity: Optional[str] = None


@dataclass(slots=True)
class NotifierTestResult:
    ok: bool
    detail: str = ""


class Notifier(Protocol):
    """Common interface for Slack, generic webhooks and anything added later."""

    name: str

    def enabled(self) -> bool:
        """Whether the channel is switched on and has what it needs to send."""

    async def send(self, message: NotificationMessage) -> bool:
        """Deliver ``message``; return ``True`` on success."""

    async def self_test(self) -> NotifierTestResult:
        """Send a probe message to check the channel is reachable."""
