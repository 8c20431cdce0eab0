"""Fan a single alert notification out to per-channel callbacks."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Mapping, Union

from alerts.models import AlertNotification, DeliveryOutcome, NotificationChannel

LOGGER = logging.getLogger(__name__)

ChannelKey = Union[NotificationChannel, str]
ChannelCallback = Callable[[AlertNotification], Any]


def _channel_name(channel: ChannelKey) -> str:
    if isinstance(channel, NotificationChannel):
        return channel.value
    return str(channel).upper()


class NotificationDispatcher:
    """Deliver to every requested channel concurrently.

    One channel failing never stops the others; each channel gets its own
    :class:`DeliveryOutcome`.
    """

    def __init__(self, callbacks: Mapping[ChannelKey, ChannelCallback]) -> None:
        self._callbacks: Dict[str, ChannelCallback] = {
            _channel_name(channel): callback for channel, callback in callbacks.items()
        }

    @property
    def channels(self) -> List[str]:
        return list(self._callbacks)

    async def _deliver(self, channel: str, notification: AlertNotification) -> DeliveryOutcome:
        callback = self._callbacks[channel]
        result = callback(notification)
        if inspect.isawaitable(result):
            await result
        return DeliveryOutcome(channel=channel, ok=True)

    async def dispatch(self, notification: AlertNotification) -> List[DeliveryOutcome]:
        if notification.channels:
            requested = [_channel_name(channel) for channel in notification.channels]
        else:
            requested = list(self._callbacks)

        targets: List[str] = []
        for channel in requested:
            if channel not in self._callbacks:
                LOGGER.warning("No notification callback registered for channel %s", channel)
                continue
            if channel not in targets:
                targets.append(channel)

        results = await asyncio.gather(
            *(self._deliver(channel, notification) for channel in targets),
            return_exceptions=True,
        )
        outcomes: List[DeliveryOutcome] = []
        for channel, result in zip(targets, results):
            if isinstance(result, BaseException):
                LOGGER.error(
                    "Failed to send %s notification for %s: %s",
                    channel,
                    notification.alert.id,
                    result,
                )
                outcomes.append(DeliveryOutcome(channel=channel, ok=False, error=str(result)))
            else:
                outcomes.append(result)
        return outcomes

    __call__ = dispatch


def create_simple_notification_callback(
    callbacks: Mapping[ChannelKey, ChannelCallback],
) -> NotificationDispatcher:
    """Build a callback suitable for :meth:`AlertEngine.process_alerts`."""

    return NotificationDispatcher(callbacks)


__all__ = ["NotificationDispatcher", "create_simple_notification_callback"]
