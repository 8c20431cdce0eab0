"""Stateful alert rule evaluation.

Each call to :meth:`AlertEngine.process_alerts` evaluates every rule once
against the current snapshot. Sustained-duration state and cooldowns live in
an :class:`~alerts.state.AlertStateStore` owned by the engine, so separate
engine instances never share state.
"""

from __future__ import annotations

import inspect
import logging
import time
import uuid
from collections import deque
from typing import Callable, Deque, Iterable, List, Optional, Sequence

from alerts.conditions import evaluate_condition
from alerts.formatting import build_alert_message, extract_relevant_metrics
from alerts.history import AlertHistory
from alerts.models import (
    Alert,
    AlertCategory,
    AlertContext,
    AlertEvaluationResult,
    AlertNotification,
    AlertRule,
    DeliveryOutcome,
    NotificationCallback,
)
from alerts.state import DEFAULT_RETENTION_MS, AlertStateStore

LOGGER = logging.getLogger(__name__)

REASON_DISABLED = "disabled"
REASON_CATEGORY_DISABLED = "category_disabled"
REASON_COOLDOWN = "cooldown"
REASON_CONDITIONS_NOT_MET = "conditions_not_met"
REASON_RATE_LIMITED = "rate_limited"

RATE_WINDOW_SECONDS = 60.0


class AlertEngine:
    """Evaluate declarative rules against metrics snapshots."""

    def __init__(
        self,
        store: Optional[AlertStateStore] = None,
        now_func: Callable[[], float] = time.time,
        retention_ms: float = DEFAULT_RETENTION_MS,
        enabled_categories: Optional[Iterable[AlertCategory]] = None,
        max_alerts_per_minute: Optional[int] = None,
        history: Optional[AlertHistory] = None,
    ) -> None:
        self.store = store or AlertStateStore()
        self.history = history
        self._now = now_func
        self._retention_ms = retention_ms
        self._enabled_categories = (
            frozenset(AlertCategory(c) for c in enabled_categories) if enabled_categories else None
        )
        self._max_alerts_per_minute = max_alerts_per_minute or None
        self._recent_fires: Deque[float] = deque()

    def _rate_limited(self, now: float) -> bool:
        if self._max_alerts_per_minute is None:
            return False
        while self._recent_fires and now - self._recent_fires[0] >= RATE_WINDOW_SECONDS:
            self._recent_fires.popleft()
        return len(self._recent_fires) >= self._max_alerts_per_minute

    def create_alert(self, rule: AlertRule, context: AlertContext, now: float) -> Alert:
        alert_id = f"{rule.id}_{int(now * 1000)}_{uuid.uuid4().hex[:9]}"
        metadata = {
            "rule_id": rule.id,
            "rule_name": rule.name,
            "conditions": [condition.as_dict() for condition in rule.conditions],
            "metrics_snapshot": extract_relevant_metrics(rule, context),
        }
        metadata.update(rule.metadata)
        return Alert(
            id=alert_id,
            timestamp=now,
            severity=rule.severity,
            category=rule.category,
            title=rule.name,
            message=build_alert_message(rule, context),
            metadata=metadata,
        )

    def evaluate_rule(self, rule: AlertRule, context: AlertContext) -> AlertEvaluationResult:
        """Run one rule through cooldown, condition and duration checks.

        Every condition is evaluated even after one fails so duration state
        stays accurate for all of them.
        """

        now = self._now()
        if self.store.in_cooldown(rule.id, rule.cooldown_ms, now):
            return AlertEvaluationResult(rule=rule, triggered=False, reason=REASON_COOLDOWN)

        satisfied = [
            self.store.check_duration(
                rule.id, index, condition.duration_ms, evaluate_condition(condition, context), now
            )
            for index, condition in enumerate(rule.conditions)
        ]
        if not satisfied or not all(satisfied):
            return AlertEvaluationResult(
                rule=rule, triggered=False, reason=REASON_CONDITIONS_NOT_MET
            )

        if self._rate_limited(now):
            LOGGER.warning("Alert rate limit reached; suppressing rule %s", rule.id)
            return AlertEvaluationResult(rule=rule, triggered=False, reason=REASON_RATE_LIMITED)

        alert = self.create_alert(rule, context, now)
        self.store.set_cooldown(rule.id, now)
        if self._max_alerts_per_minute is not None:
            self._recent_fires.append(now)
        LOGGER.info("Alert fired: [%s] %s (%s)", rule.severity.value, rule.name, rule.id)
        return AlertEvaluationResult(rule=rule, triggered=True, alert=alert)

    async def process_alerts(
        self,
        rules: Sequence[AlertRule],
        context: AlertContext,
        notification_callback: Optional[NotificationCallback] = None,
    ) -> List[AlertEvaluationResult]:
        """Evaluate ``rules`` and notify for each one that fires.

        One result is returned per rule, triggered or not. Notification
        failures are logged and never propagate.
        """

        results: List[AlertEvaluationResult] = []
        for rule in rules:
            if not rule.enabled:
                results.append(
                    AlertEvaluationResult(rule=rule, triggered=False, reason=REASON_DISABLED)
                )
                continue
            if self._enabled_categories is not None and rule.category not in self._enabled_categories:
                results.append(
                    AlertEvaluationResult(
                        rule=rule, triggered=False, reason=REASON_CATEGORY_DISABLED
                    )
                )
                continue

            result = self.evaluate_rule(rule, context)
            results.append(result)
            if result.triggered and result.alert is not None:
                deliveries: List[DeliveryOutcome] = []
                if notification_callback is not None:
                    notification = AlertNotification(
                        alert=result.alert, rule=rule, context=context, channels=rule.channels
                    )
                    deliveries = await self._notify(notification, notification_callback)
                if self.history is not None:
                    self.history.record(result.alert, rule, deliveries)

        self.prune()
        return results

    async def _notify(
        self, notification: AlertNotification, callback: NotificationCallback
    ) -> List[DeliveryOutcome]:
        try:
            outcome = callback(notification)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as exc:
            LOGGER.exception("Failed to send alert notification for %s: %s", notification.alert.id, exc)
            return []
        if isinstance(outcome, list):
            return [item for item in outcome if isinstance(item, DeliveryOutcome)]
        return []

    def prune(self, older_than_ms: Optional[float] = None) -> int:
        retention = self._retention_ms if older_than_ms is None else older_than_ms
        removed = self.store.prune(retention, self._now())
        if removed:
            LOGGER.debug("Pruned %s stale alert state entries", removed)
        return removed


__all__ = [
    "AlertEngine",
    "REASON_CATEGORY_DISABLED",
    "REASON_CONDITIONS_NOT_MET",
    "REASON_COOLDOWN",
    "REASON_DISABLED",
    "REASON_RATE_LIMITED",
]
