"""Bounded in-memory log of fired alerts and their delivery outcomes."""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass, field, replace
from typing import Deque, Dict, Iterable, List, Optional, Tuple

from alerts.models import Alert, AlertRule, DeliveryOutcome


@dataclass(frozen=True, slots=True)
class AlertHistoryEntry:
    alert: Alert
    rule_id: str
    deliveries: Tuple[DeliveryOutcome, ...] = ()

    @property
    def delivered(self) -> bool:
        return any(outcome.ok for outcome in self.deliveries)


@dataclass(slots=True)
class AlertStatistics:
    total_alerts: int = 0
    by_severity: Dict[str, int] = field(default_factory=dict)
    by_category: Dict[str, int] = field(default_factory=dict)
    by_rule: Dict[str, int] = field(default_factory=dict)
    active_alerts: int = 0
    resolved_alerts: int = 0
    failed_deliveries: int = 0
    last_alert_at: Optional[float] = None


class AlertHistory:
    """Keeps the most recent ``max_entries`` alerts, oldest dropped first."""

    def __init__(self, max_entries: int = 1000) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._entries: Deque[AlertHistoryEntry] = deque(maxlen=max_entries)

    def record(
        self, alert: Alert, rule: AlertRule, deliveries: Iterable[DeliveryOutcome] = ()
    ) -> AlertHistoryEntry:
        entry = AlertHistoryEntry(alert=alert, rule_id=rule.id, deliveries=tuple(deliveries))
        self._entries.append(entry)
        return entry

    @property
    def entries(self) -> List[AlertHistoryEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def resolve(self, alert_id: str) -> bool:
        """Mark the alert with ``alert_id`` resolved; False if it is not held."""

        for index, entry in enumerate(self._entries):
            if entry.alert.id == alert_id:
                if not entry.alert.resolved:
                    self._entries[index] = replace(entry, alert=replace(entry.alert, resolved=True))
                return True
        return False

    def statistics(self) -> AlertStatistics:
        severity: Counter = Counter()
        category: Counter = Counter()
        rules: Counter = Counter()
        resolved = 0
        failed = 0
        last: Optional[float] = None
        for entry in self._entries:
            severity[entry.alert.severity.value] += 1
            category[entry.alert.category.value] += 1
            rules[entry.rule_id] += 1
            if entry.alert.resolved:
                resolved += 1
            failed += sum(1 for outcome in entry.deliveries if not outcome.ok)
            if last is None or entry.alert.timestamp > last:
                last = entry.alert.timestamp
        return AlertStatistics(
            total_alerts=len(self._entries),
            by_severity=dict(severity),
            by_category=dict(category),
            by_rule=dict(rules),
            active_alerts=len(self._entries) - resolved,
            resolved_alerts=resolved,
            failed_deliveries=failed,
            last_alert_at=last,
        )

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["AlertHistory", "AlertHistoryEntry", "AlertStatistics"]
