"""Sustained-condition and cooldown bookkeeping owned by one engine instance."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

DEFAULT_RETENTION_MS = 24 * 60 * 60 * 1000

ConditionKey = Tuple[str, int]


@dataclass(slots=True)
class ConditionState:
    """Tracks how long a duration-gated condition has been continuously true."""

    start_time: float
    last_triggered: float
    is_active: bool = True


class AlertStateStore:
    """Condition states keyed by ``(rule_id, condition_index)`` plus per-rule cooldowns.

    Times are POSIX seconds; durations passed in are milliseconds.
    """

    def __init__(self) -> None:
        self._conditions: Dict[ConditionKey, ConditionState] = {}
        self._cooldowns: Dict[str, float] = {}

    def condition(self, rule_id: str, index: int) -> Optional[ConditionState]:
        return self._conditions.get((rule_id, index))

    def check_duration(
        self,
        rule_id: str,
        index: int,
        duration_ms: Optional[float],
        is_true: bool,
        now: float,
    ) -> bool:
        """Apply sustained-state gating and return whether the condition is satisfied now.

        Without a duration the raw result passes straight through. With one,
        the first true cycle only arms the state; later true cycles are
        satisfied once ``duration_ms`` has elapsed since the state started. A
        false cycle deactivates the state but keeps it for cheap re-arming.
        """

        if not duration_ms:
            return is_true

        key = (rule_id, index)
        state = self._conditions.get(key)
        if is_true:
            if state is None or not state.is_active:
                self._conditions[key] = ConditionState(start_time=now, last_triggered=now)
                return False
            state.last_triggered = now
            return (now - state.start_time) * 1000 >= duration_ms

        if state is not None:
            state.is_active = False
        return False

    def last_fired(self, rule_id: str) -> Optional[float]:
        return self._cooldowns.get(rule_id)

    def in_cooldown(self, rule_id: str, cooldown_ms: float, now: float) -> bool:
        last = self._cooldowns.get(rule_id)
        if last is None:
            return False
        return (now - last) * 1000 < cooldown_ms

    def set_cooldown(self, rule_id: str, now: float) -> None:
        self._cooldowns[rule_id] = now

    def prune(self, older_than_ms: float, now: float) -> int:
        """Drop inactive condition states and cooldowns older than the retention window.

        Returns the number of entries removed.
        """

        cutoff = now - older_than_ms / 1000
        stale_conditions = [
            key
            for key, state in self._conditions.items()
            if not state.is_active and state.last_triggered < cutoff
        ]
        for key in stale_conditions:
            del self._conditions[key]
        stale_cooldowns = [rule_id for rule_id, fired in self._cooldowns.items() if fired < cutoff]
        for rule_id in stale_cooldowns:
            del self._cooldowns[rule_id]
        return len(stale_conditions) + len(stale_cooldowns)

    def clear(self) -> None:
        self._conditions.clear()
        self._cooldowns.clear()

    @property
    def condition_count(self) -> int:
        return len(self._conditions)

    @property
    def cooldown_count(self) -> int:
        return len(self._cooldowns)


__all__ = ["AlertStateStore", "ConditionState", "DEFAULT_RETENTION_MS"]
