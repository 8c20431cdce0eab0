"""Polling loop: probe, aggregate, evaluate rules, report."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from alerts.engine import AlertEngine
from alerts.models import Alert, AlertEvaluationResult, AlertRule, NotificationCallback, create_alert_context
from core.config_models import MetricsConfig, ProbeCredentials, ProbeEndpoints
from core.observations import Observation, ObservationWindow
from metrics.snapshot import MetricsSnapshot, generate_metrics
from rules.templates import DEFAULT_ALERT_RULES
from tracking.http_probe import HttpProbeSource
from tracking.transport import ObservationSource, observe

LOGGER = logging.getLogger(__name__)

MINUTE_SECONDS = 60


@dataclass(frozen=True, slots=True)
class CycleOutcome:
    """Everything one tracking cycle produced."""

    iteration: int
    observation: Observation
    snapshot: Optional[MetricsSnapshot] = None
    results: Tuple[AlertEvaluationResult, ...] = ()

    @property
    def success(self) -> bool:
        return self.observation.success

    @property
    def triggered(self) -> List[Alert]:
        return [result.alert for result in self.results if result.triggered and result.alert]


CycleCallback = Callable[[CycleOutcome], Any]
StatusReporter = Callable[[MetricsSnapshot, int, int], Awaitable[Any]]


class MetricsTracker:
    def __init__(
        self,
        source: ObservationSource,
        engine: Optional[AlertEngine] = None,
        rules: Sequence[AlertRule] = DEFAULT_ALERT_RULES,
        config: Optional[MetricsConfig] = None,
        notification_callback: Optional[NotificationCallback] = None,
        cycle_callback: Optional[CycleCallback] = None,
        min_observations: int = 1,
        time_window_ms: float = 60 * 60 * 1000,
        status_reporter: Optional[StatusReporter] = None,
        status_report_every: int = 0,
        now_func: Callable[[], float] = time.time,
    ) -> None:
        self.source = source
        self.config = config or MetricsConfig()
        self.engine = engine or AlertEngine(now_func=now_func)
        self.rules = list(rules)
        self.window = ObservationWindow(self.config.max_window_size)
        self.notification_callback = notification_callback
        self.cycle_callback = cycle_callback
        self.min_observations = max(1, min_observations)
        self.time_window_ms = time_window_ms
        self.status_reporter = status_reporter
        self.status_report_every = status_report_every
        self.iteration = 0
        self.previous_snapshot: Optional[MetricsSnapshot] = None
        self._now = now_func
        self._started_at = now_func()

    async def run_cycle(self) -> CycleOutcome:
        self.iteration += 1
        observation = await observe(self.source, self._now)
        self.window.append(observation)
        LOGGER.info(
            "Cycle %s: probe %s (window=%s)",
            self.iteration,
            "succeeded" if observation.success else "failed",
            len(self.window),
        )

        snapshot: Optional[MetricsSnapshot] = None
        results: List[AlertEvaluationResult] = []
        if len(self.window) >= self.min_observations:
            observations = self.window.snapshot()
            snapshot = generate_metrics(observations, self.config, now=self._now())
            context = create_alert_context(
                snapshot, observations, self.previous_snapshot, self.time_window_ms
            )
            results = await self.engine.process_alerts(
                self.rules, context, self.notification_callback
            )
            self.previous_snapshot = snapshot
            fired = sum(1 for result in results if result.triggered)
            LOGGER.info(
                "Cycle %s: status=%s rules=%s fired=%s",
                self.iteration,
                snapshot.status.operational_status.value,
                len(results),
                fired,
            )
            if not fired:
                await self._maybe_report_status(snapshot)

        outcome = CycleOutcome(
            iteration=self.iteration,
            observation=observation,
            snapshot=snapshot,
            results=tuple(results),
        )
        await self._invoke_cycle_callback(outcome)
        return outcome

    async def _maybe_report_status(self, snapshot: MetricsSnapshot) -> None:
        if self.status_reporter is None or self.status_report_every <= 0:
            return
        if self.iteration != 1 and self.iteration % self.status_report_every:
            return
        uptime_minutes = int((self._now() - self._started_at) // MINUTE_SECONDS)
        try:
            await self.status_reporter(snapshot, self.iteration, uptime_minutes)
        except Exception as exc:
            LOGGER.exception("Status report failed: %s", exc)

    async def _invoke_cycle_callback(self, outcome: CycleOutcome) -> None:
        if self.cycle_callback is None:
            return
        try:
            result = self.cycle_callback(outcome)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            LOGGER.exception("Cycle callback failed: %s", exc)

    async def run_forever(
        self,
        interval_minutes: float = 10,
        max_cycles: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Run cycles back to back with ``interval_minutes`` between them.

        ``max_cycles`` bounds the loop for tests and one-off runs.
        """

        completed = 0
        while max_cycles is None or completed < max_cycles:
            try:
                await self.run_cycle()
            except Exception as exc:
                LOGGER.exception("Tracking cycle %s failed: %s", self.iteration, exc)
            completed += 1
            if max_cycles is not None and completed >= max_cycles:
                break
            LOGGER.info("Waiting %s minutes for next tracking cycle", interval_minutes)
            await sleep(interval_minutes * MINUTE_SECONDS)


async def start_tracking(
    endpoints: ProbeEndpoints,
    credentials: Optional[ProbeCredentials] = None,
    callback: Optional[CycleCallback] = None,
    interval_minutes: float = 10,
    rules: Sequence[AlertRule] = DEFAULT_ALERT_RULES,
    config: Optional[MetricsConfig] = None,
    notification_callback: Optional[NotificationCallback] = None,
    engine: Optional[AlertEngine] = None,
    min_observations: int = 1,
) -> None:
    """Probe ``endpoints`` forever, feeding every cycle through the alert engine."""

    tracker = MetricsTracker(
        HttpProbeSource(endpoints, credentials),
        engine=engine,
        rules=rules,
        config=config,
        notification_callback=notification_callback,
        cycle_callback=callback,
        min_observations=min_observations,
    )
    await tracker.run_forever(interval_minutes)


__all__ = ["CycleOutcome", "MetricsTracker", "start_tracking"]
