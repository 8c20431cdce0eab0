"""Replay a recorded observation log through the alert engine offline."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from alerts.engine import AlertEngine
from alerts.history import AlertHistory, AlertStatistics
from alerts.models import AlertCategory, AlertRule, create_alert_context
from alerts.state import DEFAULT_RETENTION_MS
from backtest import stats
from core.config_models import MetricsConfig
from core.observations import Observation, ObservationWindow
from metrics.snapshot import MetricsSnapshot, generate_metrics
from rules.config_loader import AppConfig, load_config
from rules.templates import DEFAULT_ALERT_RULES

LOGGER = logging.getLogger(__name__)

ALERT_FIELDS = ["timestamp", "alert_id", "rule_id", "severity", "category", "title", "message"]


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay an observation log through the alert rules")
    parser.add_argument("log", help="JSON-lines file with one observation per line")
    parser.add_argument("--min-observations", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--env", type=Path, default=None, help="Path to .env file")
    parser.add_argument(
        "--output-dir",
        default="backtest/out",
        help="Directory where CSV and charts will be written",
    )
    return parser.parse_args(argv)


class ReplayClock:
    """Clock that only moves when the replay advances it."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


@dataclass
class ReplayResult:
    alert_rows: List[Dict[str, object]] = field(default_factory=list)
    snapshots: int = 0
    final_snapshot: Optional[MetricsSnapshot] = None
    statistics: Optional[AlertStatistics] = None


async def replay_observations(
    observations: Sequence[Observation],
    rules: Sequence[AlertRule] = DEFAULT_ALERT_RULES,
    config: Optional[MetricsConfig] = None,
    min_observations: int = 1,
    time_window_ms: float = 60 * 60 * 1000,
    retention_ms: float = DEFAULT_RETENTION_MS,
    enabled_categories: Optional[Iterable[AlertCategory]] = None,
    max_alerts_per_minute: Optional[int] = None,
    history_size: int = 1000,
) -> ReplayResult:
    """Feed ``observations`` one at a time, evaluating rules after each."""

    config = config or MetricsConfig()
    clock = ReplayClock()
    history = AlertHistory(history_size)
    engine = AlertEngine(
        now_func=clock,
        retention_ms=retention_ms,
        enabled_categories=enabled_categories,
        max_alerts_per_minute=max_alerts_per_minute,
        history=history,
    )
    window = ObservationWindow(config.max_window_size)
    result = ReplayResult()
    previous: Optional[MetricsSnapshot] = None
    for observation in observations:
        clock.now = observation.timestamp
        window.append(observation)
        if len(window) < min_observations:
            continue
        current = window.snapshot()
        snapshot = generate_metrics(current, config, now=observation.timestamp)
        context = create_alert_context(snapshot, current, previous, time_window_ms)
        for evaluation in await engine.process_alerts(rules, context):
            alert = evaluation.alert
            if not evaluation.triggered or alert is None:
                continue
            result.alert_rows.append(
                {
                    "timestamp": alert.timestamp,
                    "alert_id": alert.id,
                    "rule_id": evaluation.rule.id,
                    "severity": alert.severity.value,
                    "category": alert.category.value,
                    "title": alert.title,
                    "message": alert.message,
                }
            )
        previous = snapshot
        result.snapshots += 1
    result.final_snapshot = previous
    result.statistics = history.statistics()
    return result


def replay_with_config(
    observations: Sequence[Observation],
    app_config: AppConfig,
    min_observations: Optional[int] = None,
):
    """Coroutine replaying ``observations`` with the rules and limits of ``app_config``."""

    alerts = app_config.alerts
    return replay_observations(
        observations,
        rules=alerts.build_rules(),
        config=app_config.metrics,
        min_observations=(
            min_observations if min_observations is not None else app_config.tracking.min_observations
        ),
        time_window_ms=app_config.tracking.time_window_minutes * 60 * 1000,
        retention_ms=alerts.retention_ms,
        enabled_categories=alerts.enabled_categories,
        max_alerts_per_minute=alerts.max_alerts_per_minute,
        history_size=alerts.history_size,
    )


def run_replay(args: argparse.Namespace) -> Optional[ReplayResult]:
    log_path = Path(args.log)
    observations = stats.load_observations(log_path)
    if not observations:
        LOGGER.warning("No observations found in %s", log_path)
        return None
    LOGGER.info("Replaying %s observations from %s", len(observations), log_path)

    min_observations = getattr(args, "min_observations", None)
    config_path = getattr(args, "config", None)
    if config_path is not None:
        app_config = load_config(Path(config_path), getattr(args, "env", None))
        LOGGER.info("Using rules and thresholds from %s", config_path)
        result = asyncio.run(replay_with_config(observations, app_config, min_observations))
    else:
        result = asyncio.run(
            replay_observations(observations, min_observations=min_observations or 1)
        )

    output_dir = Path(args.output_dir)
    stats.write_csv(output_dir / "alerts.csv", result.alert_rows, ALERT_FIELDS)
    summary = stats.summarize_alerts(result.alert_rows)
    summary.update(stats.latency_summary(observations))
    stats.write_csv(output_dir / "summary.csv", [summary], list(summary.keys()))
    stats.plot_latency_histogram(
        [obs.latency_ms for obs in observations if obs.success], output_dir / "latency.png"
    )
    LOGGER.info(
        "Replay finished: %s snapshots, %s alerts (%s by severity); artifacts written to %s",
        result.snapshots,
        len(result.alert_rows),
        result.statistics.by_severity if result.statistics else {},
        output_dir,
    )
    return result


def main(argv: Optional[Iterable[str]] = None) -> None:
    _configure_logging()
    args = _parse_args(argv)
    run_replay(args)


if __name__ == "__main__":
    main(sys.argv[1:])
