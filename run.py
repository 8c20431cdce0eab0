from __future__ import annotations

"""Main entry point orchestrating the interop monitor."""

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from alerts.dispatcher import create_simple_notification_callback
from alerts.engine import AlertEngine
from alerts.history import AlertHistory
from alerts.router import NotificationService
from backtest.replay import run_replay
from rules.config_loader import AppConfig, load_config
from tracking.http_probe import HttpProbeSource
from tracking.tracker import CycleOutcome, MetricsTracker

LOGGER = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cross-system message relay monitor")
    parser.add_argument("--once", action="store_true", help="Run a single tracking cycle")
    parser.add_argument("--loop", action="store_true", help="Start long running tracking loop")
    parser.add_argument("--replay", metavar="LOG", help="Replay a JSON-lines observation log")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--env", type=Path, default=None, help="Path to .env file")
    parser.add_argument("--output-dir", default="backtest/out", help="Replay artifact directory")
    return parser.parse_args(argv)


def _cycle_logger(history: AlertHistory) -> Callable[[CycleOutcome], None]:
    def _log_cycle(outcome: CycleOutcome) -> None:
        for alert in outcome.triggered:
            LOGGER.warning("[%s] %s: %s", alert.severity.value, alert.title, alert.message)
        if outcome.triggered:
            summary = history.statistics()
            LOGGER.info(
                "Alert history: %s total, %s active, %s failed deliveries, by severity %s",
                summary.total_alerts,
                summary.active_alerts,
                summary.failed_deliveries,
                summary.by_severity,
            )

    return _log_cycle


def build_tracker(config: AppConfig) -> MetricsTracker:
    if config.probe is None:
        raise SystemExit("config has no 'probe' section; nothing to track")
    alerts = config.alerts
    history = AlertHistory(alerts.history_size)
    engine = AlertEngine(
        retention_ms=alerts.retention_ms,
        enabled_categories=alerts.enabled_categories,
        max_alerts_per_minute=alerts.max_alerts_per_minute,
        history=history,
    )
    service = NotificationService(config.notifiers)
    callbacks = service.channel_callbacks()
    if not callbacks:
        LOGGER.warning("No notifier channel enabled; alerts will only be logged")
    return MetricsTracker(
        HttpProbeSource(config.probe.endpoints, config.probe.credentials()),
        engine=engine,
        rules=alerts.build_rules(),
        config=config.metrics,
        notification_callback=create_simple_notification_callback(callbacks) if callbacks else None,
        cycle_callback=_cycle_logger(history),
        min_observations=config.tracking.min_observations,
        time_window_ms=config.tracking.time_window_minutes * 60 * 1000,
        status_reporter=service.send_status_report,
        status_report_every=config.tracking.status_report_every,
    )


def run_async(entry: Callable[[], Awaitable[None]]) -> None:
    try:
        asyncio.run(entry())
    except KeyboardInterrupt:
        LOGGER.info("Interrupted by user.")


def main(argv: Optional[list] = None) -> None:
    configure_logging()
    args = parse_args(argv)
    modes = [flag for flag in (args.once, args.loop, args.replay) if flag]
    if len(modes) > 1:
        raise SystemExit("--once, --loop and --replay cannot be combined")
    if args.replay:
        run_replay(
            argparse.Namespace(
                log=args.replay,
                min_observations=None,
                config=args.config,
                env=args.env,
                output_dir=args.output_dir,
            )
        )
        return
    if not modes:
        raise SystemExit("Specify --once, --loop or --replay")

    config = load_config(args.config, args.env)
    tracker = build_tracker(config)

    async def _once() -> None:
        await tracker.run_cycle()

    async def _loop() -> None:
        await tracker.run_forever(config.tracking.interval_minutes)

    run_async(_once if args.once else _loop)


if __name__ == "__main__":
    main()
