"""Helpers for summarising replay output."""

from __future__ import annotations

import csv
import json
from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

import matplotlib.pyplot as plt
import numpy as np

from core.observations import Observation


def load_observations(path: Path) -> List[Observation]:
    """Read a JSON-lines observation log, sorted by timestamp."""

    observations: List[Observation] = []
    with path.open("r", encoding="utf-8") as fp:
        for lineno, line in enumerate(fp, start=1):
            stripped = line.strip()
            if not stripped:
                continue
            try:
                observations.append(Observation.from_dict(json.loads(stripped)))
            except (KeyError, ValueError) as exc:
                raise ValueError(f"{path}:{lineno}: invalid observation: {exc}") from exc
    observations.sort(key=lambda item: item.timestamp)
    return observations


def summarize_alerts(rows: Iterable[Dict[str, object]]) -> Dict[str, object]:
    rows = list(rows)
    by_severity = Counter(str(row["severity"]) for row in rows)
    by_rule = Counter(str(row["rule_id"]) for row in rows)
    summary: Dict[str, object] = {"total_alerts": len(rows)}
    for severity, count in sorted(by_severity.items()):
        summary[f"severity_{severity.lower()}"] = count
    summary["distinct_rules"] = len(by_rule)
    return summary


def latency_summary(observations: Sequence[Observation]) -> Dict[str, float]:
    values = np.array(
        [obs.latency_ms for obs in observations if obs.success and obs.latency_ms is not None],
        dtype=float,
    )
    if values.size == 0:
        return {"samples": 0, "mean_ms": float("nan"), "p95_ms": float("nan")}
    return {
        "samples": int(values.size),
        "mean_ms": float(values.mean()),
        "p95_ms": float(np.percentile(values, 95)),
    }


def write_csv(path: Path, rows: Iterable[Dict[str, object]], fieldnames: Sequence[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as fp:
        writer = csv.DictWriter(fp, fieldnames=fieldnames)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


def plot_latency_histogram(latencies_ms: Iterable[float], output: Path) -> bool:
    """Write a latency histogram in seconds; returns ``False`` when there is nothing to plot."""

    values = [value / 1000 for value in latencies_ms if value is not None and value == value]
    if not values:
        return False
    output.parent.mkdir(parents=True, exist_ok=True)
    plt.figure(figsize=(6, 4))
    plt.hist(values, bins=20, alpha=0.7, color="#1f77b4")
    plt.title("Relay Latency Distribution")
    plt.xlabel("Latency (s)")
    plt.ylabel("Frequency")
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.savefig(output)
    plt.close()
    return True


__all__ = [
    "latency_summary",
    "load_observations",
    "plot_latency_histogram",
    "summarize_alerts",
    "write_csv",
]
