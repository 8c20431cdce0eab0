"""Configuration loader for the interop monitor."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from alerts.models import AlertCategory, AlertRule
from core.config_models import MetricsConfig, NotifierSwitch, ProbeCredentials, ProbeEndpoints
from rules.templates import DEFAULT_ALERT_RULES, create_rule_from_template, find_template, rule_from_dict


@dataclass
class TrackingConfig:
    """Polling cadence and snapshot gating."""

    interval_minutes: float = 10.0
    min_observations: int = 1
    time_window_minutes: float = 60.0
    status_report_every: int = 10

    def __post_init__(self) -> None:
        if self.interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")
        if self.min_observations < 1:
            raise ValueError("min_observations must be >= 1")
        if self.status_report_every < 0:
            raise ValueError("status_report_every must be >= 0")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> "TrackingConfig":
        if not data:
            return cls()
        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            raise ValueError(f"Unknown tracking settings: {sorted(unknown)}")
        return cls(**data)


@dataclass
class ProbeConfig:
    """Probe endpoints plus the env vars holding their API tokens."""

    endpoints: ProbeEndpoints
    origin_token_env: Optional[str] = None
    destination_token_env: Optional[str] = None

    def credentials(self) -> ProbeCredentials:
        return ProbeCredentials.from_env(self.origin_token_env, self.destination_token_env)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> Optional["ProbeConfig"]:
        if not data:
            return None
        payload = dict(data)
        origin_env = payload.pop("origin_token_env", None)
        destination_env = payload.pop("destination_token_env", None)
        return cls(
            endpoints=ProbeEndpoints.from_dict(payload),
            origin_token_env=origin_env,
            destination_token_env=destination_env,
        )


@dataclass
class TemplateRuleConfig:
    """A rule instantiated from one of the built-in templates."""

    template: str
    id: str
    values: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "TemplateRuleConfig":
        if "template" not in data or "id" not in data:
            raise ValueError("template rules require 'template' and 'id'")
        find_template(str(data["template"]))
        return cls(template=str(data["template"]), id=str(data["id"]), values=dict(data.get("values") or {}))


@dataclass
class AlertsConfig:
    """Which rules run and the engine-wide limits."""

    use_default_rules: bool = True
    rules: List[AlertRule] = field(default_factory=list)
    templates: List[TemplateRuleConfig] = field(default_factory=list)
    retention_hours: float = 24.0
    max_alerts_per_minute: Optional[int] = None
    enabled_categories: Optional[List[AlertCategory]] = None
    history_size: int = 1000

    def __post_init__(self) -> None:
        if self.retention_hours <= 0:
            raise ValueError("retention_hours must be positive")
        if self.max_alerts_per_minute is not None and self.max_alerts_per_minute < 1:
            raise ValueError("max_alerts_per_minute must be >= 1")

    @property
    def retention_ms(self) -> float:
        return self.retention_hours * 60 * 60 * 1000

    def build_rules(self) -> List[AlertRule]:
        """Default rules (when enabled), then template rules, then custom rules."""

        rules: List[AlertRule] = list(DEFAULT_ALERT_RULES) if self.use_default_rules else []
        for entry in self.templates:
            rules.append(create_rule_from_template(find_template(entry.template), entry.id, entry.values))
        rules.extend(self.rules)
        seen = set()
        for rule in rules:
            if rule.id in seen:
                raise ValueError(f"Duplicate alert rule id: {rule.id}")
            seen.add(rule.id)
        return rules

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> "AlertsConfig":
        if not data:
            return cls()
        categories = data.get("enabled_categories")
        return cls(
            use_default_rules=bool(data.get("use_default_rules", True)),
            rules=[rule_from_dict(item) for item in data.get("rules") or []],
            templates=[TemplateRuleConfig.from_dict(item) for item in data.get("templates") or []],
            retention_hours=float(data.get("retention_hours", 24.0)),
            max_alerts_per_minute=data.get("max_alerts_per_minute"),
            enabled_categories=(
                [AlertCategory(str(item).upper()) for item in categories] if categories else None
            ),
            history_size=int(data.get("history_size", 1000)),
        )


def _notifier_from_dict(data: Dict[str, object]) -> NotifierSwitch:
    if "name" not in data:
        raise ValueError("notifier entries require 'name'")
    payload = dict(data)
    known = {
        key: payload.pop(key)
        for key in ("name", "enabled", "url_env", "channel", "username")
        if key in payload
    }
    known.setdefault("enabled", False)
    return NotifierSwitch(extra=payload, **known)


@dataclass
class AppConfig:
    """Top level configuration model."""

    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    probe: Optional[ProbeConfig] = None
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    alerts: AlertsConfig = field(default_factory=AlertsConfig)
    notifiers: List[NotifierSwitch] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> "AppConfig":
        data = data or {}
        unknown = set(data) - {"tracking", "probe", "metrics", "alerts", "notifiers"}
        if unknown:
            raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")
        return cls(
            tracking=TrackingConfig.from_dict(data.get("tracking")),
            probe=ProbeConfig.from_dict(data.get("probe")),
            metrics=MetricsConfig.from_dict(data.get("metrics")),
            alerts=AlertsConfig.from_dict(data.get("alerts")),
            notifiers=[_notifier_from_dict(item) for item in data.get("notifiers") or []],
        )


def load_config(
    config_path: Optional[Path] = None,
    env_path: Optional[Path] = None,
) -> AppConfig:
    """Load application configuration from YAML and environment variables."""

    base_path = Path(__file__).resolve().parents[1]
    if config_path is None:
        config_path = base_path / "config.yaml"
    if env_path is None:
        default_env = base_path / ".env"
        if default_env.exists():
            env_path = default_env

    load_dotenv(dotenv_path=env_path, override=False)

    with open(config_path, "r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration root must be a mapping: {config_path}")

    return AppConfig.from_dict(data)


__all__ = [
    "AlertsConfig",
    "AppConfig",
    "ProbeConfig",
    "TemplateRuleConfig",
    "TrackingConfig",
    "load_config",
]
