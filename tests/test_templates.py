import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from alerts.models import AlertCategory, AlertCondition, AlertSeverity, NotificationChannel, Operator
from rules.templates import (
    ALERT_RULE_TEMPLATES,
    DEFAULT_ALERT_RULES,
    cooldown_for_severity,
    create_alert_rule,
    create_rule_from_template,
    find_template,
    rule_from_dict,
    validate_alert_rule,
)


def test_default_rules_follow_templates():
    assert len(ALERT_RULE_TEMPLATES) == 10
    assert [rule.id for rule in DEFAULT_ALERT_RULES[:3]] == [
        "rule_latency_1",
        "rule_latency_2",
        "rule_throughput_3",
    ]
    down = DEFAULT_ALERT_RULES[5]
    assert down.id == "rule_system_status_6"
    assert down.conditions[0].value == "DOWN"
    assert down.conditions[0].duration_ms is None
    assert down.cooldown_ms == 5 * 60 * 1000
    assert down.metadata == {"template": "System Down Alert", "auto_generated": True}
    for rule in DEFAULT_ALERT_RULES:
        assert validate_alert_rule(rule) == []


def test_severity_defaults():
    assert cooldown_for_severity(AlertSeverity.LOW) == 60 * 60 * 1000
    high = create_alert_rule(
        id="r1",
        name="Gas",
        description="gas is high",
        category=AlertCategory.GAS_USAGE,
        severity=AlertSeverity.HIGH,
        conditions=[AlertCondition("core_metrics.gas.average_send_gas", Operator.GT, 1)],
    )
    assert high.channels == (NotificationChannel.EMAIL, NotificationChannel.SLACK)
    assert high.cooldown_ms == 15 * 60 * 1000


def test_template_values_can_be_overridden():
    template = find_template("Low Success Rate Alert")
    by_field = create_rule_from_template(template, "strict", {"success_rate": 99})
    assert by_field.conditions[0].value == 99
    assert by_field.conditions[0].duration_ms == 2 * 60 * 1000
    by_value = create_rule_from_template(template, "loose", {"value": 90})
    assert by_value.conditions[0].value == 90
    assert by_value.metadata["custom_values"] == {"value": 90}
    with pytest.raises(ValueError):
        find_template("No Such Template")


def test_validation_reports_every_problem():
    rule = create_alert_rule(
        id=" ",
        name="Broken",
        description="broken rule",
        category=AlertCategory.LATENCY,
        severity=AlertSeverity.LOW,
        conditions=[AlertCondition("core_metrics.latency.bogus", Operator.GT, None, duration_ms=-1)],
        channels=[],
        cooldown_ms=-5,
    )
    errors = validate_alert_rule(rule)
    assert "Rule ID is required" in errors
    assert "Condition 1: unknown field 'core_metrics.latency.bogus'" in errors
    assert "Condition 1: value is required" in errors
    assert "Condition 1: duration must be positive" in errors
    assert "At least one notification channel is required" in errors
    assert "Cooldown must be positive" in errors


def test_rule_from_dict():
    rule = rule_from_dict(
        {
            "id": "custom",
            "name": "Degraded",
            "category": "SYSTEM_STATUS",
            "severity": "MEDIUM",
            "channels": ["slack"],
            "conditions": [
                {"field": "status.operational_status", "operator": "in", "value": ["DOWN", "DEGRADED"]}
            ],
        }
    )
    assert rule.channels == (NotificationChannel.SLACK,)
    assert rule.conditions[0].value == ("DOWN", "DEGRADED")
    assert rule.description == "Degraded"

    with pytest.raises(ValueError):
        rule_from_dict(
            {
                "id": "bad",
                "name": "Bad",
                "category": "LATENCY",
                "severity": "LOW",
                "conditions": [{"field": "status.operational_status", "operator": "like", "value": 1}],
            }
        )
