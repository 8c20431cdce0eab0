"""Advisory text derived from status, alerts and metrics."""

from __future__ import annotations

from typing import List, Sequence

from metrics.health_alerts import HealthAlert, HealthAlertType
from metrics.latency import LatencyMetrics
from metrics.status import OperationalStatus
from metrics.throughput import ThroughputMetrics


def generate_recommendations(
    status: OperationalStatus,
    alerts: Sequence[HealthAlert],
    throughput: ThroughputMetrics,
    latency: LatencyMetrics,
) -> List[str]:
    recommendations: List[str] = []
    failure_rate = throughput.failure_rate

    if status is OperationalStatus.DOWN:
        recommendations.append("Immediate investigation required - cross-system messaging is down")
        recommendations.append("Check origin and destination endpoints and network connectivity")
        recommendations.append("Verify relay configuration on both systems")

    if status is OperationalStatus.DEGRADED:
        recommendations.append("Monitor system closely - performance is degraded")

    if failure_rate > 20:
        recommendations.append("Critical failure rate detected - immediate action required")
        recommendations.append("Check for network outages or infrastructure issues")
        recommendations.append("Review recent deployments or configuration changes")
    elif failure_rate > 10:
        recommendations.append("High failure rate detected - investigate error patterns")
        recommendations.append("Monitor endpoint stability and response times")
    elif failure_rate > 5:
        recommendations.append("Elevated failure rate - consider proactive monitoring")

    if throughput.success_rate < 90:
        recommendations.append("Investigate frequent message failures")
        recommendations.append("Review error logs for common failure patterns")

    if latency.average_latency_ms > 60_000:
        recommendations.append("High latency detected - check network conditions")

    types = {alert.type for alert in alerts}
    if HealthAlertType.CONSECUTIVE_FAILURES in types:
        recommendations.append("CRITICAL: Multiple consecutive failures detected - system is DOWN")
        recommendations.append("Check network connectivity between systems immediately")
        recommendations.append("Verify the relay is forwarding messages")
        recommendations.append("Review recent infrastructure or configuration changes")
    if any("FAILURE_RATE" in alert_type.value for alert_type in types):
        recommendations.append("Analyze failed message patterns and error types")

    if not alerts and status is OperationalStatus.ACTIVE:
        recommendations.append("System is operating normally")

    return recommendations


__all__ = ["generate_recommendations"]
