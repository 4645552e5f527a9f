"""
Performance collector: API response time and error rate.

Reads up to the 100 most recent system_metrics rows from the last hour
and compares the average response time and the share of failed requests
against the response_time and error_rate thresholds.
"""

from datetime import datetime, timedelta
from typing import List

import structlog

from intelligent_alerts.detection.collectors.base import SourceCollector, to_number
from intelligent_alerts.models.alerts import Alert, AlertType

logger = structlog.get_logger(__name__)

PERFORMANCE_WINDOW = timedelta(hours=1)
PERFORMANCE_SAMPLE_LIMIT = 100
PERFORMANCE_CONFIDENCE = 0.95

# Used when a configured threshold leaves the bound unset.
RESPONSE_TIME_WARNING_MS = 2000.0
RESPONSE_TIME_CRITICAL_MS = 5000.0
ERROR_RATE_WARNING_PCT = 5.0
ERROR_RATE_CRITICAL_PCT = 10.0


class PerformanceCollector(SourceCollector):
    """Alerts on high average response time and high error rate."""

    name = "performance_monitor"
    category = "performance"

    async def collect(self, now: datetime) -> List[Alert]:
        rows = await self._query(
            "system_metrics",
            now - PERFORMANCE_WINDOW,
            now,
            ascending=False,
            limit=PERFORMANCE_SAMPLE_LIMIT,
        )
        if not rows:
            return []

        total = len(rows)
        avg_response_time = sum(to_number(r.get("response_time")) for r in rows) / total
        failed = sum(1 for r in rows if to_number(r.get("status_code")) >= 400)
        error_rate = failed / total * 100

        alerts: List[Alert] = []

        severity = self.thresholds.classify_upper(
            "response_time",
            avg_response_time,
            default_warning=RESPONSE_TIME_WARNING_MS,
            default_critical=RESPONSE_TIME_CRITICAL_MS,
        )
        if severity is not None:
            threshold = self.thresholds.get("response_time")
            alerts.append(
                self._build_alert(
                    now,
                    AlertType.PERFORMANCE,
                    severity,
                    "response_time",
                    title="High response time detected",
                    message=f"Average response time is {avg_response_time:.0f}ms",
                    current_value=avg_response_time,
                    threshold=threshold.warning_max or RESPONSE_TIME_WARNING_MS,
                    confidence=PERFORMANCE_CONFIDENCE,
                    auto_resolve=True,
                    suggested_actions=[
                        "Check server resources",
                        "Review database queries",
                        "Analyze traffic patterns",
                        "Consider scaling resources",
                    ],
                    metadata={
                        "avg_response_time": avg_response_time,
                        "sample_size": total,
                    },
                )
            )

        severity = self.thresholds.classify_upper(
            "error_rate",
            error_rate,
            default_warning=ERROR_RATE_WARNING_PCT,
            default_critical=ERROR_RATE_CRITICAL_PCT,
        )
        if severity is not None:
            threshold = self.thresholds.get("error_rate")
            alerts.append(
                self._build_alert(
                    now,
                    AlertType.PERFORMANCE,
                    severity,
                    "error_rate",
                    title="High error rate detected",
                    message=f"Error rate is {error_rate:.1f}%",
                    current_value=error_rate,
                    threshold=threshold.warning_max or ERROR_RATE_WARNING_PCT,
                    confidence=PERFORMANCE_CONFIDENCE,
                    auto_resolve=True,
                    suggested_actions=[
                        "Review error logs",
                        "Check external dependencies",
                        "Verify configuration",
                        "Monitor user reports",
                    ],
                    metadata={
                        "error_rate": error_rate,
                        "total_requests": total,
                    },
                )
            )

        return alerts
