"""
Business collector: today's revenue and conversion rate.
"""

from datetime import datetime
from typing import List

import structlog

from intelligent_alerts.detection.anomaly import format_value
from intelligent_alerts.detection.collectors.base import SourceCollector, to_number
from intelligent_alerts.models.alerts import Alert, AlertSeverity, AlertType

logger = structlog.get_logger(__name__)

REVENUE_WARNING = 1000.0
REVENUE_CRITICAL = 500.0
CONVERSION_WARNING_PCT = 2.0
CONVERSION_CRITICAL_PCT = 1.0

REVENUE_CONFIDENCE = 0.9
CONVERSION_CONFIDENCE = 0.85


class BusinessCollector(SourceCollector):
    """
    Alerts on low revenue and low conversion rate for the current UTC day.

    Both metrics are lower-bound checks. Low revenue is medium unless it
    falls below the critical bound; low conversion is high unless it falls
    below the critical bound. Business alerts never auto-resolve.
    """

    name = "business_monitor"
    category = "business"

    async def collect(self, now: datetime) -> List[Alert]:
        today = now.date()
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)

        rows = await self._query(
            "daily_aggregates",
            midnight,
            now,
            filters={"date": today},
            limit=1,
        )
        if not rows:
            return []
        metrics = rows[0]

        alerts: List[Alert] = []

        if metrics.get("total_revenue") is not None:
            revenue = to_number(metrics["total_revenue"])
            severity = self.thresholds.classify_lower(
                "revenue",
                revenue,
                below_warning=AlertSeverity.MEDIUM,
                default_warning=REVENUE_WARNING,
                default_critical=REVENUE_CRITICAL,
            )
            if severity is not None:
                threshold = self.thresholds.get("revenue")
                alerts.append(
                    self._build_alert(
                        now,
                        AlertType.BUSINESS,
                        severity,
                        "revenue",
                        title="Low revenue alert",
                        message=f"Today's revenue ({format_value(revenue)}) is below threshold",
                        current_value=revenue,
                        threshold=threshold.warning_min or REVENUE_WARNING,
                        confidence=REVENUE_CONFIDENCE,
                        auto_resolve=False,
                        suggested_actions=[
                            "Review marketing campaigns",
                            "Check conversion funnels",
                            "Analyze traffic sources",
                            "Consider promotional activities",
                        ],
                        metadata={
                            "date": today.isoformat(),
                            "total_revenue": revenue,
                        },
                    )
                )

        sessions = to_number(metrics.get("total_sessions"))
        if sessions <= 0:
            logger.debug("conversion_rate_skipped", reason="no_sessions", date=today.isoformat())
            return alerts

        conversions = to_number(metrics.get("total_conversions"))
        conversion_rate = conversions / sessions * 100
        severity = self.thresholds.classify_lower(
            "conversion_rate",
            conversion_rate,
            below_warning=AlertSeverity.HIGH,
            default_warning=CONVERSION_WARNING_PCT,
            default_critical=CONVERSION_CRITICAL_PCT,
        )
        if severity is not None:
            threshold = self.thresholds.get("conversion_rate")
            alerts.append(
                self._build_alert(
                    now,
                    AlertType.BUSINESS,
                    severity,
                    "conversion_rate",
                    title="Low conversion rate alert",
                    message=f"Conversion rate ({conversion_rate:.2f}%) is below threshold",
                    current_value=conversion_rate,
                    threshold=threshold.warning_min or CONVERSION_WARNING_PCT,
                    confidence=CONVERSION_CONFIDENCE,
                    auto_resolve=False,
                    suggested_actions=[
                        "A/B test landing pages",
                        "Review checkout process",
                        "Analyze user behavior",
                        "Optimize call-to-actions",
                    ],
                    metadata={
                        "conversion_rate": conversion_rate,
                        "conversions": conversions,
                        "sessions": sessions,
                    },
                )
            )

        return alerts
