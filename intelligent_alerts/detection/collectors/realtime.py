"""
Realtime collector: statistical anomalies in marketing metrics.

Reads the last 24 hours of marketing_data (oldest first) and runs the
anomaly detector over each tracked metric's positive values.
"""

from datetime import datetime, timedelta
from typing import List, Optional

import structlog

from intelligent_alerts.config.models import AnomalyDetectionConfig
from intelligent_alerts.detection.anomaly import AnomalyDetector
from intelligent_alerts.detection.collectors.base import (
    ChannelRouter,
    SourceCollector,
    to_number,
)
from intelligent_alerts.detection.thresholds import ThresholdRegistry
from intelligent_alerts.interfaces.metric_source import MetricSource
from intelligent_alerts.models.alerts import Alert, AlertType

logger = structlog.get_logger(__name__)

REALTIME_METRICS = ["revenue", "impressions", "clicks", "conversions"]
REALTIME_WINDOW = timedelta(hours=24)


class RealtimeCollector(SourceCollector):
    """
    Anomaly alerts for revenue, impressions, clicks and conversions.

    For each metric, missing values count as 0 and non-positive values are
    dropped before detection. Metrics with fewer than min_data_points
    remaining values are skipped.
    """

    name = "realtime_monitor"
    category = "realtime"

    def __init__(
        self,
        source: MetricSource,
        thresholds: ThresholdRegistry,
        detection: AnomalyDetectionConfig,
        detector: Optional[AnomalyDetector] = None,
        router: Optional[ChannelRouter] = None,
        io_timeout_seconds: float = 10.0,
        metrics: Optional[List[str]] = None,
    ) -> None:
        super().__init__(source, thresholds, router, io_timeout_seconds)
        self.detection = detection
        self.detector = detector or AnomalyDetector()
        self.metrics = metrics or list(REALTIME_METRICS)

    async def collect(self, now: datetime) -> List[Alert]:
        if not self.detection.enabled:
            return []

        rows = await self._query(
            "marketing_data",
            now - REALTIME_WINDOW,
            now,
            ascending=True,
        )
        if not rows:
            return []

        alerts: List[Alert] = []
        for metric in self.metrics:
            values = [v for v in (to_number(row.get(metric)) for row in rows) if v > 0]
            if len(values) < self.detection.min_data_points:
                continue

            verdict = self.detector.detect(metric, values, self.detection)
            if verdict is None:
                continue

            alerts.append(
                self._build_alert(
                    now,
                    AlertType.ANOMALY,
                    verdict.severity,
                    metric,
                    title=f"Anomaly detected in {metric}",
                    message=verdict.message,
                    current_value=verdict.current_value,
                    expected_value=verdict.expected_value,
                    confidence=verdict.confidence,
                    auto_resolve=True,
                    suggested_actions=verdict.suggested_actions,
                    metadata={
                        "detection_method": "statistical_analysis",
                        "data_points": len(values),
                        "z_score": verdict.z_score,
                        "std_dev": verdict.std_dev,
                    },
                )
            )

        return alerts
