"""
Base class and helpers shared by the source collectors.

A collector queries one metric category, evaluates it and returns
candidate alerts. Collectors never raise into the pipeline: safe_collect()
turns any failure into an empty result and a log line.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import structlog

from intelligent_alerts.detection.dispatcher import channels_for_severity
from intelligent_alerts.detection.thresholds import ThresholdRegistry
from intelligent_alerts.interfaces.metric_source import MetricSource
from intelligent_alerts.models.alerts import (
    Alert,
    AlertSeverity,
    AlertType,
    ChannelType,
    build_alert_id,
)

logger = structlog.get_logger(__name__)

ChannelRouter = Callable[[AlertSeverity], List[ChannelType]]


def to_number(value: Any) -> float:
    """
    Coerce a row value to float.

    Missing and non-numeric values count as 0. Decimal values from the
    database convert exactly enough for threshold comparisons.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class SourceCollector(ABC):
    """
    Produces candidate alerts from one metric category.

    Attributes:
        source: Metric source to query.
        thresholds: Threshold registry.
        router: Severity to channel snapshot function.
        io_timeout_seconds: Upper bound for each query.
    """

    #: Producing collector name stored on alerts (e.g. "performance_monitor").
    name: str = ""
    #: Prefix used in alert ids (e.g. "performance").
    category: str = ""

    def __init__(
        self,
        source: MetricSource,
        thresholds: ThresholdRegistry,
        router: Optional[ChannelRouter] = None,
        io_timeout_seconds: float = 10.0,
    ) -> None:
        self.source = source
        self.thresholds = thresholds
        self.router = router or channels_for_severity
        self.io_timeout_seconds = io_timeout_seconds

    @abstractmethod
    async def collect(self, now: datetime) -> List[Alert]:
        """
        Query the source and return candidate alerts.

        Args:
            now: Tick time; windows are computed relative to it.

        Returns:
            List[Alert]: Candidate alerts, possibly empty.
        """
        pass

    async def _query(
        self,
        category: str,
        start: datetime,
        end: datetime,
        **kwargs: Any,
    ) -> List[Dict[str, Any]]:
        """Query the metric source, bounded by io_timeout_seconds."""
        return await asyncio.wait_for(
            self.source.query(category, start, end, **kwargs),
            timeout=self.io_timeout_seconds,
        )

    def _build_alert(
        self,
        now: datetime,
        alert_type: AlertType,
        severity: AlertSeverity,
        metric: Optional[str],
        **fields: Any,
    ) -> Alert:
        """
        Build a candidate alert with id, source and channel snapshot filled in.

        Args:
            now: Creation time.
            alert_type: Alert category.
            severity: Alert severity.
            metric: Metric name.
            **fields: Remaining Alert fields (title, message, values, ...).

        Returns:
            Alert: New candidate alert.
        """
        return Alert(
            id=build_alert_id(self.category, metric, now),
            type=alert_type,
            severity=severity,
            source=self.name,
            metric=metric,
            timestamp=now,
            notification_channels=self.router(severity),
            **fields,
        )


async def safe_collect(collector: SourceCollector, now: datetime) -> List[Alert]:
    """
    Run a collector, containing any failure.

    Args:
        collector: Collector to run.
        now: Tick time.

    Returns:
        List[Alert]: The collector's alerts, or [] if it raised or timed out.
    """
    try:
        alerts = await collector.collect(now)
    except asyncio.TimeoutError:
        logger.warning(
            "collector_timeout",
            collector=collector.name,
            timeout_seconds=collector.io_timeout_seconds,
        )
        return []
    except Exception as e:
        logger.error(
            "collector_failed",
            collector=collector.name,
            error=str(e),
            error_type=type(e).__name__,
        )
        return []

    logger.debug("collector_completed", collector=collector.name, candidates=len(alerts))
    return alerts
