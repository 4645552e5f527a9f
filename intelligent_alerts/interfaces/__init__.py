"""
Abstract interfaces for the alerting engine.

This module defines the abstract base classes that external collaborators
must implement: where metric rows come from, where alerts are stored, and
how notifications are delivered.

Modules:
    metric_source: MetricSource ABC for reading metric rows
    repository: AlertRepository and NotificationStore ABCs
    transport: NotificationTransport ABC for channel deliveries
"""

from intelligent_alerts.interfaces.metric_source import CATEGORY_TIME_COLUMNS, MetricSource
from intelligent_alerts.interfaces.repository import AlertRepository, NotificationStore
from intelligent_alerts.interfaces.transport import NotificationTransport

__all__: list[str] = [
    "CATEGORY_TIME_COLUMNS",
    "MetricSource",
    "AlertRepository",
    "NotificationStore",
    "NotificationTransport",
]
