"""
Shared Pydantic data models for the alerting engine.

Modules:
    alerts: Alerts, thresholds, channels and anomaly verdicts

Example:
    >>> from intelligent_alerts.models import Alert, AlertSeverity, AlertType
"""

from intelligent_alerts.models.alerts import (
    Alert,
    AlertSeverity,
    AlertStatistics,
    AlertThreshold,
    AlertType,
    AnomalyVerdict,
    ChannelType,
    NotificationChannel,
    build_alert_id,
)

__all__: list[str] = [
    "Alert",
    "AlertSeverity",
    "AlertStatistics",
    "AlertThreshold",
    "AlertType",
    "AnomalyVerdict",
    "ChannelType",
    "NotificationChannel",
    "build_alert_id",
]
