"""
Alert data models for the alerting engine.

This module defines alert-related structures including thresholds,
notification channels, anomaly verdicts, and alert instances.

Models:
    AlertType: Alert category (performance, business, anomaly, ...)
    AlertSeverity: Ordered severity levels (low < medium < high < critical)
    ChannelType: Notification channel identifiers
    AlertThreshold: Per-metric warning/critical bounds
    NotificationChannel: Configured delivery channel
    AnomalyVerdict: Result of statistical anomaly detection
    Alert: Active or historical alert instance
    AlertStatistics: Aggregate counts over the active set
"""

import secrets
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from intelligent_alerts.exceptions import ThresholdValidationError


class AlertType(str, Enum):
    """
    Alert categories.

    Attributes:
        PERFORMANCE: System/API performance degradation.
        BUSINESS: Business KPI below expectations.
        SECURITY: Security related event.
        ANOMALY: Statistical deviation from recent history.
        FORECAST: Predicted future breach.
        WORKFLOW: Workflow execution failures.
    """

    PERFORMANCE = "performance"
    BUSINESS = "business"
    SECURITY = "security"
    ANOMALY = "anomaly"
    FORECAST = "forecast"
    WORKFLOW = "workflow"


class AlertSeverity(str, Enum):
    """
    Alert severity levels, ordered low < medium < high < critical.

    Attributes:
        LOW: Informational, dashboard only.
        MEDIUM: Worth a look, e-mail and dashboard.
        HIGH: Investigate soon.
        CRITICAL: Immediate action required.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Ordinal position of the severity (low=0 ... critical=3)."""
        return _SEVERITY_ORDER.index(self)

    @property
    def is_critical(self) -> bool:
        """Check if this is the critical severity."""
        return self == AlertSeverity.CRITICAL


_SEVERITY_ORDER = [
    AlertSeverity.LOW,
    AlertSeverity.MEDIUM,
    AlertSeverity.HIGH,
    AlertSeverity.CRITICAL,
]


class ChannelType(str, Enum):
    """Notification channel identifiers."""

    DASHBOARD = "dashboard"
    EMAIL = "email"
    SLACK = "slack"
    TELEGRAM = "telegram"
    WEBHOOK = "webhook"


class AlertThreshold(BaseModel):
    """
    Static warning/critical bounds for a named metric.

    A bound left as None means "no bound on that side". When both a warning
    and a critical bound exist on the same side, the critical one must be
    strictly more extreme.

    Attributes:
        metric: Metric name this threshold applies to.
        warning_min: Warn when the value drops below this.
        warning_max: Warn when the value rises above this.
        critical_min: Critical when the value drops below this.
        critical_max: Critical when the value rises above this.
        enabled: Whether the threshold is evaluated.
        auto_resolve_timeout: Minutes after which auto-resolvable alerts
            for this metric resolve themselves.

    Example:
        >>> threshold = AlertThreshold(
        ...     metric="response_time",
        ...     warning_max=2000,
        ...     critical_max=5000,
        ...     auto_resolve_timeout=15,
        ... )
    """

    model_config = {"frozen": True, "extra": "forbid"}

    metric: str = Field(
        ...,
        description="Metric name",
        min_length=1,
    )
    warning_min: Optional[float] = Field(
        default=None,
        description="Lower warning bound",
    )
    warning_max: Optional[float] = Field(
        default=None,
        description="Upper warning bound",
    )
    critical_min: Optional[float] = Field(
        default=None,
        description="Lower critical bound",
    )
    critical_max: Optional[float] = Field(
        default=None,
        description="Upper critical bound",
    )
    enabled: bool = Field(
        default=True,
        description="Whether this threshold is evaluated",
    )
    auto_resolve_timeout: Optional[int] = Field(
        default=None,
        description="Auto-resolve timeout in minutes",
        ge=0,
    )

    def validate_bounds(self) -> "AlertThreshold":
        """
        Check that critical bounds are more extreme than warning bounds.

        Returns:
            AlertThreshold: self, for chaining.

        Raises:
            ThresholdValidationError: If a critical bound is not strictly
                more extreme than the warning bound on the same side.
        """
        if (
            self.critical_min is not None
            and self.warning_min is not None
            and not self.critical_min < self.warning_min
        ):
            raise ThresholdValidationError(
                f"{self.metric}: critical_min ({self.critical_min}) must be "
                f"below warning_min ({self.warning_min})"
            )
        if (
            self.critical_max is not None
            and self.warning_max is not None
            and not self.critical_max > self.warning_max
        ):
            raise ThresholdValidationError(
                f"{self.metric}: critical_max ({self.critical_max}) must be "
                f"above warning_max ({self.warning_max})"
            )
        return self

    def merge(self, partial: Dict[str, Any]) -> "AlertThreshold":
        """
        Return a copy with the given fields replaced.

        The metric name cannot be changed through a merge.

        Args:
            partial: Field names mapped to new values.

        Returns:
            AlertThreshold: Validated merged threshold.

        Raises:
            ThresholdValidationError: If the merged bounds are inconsistent.
            pydantic.ValidationError: If a field value has the wrong type.
        """
        data = self.model_dump()
        data.update({k: v for k, v in partial.items() if k != "metric"})
        return AlertThreshold.model_validate(data).validate_bounds()


class NotificationChannel(BaseModel):
    """
    A configured notification channel.

    Attributes:
        type: Channel identifier.
        config: Delivery configuration (endpoint, api_key, recipients, template).
        enabled: Whether the channel receives dispatches.
        severity_filter: Severities this channel accepts.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    type: ChannelType = Field(
        ...,
        description="Channel identifier",
    )
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Delivery configuration",
    )
    enabled: bool = Field(
        default=True,
        description="Whether this channel is enabled",
    )
    severity_filter: List[AlertSeverity] = Field(
        default_factory=lambda: list(_SEVERITY_ORDER),
        description="Severities accepted by this channel",
    )

    def accepts(self, severity: AlertSeverity) -> bool:
        """Check if the channel is enabled and accepts a severity."""
        return self.enabled and severity in self.severity_filter


class AnomalyVerdict(BaseModel):
    """
    Result of a statistical anomaly check.

    Attributes:
        metric: Metric that was analysed.
        severity: Severity derived from the z-score band.
        message: Human readable description.
        current_value: Latest sample.
        expected_value: Mean of the historical window.
        std_dev: Population standard deviation of the historical window.
        z_score: |current - mean| / std_dev.
        confidence: Bounded heuristic in [0, 0.95].
        sample_size: Number of samples analysed (history + current).
        suggested_actions: Remediation hints.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    metric: str
    severity: AlertSeverity
    message: str
    current_value: float
    expected_value: float
    std_dev: float
    z_score: float
    confidence: float = Field(..., ge=0.0, le=1.0)
    sample_size: int = Field(..., ge=0)
    suggested_actions: List[str] = Field(default_factory=list)


def build_alert_id(category: str, metric: Optional[str], timestamp: datetime) -> str:
    """
    Build an alert id from its category, metric and creation time.

    The short random suffix keeps ids unique when two candidates for the
    same metric are built within the same millisecond.

    Args:
        category: Collector category (e.g. "realtime", "performance").
        metric: Metric name, if any.
        timestamp: Creation instant.

    Returns:
        str: Alert id such as "performance_response_time_1737894761000_3fa2".

    Example:
        >>> build_alert_id("workflow", "failure_rate", datetime.now(timezone.utc))
        'workflow_failure_rate_1737894761000_9c1e'
    """
    millis = int(timestamp.timestamp() * 1000)
    parts = [category]
    if metric:
        parts.append(metric)
    parts.append(str(millis))
    parts.append(secrets.token_hex(2))
    return "_".join(parts)


class Alert(BaseModel):
    """
    Active or historical alert instance.

    The notification channel list is a snapshot taken when the alert is
    built; later channel reconfiguration does not change it.

    Attributes:
        id: Unique alert identifier.
        type: Alert category.
        severity: Alert severity.
        title: Short title.
        message: Human readable message.
        source: Producing collector (e.g. "performance_monitor").
        metric: Metric name, if the alert is about a metric.
        current_value: Observed value.
        expected_value: Baseline value (e.g. historical mean).
        threshold: Threshold that was crossed.
        confidence: Confidence score in [0, 1].
        timestamp: Creation instant.
        acknowledged: Whether a human acknowledged the alert.
        acknowledged_at: When the alert was acknowledged.
        resolved: Whether the alert is resolved.
        resolved_at: When the alert was resolved.
        auto_resolve: Whether the alert may resolve itself after a timeout.
        suggested_actions: Ordered remediation hints.
        related_alerts: Ids of related alerts.
        notification_channels: Channels this alert qualifies for.
        metadata: Detector specific diagnostics.

    Example:
        >>> alert = Alert(
        ...     id="performance_error_rate_1737894761000_3fa2",
        ...     type=AlertType.PERFORMANCE,
        ...     severity=AlertSeverity.HIGH,
        ...     title="High error rate detected",
        ...     message="Error rate is 7.0%",
        ...     source="performance_monitor",
        ...     metric="error_rate",
        ...     current_value=7.0,
        ...     threshold=5.0,
        ...     confidence=0.95,
        ... )
    """

    model_config = {"extra": "forbid", "validate_assignment": True}

    # Identification
    id: str = Field(
        ...,
        description="Unique alert identifier",
        min_length=1,
    )
    type: AlertType = Field(
        ...,
        description="Alert category",
    )
    severity: AlertSeverity = Field(
        ...,
        description="Alert severity",
    )

    # Description
    title: str = Field(
        ...,
        description="Short title",
    )
    message: str = Field(
        ...,
        description="Human readable message",
    )
    source: str = Field(
        ...,
        description="Producing collector",
    )
    metric: Optional[str] = Field(
        default=None,
        description="Metric name",
    )

    # Quantities
    current_value: Optional[float] = Field(
        default=None,
        description="Observed value",
    )
    expected_value: Optional[float] = Field(
        default=None,
        description="Baseline value",
    )
    threshold: Optional[float] = Field(
        default=None,
        description="Threshold that was crossed",
    )
    confidence: float = Field(
        default=1.0,
        description="Confidence score",
        ge=0.0,
        le=1.0,
    )

    # Lifecycle
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation instant",
    )
    acknowledged: bool = Field(
        default=False,
        description="Whether the alert was acknowledged",
    )
    acknowledged_at: Optional[datetime] = Field(
        default=None,
        description="When the alert was acknowledged",
    )
    resolved: bool = Field(
        default=False,
        description="Whether the alert is resolved",
    )
    resolved_at: Optional[datetime] = Field(
        default=None,
        description="When the alert was resolved",
    )
    auto_resolve: bool = Field(
        default=True,
        description="Whether the alert may resolve itself after a timeout",
    )

    # Guidance and routing
    suggested_actions: List[str] = Field(
        default_factory=list,
        description="Ordered remediation hints",
    )
    related_alerts: List[str] = Field(
        default_factory=list,
        description="Ids of related alerts",
    )
    notification_channels: List[ChannelType] = Field(
        default_factory=lambda: [ChannelType.DASHBOARD],
        description="Channels this alert qualifies for",
    )
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Detector specific diagnostics",
    )

    @field_validator("timestamp", "acknowledged_at", "resolved_at")
    @classmethod
    def _ensure_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Treat naive timestamps as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def is_active(self) -> bool:
        """Check if the alert is not resolved."""
        return not self.resolved

    @property
    def dedup_key(self) -> tuple:
        """Identity of the incident: (type, metric, severity)."""
        return (self.type, self.metric, self.severity)

    @property
    def rate_limit_key(self) -> str:
        """Rate limit bucket shared by every severity of a metric."""
        return f"{self.type.value}_{self.metric}"

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        """Seconds elapsed since the alert was created."""
        now = now or datetime.now(timezone.utc)
        return (now - self.timestamp).total_seconds()

    def summary(self) -> str:
        """One-line summary used by text transports."""
        return f"[{self.severity.value.upper()}] {self.title}: {self.message}"


class AlertStatistics(BaseModel):
    """
    Aggregate counts for the public statistics endpoint.

    Attributes:
        total: Number of active alerts.
        by_severity: Active alerts per severity.
        by_type: Active alerts per type.
        acknowledged_count: Active alerts that were acknowledged.
        resolved_count: Alerts in history that were resolved.
    """

    total: int = 0
    by_severity: Dict[str, int] = Field(default_factory=dict)
    by_type: Dict[str, int] = Field(default_factory=dict)
    acknowledged_count: int = 0
    resolved_count: int = 0
