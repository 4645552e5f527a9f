"""
Threshold registry for per-metric warning and critical bounds.

This module provides the ThresholdRegistry class which holds the static
thresholds consulted by the collectors and the lifecycle manager, and
implements the bound classification shared by every collector.

Key Features:
    - Lookup by metric name with built-in defaults
    - Merge-only updates (unknown metrics are ignored)
    - Upper-bound and lower-bound severity classification

Example:
    >>> registry = ThresholdRegistry()
    >>> registry.classify_upper("response_time", 3000)
    <AlertSeverity.HIGH: 'high'>
    >>> registry.update("response_time", {"warning_max": 2500})
    True
"""

from typing import Any, Dict, Iterable, List, Optional

import structlog

from intelligent_alerts.config.models import default_thresholds
from intelligent_alerts.models.alerts import AlertSeverity, AlertThreshold

logger = structlog.get_logger(__name__)

DEFAULT_AUTO_RESOLVE_MINUTES = 60


class ThresholdRegistry:
    """
    Process-wide store of AlertThreshold objects keyed by metric.

    Thresholds are immutable models; an update replaces the stored object
    with a validated merged copy, so readers never observe a partially
    applied change.

    Attributes:
        default_auto_resolve_minutes: Timeout used for metrics without a
            configured auto_resolve_timeout.

    Example:
        >>> registry = ThresholdRegistry([
        ...     AlertThreshold(metric="error_rate", warning_max=5, critical_max=10),
        ... ])
        >>> registry.get("error_rate").critical_max
        10.0
    """

    def __init__(
        self,
        thresholds: Optional[Iterable[AlertThreshold]] = None,
        default_auto_resolve_minutes: int = DEFAULT_AUTO_RESOLVE_MINUTES,
    ) -> None:
        """
        Initialize the registry.

        Args:
            thresholds: Initial thresholds. Defaults to the built-in set.
            default_auto_resolve_minutes: Fallback auto-resolve timeout.
        """
        if thresholds is None:
            thresholds = default_thresholds()
        self._thresholds: Dict[str, AlertThreshold] = {
            t.metric: t.validate_bounds() for t in thresholds
        }
        self.default_auto_resolve_minutes = default_auto_resolve_minutes

        logger.debug(
            "threshold_registry_initialized",
            metrics=list(self._thresholds.keys()),
        )

    def get(self, metric: str) -> Optional[AlertThreshold]:
        """
        Get the threshold for a metric.

        Args:
            metric: Metric name.

        Returns:
            Optional[AlertThreshold]: Threshold, or None if not configured.
        """
        return self._thresholds.get(metric)

    def all(self) -> List[AlertThreshold]:
        """Return every configured threshold."""
        return list(self._thresholds.values())

    def update(self, metric: str, partial: Dict[str, Any]) -> bool:
        """
        Merge new values into an existing threshold.

        Unknown metrics are ignored; new thresholds cannot be created
        through an update.

        Args:
            metric: Metric name.
            partial: Field names mapped to new values.

        Returns:
            bool: True if the threshold was updated, False if the metric
                is not configured.

        Raises:
            ThresholdValidationError: If the merged bounds are inconsistent.
                The stored threshold is left unchanged.
            pydantic.ValidationError: If a value has the wrong type.
        """
        current = self._thresholds.get(metric)
        if current is None:
            logger.info("threshold_update_ignored", metric=metric, reason="unknown_metric")
            return False

        merged = current.merge(partial)
        self._thresholds[metric] = merged

        logger.info(
            "threshold_updated",
            metric=metric,
            fields=sorted(partial.keys()),
        )
        return True

    def auto_resolve_minutes(self, metric: Optional[str]) -> int:
        """
        Auto-resolve timeout for a metric, in minutes.

        Args:
            metric: Metric name, possibly None.

        Returns:
            int: Configured timeout or the registry default.
        """
        threshold = self._thresholds.get(metric) if metric else None
        if threshold is None or threshold.auto_resolve_timeout is None:
            return self.default_auto_resolve_minutes
        return threshold.auto_resolve_timeout

    def classify_upper(
        self,
        metric: str,
        value: float,
        default_warning: Optional[float] = None,
        default_critical: Optional[float] = None,
    ) -> Optional[AlertSeverity]:
        """
        Classify a value against the upper bounds of a metric.

        Above critical_max is critical; otherwise above warning_max is high.

        Args:
            metric: Metric name.
            value: Observed value.
            default_warning: warning_max used when none is configured.
            default_critical: critical_max used when none is configured.

        Returns:
            Optional[AlertSeverity]: CRITICAL, HIGH, or None when the value
                is within bounds or the metric has no enabled threshold.
        """
        threshold = self._thresholds.get(metric)
        if threshold is None or not threshold.enabled:
            return None

        warning = threshold.warning_max
        critical = threshold.critical_max
        warning = default_warning if warning is None else warning
        critical = default_critical if critical is None else critical

        if critical is not None and value > critical:
            return AlertSeverity.CRITICAL
        if warning is not None and value > warning:
            return AlertSeverity.HIGH
        return None

    def classify_lower(
        self,
        metric: str,
        value: float,
        below_warning: AlertSeverity,
        default_warning: Optional[float] = None,
        default_critical: Optional[float] = None,
    ) -> Optional[AlertSeverity]:
        """
        Classify a value against the lower bounds of a metric.

        Below critical_min is critical; otherwise below warning_min yields
        the caller supplied severity (business metrics differ here).

        Args:
            metric: Metric name.
            value: Observed value.
            below_warning: Severity for values below warning_min only.
            default_warning: warning_min used when none is configured.
            default_critical: critical_min used when none is configured.

        Returns:
            Optional[AlertSeverity]: Severity, or None when within bounds
                or the metric has no enabled threshold.
        """
        threshold = self._thresholds.get(metric)
        if threshold is None or not threshold.enabled:
            return None

        warning = threshold.warning_min
        critical = threshold.critical_min
        warning = default_warning if warning is None else warning
        critical = default_critical if critical is None else critical

        if critical is not None and value < critical:
            return AlertSeverity.CRITICAL
        if warning is not None and value < warning:
            return below_warning
        return None

    def __len__(self) -> int:
        return len(self._thresholds)

    def __contains__(self, metric: str) -> bool:
        return metric in self._thresholds


def create_threshold_registry(
    thresholds: Optional[Iterable[AlertThreshold]] = None,
) -> ThresholdRegistry:
    """
    Factory function to create a ThresholdRegistry.

    Args:
        thresholds: Initial thresholds; defaults to the built-in set.

    Returns:
        ThresholdRegistry: A new registry instance.
    """
    return ThresholdRegistry(thresholds)
