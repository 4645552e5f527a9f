"""
Alert lifecycle management.

This module provides the LifecycleManager class which moves alerts through
their lifecycle: active, acknowledged, resolved (manually or by timeout),
and escalated when nobody acknowledges them in time.

Key Features:
    - Acknowledge and resolve by id with write-through persistence
    - Purge of resolved entries from the active set
    - Auto-resolution after the metric's auto_resolve_timeout
    - One-time escalation of stale unacknowledged alerts
    - Merge-only threshold updates
    - Optional lifecycle events on Redis for live dashboards

Callers hold the storage lock while invoking the mutating methods.

Example:
    >>> lifecycle = LifecycleManager(storage, thresholds, settings)
    >>> await lifecycle.acknowledge("performance_error_rate_1737894761000_3fa2")
    True
    >>> lifecycle.cleanup()
    0
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Set

import structlog

from intelligent_alerts.config.models import NotificationSettings
from intelligent_alerts.detection.hooks import EscalationPolicy, NoOpEscalationPolicy
from intelligent_alerts.detection.storage import AlertStorage
from intelligent_alerts.detection.thresholds import ThresholdRegistry
from intelligent_alerts.models.alerts import Alert
from intelligent_alerts.storage.redis_client import RedisClient, RedisClientError

logger = structlog.get_logger(__name__)


class LifecycleManager:
    """
    Acknowledgement, resolution, cleanup and escalation of active alerts.

    Attributes:
        storage: Active set and persistence.
        thresholds: Threshold registry (auto-resolve timeouts, updates).
        settings: Notification settings (escalation toggle and timeout).
        escalation_policy: Hook called for stale unacknowledged alerts.
        redis: Optional Redis client for lifecycle events.
    """

    def __init__(
        self,
        storage: AlertStorage,
        thresholds: ThresholdRegistry,
        settings: Optional[NotificationSettings] = None,
        escalation_policy: Optional[EscalationPolicy] = None,
        redis: Optional[RedisClient] = None,
    ) -> None:
        """
        Initialize the lifecycle manager.

        Args:
            storage: Active set and persistence.
            thresholds: Threshold registry.
            settings: Notification settings; defaults apply when None.
            escalation_policy: Escalation hook; no-op by default.
            redis: Optional Redis client for lifecycle events.
        """
        self.storage = storage
        self.thresholds = thresholds
        self.settings = settings or NotificationSettings()
        self.escalation_policy = escalation_policy or NoOpEscalationPolicy()
        self.redis = redis

        self._escalated: Set[str] = set()

        logger.debug(
            "lifecycle_manager_initialized",
            escalation_enabled=self.settings.escalation_enabled,
            escalation_timeout_minutes=self.settings.escalation_timeout_minutes,
        )

    async def acknowledge(self, alert_id: str, now: Optional[datetime] = None) -> bool:
        """
        Acknowledge an active alert.

        Args:
            alert_id: Alert id.
            now: Acknowledgement time (defaults to now).

        Returns:
            bool: True if acknowledged, False if the id is not active.
        """
        alert = self.storage.get(alert_id)
        if alert is None:
            logger.info("alert_acknowledge_unknown", alert_id=alert_id)
            return False

        alert.acknowledged = True
        alert.acknowledged_at = now or datetime.now(timezone.utc)
        await self.storage.persist(alert)
        await self._publish(alert, "acknowledged")

        logger.info("alert_acknowledged", alert_id=alert_id)
        return True

    async def resolve(self, alert_id: str, now: Optional[datetime] = None) -> bool:
        """
        Resolve an active alert and remove it from the active set.

        Args:
            alert_id: Alert id.
            now: Resolution time (defaults to now).

        Returns:
            bool: True if resolved, False if the id is not active.
        """
        alert = self.storage.get(alert_id)
        if alert is None:
            logger.info("alert_resolve_unknown", alert_id=alert_id)
            return False

        await self._resolve(alert, now or datetime.now(timezone.utc), reason="manual")
        return True

    def cleanup(self) -> int:
        """
        Purge active entries that are already marked resolved.

        Returns:
            int: Number of purged entries.
        """
        resolved = [a.id for a in self.storage.active_alerts() if a.resolved]
        for alert_id in resolved:
            self.storage.remove(alert_id)
            self._escalated.discard(alert_id)

        if resolved:
            logger.info("resolved_alerts_cleaned_up", count=len(resolved))
        return len(resolved)

    async def auto_resolve_expired(self, now: Optional[datetime] = None) -> List[Alert]:
        """
        Resolve auto-resolvable alerts whose timeout elapsed.

        The timeout is the metric threshold's auto_resolve_timeout, or the
        registry default for metrics without one.

        Args:
            now: Current time (defaults to now).

        Returns:
            List[Alert]: Alerts resolved by this call.
        """
        now = now or datetime.now(timezone.utc)
        expired: List[Alert] = []

        for alert in self.storage.active_alerts():
            if alert.resolved or not alert.auto_resolve:
                continue
            timeout = timedelta(minutes=self.thresholds.auto_resolve_minutes(alert.metric))
            if now - alert.timestamp >= timeout:
                expired.append(alert)

        for alert in expired:
            await self._resolve(alert, now, reason="timeout")

        if expired:
            logger.info("alerts_auto_resolved", count=len(expired))
        return expired

    async def check_escalations(self, now: Optional[datetime] = None) -> List[Alert]:
        """
        Escalate unacknowledged alerts older than the escalation timeout.

        Each alert is escalated at most once. Policy failures are logged
        and the alert is still considered escalated.

        Args:
            now: Current time (defaults to now).

        Returns:
            List[Alert]: Alerts escalated by this call.
        """
        if not self.settings.escalation_enabled:
            return []

        now = now or datetime.now(timezone.utc)
        timeout = timedelta(minutes=self.settings.escalation_timeout_minutes)
        escalated: List[Alert] = []

        for alert in self.storage.active_alerts():
            if (
                alert.acknowledged
                or alert.resolved
                or alert.id in self._escalated
                or now - alert.timestamp < timeout
            ):
                continue

            self._escalated.add(alert.id)
            try:
                await self.escalation_policy.escalate(alert)
            except Exception as e:
                logger.error(
                    "escalation_failed",
                    alert_id=alert.id,
                    error=str(e),
                )
                continue
            escalated.append(alert)

        return escalated

    def update_threshold(self, metric: str, partial: Dict[str, Any]) -> bool:
        """
        Merge new values into an existing threshold.

        Args:
            metric: Metric name.
            partial: Field names mapped to new values.

        Returns:
            bool: True if updated, False for an unknown metric.

        Raises:
            ThresholdValidationError: If the merged bounds are inconsistent.
            pydantic.ValidationError: If a value has the wrong type.
        """
        return self.thresholds.update(metric, partial)

    async def _resolve(self, alert: Alert, now: datetime, reason: str) -> None:
        alert.resolved = True
        alert.resolved_at = now
        await self.storage.persist(alert)
        self.storage.remove(alert.id)
        self._escalated.discard(alert.id)
        await self._publish(alert, "resolved")

        logger.info("alert_resolved", alert_id=alert.id, reason=reason)

    async def _publish(self, alert: Alert, event: str) -> None:
        if self.redis is None or not self.redis.is_connected:
            return
        try:
            await self.redis.publish_alert(alert, event=event)
        except RedisClientError as e:
            logger.warning(
                "alert_event_publish_failed",
                alert_id=alert.id,
                alert_event=event,
                error=str(e),
            )


def create_lifecycle_manager(
    storage: AlertStorage,
    thresholds: ThresholdRegistry,
    settings: Optional[NotificationSettings] = None,
    escalation_policy: Optional[EscalationPolicy] = None,
    redis: Optional[RedisClient] = None,
) -> LifecycleManager:
    """
    Factory function to create a LifecycleManager.

    Args:
        storage: Active set and persistence.
        thresholds: Threshold registry.
        settings: Notification settings.
        escalation_policy: Escalation hook.
        redis: Optional Redis client for lifecycle events.

    Returns:
        LifecycleManager: A new lifecycle manager.
    """
    return LifecycleManager(
        storage=storage,
        thresholds=thresholds,
        settings=settings,
        escalation_policy=escalation_policy,
        redis=redis,
    )
