"""
Dashboard channel for alert notifications.

Writes a row to the notification store (the realtime_alerts table in
production) and, when a Redis client is connected, publishes the alert
on the updates:alerts pub/sub channel for live dashboards.
"""

from typing import Optional

import structlog

from intelligent_alerts.interfaces.repository import NotificationStore
from intelligent_alerts.interfaces.transport import NotificationTransport
from intelligent_alerts.models.alerts import Alert, ChannelType
from intelligent_alerts.storage.redis_client import RedisClient, RedisClientError

logger = structlog.get_logger(__name__)


class DashboardTransport(NotificationTransport):
    """
    Notification store + optional Redis pub/sub transport.

    The store write decides success; a failed publish is logged only.

    Attributes:
        store: Notification store receiving dashboard rows.
        redis: Optional Redis client for live fan-out.
    """

    def __init__(
        self,
        store: NotificationStore,
        redis: Optional[RedisClient] = None,
    ) -> None:
        self.store = store
        self.redis = redis

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.DASHBOARD

    async def send(self, alert: Alert) -> bool:
        await self.store.insert_notification(alert)

        if self.redis is not None and self.redis.is_connected:
            try:
                await self.redis.publish_alert(alert)
            except RedisClientError as e:
                logger.warning(
                    "dashboard_publish_failed",
                    alert_id=alert.id,
                    error=str(e),
                )

        return True
