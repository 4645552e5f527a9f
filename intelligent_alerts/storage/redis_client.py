"""
Async Redis client for live alert fan-out.

This module provides a Redis client used by the dashboard channel to push
alert events to live dashboards over pub/sub. Redis is optional: when no
client is configured, dashboard notifications are still written to the
notification store.

Key Patterns:
    - Pub/Sub channel: `updates:alerts`
    - Message: {"event": "created" | "acknowledged" | "resolved", "alert": {...}}

Example:
    >>> from intelligent_alerts.config.models import RedisConnectionConfig
    >>> from intelligent_alerts.storage.redis_client import RedisClient
    >>>
    >>> client = RedisClient(RedisConnectionConfig(url="redis://localhost:6379"))
    >>> await client.connect()
    >>> await client.publish_alert(alert)
"""

from __future__ import annotations

import json
from typing import Optional

import structlog
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from intelligent_alerts.config.models import RedisConnectionConfig
from intelligent_alerts.exceptions import AlertEngineError
from intelligent_alerts.models.alerts import Alert

logger = structlog.get_logger(__name__)


class RedisClientError(AlertEngineError):
    """Base exception for Redis client errors."""

    pass


class RedisConnectionException(RedisClientError):
    """Raised when Redis connection fails."""

    pass


class RedisOperationError(RedisClientError):
    """Raised when a Redis operation fails."""

    pass


class RedisClient:
    """
    Async Redis client for alert pub/sub.

    Attributes:
        config: Redis connection configuration.
        _pool: Connection pool for efficient connection reuse.
        _client: Redis client instance.
        _connected: Whether the client is connected.

    Example:
        >>> client = RedisClient(RedisConnectionConfig())
        >>> await client.connect()
        >>> try:
        ...     await client.publish_alert(alert)
        ... finally:
        ...     await client.disconnect()
    """

    CHANNEL_ALERTS = "updates:alerts"

    def __init__(self, config: RedisConnectionConfig) -> None:
        """
        Initialize the Redis client.

        Args:
            config: Redis connection configuration containing URL, db, and
                pool settings.
        """
        self.config = config
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = None  # type: ignore[type-arg]
        self._connected: bool = False

        logger.info(
            "redis_client_initialized",
            url=config.url,
            db=config.db,
            max_connections=config.max_connections,
        )

    @property
    def is_connected(self) -> bool:
        """True if connected to Redis."""
        return self._connected and self._client is not None

    async def connect(self) -> None:
        """
        Establish connection to Redis.

        Raises:
            RedisConnectionException: If connection fails.
        """
        if self._connected:
            logger.warning("redis_already_connected")
            return

        try:
            self._pool = ConnectionPool.from_url(
                self.config.url,
                db=self.config.db,
                max_connections=self.config.max_connections,
                socket_timeout=self.config.socket_timeout,
                socket_connect_timeout=self.config.socket_timeout,
                decode_responses=True,
            )
            self._client = Redis(connection_pool=self._pool)

            await self._client.ping()
            self._connected = True

            logger.info("redis_connected", url=self.config.url, db=self.config.db)

        except (RedisConnectionError, RedisTimeoutError, OSError) as e:
            self._connected = False
            logger.error(
                "redis_connection_failed",
                url=self.config.url,
                error=str(e),
            )
            raise RedisConnectionException(
                f"Failed to connect to Redis at {self.config.url}: {e}"
            ) from e

    async def disconnect(self) -> None:
        """
        Close Redis connection and release resources.

        Safe to call multiple times.
        """
        if self._client is not None:
            try:
                await self._client.aclose()
            except RedisError as e:
                logger.warning("redis_close_error", error=str(e))
            finally:
                self._client = None

        if self._pool is not None:
            try:
                await self._pool.aclose()
            except RedisError as e:
                logger.warning("redis_pool_close_error", error=str(e))
            finally:
                self._pool = None

        self._connected = False
        logger.info("redis_disconnected")

    async def ping(self) -> bool:
        """
        Check Redis connection health.

        Returns:
            bool: True if Redis responds to PING, False otherwise.
        """
        if not self._client:
            return False

        try:
            await self._client.ping()
            return True
        except RedisError as e:
            logger.warning("redis_ping_failed", error=str(e))
            return False

    def _require_connection(self) -> Redis:  # type: ignore[type-arg]
        """
        Ensure client is connected and return the Redis instance.

        Raises:
            RedisConnectionException: If not connected.
        """
        if not self._connected or self._client is None:
            raise RedisConnectionException("Redis client is not connected")
        return self._client

    async def publish_alert(self, alert: Alert, event: str = "created") -> int:
        """
        Publish an alert event to subscribers.

        Args:
            alert: The Alert to publish.
            event: Event name (created, acknowledged, resolved).

        Returns:
            int: Number of subscribers that received the message.

        Raises:
            RedisConnectionException: If not connected.
            RedisOperationError: If the operation fails.

        Example:
            >>> count = await client.publish_alert(alert)
            >>> print(f"Notified {count} subscribers")
        """
        client = self._require_connection()

        try:
            message = json.dumps(
                {"event": event, "alert": alert.model_dump(mode="json")}
            )
            count = await client.publish(self.CHANNEL_ALERTS, message)

            logger.debug(
                "alert_published",
                alert_id=alert.id,
                alert_event=event,
                subscribers=count,
            )

            return int(count)

        except RedisError as e:
            logger.error(
                "alert_publish_failed",
                alert_id=alert.id,
                error=str(e),
            )
            raise RedisOperationError(f"Failed to publish alert: {e}") from e


def create_redis_client(config: Optional[RedisConnectionConfig] = None) -> RedisClient:
    """
    Factory function to create a RedisClient.

    Args:
        config: Connection configuration; defaults to RedisConnectionConfig().

    Returns:
        RedisClient: A new, not yet connected client.
    """
    return RedisClient(config or RedisConnectionConfig())
