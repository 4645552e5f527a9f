"""
Storage clients for the alerting engine.

This module provides clients for PostgreSQL (metric rows and alert state),
Redis (live alert events) and in-memory stand-ins for local runs.

Components:
    redis_client: Async Redis client for alert pub/sub
    postgres_client: Async PostgreSQL client for metrics and alerts
    memory: In-memory MetricSource, AlertRepository and NotificationStore
"""

from intelligent_alerts.storage.memory import (
    InMemoryAlertRepository,
    InMemoryMetricSource,
    InMemoryNotificationStore,
)
from intelligent_alerts.storage.redis_client import (
    RedisClient,
    RedisClientError,
    RedisConnectionException,
    RedisOperationError,
    create_redis_client,
)
from intelligent_alerts.storage.postgres_client import (
    PostgresClient,
    PostgresClientError,
    PostgresConnectionException,
    PostgresOperationError,
    create_postgres_client,
)

__all__: list[str] = [
    # In-memory
    "InMemoryMetricSource",
    "InMemoryAlertRepository",
    "InMemoryNotificationStore",
    # Redis
    "RedisClient",
    "RedisClientError",
    "RedisConnectionException",
    "RedisOperationError",
    "create_redis_client",
    # PostgreSQL
    "PostgresClient",
    "PostgresClientError",
    "PostgresConnectionException",
    "PostgresOperationError",
    "create_postgres_client",
]
