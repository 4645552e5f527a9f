"""
Shared runtime for the service entry points.

This module provides structured logging setup and the ServiceRunner base
class used by the services under services/. A runner loads the
configuration, connects PostgreSQL and Redis, runs the service body until
SIGINT/SIGTERM, and releases everything on the way out.

Example:
    >>> class MyService(ServiceRunner):
    ...     @property
    ...     def service_name(self) -> str:
    ...         return "my-service"
    ...
    ...     async def _run(self) -> None:
    ...         await self.shutdown_event.wait()
    >>>
    >>> asyncio.run(MyService().run())
"""

import asyncio
import logging
import signal
from abc import ABC, abstractmethod
from typing import Optional, Union

import structlog

from intelligent_alerts.config.loader import load_config
from intelligent_alerts.config.models import AppConfig, LogFormat, LoggingConfig
from intelligent_alerts.storage.postgres_client import PostgresClient, PostgresClientError
from intelligent_alerts.storage.redis_client import RedisClient, RedisClientError


def setup_logging(
    level: Union[str, None] = None,
    fmt: Union[LogFormat, str, None] = None,
) -> None:
    """
    Configure structlog over the standard library logging module.

    Args:
        level: Log level name (default: INFO).
        fmt: "json" for JSON lines, "text" for console rendering.
    """
    log_level = (level or "INFO").upper()
    renderer = (
        structlog.dev.ConsoleRenderer()
        if LogFormat(fmt or LogFormat.JSON) == LogFormat.TEXT
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level, logging.INFO),
        force=True,
    )

    # Reduce noise from uvicorn access logs
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def setup_logging_from_config(config: LoggingConfig) -> None:
    """Configure logging from a validated LoggingConfig."""
    setup_logging(level=config.level.value, fmt=config.format)


class ServiceRunner(ABC):
    """
    Base class for long-running services.

    Attributes:
        config_path: Configuration directory.
        config: Loaded application configuration.
        postgres_client: Connected PostgreSQL client, if available.
        redis_client: Connected Redis client, if available.
        shutdown_event: Set when the service should stop.
        logger: Logger bound to the service name.
    """

    def __init__(self, config_path: str = "config") -> None:
        self.config_path = config_path
        self.config: Optional[AppConfig] = None
        self.postgres_client: Optional[PostgresClient] = None
        self.redis_client: Optional[RedisClient] = None
        self.shutdown_event = asyncio.Event()
        self.logger = structlog.get_logger(self.service_name)

    @property
    @abstractmethod
    def service_name(self) -> str:
        """Service name used in logs."""
        pass

    @abstractmethod
    async def _run(self) -> None:
        """Service body; return when shutdown_event is set."""
        pass

    async def _initialize(self) -> None:
        """Service-specific setup, after storage is connected."""
        pass

    async def _cleanup(self) -> None:
        """Service-specific teardown, before storage is disconnected."""
        pass

    def request_shutdown(self) -> None:
        """Ask the service to stop."""
        if not self.shutdown_event.is_set():
            self.logger.info("shutdown_requested")
            self.shutdown_event.set()

    async def run(self) -> None:
        """
        Run the service until shutdown.

        PostgreSQL is required; Redis is optional and only logged when
        unavailable.

        Raises:
            PostgresClientError: If PostgreSQL cannot be reached.
        """
        self.config = load_config(self.config_path)
        setup_logging_from_config(self.config.logging)
        self._install_signal_handlers()

        self.logger.info("service_starting", config_path=self.config_path)

        try:
            await self._connect_storage()
            await self._initialize()
            self.logger.info("service_started")
            await self._run()
        finally:
            try:
                await self._cleanup()
            finally:
                await self._disconnect_storage()
            self.logger.info("service_stopped")

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except NotImplementedError:
                # Signal handlers are unavailable on some platforms (Windows).
                self.logger.debug("signal_handler_unavailable", signal=sig.name)

    async def _connect_storage(self) -> None:
        if self.config is None:
            raise RuntimeError("Configuration not loaded")

        self.postgres_client = PostgresClient(self.config.postgres)
        try:
            await self.postgres_client.connect()
        except PostgresClientError as e:
            self.logger.error("postgres_unavailable", error=str(e))
            raise

        redis_client = RedisClient(self.config.redis)
        try:
            await redis_client.connect()
            self.redis_client = redis_client
        except RedisClientError as e:
            self.logger.warning("redis_unavailable", error=str(e))
            self.redis_client = None

    async def _disconnect_storage(self) -> None:
        if self.redis_client is not None:
            await self.redis_client.disconnect()
        if self.postgres_client is not None:
            await self.postgres_client.disconnect()
