"""
Alert Engine Service entry point.

This service is responsible for:
- Loading engine, threshold and channel configuration
- Restoring unresolved alerts from PostgreSQL
- Running the pipeline tick every update_interval seconds
- Running the lifecycle sweep every cleanup_interval seconds
- Publishing alert events on Redis when available

Usage:
    python -m services.alert_engine.main

Environment Variables:
    CONFIG_PATH: Path to config directory (default: config)
    DATABASE_URL: PostgreSQL connection URL
    REDIS_URL: Redis connection URL (default: redis://localhost:6379)
    LOG_LEVEL: Logging level (default: INFO)
    ALERT_EMAIL_ENABLED, ALERT_EMAIL_RECIPIENTS, SMTP_HOST, SMTP_PORT, SMTP_FROM
    SLACK_WEBHOOK_URL, TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID, ALERT_WEBHOOK_URL
"""

import asyncio
import os
import sys
from typing import Optional

import structlog

from intelligent_alerts.detection.hooks import NextTierEscalationPolicy
from intelligent_alerts.engine import IntelligentAlertEngine, create_engine
from intelligent_alerts.services import ServiceRunner, setup_logging

logger = structlog.get_logger(__name__)


class AlertEngineService(ServiceRunner):
    """
    Headless alert engine service.

    Attributes:
        engine: The running engine.
    """

    def __init__(self, config_path: str = "config") -> None:
        """Initialize the alert engine service."""
        super().__init__(config_path)
        self.engine: Optional[IntelligentAlertEngine] = None

    @property
    def service_name(self) -> str:
        """Return service name."""
        return "alert-engine"

    async def _initialize(self) -> None:
        """Build the engine on top of the connected storage clients."""
        if self.config is None or self.postgres_client is None:
            raise RuntimeError("Service not properly initialized")

        self.engine = create_engine(
            self.config,
            source=self.postgres_client,
            repository=self.postgres_client,
            notification_store=self.postgres_client,
            redis=self.redis_client,
        )
        self.engine.lifecycle.escalation_policy = NextTierEscalationPolicy(
            self.engine.dispatcher
        )

        self.logger.info(
            "alert_engine_initialized",
            thresholds=len(self.engine.thresholds),
            channels=[c.value for c in self.engine.dispatcher.registry.enabled_types()],
        )

    async def _run(self) -> None:
        """Start the engine and wait for shutdown."""
        if self.engine is None:
            raise RuntimeError("Service not properly initialized")

        await self.engine.start()
        await self.shutdown_event.wait()

    async def _cleanup(self) -> None:
        """Stop the engine and log the final state."""
        if self.engine is not None:
            await self.engine.close()
            stats = self.engine.get_statistics()
            self.logger.info(
                "cleanup_state",
                active_alerts=stats.total,
                acknowledged=stats.acknowledged_count,
            )


async def main() -> None:
    """Main entry point."""
    setup_logging(os.getenv("LOG_LEVEL"))

    config_path = os.getenv("CONFIG_PATH", "config")

    logger.info(
        "alert_engine_service_starting",
        version="0.1.0",
        config_path=config_path,
    )

    service = AlertEngineService(config_path=config_path)

    try:
        await service.run()
    except Exception as e:
        logger.error("service_failed", error=str(e))
        sys.exit(1)


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
