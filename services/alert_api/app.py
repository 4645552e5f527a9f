"""
FastAPI application for the alerting engine.

This module creates and configures the FastAPI application with:
- Router registration for the alerts, thresholds and health endpoints
- Lifespan events that build, start and stop the engine in-process

The engine is stored on app.state.engine. When create_app() is given an
engine, the lifespan leaves it alone (used by tests and embedders);
otherwise it loads configuration, connects PostgreSQL and Redis and
builds one.
"""

import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from intelligent_alerts.config.loader import load_config
from intelligent_alerts.detection.hooks import NextTierEscalationPolicy
from intelligent_alerts.engine import IntelligentAlertEngine, create_engine
from intelligent_alerts.storage.postgres_client import PostgresClient, PostgresClientError
from intelligent_alerts.storage.redis_client import RedisClient, RedisClientError

logger = structlog.get_logger(__name__)


async def _build_engine(app: FastAPI) -> None:
    """Load config, connect storage and start an engine on app.state."""
    config = load_config(os.getenv("CONFIG_PATH", "config"))

    postgres = PostgresClient(config.postgres)
    await postgres.connect()
    app.state.postgres_client = postgres

    redis: Optional[RedisClient] = RedisClient(config.redis)
    try:
        await redis.connect()
    except RedisClientError as e:
        logger.warning(
            "redis_connection_failed",
            error=str(e),
            message="Alert events will not be published",
        )
        redis = None
    app.state.redis_client = redis

    engine = create_engine(
        config,
        source=postgres,
        repository=postgres,
        notification_store=postgres,
        redis=redis,
    )
    engine.lifecycle.escalation_policy = NextTierEscalationPolicy(engine.dispatcher)
    app.state.engine = engine
    await engine.start()


async def _teardown(app: FastAPI) -> None:
    engine: Optional[IntelligentAlertEngine] = getattr(app.state, "engine", None)
    if engine is not None:
        await engine.close()

    redis = getattr(app.state, "redis_client", None)
    if redis is not None:
        await redis.disconnect()

    postgres = getattr(app.state, "postgres_client", None)
    if postgres is not None:
        await postgres.disconnect()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Manage application lifespan events.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control flow returns to the application.
    """
    logger.info("alert_api_starting")
    app.state.start_time = datetime.now(timezone.utc)

    owns_engine = getattr(app.state, "engine", None) is None
    if owns_engine:
        try:
            await _build_engine(app)
        except PostgresClientError as e:
            logger.error(
                "postgres_connection_failed",
                error=str(e),
                message="Alert API will run without an engine",
            )

    logger.info("alert_api_ready", engine=getattr(app.state, "engine", None) is not None)

    yield

    logger.info("alert_api_shutting_down")
    if owns_engine:
        await _teardown(app)
    logger.info("alert_api_shutdown_complete")


def create_app(engine: Optional[IntelligentAlertEngine] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        engine: Pre-built engine to serve. When None, the lifespan builds
            and owns one.

    Returns:
        FastAPI: Configured FastAPI application instance.

    Example:
        >>> app = create_app()
        >>> import uvicorn
        >>> uvicorn.run(app, host="0.0.0.0", port=8060)
    """
    app = FastAPI(
        title="Intelligent Alerts API",
        description="Operational API for the intelligent alerting engine",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.engine = engine
    app.state.redis_client = None
    app.state.postgres_client = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from services.alert_api.api.alerts import router as alerts_router
    from services.alert_api.api.health import router as health_router
    from services.alert_api.api.thresholds import router as thresholds_router

    app.include_router(alerts_router, prefix="/api", tags=["Alerts"])
    app.include_router(thresholds_router, prefix="/api", tags=["Thresholds"])
    app.include_router(health_router, prefix="/api", tags=["Health"])

    logger.info("fastapi_app_created")

    return app
