"""
Alert API service entry point.

Runs the FastAPI application with Uvicorn. The engine runs in the same
process as the API, so the active set served over HTTP is the one the
scheduler updates.

Usage:
    python -m services.alert_api.main

    Or with uvicorn directly:
    uvicorn services.alert_api.app:create_app --factory --host 0.0.0.0 --port 8060

Environment Variables:
    CONFIG_PATH: Path to config directory (default: config)
    DATABASE_URL: PostgreSQL connection URL
    REDIS_URL: Redis connection URL (default: redis://localhost:6379)
    LOG_LEVEL: Logging level (default: INFO)
    ALERT_API_HOST: Host to bind to (default: 0.0.0.0)
    ALERT_API_PORT: Port to run the API on (default: 8060)
"""

import os
import sys

import structlog
import uvicorn

from intelligent_alerts.services import setup_logging


def main() -> None:
    """Configure logging and start the Uvicorn server."""
    setup_logging(os.getenv("LOG_LEVEL"))

    logger = structlog.get_logger(__name__)
    logger.info(
        "alert_api_service_starting",
        version="0.1.0",
        python_version=sys.version,
    )

    host = os.getenv("ALERT_API_HOST", "0.0.0.0")
    port = int(os.getenv("ALERT_API_PORT", "8060"))
    log_level = os.getenv("LOG_LEVEL", "info").lower()

    uvicorn.run(
        "services.alert_api.app:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=log_level,
        reload=False,
        workers=1,
        access_log=False,
    )


if __name__ == "__main__":
    main()
