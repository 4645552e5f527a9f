"""
Health API endpoint.

Provides:
    GET /api/health - Engine and infrastructure status
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel

logger = structlog.get_logger(__name__)

router = APIRouter()


class InfrastructureHealthModel(BaseModel):
    """Model for infrastructure health status."""

    redis: str = "unknown"
    postgres: str = "unknown"


class HealthResponse(BaseModel):
    """Response model for health endpoint."""

    status: str = "unknown"
    engine_running: bool = False
    active_alerts: int = 0
    infrastructure: InfrastructureHealthModel
    uptime_seconds: int = 0
    timestamp: str

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "healthy",
                "engine_running": True,
                "active_alerts": 3,
                "infrastructure": {"redis": "connected", "postgres": "connected"},
                "uptime_seconds": 15780,
                "timestamp": "2025-01-26T12:34:57Z",
            }
        }
    }


async def _status_of(client: Optional[object]) -> str:
    if client is None:
        return "not_configured"
    try:
        ok = await client.ping()  # type: ignore[attr-defined]
    except Exception as e:
        logger.warning("health_ping_failed", client=type(client).__name__, error=str(e))
        return "disconnected"
    return "connected" if ok else "disconnected"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Get service health",
)
async def get_health(request: Request) -> HealthResponse:
    """
    Report engine and infrastructure health.

    The service is "healthy" when the engine runs and PostgreSQL (when
    configured) responds, "degraded" when only Redis is down, and
    "unhealthy" otherwise.
    """
    state = request.app.state
    engine = getattr(state, "engine", None)
    now = datetime.now(timezone.utc)

    infrastructure = InfrastructureHealthModel(
        redis=await _status_of(getattr(state, "redis_client", None)),
        postgres=await _status_of(getattr(state, "postgres_client", None)),
    )

    engine_running = engine is not None and engine.is_running
    if not engine_running or infrastructure.postgres == "disconnected":
        status = "unhealthy"
    elif infrastructure.redis == "disconnected":
        status = "degraded"
    else:
        status = "healthy"

    started_at = getattr(state, "start_time", now)
    return HealthResponse(
        status=status,
        engine_running=engine_running,
        active_alerts=len(engine.get_active_alerts()) if engine is not None else 0,
        infrastructure=infrastructure,
        uptime_seconds=int((now - started_at).total_seconds()),
        timestamp=now.isoformat().replace("+00:00", "Z"),
    )
