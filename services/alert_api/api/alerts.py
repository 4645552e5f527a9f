"""
Alerts API endpoints.

Provides:
    GET /api/alerts - Active alerts with optional severity and type filters
    GET /api/alerts/statistics - Counts over the active set
    POST /api/alerts/{alert_id}/acknowledge - Acknowledge an active alert
    POST /api/alerts/{alert_id}/resolve - Resolve an active alert
"""

from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from intelligent_alerts.engine import IntelligentAlertEngine
from intelligent_alerts.models.alerts import Alert, AlertStatistics
from services.alert_api.api.state import get_engine

logger = structlog.get_logger(__name__)

router = APIRouter()


class AlertsResponse(BaseModel):
    """Response model for the alerts endpoint."""

    alerts: List[Alert]
    total: int


class AlertActionResponse(BaseModel):
    """Response model for acknowledge/resolve."""

    alert_id: str
    status: str


def _parse_csv(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [v.strip().lower() for v in value.split(",") if v.strip()]


@router.get(
    "/alerts",
    response_model=AlertsResponse,
    summary="Get active alerts",
    description="Returns unresolved alerts, oldest first, with optional severity and type filters.",
)
async def get_alerts(
    severity: Optional[str] = Query(
        None,
        description="Severity filter: 'low', 'medium', 'high', 'critical', or comma-separated list",
    ),
    type: Optional[str] = Query(
        None,
        description="Type filter: e.g. 'performance' or 'business,workflow'",
    ),
    engine: IntelligentAlertEngine = Depends(get_engine),
) -> AlertsResponse:
    severity_filter = _parse_csv(severity)
    type_filter = _parse_csv(type)

    alerts = [
        a
        for a in engine.get_active_alerts()
        if (severity_filter is None or a.severity.value in severity_filter)
        and (type_filter is None or a.type.value in type_filter)
    ]
    return AlertsResponse(alerts=alerts, total=len(alerts))


@router.get(
    "/alerts/statistics",
    response_model=AlertStatistics,
    summary="Get alert statistics",
)
async def get_statistics(
    engine: IntelligentAlertEngine = Depends(get_engine),
) -> AlertStatistics:
    return engine.get_statistics()


@router.post(
    "/alerts/{alert_id}/acknowledge",
    response_model=AlertActionResponse,
    summary="Acknowledge an alert",
)
async def acknowledge_alert(
    alert_id: str,
    engine: IntelligentAlertEngine = Depends(get_engine),
) -> AlertActionResponse:
    if not await engine.acknowledge(alert_id):
        raise HTTPException(status_code=404, detail=f"Active alert not found: {alert_id}")
    return AlertActionResponse(alert_id=alert_id, status="acknowledged")


@router.post(
    "/alerts/{alert_id}/resolve",
    response_model=AlertActionResponse,
    summary="Resolve an alert",
)
async def resolve_alert(
    alert_id: str,
    engine: IntelligentAlertEngine = Depends(get_engine),
) -> AlertActionResponse:
    if not await engine.resolve(alert_id):
        raise HTTPException(status_code=404, detail=f"Active alert not found: {alert_id}")
    return AlertActionResponse(alert_id=alert_id, status="resolved")
