"""
Thresholds API endpoints.

Provides:
    GET /api/thresholds - Every configured threshold
    PATCH /api/thresholds/{metric} - Merge new values into a threshold
"""

from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, ValidationError

from intelligent_alerts.engine import IntelligentAlertEngine
from intelligent_alerts.exceptions import ThresholdValidationError
from intelligent_alerts.models.alerts import AlertThreshold
from services.alert_api.api.state import get_engine

logger = structlog.get_logger(__name__)

router = APIRouter()


class ThresholdUpdate(BaseModel):
    """Partial threshold update. Only fields present in the body are applied."""

    model_config = {
        "extra": "forbid",
        "json_schema_extra": {"example": {"warning_max": 2500, "critical_max": 6000}},
    }

    warning_min: Optional[float] = None
    warning_max: Optional[float] = None
    critical_min: Optional[float] = None
    critical_max: Optional[float] = None
    enabled: Optional[bool] = None
    auto_resolve_timeout: Optional[int] = Field(default=None, ge=0)


@router.get(
    "/thresholds",
    response_model=List[AlertThreshold],
    summary="Get thresholds",
)
async def get_thresholds(
    engine: IntelligentAlertEngine = Depends(get_engine),
) -> List[AlertThreshold]:
    return engine.thresholds.all()


@router.patch(
    "/thresholds/{metric}",
    response_model=AlertThreshold,
    summary="Update a threshold",
    description="Merges the given fields into an existing threshold. Unknown metrics return 404.",
)
async def update_threshold(
    metric: str,
    update: ThresholdUpdate,
    engine: IntelligentAlertEngine = Depends(get_engine),
) -> AlertThreshold:
    partial = update.model_dump(exclude_unset=True)
    try:
        updated = engine.update_threshold(metric, partial)
    except (ThresholdValidationError, ValidationError) as e:
        logger.info("threshold_update_rejected", metric=metric, error=str(e))
        raise HTTPException(status_code=422, detail=str(e)) from e

    if not updated:
        raise HTTPException(status_code=404, detail=f"Unknown metric: {metric}")
    return engine.thresholds.get(metric)
