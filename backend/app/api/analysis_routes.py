"""Workforce analysis routes — AI (or rule-based) classification and mood alerts."""
import logging
from typing import Literal, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from app.api.deps import (
    CurrentUser, get_current_user, require_manager,
    get_metrics_collector, get_workforce_analyzer,
)
from app.config import ANALYSIS_RANGE_LABELS
from app.services.workforce_metrics import WorkforceMetricsCollector

router = APIRouter(prefix="/api/v1/analysis", tags=["Analysis"])
logger = logging.getLogger("hr-api")


class WorkforceAnalysisRequest(BaseModel):
    range: Literal["3m", "6m", "1y", "all"] = "3m"
    month: Optional[int] = Field(None, ge=1, le=12)
    year: Optional[int] = None


@router.post("/workforce")
async def analyze_workforce(
    req: WorkforceAnalysisRequest,
    user: CurrentUser = Depends(require_manager),
    collector: WorkforceMetricsCollector = Depends(get_metrics_collector),
    analyzer=Depends(get_workforce_analyzer),
):
    period_label = ANALYSIS_RANGE_LABELS[req.range]
    metrics = await collector.collect(req.month, req.year)
    results = await analyzer.analyze_workforce(metrics, period_label)
    return {
        "period": period_label,
        "employee_count": len(metrics),
        "results": [r.to_dict() for r in results],
    }


@router.get("/{employee_id}/mood-alerts")
async def get_mood_alerts(
    employee_id: str,
    user: CurrentUser = Depends(get_current_user),
    collector: WorkforceMetricsCollector = Depends(get_metrics_collector),
):
    return {"employee_id": employee_id, "alerts": await collector.employee_mood_alerts(employee_id)}
