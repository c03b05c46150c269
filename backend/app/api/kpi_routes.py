"""KPI routes — targets, weekly achievements, plan submission and manager review."""
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, model_validator
from app.api.deps import CurrentUser, get_current_user, require_manager, get_kpi_service
from app.services.kpi_engine import KPIService, KpiStatus

router = APIRouter(prefix="/api/v1/kpi", tags=["KPI"])
logger = logging.getLogger("hr-api")


# ─── Pydantic schemas ────────────────────────────────────────────────────────

class KPIConfigCreate(BaseModel):
    kpi_name: str = Field(..., min_length=1)
    target_value: float = Field(..., gt=0)
    unit_value: Optional[float] = Field(None, ge=0)
    incentive_percentage: Optional[float] = None
    smart_s: Optional[str] = None
    smart_m: Optional[str] = None
    smart_a: Optional[str] = None
    smart_r: Optional[str] = None
    smart_t: Optional[str] = None
    applicable_month: Optional[int] = Field(None, ge=1, le=12)
    applicable_year: Optional[int] = None

    @model_validator(mode="after")
    def period_is_complete(self):
        # A month without a year matches no period and is not evergreen either
        if (self.applicable_month is None) != (self.applicable_year is None):
            raise ValueError("applicable_month and applicable_year must be given together")
        return self


class KPIRecordCreate(BaseModel):
    kpi_config_id: str
    week_number: int = Field(..., ge=1, le=6)
    month: int = Field(..., ge=1, le=12)
    year: int
    achieved_value: float = Field(..., ge=0)


class PeriodRequest(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int


class RejectAllRequest(PeriodRequest):
    feedback: str = Field(..., min_length=1)


class ReviewRequest(BaseModel):
    status: KpiStatus
    feedback: Optional[str] = None


# ─── Helpers ────────────────────────────────────────────────────────────────

def _period(month: Optional[int], year: Optional[int]) -> tuple[int, int]:
    now = datetime.now()
    return month or now.month, year or now.year


def _config_out(conf) -> dict:
    return {
        "id": conf.id,
        "employee_id": conf.employee_id,
        "kpi_name": conf.kpi_name,
        "target_value": float(conf.target_value or 0),
        "unit_value": float(conf.unit_value) if conf.unit_value is not None else None,
        "applicable_month": conf.applicable_month,
        "applicable_year": conf.applicable_year,
        "status": conf.status,
        "manager_feedback": conf.manager_feedback,
    }


# ─── Routes ─────────────────────────────────────────────────────────────────

@router.get("/{employee_id}/progress")
async def get_progress(
    employee_id: str,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None),
    user: CurrentUser = Depends(get_current_user),
    kpi: KPIService = Depends(get_kpi_service),
):
    month, year = _period(month, year)
    progress = await kpi.get_current_progress(employee_id, month, year)
    return {"employee_id": employee_id, "month": month, "year": year, "progress": progress}


@router.get("/{employee_id}/chart")
async def get_chart(
    employee_id: str,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None),
    user: CurrentUser = Depends(get_current_user),
    kpi: KPIService = Depends(get_kpi_service),
):
    month, year = _period(month, year)
    return await kpi.get_chart_data(employee_id, month, year)


@router.post("/{employee_id}/configs", status_code=201)
async def create_config(
    employee_id: str,
    req: KPIConfigCreate,
    user: CurrentUser = Depends(get_current_user),
    kpi: KPIService = Depends(get_kpi_service),
):
    conf = await kpi.add_kpi_config(employee_id, **req.model_dump())
    return _config_out(conf)


@router.post("/records", status_code=201)
async def create_record(
    req: KPIRecordCreate,
    user: CurrentUser = Depends(get_current_user),
    kpi: KPIService = Depends(get_kpi_service),
):
    rec = await kpi.add_kpi_record(**req.model_dump())
    return {"id": rec.id, "kpi_config_id": rec.kpi_config_id, "achieved_value": float(rec.achieved_value)}


@router.post("/{employee_id}/submit")
async def submit_plan(
    employee_id: str,
    req: PeriodRequest,
    user: CurrentUser = Depends(get_current_user),
    kpi: KPIService = Depends(get_kpi_service),
):
    moved = await kpi.submit_kpi_plan(employee_id, req.month, req.year)
    return {"updated": moved}


@router.patch("/configs/{config_id}/review")
async def review_config(
    config_id: str,
    req: ReviewRequest,
    user: CurrentUser = Depends(require_manager),
    kpi: KPIService = Depends(get_kpi_service),
):
    conf = await kpi.review_kpi(config_id, req.status, req.feedback)
    return _config_out(conf)


@router.post("/{employee_id}/approve-all")
async def approve_all(
    employee_id: str,
    req: PeriodRequest,
    user: CurrentUser = Depends(require_manager),
    kpi: KPIService = Depends(get_kpi_service),
):
    moved = await kpi.approve_all_kpis(employee_id, req.month, req.year)
    return {"updated": moved}


@router.post("/{employee_id}/reject-all")
async def reject_all(
    employee_id: str,
    req: RejectAllRequest,
    user: CurrentUser = Depends(require_manager),
    kpi: KPIService = Depends(get_kpi_service),
):
    moved = await kpi.reject_all_kpis(employee_id, req.month, req.year, req.feedback)
    return {"updated": moved}
