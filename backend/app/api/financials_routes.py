"""
Financials routes — the monthly ledger row per employee.

Manual deductions, manager feedback, performance flags and other-commission
entries all live under /api/v1/financials/{employee_id}/{year}/{month}.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field
from app.api.deps import CurrentUser, get_current_user, require_manager, get_ledger
from app.services.financials_ledger import FinancialsLedger

router = APIRouter(prefix="/api/v1/financials", tags=["Financials"])
logger = logging.getLogger("hr-api")

PERIOD = "/{employee_id}/{year}/{month}"


# ─── Pydantic schemas ────────────────────────────────────────────────────────

class ManualDeductionRequest(BaseModel):
    amount: float = Field(..., ge=0)
    is_additive: bool = False
    note: Optional[str] = None


class FeedbackRequest(BaseModel):
    feedback: str


class PerformanceRequest(BaseModel):
    commitment_score: Optional[float] = Field(None, ge=0, le=100)
    is_needs_improvement: Optional[bool] = None
    improvement_note: Optional[str] = None


class CommissionRequest(BaseModel):
    amount: float
    description: str = ""


def _row_out(employee_id: str, month: int, year: int, row) -> dict:
    if row is None:
        return {
            "employee_id": employee_id, "month": month, "year": year,
            "manual_deduction": 0.0, "manual_deduction_note": None,
            "manager_feedback": None, "commitment_score": 0.0,
            "is_needs_improvement": False, "improvement_note": None,
        }
    return {
        "employee_id": employee_id,
        "month": month,
        "year": year,
        "manual_deduction": float(row.manual_deduction or 0),
        "manual_deduction_note": row.manual_deduction_note,
        "manager_feedback": row.manager_feedback,
        "commitment_score": float(row.commitment_score or 0),
        "is_needs_improvement": bool(row.is_needs_improvement),
        "improvement_note": row.improvement_note,
    }


# ─── Routes ─────────────────────────────────────────────────────────────────

@router.get(PERIOD)
async def get_financials(
    employee_id: str,
    year: int,
    month: int = Path(..., ge=1, le=12),
    user: CurrentUser = Depends(get_current_user),
    ledger: FinancialsLedger = Depends(get_ledger),
):
    row = await ledger.get_financials(employee_id, month, year)
    return _row_out(employee_id, month, year, row)


@router.post(PERIOD + "/deduction")
async def add_manual_deduction(
    employee_id: str,
    year: int,
    req: ManualDeductionRequest,
    month: int = Path(..., ge=1, le=12),
    user: CurrentUser = Depends(require_manager),
    ledger: FinancialsLedger = Depends(get_ledger),
):
    row = await ledger.add_or_update_manual_deduction(
        employee_id, month, year, req.amount, is_additive=req.is_additive, note=req.note
    )
    return _row_out(employee_id, month, year, row)


@router.delete(PERIOD + "/deduction")
async def delete_manual_deduction(
    employee_id: str,
    year: int,
    month: int = Path(..., ge=1, le=12),
    user: CurrentUser = Depends(require_manager),
    ledger: FinancialsLedger = Depends(get_ledger),
):
    await ledger.delete_manual_deduction(employee_id, month, year)
    return {"status": "deleted"}


@router.put(PERIOD + "/feedback")
async def update_feedback(
    employee_id: str,
    year: int,
    req: FeedbackRequest,
    month: int = Path(..., ge=1, le=12),
    user: CurrentUser = Depends(require_manager),
    ledger: FinancialsLedger = Depends(get_ledger),
):
    row = await ledger.update_manager_feedback(employee_id, month, year, req.feedback)
    return _row_out(employee_id, month, year, row)


@router.put(PERIOD + "/performance")
async def update_performance(
    employee_id: str,
    year: int,
    req: PerformanceRequest,
    month: int = Path(..., ge=1, le=12),
    user: CurrentUser = Depends(require_manager),
    ledger: FinancialsLedger = Depends(get_ledger),
):
    row = await ledger.update_performance_metrics(employee_id, month, year, **req.model_dump())
    return _row_out(employee_id, month, year, row)


@router.get(PERIOD + "/commissions")
async def list_commissions(
    employee_id: str,
    year: int,
    month: int = Path(..., ge=1, le=12),
    user: CurrentUser = Depends(get_current_user),
    ledger: FinancialsLedger = Depends(get_ledger),
):
    logs = await ledger.list_other_commission_logs(employee_id, month, year)
    return {
        "total": sum(float(log.amount or 0) for log in logs),
        "logs": [
            {"id": log.id, "amount": float(log.amount or 0), "description": log.description}
            for log in logs
        ],
    }


@router.post(PERIOD + "/commissions", status_code=201)
async def add_commission(
    employee_id: str,
    year: int,
    req: CommissionRequest,
    month: int = Path(..., ge=1, le=12),
    user: CurrentUser = Depends(require_manager),
    ledger: FinancialsLedger = Depends(get_ledger),
):
    log = await ledger.add_other_commission_log(employee_id, month, year, req.amount, req.description)
    return {"id": log.id, "amount": float(log.amount or 0), "description": log.description}


@router.post(PERIOD + "/reset")
async def reset_financials(
    employee_id: str,
    year: int,
    month: int = Path(..., ge=1, le=12),
    user: CurrentUser = Depends(require_manager),
    ledger: FinancialsLedger = Depends(get_ledger),
):
    await ledger.reset_monthly_financials(employee_id, month, year)
    return {"status": "reset"}
