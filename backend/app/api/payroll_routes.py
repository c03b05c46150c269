"""
Payroll routes — per-employee monthly payout breakdown.

The breakdown is computed on every request from current data; nothing is
cached or persisted here.
"""
import logging
from fastapi import APIRouter, Depends, Query
from app.api.deps import CurrentUser, get_current_user, get_payroll_engine
from app.services.payroll_engine import PayrollEngine

router = APIRouter(prefix="/api/v1/payroll", tags=["Payroll"])
logger = logging.getLogger("hr-api")


@router.get("/{employee_id}")
async def get_payroll_breakdown(
    employee_id: str,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    user: CurrentUser = Depends(get_current_user),
    engine: PayrollEngine = Depends(get_payroll_engine),
):
    breakdown = await engine.calculate_payroll(employee_id, month, year)
    return {
        "employee_id": employee_id,
        "month": month,
        "year": year,
        **breakdown.to_dict(),
    }
