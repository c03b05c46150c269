"""Leave routes — request submission, manager approval, lock toggle and resets."""
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field
from app.api.deps import CurrentUser, get_current_user, require_manager, get_leave_engine
from app.config import DEFAULT_ANNUAL_LEAVE_BALANCE
from app.services.leave_engine import LeaveEngine, LeaveType

router = APIRouter(prefix="/api/v1/leaves", tags=["Leaves"])
logger = logging.getLogger("hr-api")


# ─── Pydantic schemas ────────────────────────────────────────────────────────

class LeaveRequestCreate(BaseModel):
    employee_id: str
    leave_type: LeaveType
    start_date: date
    end_date: Optional[date] = None
    hours_count: float = Field(0, ge=0)
    reason: str = Field(..., min_length=1)
    attachment_url: Optional[str] = None
    can_work_remotely: bool = False


class ManagerDecision(BaseModel):
    manager_comment: str = ""


class LockRequest(BaseModel):
    locked: bool


class BalanceReset(BaseModel):
    balance: int = Field(DEFAULT_ANNUAL_LEAVE_BALANCE, ge=0)


def _leave_out(req) -> dict:
    return {
        "id": req.id,
        "employee_id": req.employee_id,
        "leave_type": req.leave_type,
        "start_date": str(req.start_date),
        "end_date": str(req.end_date) if req.end_date else None,
        "days_count": float(req.days_count or 0),
        "hours_count": float(req.hours_count or 0),
        "reason": req.reason,
        "status": req.status,
        "manager_comment": req.manager_comment,
    }


# ─── Routes ─────────────────────────────────────────────────────────────────

@router.post("", status_code=201)
async def create_leave_request(
    req: LeaveRequestCreate,
    user: CurrentUser = Depends(get_current_user),
    leaves: LeaveEngine = Depends(get_leave_engine),
):
    created = await leaves.create_leave_request(**req.model_dump())
    return _leave_out(created)


@router.get("/pending")
async def list_pending(
    user: CurrentUser = Depends(require_manager),
    leaves: LeaveEngine = Depends(get_leave_engine),
):
    return [_leave_out(r) for r in await leaves.list_pending_leave_requests()]


@router.get("/lock")
async def get_lock(
    user: CurrentUser = Depends(get_current_user),
    leaves: LeaveEngine = Depends(get_leave_engine),
):
    return {"locked": await leaves.is_leaves_locked()}


@router.put("/lock")
async def set_lock(
    req: LockRequest,
    user: CurrentUser = Depends(require_manager),
    leaves: LeaveEngine = Depends(get_leave_engine),
):
    await leaves.set_leaves_locked(req.locked)
    return {"locked": req.locked}


@router.get("/employee/{employee_id}")
async def list_employee_requests(
    employee_id: str,
    user: CurrentUser = Depends(get_current_user),
    leaves: LeaveEngine = Depends(get_leave_engine),
):
    return [_leave_out(r) for r in await leaves.list_leave_requests(employee_id)]


@router.post("/{request_id}/approve")
async def approve_request(
    request_id: str,
    req: ManagerDecision,
    user: CurrentUser = Depends(require_manager),
    leaves: LeaveEngine = Depends(get_leave_engine),
):
    approved = await leaves.approve_leave_request(request_id, req.manager_comment)
    return _leave_out(approved)


@router.post("/{request_id}/reject")
async def reject_request(
    request_id: str,
    req: ManagerDecision,
    user: CurrentUser = Depends(require_manager),
    leaves: LeaveEngine = Depends(get_leave_engine),
):
    rejected = await leaves.reject_leave_request(request_id, req.manager_comment)
    return _leave_out(rejected)


@router.delete("/employee/{employee_id}/{year}/{month}")
async def delete_monthly_requests(
    employee_id: str,
    year: int,
    month: int = Path(..., ge=1, le=12),
    user: CurrentUser = Depends(require_manager),
    leaves: LeaveEngine = Depends(get_leave_engine),
):
    removed = await leaves.delete_monthly_leave_requests(employee_id, month, year)
    return {"deleted": removed}


@router.post("/employee/{employee_id}/reset-balance")
async def reset_balance(
    employee_id: str,
    req: BalanceReset,
    user: CurrentUser = Depends(require_manager),
    leaves: LeaveEngine = Depends(get_leave_engine),
):
    employee = await leaves.reset_annual_leave_balance(employee_id, req.balance)
    return {"employee_id": employee.id, "leave_balance": employee.leave_balance}
