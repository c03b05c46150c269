"""
leave_engine.py — Leave requests, approval side effects and attendance

Approval of a Pending request, by leave type:
  - Absence / Exceptional : base_salary / 30 × days, rounded to 2 decimals,
                            added to that month's manual deduction
                            (additive, with a generated note)
  - Permission            : no balance or money effect
  - any other type        : leave_balance -= days (may go negative)
Non-Permission approvals also mark the start date as Leave in attendance.

Status change, balance/deduction and attendance are written in one unit of
work: a failure in any step rolls all of them back.
"""

import calendar
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional

from app.config import (
    DAYS_PER_SALARY_MONTH,
    DEFAULT_ANNUAL_LEAVE_BALANCE,
    LEAVE_DEDUCTION_LABELS,
    LEAVES_LOCKED_KEY,
    MAX_PERMISSION_HOURS,
)
from app.services.errors import InvalidStateError, NotFoundError
from app.services.financials_ledger import FinancialsLedger

logger = logging.getLogger("hr-api.leave")


class LeaveType(str, Enum):
    CASUAL = "Casual"
    SICK_SHORT = "SickShort"
    SICK_LONG = "SickLong"
    ANNUAL = "Annual"
    EXCEPTIONAL = "Exceptional"
    ABSENCE = "Absence"
    PERMISSION = "Permission"


class LeaveStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    ABSENT = "Absent"
    WFH = "WFH"
    LEAVE = "Leave"
    PERMISSION = "Permission"


DEDUCTIBLE_LEAVE_TYPES = frozenset({LeaveType.ABSENCE, LeaveType.EXCEPTIONAL})


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


def inclusive_day_span(start: date, end: date) -> int:
    return abs((end - start).days) + 1


def leave_deduction_amount(base_salary: float, days: float) -> float:
    daily_rate = float(base_salary or 0) / DAYS_PER_SALARY_MONTH
    return round(daily_rate * float(days or 0), 2)


def leave_deduction_note(leave_type: LeaveType, days: float, start: date) -> str:
    label = LEAVE_DEDUCTION_LABELS[leave_type.value]
    return f"خصم {float(days):g} يوم ({label}) - {start.isoformat()}"


class LeaveEngine:
    def __init__(self, repository, ledger: Optional[FinancialsLedger] = None):
        self.repository = repository
        self.ledger = ledger or FinancialsLedger(repository)

    # ── Lock flag ─────────────────────────────────────────────────────────────

    async def is_leaves_locked(self) -> bool:
        return (await self.repository.get_site_config(LEAVES_LOCKED_KEY)) == "true"

    async def set_leaves_locked(self, locked: bool) -> None:
        await self.repository.set_site_config(LEAVES_LOCKED_KEY, "true" if locked else "false")
        logger.info(f"Leave requests {'locked' if locked else 'unlocked'}")

    # ── Requests ──────────────────────────────────────────────────────────────

    async def create_leave_request(
        self,
        employee_id: str,
        leave_type: str,
        start_date: Any,
        reason: str,
        end_date: Any = None,
        hours_count: float = 0,
        attachment_url: Optional[str] = None,
        can_work_remotely: bool = False,
    ):
        kind = LeaveType(leave_type)
        if not reason or not reason.strip():
            raise ValueError("A reason is required")
        if not await self.repository.get_employee(employee_id):
            raise NotFoundError("Employee", employee_id)
        if await self.is_leaves_locked() and kind is not LeaveType.EXCEPTIONAL:
            raise InvalidStateError("Leave requests are locked; only Exceptional requests are accepted")

        start = _as_date(start_date)
        if kind is LeaveType.PERMISSION:
            if not 0 < float(hours_count or 0) <= MAX_PERMISSION_HOURS:
                raise ValueError(f"Permission must be between 0 and {MAX_PERMISSION_HOURS:g} hours")
            end, days = start, 0
        else:
            if end_date is None:
                raise ValueError("end_date is required")
            end = _as_date(end_date)
            days = inclusive_day_span(start, end)
            hours_count = 0

        request = await self.repository.add_leave_request(
            employee_id=employee_id,
            leave_type=kind.value,
            start_date=start,
            end_date=end,
            days_count=days,
            hours_count=hours_count,
            reason=reason,
            attachment_url=attachment_url,
            can_work_remotely=can_work_remotely,
            status=LeaveStatus.PENDING.value,
        )
        logger.info(f"Leave request {request.id} created ({kind.value}, {days} day(s)) for {employee_id}")
        return request

    async def list_leave_requests(self, employee_id: str) -> List:
        return await self.repository.list_leave_requests(employee_id)

    async def list_pending_leave_requests(self) -> List:
        return await self.repository.list_pending_leave_requests()

    async def _load_pending(self, request_id: str):
        request = await self.repository.get_leave_request(request_id)
        if request is None:
            raise NotFoundError("LeaveRequest", request_id)
        if request.status != LeaveStatus.PENDING.value:
            raise InvalidStateError(f"Leave request {request_id} is {request.status}, not Pending")
        return request

    async def approve_leave_request(self, request_id: str, manager_comment: str = ""):
        async with self.repository.unit_of_work():
            request = await self._load_pending(request_id)
            employee = await self.repository.get_employee(request.employee_id)
            if employee is None:
                raise NotFoundError("Employee", request.employee_id)

            kind = LeaveType(request.leave_type)
            days = float(request.days_count or 0)
            start = _as_date(request.start_date)

            if kind in DEDUCTIBLE_LEAVE_TYPES:
                await self.ledger.add_or_update_manual_deduction(
                    employee.id,
                    start.month,
                    start.year,
                    leave_deduction_amount(employee.base_salary, days),
                    is_additive=True,
                    note=leave_deduction_note(kind, days, start),
                )
            elif kind is not LeaveType.PERMISSION:
                employee.leave_balance = int((employee.leave_balance or 0) - days)

            request.status = LeaveStatus.APPROVED.value
            request.manager_comment = manager_comment
            await self.repository.flush()

            if kind is not LeaveType.PERMISSION:
                await self.repository.upsert_attendance(employee.id, start, AttendanceStatus.LEAVE.value)

        logger.info(f"Leave request {request_id} approved ({kind.value}, {days:g} day(s))")
        return request

    async def reject_leave_request(self, request_id: str, manager_comment: str = ""):
        request = await self._load_pending(request_id)
        request.status = LeaveStatus.REJECTED.value
        request.manager_comment = manager_comment
        await self.repository.flush()
        logger.info(f"Leave request {request_id} rejected")
        return request

    # ── Resets ────────────────────────────────────────────────────────────────

    async def delete_monthly_leave_requests(self, employee_id: str, month: int, year: int) -> int:
        """Drop requests starting in the month and clear that month's manual deduction."""
        last_day = calendar.monthrange(year, month)[1]
        async with self.repository.unit_of_work():
            removed = await self.repository.delete_leave_requests_between(
                employee_id, date(year, month, 1), date(year, month, last_day)
            )
            await self.ledger.delete_manual_deduction(employee_id, month, year)
        logger.info(f"Removed {removed} leave request(s) for {employee_id} {year}-{month:02d}")
        return removed

    async def reset_annual_leave_balance(
        self, employee_id: str, default_balance: int = DEFAULT_ANNUAL_LEAVE_BALANCE
    ):
        employee = await self.repository.get_employee(employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        employee.leave_balance = default_balance
        await self.repository.flush()
        return employee
