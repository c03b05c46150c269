"""
HR data access over an injected AsyncSession.

One instance per request (see app.api.deps.get_repository). Write helpers only
flush; the request-scoped session commits in app.db.get_db, and multi-table
workflows wrap themselves in unit_of_work() so they commit or roll back as one.
"""
import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Optional

from sqlalchemy import select, delete, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.orm_models import (
    Employee, KPIConfig, KPIRecord, ProblemLog, BehaviorLog, Task,
    Financials, OtherCommissionLog, LeaveRequest, AttendanceLog, SiteConfig,
)

logger = logging.getLogger("hr-db.repository")


class HRRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Unit of work ──────────────────────────────────────────────────────────

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator["HRRepository"]:
        """Commit everything written inside the block, or roll all of it back."""
        try:
            yield self
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            logger.warning("unit of work rolled back")
            raise

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator["HRRepository"]:
        """
        SAVEPOINT around the block. A statement failing inside rolls back to
        it, so the outer transaction stays usable for the reads that follow.
        """
        async with self.session.begin_nested():
            yield self

    async def flush(self) -> None:
        await self.session.flush()

    async def _add(self, obj):
        self.session.add(obj)
        await self.session.flush()
        return obj

    # ── Employees ─────────────────────────────────────────────────────────────

    async def get_employee(self, employee_id: str) -> Optional[Employee]:
        return await self.session.get(Employee, employee_id)

    async def list_employees(self) -> list[Employee]:
        result = await self.session.execute(select(Employee).order_by(Employee.name))
        return list(result.scalars().all())

    # ── KPI ───────────────────────────────────────────────────────────────────

    async def get_kpi_configs(
        self, employee_id: str, month: Optional[int] = None, year: Optional[int] = None
    ) -> list[KPIConfig]:
        stmt = select(KPIConfig).where(KPIConfig.employee_id == employee_id)
        if month and year:
            stmt = stmt.where(
                or_(
                    and_(KPIConfig.applicable_month == month, KPIConfig.applicable_year == year),
                    KPIConfig.applicable_month.is_(None),
                )
            )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_kpi_config(self, config_id: str) -> Optional[KPIConfig]:
        return await self.session.get(KPIConfig, config_id)

    async def get_period_kpi_configs(self, employee_id: str, month: int, year: int) -> list[KPIConfig]:
        """Configs scoped exactly to the period (evergreen ones excluded)."""
        result = await self.session.execute(
            select(KPIConfig).where(
                KPIConfig.employee_id == employee_id,
                KPIConfig.applicable_month == month,
                KPIConfig.applicable_year == year,
            )
        )
        return list(result.scalars().all())

    async def add_kpi_config(self, **fields) -> KPIConfig:
        return await self._add(KPIConfig(**fields))

    async def get_kpi_records(
        self, employee_id: str, month: Optional[int] = None, year: Optional[int] = None
    ) -> list[KPIRecord]:
        stmt = select(KPIRecord).where(KPIRecord.employee_id == employee_id)
        if month and year:
            stmt = stmt.where(KPIRecord.month == month, KPIRecord.year == year)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def add_kpi_record(self, **fields) -> KPIRecord:
        return await self._add(KPIRecord(**fields))

    # ── Problems / behaviour / tasks ──────────────────────────────────────────

    async def get_problem_logs(self, employee_id: str) -> list[ProblemLog]:
        result = await self.session.execute(
            select(ProblemLog).where(ProblemLog.employee_id == employee_id)
        )
        return list(result.scalars().all())

    async def get_solved_problem_bonus_amounts(self, employee_id: str) -> list[float]:
        result = await self.session.execute(
            select(ProblemLog.potential_bonus_amount).where(
                ProblemLog.employee_id == employee_id,
                ProblemLog.solution_status == "Solved",
            )
        )
        return [float(v or 0) for v in result.scalars().all()]

    async def get_behavior_logs(self, employee_id: str, limit: Optional[int] = None) -> list[BehaviorLog]:
        """Most recent first."""
        stmt = (
            select(BehaviorLog)
            .where(BehaviorLog.employee_id == employee_id)
            .order_by(BehaviorLog.year.desc(), BehaviorLog.month.desc(), BehaviorLog.week_number.desc())
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_done_tasks(self, employee_id: str) -> list[Task]:
        result = await self.session.execute(
            select(Task).where(Task.assigned_to == employee_id, Task.status == "Done")
        )
        return list(result.scalars().all())

    # ── Financials ────────────────────────────────────────────────────────────

    async def get_financials(self, employee_id: str, month: int, year: int) -> Optional[Financials]:
        result = await self.session.execute(
            select(Financials).where(
                Financials.employee_id == employee_id,
                Financials.month == month,
                Financials.year == year,
            )
        )
        return result.scalar_one_or_none()

    async def create_financials(self, employee_id: str, month: int, year: int) -> Financials:
        return await self._add(
            Financials(
                employee_id=employee_id, month=month, year=year,
                manual_deduction=0, calculated_incentive=0, problem_solving_bonus=0,
                sales_commission_payout=0, other_commission_payout=0, final_payout=0,
                is_needs_improvement=False,
            )
        )

    async def get_other_commission_logs(self, employee_id: str, month: int, year: int) -> list[OtherCommissionLog]:
        result = await self.session.execute(
            select(OtherCommissionLog).where(
                OtherCommissionLog.employee_id == employee_id,
                OtherCommissionLog.month == month,
                OtherCommissionLog.year == year,
            )
        )
        return list(result.scalars().all())

    async def add_other_commission_log(self, **fields) -> OtherCommissionLog:
        return await self._add(OtherCommissionLog(**fields))

    async def delete_other_commission_logs(self, employee_id: str, month: int, year: int) -> int:
        result = await self.session.execute(
            delete(OtherCommissionLog).where(
                OtherCommissionLog.employee_id == employee_id,
                OtherCommissionLog.month == month,
                OtherCommissionLog.year == year,
            )
        )
        return result.rowcount or 0

    # ── Leave / attendance ────────────────────────────────────────────────────

    async def get_leave_request(self, request_id: str) -> Optional[LeaveRequest]:
        return await self.session.get(LeaveRequest, request_id)

    async def list_leave_requests(self, employee_id: str) -> list[LeaveRequest]:
        result = await self.session.execute(
            select(LeaveRequest)
            .where(LeaveRequest.employee_id == employee_id)
            .order_by(LeaveRequest.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_pending_leave_requests(self) -> list[LeaveRequest]:
        result = await self.session.execute(
            select(LeaveRequest)
            .where(LeaveRequest.status == "Pending")
            .order_by(LeaveRequest.created_at.desc())
        )
        return list(result.scalars().all())

    async def add_leave_request(self, **fields) -> LeaveRequest:
        return await self._add(LeaveRequest(**fields))

    async def delete_leave_requests_between(self, employee_id: str, start: date, end: date) -> int:
        result = await self.session.execute(
            delete(LeaveRequest).where(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.start_date >= start,
                LeaveRequest.start_date <= end,
            )
        )
        return result.rowcount or 0

    async def upsert_attendance(self, employee_id: str, day: date, status: str) -> AttendanceLog:
        result = await self.session.execute(
            select(AttendanceLog).where(
                AttendanceLog.employee_id == employee_id,
                AttendanceLog.log_date == day,
            )
        )
        row = result.scalar_one_or_none()
        if row:
            row.status = status
            await self.session.flush()
            return row
        return await self._add(AttendanceLog(employee_id=employee_id, log_date=day, status=status))

    # ── Site config ───────────────────────────────────────────────────────────

    async def get_site_config(self, key: str) -> Optional[str]:
        row = await self.session.get(SiteConfig, key)
        return row.value if row else None

    async def set_site_config(self, key: str, value: str) -> None:
        row = await self.session.get(SiteConfig, key)
        if row:
            row.value = value
            await self.session.flush()
        else:
            await self._add(SiteConfig(key=key, value=value))
