"""
Monthly financials ledger — manual deductions, other commissions, manager
feedback / performance fields, and the problem-solving bonus total.

Every write upserts the Financials row keyed by (employee, month, year).
Additive deduction updates are read-then-write; two concurrent approvals for
the same employee/month can lose an increment.
"""
import logging
from typing import Iterable, List, Optional, Tuple

from app.config import DEDUCTION_NOTE_SEPARATOR

logger = logging.getLogger("hr-api.financials")


def merge_manual_deduction(
    existing_amount: Optional[float],
    existing_note: Optional[str],
    amount: float,
    note: Optional[str],
    is_additive: bool,
) -> Tuple[float, str]:
    """
    Combine a new deduction with the stored one.

    Additive: amounts add up and non-blank notes are joined with " | ".
    Otherwise the new amount and note replace the stored ones.
    Pass existing_amount=None when no Financials row exists yet.
    """
    if existing_amount is None or not is_additive:
        return float(amount), note or ""
    total = float(existing_amount or 0) + float(amount)
    parts = [p for p in (existing_note, note) if p and p.strip()]
    return total, DEDUCTION_NOTE_SEPARATOR.join(parts)


def sum_solved_bonus(amounts: Iterable[float]) -> float:
    return sum(float(a or 0) for a in amounts)


class FinancialsLedger:
    def __init__(self, repository):
        self.repository = repository

    async def _get_or_create(self, employee_id: str, month: int, year: int):
        row = await self.repository.get_financials(employee_id, month, year)
        if row is None:
            row = await self.repository.create_financials(employee_id, month, year)
        return row

    async def get_financials(self, employee_id: str, month: int, year: int):
        return await self.repository.get_financials(employee_id, month, year)

    # ── Deductions ────────────────────────────────────────────────────────────

    async def add_or_update_manual_deduction(
        self,
        employee_id: str,
        month: int,
        year: int,
        amount: float,
        is_additive: bool = False,
        note: Optional[str] = None,
    ):
        row = await self.repository.get_financials(employee_id, month, year)
        total, merged_note = merge_manual_deduction(
            row.manual_deduction if row is not None else None,
            row.manual_deduction_note if row is not None else None,
            amount,
            note,
            is_additive,
        )
        if row is None:
            row = await self.repository.create_financials(employee_id, month, year)
        row.manual_deduction = total
        # A blank note never wipes the stored one
        if merged_note:
            row.manual_deduction_note = merged_note
        await self.repository.flush()
        logger.info(
            f"Manual deduction for {employee_id} {year}-{month:02d}: {total:.2f}"
            f" ({'additive' if is_additive else 'overwrite'})"
        )
        return row

    async def delete_manual_deduction(self, employee_id: str, month: int, year: int) -> None:
        row = await self.repository.get_financials(employee_id, month, year)
        if row is None:
            return
        row.manual_deduction = 0
        row.manual_deduction_note = None
        await self.repository.flush()

    async def reset_monthly_financials(self, employee_id: str, month: int, year: int) -> None:
        """Zero the computed fields for the period and drop its commission logs."""
        row = await self.repository.get_financials(employee_id, month, year)
        if row is not None:
            row.manual_deduction = 0
            row.manual_deduction_note = None
            row.calculated_incentive = 0
            row.sales_commission_payout = 0
            row.other_commission_payout = 0
            row.final_payout = 0
            row.manager_feedback = None
        removed = await self.repository.delete_other_commission_logs(employee_id, month, year)
        await self.repository.flush()
        logger.info(
            f"Financials reset for {employee_id} {year}-{month:02d} ({removed} commission log(s) removed)"
        )

    # ── Feedback / performance ────────────────────────────────────────────────

    async def update_manager_feedback(self, employee_id: str, month: int, year: int, feedback: str):
        row = await self._get_or_create(employee_id, month, year)
        row.manager_feedback = feedback
        await self.repository.flush()
        return row

    async def update_performance_metrics(
        self,
        employee_id: str,
        month: int,
        year: int,
        commitment_score: Optional[float] = None,
        is_needs_improvement: Optional[bool] = None,
        improvement_note: Optional[str] = None,
    ):
        row = await self._get_or_create(employee_id, month, year)
        if commitment_score is not None:
            row.commitment_score = commitment_score
        if is_needs_improvement is not None:
            row.is_needs_improvement = is_needs_improvement
        if improvement_note is not None:
            row.improvement_note = improvement_note
        await self.repository.flush()
        return row

    # ── Other commissions ─────────────────────────────────────────────────────

    async def add_other_commission_log(
        self, employee_id: str, month: int, year: int, amount: float, description: str = ""
    ):
        return await self.repository.add_other_commission_log(
            employee_id=employee_id, month=month, year=year,
            amount=amount, description=description,
        )

    async def list_other_commission_logs(self, employee_id: str, month: int, year: int) -> List:
        return await self.repository.get_other_commission_logs(employee_id, month, year)

    async def other_commission_total(self, employee_id: str, month: int, year: int) -> float:
        logs = await self.repository.get_other_commission_logs(employee_id, month, year)
        return sum(float(log.amount or 0) for log in logs)

    # ── Problem-solving bonus ─────────────────────────────────────────────────

    async def problem_solving_bonus_total(self, employee_id: str, month: int, year: int) -> float:
        # month/year are not applied: every solved problem counts in every period
        amounts = await self.repository.get_solved_problem_bonus_amounts(employee_id)
        return sum_solved_bonus(amounts)
