"""
payroll_engine.py — Monthly payroll / incentive calculation

    final_payout = base_salary + kpi_incentive + problem_bonus
                   + other_commission - manual_deduction

KPI incentive is gated: the capped average progress over Approved configs must
reach INCENTIVE_THRESHOLD_PCT (inclusive). Below it the incentive is 0; at or
above it the incentive is Σ achieved × unit_value, uncapped.

Only a missing employee aborts the calculation. Every other component that
fails to load is logged and counted as zero so the dashboard still gets an
estimate. The breakdown carries no flag for such degraded components.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Any, Coroutine, Dict, Optional, TypeVar

from app.config import INCENTIVE_THRESHOLD_PCT
from app.services.errors import NotFoundError
from app.services.financials_ledger import FinancialsLedger
from app.services.kpi_engine import KPIEngine

logger = logging.getLogger("hr-api.payroll")

T = TypeVar("T")


@dataclass
class PayrollBreakdown:
    base_salary: float
    kpi_incentive: float
    problem_bonus: float
    sales_commission: float
    other_commission: float
    manual_deduction: float
    final_payout: float
    kpi_score_percentage: float
    total_sales_revenue: float = 0.0
    manual_deduction_note: Optional[str] = None
    manager_feedback: Optional[str] = None
    commitment_score: float = 0.0
    is_needs_improvement: bool = False
    improvement_note: str = ""
    recommendations: Optional[str] = None
    report_notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compute_final_payout(
    base_salary: float,
    kpi_incentive: float,
    problem_bonus: float,
    other_commission: float,
    manual_deduction: float,
) -> float:
    return base_salary + kpi_incentive + problem_bonus + other_commission - manual_deduction


class PayrollEngine:
    def __init__(
        self,
        repository,
        kpi_engine: Optional[KPIEngine] = None,
        ledger: Optional[FinancialsLedger] = None,
    ):
        self.repository = repository
        self.kpi = kpi_engine or KPIEngine()
        self.ledger = ledger or FinancialsLedger(repository)

    async def _tolerant(
        self, component: str, employee_id: str, pending: Coroutine[Any, Any, T], default: T
    ) -> T:
        try:
            async with self.repository.savepoint():
                return await pending
        except Exception as e:
            pending.close()
            logger.warning(
                f"Payroll component '{component}' unavailable for {employee_id}, counting as zero: {e}"
            )
            return default

    def kpi_incentive(self, score: float, configs, records) -> float:
        if score >= INCENTIVE_THRESHOLD_PCT:
            return self.kpi.incentive_total(configs, records)
        return 0.0

    async def calculate_payroll(self, employee_id: str, month: int, year: int) -> PayrollBreakdown:
        employee = await self.repository.get_employee(employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)

        # Reads are sequential: one session cannot run concurrent queries
        all_configs = await self._tolerant(
            "kpi_configs", employee_id, self.repository.get_kpi_configs(employee_id), []
        )
        configs = self.kpi.applicable_configs(all_configs, month, year, approved_only=True)
        records = await self._tolerant(
            "kpi_records", employee_id, self.repository.get_kpi_records(employee_id, month, year), []
        )

        score = self.kpi.progress_score(configs, records)
        incentive = self.kpi_incentive(score, configs, records)

        bonus = await self._tolerant(
            "problem_bonus", employee_id,
            self.ledger.problem_solving_bonus_total(employee_id, month, year), 0.0,
        )
        fin = await self._tolerant(
            "financials", employee_id, self.repository.get_financials(employee_id, month, year), None
        )
        other_commission = await self._tolerant(
            "other_commission", employee_id,
            self.ledger.other_commission_total(employee_id, month, year), 0.0,
        )

        base_salary = float(employee.base_salary or 0)
        deduction = float(fin.manual_deduction or 0) if fin is not None else 0.0
        final = compute_final_payout(base_salary, incentive, bonus, other_commission, deduction)

        logger.info(
            "payroll calculated",
            extra={
                "employee_id": employee_id,
                "period": f"{year}-{month:02d}",
                "kpi_score": round(score, 2),
                "final_payout": round(final, 2),
            },
        )

        return PayrollBreakdown(
            base_salary=base_salary,
            kpi_incentive=incentive,
            problem_bonus=bonus,
            # Not computed yet despite the employee commission fields
            sales_commission=0.0,
            other_commission=other_commission,
            manual_deduction=deduction,
            manual_deduction_note=fin.manual_deduction_note if fin is not None else None,
            final_payout=final,
            kpi_score_percentage=score,
            total_sales_revenue=0.0,
            manager_feedback=fin.manager_feedback if fin is not None else None,
            commitment_score=float(fin.commitment_score or 0) if fin is not None else 0.0,
            is_needs_improvement=bool(fin.is_needs_improvement) if fin is not None else False,
            improvement_note=(fin.improvement_note or "") if fin is not None else "",
            recommendations=fin.recommendations if fin is not None else None,
            report_notes=fin.report_notes if fin is not None else None,
        )
