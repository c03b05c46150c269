"""
kpi_engine.py — KPI status workflow and progress aggregation

Covers:
  - KPI config status state machine (the only place that decides which
    transitions are legal and which statuses pay out)
  - Period scoping: month/year match or evergreen (no month set)
  - Per-KPI capped completion ratio and unweighted average progress score
  - Raw incentive total (achieved × unit value, uncapped)
  - Weekly progress chart points
  - KPIService: async plan submission / review / bulk approval over the repository
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from app.services.errors import InvalidStateError, NotFoundError

logger = logging.getLogger("hr-api.kpi")


# ---------------------------------------------------------------------------
# Status workflow
# ---------------------------------------------------------------------------

class KpiStatus(str, Enum):
    DRAFT = "Draft"
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


KPI_TRANSITIONS: Dict[KpiStatus, frozenset] = {
    KpiStatus.DRAFT:    frozenset({KpiStatus.PENDING, KpiStatus.APPROVED}),
    KpiStatus.PENDING:  frozenset({KpiStatus.APPROVED, KpiStatus.REJECTED}),
    KpiStatus.REJECTED: frozenset({KpiStatus.PENDING, KpiStatus.APPROVED}),
    KpiStatus.APPROVED: frozenset({KpiStatus.REJECTED}),
}


def parse_status(value: Any) -> KpiStatus:
    """Missing status is treated as Draft."""
    if isinstance(value, KpiStatus):
        return value
    return KpiStatus(value or KpiStatus.DRAFT.value)


def can_transition(current: Any, target: Any) -> bool:
    return parse_status(target) in KPI_TRANSITIONS[parse_status(current)]


def transition(current: Any, target: Any) -> KpiStatus:
    """Return the target status, or raise InvalidStateError for an illegal move."""
    src, dst = parse_status(current), parse_status(target)
    if dst not in KPI_TRANSITIONS[src]:
        raise InvalidStateError(f"KPI cannot move from {src.value} to {dst.value}")
    return dst


def counts_for_payout(status: Any) -> bool:
    return parse_status(status) is KpiStatus.APPROVED


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def _num(value: Any) -> float:
    return float(value or 0)


class KPIEngine:
    """
    Stateless KPI arithmetic. Works on any objects exposing the KPIConfig /
    KPIRecord attribute names (ORM rows or plain namespaces).
    """

    def applicable_configs(
        self,
        configs: Iterable[Any],
        month: int,
        year: int,
        approved_only: bool = False,
    ) -> List[Any]:
        """Configs for the period plus evergreen ones; optionally Approved only."""
        selected = []
        for conf in configs:
            in_period = (
                (conf.applicable_month == month and conf.applicable_year == year)
                or not conf.applicable_month
            )
            if not in_period:
                continue
            if approved_only and not counts_for_payout(conf.status):
                continue
            selected.append(conf)
        return selected

    def achieved_sum(self, config_id: str, records: Iterable[Any]) -> float:
        return sum(_num(r.achieved_value) for r in records if r.kpi_config_id == config_id)

    def progress_ratio(self, achieved: float, target: Any) -> float:
        """Completion of one KPI, capped at 1.0. A non-positive target contributes 0."""
        target_value = _num(target)
        if target_value <= 0:
            return 0.0
        return min(1.0, achieved / target_value)

    def progress_score(self, configs: List[Any], records: List[Any]) -> float:
        """Unweighted mean of capped ratios, as a percentage. No configs → 0."""
        if not configs:
            return 0.0
        total = sum(
            self.progress_ratio(self.achieved_sum(conf.id, records), conf.target_value)
            for conf in configs
        )
        return (total / len(configs)) * 100

    def incentive_total(self, configs: List[Any], records: List[Any]) -> float:
        """Σ achieved × unit value. Not capped by target."""
        return sum(
            self.achieved_sum(conf.id, records) * _num(conf.unit_value)
            for conf in configs
        )

    def weekly_chart_data(self, configs: List[Any], records: List[Any]) -> List[Dict[str, Any]]:
        by_id = {conf.id: conf for conf in configs}
        points = []
        for rec in records:
            conf = by_id.get(rec.kpi_config_id)
            if conf is None:
                continue
            achieved = _num(rec.achieved_value)
            target = _num(conf.target_value)
            points.append({
                "week": rec.week_number,
                "kpi_name": conf.kpi_name,
                "achieved": achieved,
                "target": target,
                "progress": (achieved / target) * 100 if target > 0 else 0.0,
            })
        return sorted(points, key=lambda p: p["week"])


# ---------------------------------------------------------------------------
# KPIService
# ---------------------------------------------------------------------------

class KPIService:
    """Repository-backed KPI operations used by the routes and the payroll engine."""

    def __init__(self, repository, engine: Optional[KPIEngine] = None):
        self.repository = repository
        self.engine = engine or KPIEngine()

    async def get_current_progress(self, employee_id: str, month: int, year: int) -> float:
        """Dashboard progress: all statuses count, evergreen configs included."""
        configs = self.engine.applicable_configs(
            await self.repository.get_kpi_configs(employee_id), month, year
        )
        records = await self.repository.get_kpi_records(employee_id, month, year)
        return self.engine.progress_score(configs, records)

    async def get_chart_data(self, employee_id: str, month: int, year: int) -> List[Dict[str, Any]]:
        configs = self.engine.applicable_configs(
            await self.repository.get_kpi_configs(employee_id), month, year
        )
        records = await self.repository.get_kpi_records(employee_id, month, year)
        return self.engine.weekly_chart_data(configs, records)

    async def add_kpi_config(self, employee_id: str, **fields) -> Any:
        if not await self.repository.get_employee(employee_id):
            raise NotFoundError("Employee", employee_id)
        fields["status"] = KpiStatus.DRAFT.value
        return await self.repository.add_kpi_config(employee_id=employee_id, **fields)

    async def add_kpi_record(
        self, kpi_config_id: str, week_number: int, month: int, year: int, achieved_value: float
    ) -> Any:
        conf = await self.repository.get_kpi_config(kpi_config_id)
        if conf is None:
            raise NotFoundError("KPIConfig", kpi_config_id)
        return await self.repository.add_kpi_record(
            employee_id=conf.employee_id,
            kpi_config_id=kpi_config_id,
            week_number=week_number,
            month=month,
            year=year,
            achieved_value=achieved_value,
            submission_date=datetime.now(timezone.utc),
        )

    async def review_kpi(self, config_id: str, status: str, feedback: Optional[str] = None) -> Any:
        conf = await self.repository.get_kpi_config(config_id)
        if conf is None:
            raise NotFoundError("KPIConfig", config_id)
        conf.status = transition(conf.status, status).value
        if feedback:
            conf.manager_feedback = feedback
        await self.repository.flush()
        logger.info(f"KPI {config_id} reviewed → {conf.status}")
        return conf

    async def _bulk_transition(
        self,
        employee_id: str,
        month: int,
        year: int,
        target: KpiStatus,
        feedback: Optional[str],
        clear_feedback: bool = False,
    ) -> int:
        moved = 0
        for conf in await self.repository.get_period_kpi_configs(employee_id, month, year):
            if not can_transition(conf.status, target):
                continue
            conf.status = target.value
            if clear_feedback:
                conf.manager_feedback = None
            elif feedback:
                conf.manager_feedback = feedback
            moved += 1
        await self.repository.flush()
        logger.info(
            f"{moved} KPI config(s) for {employee_id} {year}-{month:02d} → {target.value}"
        )
        return moved

    async def submit_kpi_plan(self, employee_id: str, month: int, year: int) -> int:
        """Draft / Rejected configs of the period go to Pending."""
        return await self._bulk_transition(employee_id, month, year, KpiStatus.PENDING, None)

    async def approve_all_kpis(self, employee_id: str, month: int, year: int) -> int:
        return await self._bulk_transition(
            employee_id, month, year, KpiStatus.APPROVED, None, clear_feedback=True
        )

    async def reject_all_kpis(self, employee_id: str, month: int, year: int, feedback: str) -> int:
        return await self._bulk_transition(employee_id, month, year, KpiStatus.REJECTED, feedback)
