"""Per-employee metrics fed to the workforce analyzer, plus mood alerts."""
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from app.config import (
    MIN_MOOD_RATING_FOR_LOW_FOCUS,
    MOOD_ALERT_WINDOW,
    MOOD_RATING_MAP,
    RECENT_MOOD_WINDOW,
)
from app.services.kpi_engine import KPIService

logger = logging.getLogger("hr-api.workforce")


@dataclass
class EmployeeMetrics:
    name: str
    role: str
    department: str
    current_kpi_score: float
    task_completion_rate: float
    problems_solved: int
    problems_unsolved: int
    average_mood_score: Optional[float]     # 1-10, None when no behaviour logs
    sales_target_met: str = "N/A"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def mood_value(rating: Any) -> Optional[float]:
    """Map a mood label or a numeric 1-10 rating to a number."""
    if rating is None:
        return None
    if isinstance(rating, (int, float)):
        return float(rating)
    if rating in MOOD_RATING_MAP:
        return float(MOOD_RATING_MAP[rating])
    try:
        return float(rating)
    except (TypeError, ValueError):
        return None


def average_mood(logs: Iterable[Any], window: int = RECENT_MOOD_WINDOW) -> Optional[float]:
    """Mean mood of the first `window` logs (callers pass most recent first)."""
    values = [v for v in (mood_value(log.mood_rating) for log in list(logs)[:window]) if v is not None]
    if not values:
        return None
    return round(sum(values) / len(values), 1)


def on_time_rate(done_tasks: Iterable[Any]) -> float:
    """Percent of Done tasks completed by their deadline. No tasks → 100."""
    tasks = [t for t in done_tasks if t.completion_date is not None]
    if not tasks:
        return 100.0
    on_time = [t for t in tasks if t.deadline is None or t.completion_date <= t.deadline]
    return len(on_time) / len(tasks) * 100


def mood_alerts(logs: Iterable[Any], window: int = MOOD_ALERT_WINDOW) -> List[str]:
    alerts = []
    for log in list(logs)[:window]:
        value = mood_value(log.mood_rating)
        if value is not None and value <= MIN_MOOD_RATING_FOR_LOW_FOCUS:
            alerts.append(f"تراجع أداء أسبوع {log.week_number}")
    return alerts


class WorkforceMetricsCollector:
    def __init__(self, repository, kpi_service: Optional[KPIService] = None):
        self.repository = repository
        self.kpi_service = kpi_service or KPIService(repository)

    async def employee_metrics(self, employee, month: int, year: int) -> EmployeeMetrics:
        score = await self.kpi_service.get_current_progress(employee.id, month, year)
        tasks = await self.repository.get_done_tasks(employee.id)
        problems = await self.repository.get_problem_logs(employee.id)
        behaviours = await self.repository.get_behavior_logs(employee.id, limit=RECENT_MOOD_WINDOW)
        return EmployeeMetrics(
            name=employee.name,
            role=employee.role,
            department=employee.department,
            current_kpi_score=round(score, 1),
            task_completion_rate=round(on_time_rate(tasks), 1),
            problems_solved=sum(1 for p in problems if p.solution_status == "Solved"),
            problems_unsolved=sum(1 for p in problems if p.solution_status == "Unsolved"),
            average_mood_score=average_mood(behaviours),
            sales_target_met="Check Financials" if employee.is_sales_specialist else "N/A",
        )

    async def collect(self, month: Optional[int] = None, year: Optional[int] = None) -> List[EmployeeMetrics]:
        now = datetime.now()
        month, year = month or now.month, year or now.year
        employees = await self.repository.list_employees()
        metrics = [await self.employee_metrics(emp, month, year) for emp in employees]
        logger.info(f"Collected workforce metrics for {len(metrics)} employee(s), {year}-{month:02d}")
        return metrics

    async def employee_mood_alerts(self, employee_id: str) -> List[str]:
        logs = await self.repository.get_behavior_logs(employee_id, limit=MOOD_ALERT_WINDOW)
        return mood_alerts(logs)
