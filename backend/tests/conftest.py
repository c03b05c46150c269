"""
conftest.py — Shared pytest fixtures for the HR backend test suite.

No database or external service fixtures are defined here.  Services are
exercised against ``InMemoryHRRepository``, a dict-backed stand-in that
exposes the same async methods as ``app.services.hr_repository.HRRepository``
and returns plain ``SimpleNamespace`` rows carrying the ORM attribute names.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``app.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
import copy
import uuid
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from types import SimpleNamespace
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any app imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


def _new_id() -> str:
    return str(uuid.uuid4())


def _row(defaults: dict, fields: dict) -> SimpleNamespace:
    data = dict(defaults)
    data.update(fields)
    data.setdefault("id", _new_id())
    return SimpleNamespace(**data)


_FINANCIALS_DEFAULTS = {
    "calculated_incentive": 0,
    "manual_deduction": 0,
    "manual_deduction_note": None,
    "problem_solving_bonus": 0,
    "sales_commission_payout": 0,
    "other_commission_payout": 0,
    "final_payout": 0,
    "manager_feedback": None,
    "commitment_score": None,
    "is_needs_improvement": False,
    "improvement_note": None,
    "recommendations": None,
    "report_notes": None,
}

_STATE_ATTRS = (
    "employees", "kpi_configs", "kpi_records", "problem_logs", "behavior_logs",
    "tasks", "financials", "commission_logs", "leave_requests", "attendance",
    "site_config",
)


class InMemoryHRRepository:
    """
    Dict-backed HR repository.

    ``fail_on`` holds method names that raise RuntimeError when called, to
    simulate a component that cannot be loaded or written.  As on PostgreSQL,
    a failed statement leaves the transaction aborted: every later call raises
    until ``unit_of_work`` or ``savepoint`` rolls back, restoring the state
    snapshotted on entry.
    """

    def __init__(self):
        self.employees: dict = {}
        self.kpi_configs: dict = {}
        self.kpi_records: list = []
        self.problem_logs: list = []
        self.behavior_logs: list = []
        self.tasks: list = []
        self.financials: dict = {}
        self.commission_logs: list = []
        self.leave_requests: dict = {}
        self.attendance: dict = {}
        self.site_config: dict = {}
        self.fail_on: set = set()
        self.commits = 0
        self.rollbacks = 0
        self.savepoints = 0
        self.aborted = False

    def _check(self, name: str):
        if self.aborted:
            raise RuntimeError(f"current transaction is aborted, {name} ignored")
        if name in self.fail_on:
            self.aborted = True
            raise RuntimeError(f"simulated failure in {name}")

    # ── Seeding helpers (sync) ───────────────────────────────────────────────

    def seed_employee(self, **fields):
        emp = _row(
            {
                "name": "Sara Ali",
                "email": f"{_new_id()[:8]}@example.com",
                "role": "Specialist",
                "department": "Marketing",
                "base_salary": 3000,
                "leave_balance": 21,
                "is_sales_specialist": False,
            },
            fields,
        )
        self.employees[emp.id] = emp
        return emp

    def seed_kpi_config(self, employee_id, target_value=100, unit_value=10, status="Approved",
                        month=None, year=None, kpi_name="Leads"):
        conf = _row(
            {"manager_feedback": None},
            {
                "employee_id": employee_id,
                "kpi_name": kpi_name,
                "target_value": target_value,
                "unit_value": unit_value,
                "status": status,
                "applicable_month": month,
                "applicable_year": year,
            },
        )
        self.kpi_configs[conf.id] = conf
        return conf

    def seed_kpi_record(self, conf, achieved_value, month, year, week_number=1):
        rec = _row({}, {
            "employee_id": conf.employee_id,
            "kpi_config_id": conf.id,
            "week_number": week_number,
            "month": month,
            "year": year,
            "achieved_value": achieved_value,
        })
        self.kpi_records.append(rec)
        return rec

    def seed_problem(self, employee_id, amount, status="Solved"):
        log = _row({}, {
            "employee_id": employee_id,
            "problem_desc": "Campaign budget overrun",
            "solution_status": status,
            "potential_bonus_amount": amount,
        })
        self.problem_logs.append(log)
        return log

    def seed_behavior(self, employee_id, mood_rating, week_number, month=3, year=2025):
        log = _row({"notes": None}, {
            "employee_id": employee_id,
            "mood_rating": mood_rating,
            "week_number": week_number,
            "month": month,
            "year": year,
        })
        self.behavior_logs.append(log)
        return log

    def seed_task(self, employee_id, deadline, completion_date, status="Done"):
        task = _row({"title": "Publish post"}, {
            "assigned_to": employee_id,
            "deadline": deadline,
            "completion_date": completion_date,
            "status": status,
        })
        self.tasks.append(task)
        return task

    def seed_financials(self, employee_id, month, year, **fields):
        row = _row(_FINANCIALS_DEFAULTS, {"employee_id": employee_id, "month": month, "year": year, **fields})
        self.financials[(employee_id, month, year)] = row
        return row

    def seed_commission(self, employee_id, month, year, amount, description=""):
        log = _row({}, {
            "employee_id": employee_id, "month": month, "year": year,
            "amount": amount, "description": description,
        })
        self.commission_logs.append(log)
        return log

    # ── Unit of work ──────────────────────────────────────────────────────────

    @asynccontextmanager
    async def unit_of_work(self):
        snapshot = copy.deepcopy({name: getattr(self, name) for name in _STATE_ATTRS})
        try:
            yield self
            self.commits += 1
        except Exception:
            self._restore(snapshot)
            self.rollbacks += 1
            raise

    @asynccontextmanager
    async def savepoint(self):
        snapshot = copy.deepcopy({name: getattr(self, name) for name in _STATE_ATTRS})
        self.savepoints += 1
        try:
            yield self
        except Exception:
            self._restore(snapshot)
            raise

    def _restore(self, snapshot):
        for name, value in snapshot.items():
            setattr(self, name, value)
        self.aborted = False

    async def flush(self):
        self._check("flush")

    # ── Employees ─────────────────────────────────────────────────────────────

    async def get_employee(self, employee_id):
        self._check("get_employee")
        return self.employees.get(employee_id)

    async def list_employees(self):
        return sorted(self.employees.values(), key=lambda e: e.name)

    # ── KPI ───────────────────────────────────────────────────────────────────

    async def get_kpi_configs(self, employee_id, month=None, year=None):
        self._check("get_kpi_configs")
        configs = [c for c in self.kpi_configs.values() if c.employee_id == employee_id]
        if month and year:
            configs = [
                c for c in configs
                if (c.applicable_month == month and c.applicable_year == year) or c.applicable_month is None
            ]
        return configs

    async def get_kpi_config(self, config_id):
        return self.kpi_configs.get(config_id)

    async def get_period_kpi_configs(self, employee_id, month, year):
        return [
            c for c in self.kpi_configs.values()
            if c.employee_id == employee_id and c.applicable_month == month and c.applicable_year == year
        ]

    async def add_kpi_config(self, **fields):
        conf = _row({"manager_feedback": None, "applicable_month": None, "applicable_year": None}, fields)
        self.kpi_configs[conf.id] = conf
        return conf

    async def get_kpi_records(self, employee_id, month=None, year=None):
        self._check("get_kpi_records")
        records = [r for r in self.kpi_records if r.employee_id == employee_id]
        if month and year:
            records = [r for r in records if r.month == month and r.year == year]
        return records

    async def add_kpi_record(self, **fields):
        rec = _row({}, fields)
        self.kpi_records.append(rec)
        return rec

    # ── Problems / behaviour / tasks ──────────────────────────────────────────

    async def get_problem_logs(self, employee_id):
        return [p for p in self.problem_logs if p.employee_id == employee_id]

    async def get_solved_problem_bonus_amounts(self, employee_id):
        self._check("get_solved_problem_bonus_amounts")
        return [
            float(p.potential_bonus_amount or 0)
            for p in self.problem_logs
            if p.employee_id == employee_id and p.solution_status == "Solved"
        ]

    async def get_behavior_logs(self, employee_id, limit=None):
        logs = sorted(
            (b for b in self.behavior_logs if b.employee_id == employee_id),
            key=lambda b: (b.year, b.month, b.week_number),
            reverse=True,
        )
        return logs[:limit] if limit else logs

    async def get_done_tasks(self, employee_id):
        return [t for t in self.tasks if t.assigned_to == employee_id and t.status == "Done"]

    # ── Financials ────────────────────────────────────────────────────────────

    async def get_financials(self, employee_id, month, year):
        self._check("get_financials")
        return self.financials.get((employee_id, month, year))

    async def create_financials(self, employee_id, month, year):
        self._check("create_financials")
        return self.seed_financials(employee_id, month, year)

    async def get_other_commission_logs(self, employee_id, month, year):
        self._check("get_other_commission_logs")
        return [
            c for c in self.commission_logs
            if c.employee_id == employee_id and c.month == month and c.year == year
        ]

    async def add_other_commission_log(self, **fields):
        log = _row({"description": None}, fields)
        self.commission_logs.append(log)
        return log

    async def delete_other_commission_logs(self, employee_id, month, year):
        kept = [
            c for c in self.commission_logs
            if not (c.employee_id == employee_id and c.month == month and c.year == year)
        ]
        removed = len(self.commission_logs) - len(kept)
        self.commission_logs = kept
        return removed

    # ── Leave / attendance ────────────────────────────────────────────────────

    async def get_leave_request(self, request_id):
        return self.leave_requests.get(request_id)

    async def list_leave_requests(self, employee_id):
        return sorted(
            (r for r in self.leave_requests.values() if r.employee_id == employee_id),
            key=lambda r: r.created_at,
            reverse=True,
        )

    async def list_pending_leave_requests(self):
        return sorted(
            (r for r in self.leave_requests.values() if r.status == "Pending"),
            key=lambda r: r.created_at,
            reverse=True,
        )

    async def add_leave_request(self, **fields):
        req = _row(
            {"manager_comment": None, "created_at": datetime.now(timezone.utc)},
            fields,
        )
        self.leave_requests[req.id] = req
        return req

    async def delete_leave_requests_between(self, employee_id, start, end):
        doomed = [
            rid for rid, r in self.leave_requests.items()
            if r.employee_id == employee_id and start <= r.start_date <= end
        ]
        for rid in doomed:
            del self.leave_requests[rid]
        return len(doomed)

    async def upsert_attendance(self, employee_id, day, status):
        self._check("upsert_attendance")
        key = (employee_id, day)
        row = self.attendance.get(key)
        if row:
            row.status = status
            return row
        row = _row({}, {"employee_id": employee_id, "log_date": day, "status": status})
        self.attendance[key] = row
        return row

    # ── Site config ───────────────────────────────────────────────────────────

    async def get_site_config(self, key):
        return self.site_config.get(key)

    async def set_site_config(self, key, value):
        self.site_config[key] = value


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def repo():
    """Empty in-memory repository."""
    return InMemoryHRRepository()


@pytest.fixture
def employee(repo):
    """One marketing specialist: base salary 3000, 21 leave days."""
    return repo.seed_employee()


@pytest.fixture
def period():
    """(month, year) used across the payroll and ledger tests."""
    return 3, 2025


@pytest.fixture
def leave_start():
    return date(2025, 3, 10)
