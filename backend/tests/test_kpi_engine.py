"""
test_kpi_engine.py — Unit tests for the KPI status workflow, KPIEngine
aggregation and KPIService plan/review operations.

Tests cover:
  - Status transitions (legal / illegal moves, missing status = Draft)
  - Period scoping: month/year match plus evergreen configs
  - Capped progress ratio, unweighted average score, zero-target guard
  - Uncapped incentive total and weekly chart points
  - KPIService: add config/record, submit plan, review, approve-all, reject-all

All tests are pure unit tests; no database or external services required.
"""

import asyncio
from types import SimpleNamespace
import pytest

from app.services.errors import InvalidStateError, NotFoundError
from app.services.kpi_engine import (
    KPIEngine,
    KPIService,
    KpiStatus,
    can_transition,
    counts_for_payout,
    parse_status,
    transition,
)


def _conf(cid, target, unit=None, month=None, year=None, status="Approved", name="Leads"):
    return SimpleNamespace(
        id=cid, kpi_name=name, target_value=target, unit_value=unit,
        applicable_month=month, applicable_year=year, status=status,
    )


def _rec(cid, achieved, week=1):
    return SimpleNamespace(kpi_config_id=cid, achieved_value=achieved, week_number=week)


@pytest.fixture
def engine():
    return KPIEngine()


# ===========================================================================
# Class 1: Status workflow
# ===========================================================================

class TestStatusWorkflow:

    def test_missing_status_is_draft(self):
        assert parse_status(None) is KpiStatus.DRAFT
        assert parse_status("") is KpiStatus.DRAFT

    @pytest.mark.parametrize("src,dst", [
        ("Draft", "Pending"),
        ("Draft", "Approved"),
        ("Pending", "Approved"),
        ("Pending", "Rejected"),
        ("Rejected", "Pending"),
        ("Rejected", "Approved"),
        ("Approved", "Rejected"),
    ])
    def test_legal_transitions(self, src, dst):
        assert can_transition(src, dst)
        assert transition(src, dst) is KpiStatus(dst)

    @pytest.mark.parametrize("src,dst", [
        ("Approved", "Pending"),
        ("Approved", "Draft"),
        ("Pending", "Draft"),
        ("Draft", "Rejected"),
    ])
    def test_illegal_transitions_raise(self, src, dst):
        assert not can_transition(src, dst)
        with pytest.raises(InvalidStateError):
            transition(src, dst)

    def test_unknown_status_is_rejected(self):
        with pytest.raises(ValueError):
            parse_status("Archived")

    def test_only_approved_counts_for_payout(self):
        assert counts_for_payout("Approved")
        for status in ("Draft", "Pending", "Rejected", None):
            assert not counts_for_payout(status)


# ===========================================================================
# Class 2: Aggregation
# ===========================================================================

class TestAggregation:

    def test_applicable_configs_match_period_or_evergreen(self, engine):
        configs = [
            _conf("a", 100, month=3, year=2025),
            _conf("b", 100, month=4, year=2025),
            _conf("c", 100),
            _conf("d", 100, month=3, year=2024),
        ]
        selected = engine.applicable_configs(configs, 3, 2025)
        assert [c.id for c in selected] == ["a", "c"]

    def test_applicable_configs_approved_only(self, engine):
        configs = [_conf("a", 100, status="Approved"), _conf("b", 100, status="Pending"), _conf("c", 100, status=None)]
        selected = engine.applicable_configs(configs, 3, 2025, approved_only=True)
        assert [c.id for c in selected] == ["a"]

    def test_progress_ratio_is_capped(self, engine):
        assert engine.progress_ratio(150, 100) == 1.0
        assert engine.progress_ratio(50, 100) == 0.5

    def test_zero_target_contributes_zero(self, engine):
        assert engine.progress_ratio(40, 0) == 0.0
        assert engine.progress_ratio(40, None) == 0.0

    def test_progress_score_unweighted_mean(self, engine):
        configs = [_conf("a", 100), _conf("b", 10)]
        records = [_rec("a", 40), _rec("a", 40), _rec("b", 20)]
        # a: 80/100 = 0.8, b: capped at 1.0 → mean 0.9
        assert engine.progress_score(configs, records) == pytest.approx(90.0)

    def test_progress_score_no_configs(self, engine):
        assert engine.progress_score([], [_rec("x", 10)]) == 0.0

    def test_records_of_other_configs_ignored(self, engine):
        configs = [_conf("a", 100)]
        assert engine.progress_score(configs, [_rec("zzz", 100)]) == 0.0

    def test_incentive_total_not_capped_by_target(self, engine):
        configs = [_conf("a", 100, unit=10), _conf("b", 50, unit=None)]
        records = [_rec("a", 150), _rec("b", 50)]
        assert engine.incentive_total(configs, records) == pytest.approx(1500.0)

    def test_weekly_chart_sorted_by_week(self, engine):
        configs = [_conf("a", 20, name="Posts")]
        records = [_rec("a", 10, week=3), _rec("a", 5, week=1), _rec("missing", 99, week=2)]
        points = engine.weekly_chart_data(configs, records)
        assert [p["week"] for p in points] == [1, 3]
        assert points[0] == {"week": 1, "kpi_name": "Posts", "achieved": 5.0, "target": 20.0, "progress": 25.0}

    def test_weekly_chart_zero_target(self, engine):
        points = engine.weekly_chart_data([_conf("a", 0)], [_rec("a", 5)])
        assert points[0]["progress"] == 0.0


# ===========================================================================
# Class 3: KPIService
# ===========================================================================

class TestKPIService:

    def test_add_config_starts_as_draft(self, repo, employee):
        svc = KPIService(repo)
        conf = asyncio.run(svc.add_kpi_config(
            employee.id, kpi_name="Reels", target_value=12, unit_value=50,
            applicable_month=3, applicable_year=2025,
        ))
        assert conf.status == "Draft"
        assert repo.kpi_configs[conf.id].employee_id == employee.id

    def test_add_config_unknown_employee(self, repo):
        with pytest.raises(NotFoundError):
            asyncio.run(KPIService(repo).add_kpi_config("nope", kpi_name="x", target_value=1))

    def test_add_record_uses_config_employee(self, repo, employee):
        conf = repo.seed_kpi_config(employee.id, month=3, year=2025)
        rec = asyncio.run(KPIService(repo).add_kpi_record(conf.id, 2, 3, 2025, 14))
        assert rec.employee_id == employee.id
        assert rec.achieved_value == 14

    def test_add_record_unknown_config(self, repo):
        with pytest.raises(NotFoundError):
            asyncio.run(KPIService(repo).add_kpi_record("nope", 1, 3, 2025, 1))

    def test_current_progress_counts_every_status(self, repo, employee):
        draft = repo.seed_kpi_config(employee.id, target_value=100, status="Draft", month=3, year=2025)
        repo.seed_kpi_record(draft, 50, 3, 2025)
        progress = asyncio.run(KPIService(repo).get_current_progress(employee.id, 3, 2025))
        assert progress == pytest.approx(50.0)

    def test_submit_plan_moves_draft_and_rejected(self, repo, employee):
        a = repo.seed_kpi_config(employee.id, status="Draft", month=3, year=2025)
        b = repo.seed_kpi_config(employee.id, status="Rejected", month=3, year=2025)
        c = repo.seed_kpi_config(employee.id, status="Approved", month=3, year=2025)
        evergreen = repo.seed_kpi_config(employee.id, status="Draft")
        moved = asyncio.run(KPIService(repo).submit_kpi_plan(employee.id, 3, 2025))
        assert moved == 2
        assert (a.status, b.status, c.status) == ("Pending", "Pending", "Approved")
        assert evergreen.status == "Draft"

    def test_approve_all_clears_feedback(self, repo, employee):
        conf = repo.seed_kpi_config(employee.id, status="Pending", month=3, year=2025)
        conf.manager_feedback = "Raise the target"
        moved = asyncio.run(KPIService(repo).approve_all_kpis(employee.id, 3, 2025))
        assert moved == 1
        assert conf.status == "Approved"
        assert conf.manager_feedback is None

    def test_reject_all_records_feedback(self, repo, employee):
        pending = repo.seed_kpi_config(employee.id, status="Pending", month=3, year=2025)
        draft = repo.seed_kpi_config(employee.id, status="Draft", month=3, year=2025)
        moved = asyncio.run(KPIService(repo).reject_all_kpis(employee.id, 3, 2025, "Too vague"))
        assert moved == 1
        assert pending.status == "Rejected"
        assert pending.manager_feedback == "Too vague"
        assert draft.status == "Draft"

    def test_review_single_kpi(self, repo, employee):
        conf = repo.seed_kpi_config(employee.id, status="Pending")
        asyncio.run(KPIService(repo).review_kpi(conf.id, "Rejected", "Add a deadline"))
        assert conf.status == "Rejected"
        assert conf.manager_feedback == "Add a deadline"

    def test_review_illegal_move(self, repo, employee):
        conf = repo.seed_kpi_config(employee.id, status="Approved")
        with pytest.raises(InvalidStateError):
            asyncio.run(KPIService(repo).review_kpi(conf.id, "Pending"))
        assert conf.status == "Approved"

    def test_approve_all_skips_already_approved(self, repo, employee):
        repo.seed_kpi_config(employee.id, status="Approved", month=3, year=2025)
        pending = repo.seed_kpi_config(employee.id, status="Pending", month=3, year=2025)
        moved = asyncio.run(KPIService(repo).approve_all_kpis(employee.id, 3, 2025))
        assert moved == 1
        assert pending.status == "Approved"
