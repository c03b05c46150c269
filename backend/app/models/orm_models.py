"""ORM Models for the Marketing & Operations HR backend — SQLAlchemy 2.0"""
import uuid
from datetime import datetime, date
from typing import Optional
from sqlalchemy import (
    String, Text, Boolean, Integer, Numeric, DateTime, Date,
    ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from app.db import Base


def gen_uuid():
    return str(uuid.uuid4())


# ── EMPLOYEES ─────────────────────────────────────────────────────────────────
class Employee(Base):
    __tablename__ = "employees"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    user_id: Mapped[Optional[str]] = mapped_column(UUID(as_uuid=False))
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    department: Mapped[str] = mapped_column(String(50), nullable=False)
    base_salary: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    # Not floored: approvals may push it negative
    leave_balance: Mapped[int] = mapped_column(Integer, default=21)
    is_sales_specialist: Mapped[bool] = mapped_column(Boolean, default=False)
    sales_commission_rate: Mapped[Optional[float]] = mapped_column(Numeric(6, 4))
    monthly_sales_target: Mapped[Optional[float]] = mapped_column(Numeric(12, 2))
    other_commission_rate: Mapped[Optional[float]] = mapped_column(Numeric(6, 4))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    kpi_configs: Mapped[list["KPIConfig"]] = relationship("KPIConfig", back_populates="employee")
    leave_requests: Mapped[list["LeaveRequest"]] = relationship("LeaveRequest", back_populates="employee")


# ── KPI ───────────────────────────────────────────────────────────────────────
class KPIConfig(Base):
    __tablename__ = "kpi_configs"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    employee_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("employees.id", ondelete="CASCADE"))
    kpi_name: Mapped[str] = mapped_column(String(255), nullable=False)
    target_value: Mapped[float] = mapped_column(Numeric(12, 2), default=100)
    unit_value: Mapped[Optional[float]] = mapped_column(Numeric(12, 2))
    incentive_percentage: Mapped[Optional[float]] = mapped_column(Numeric(6, 4))
    smart_s: Mapped[Optional[str]] = mapped_column(Text)
    smart_m: Mapped[Optional[str]] = mapped_column(Text)
    smart_a: Mapped[Optional[str]] = mapped_column(Text)
    smart_r: Mapped[Optional[str]] = mapped_column(Text)
    smart_t: Mapped[Optional[str]] = mapped_column(Text)
    # NULL month = evergreen target, applies to every period
    applicable_month: Mapped[Optional[int]] = mapped_column(Integer)
    applicable_year: Mapped[Optional[int]] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(20), default="Draft")  # Draft | Pending | Approved | Rejected
    manager_feedback: Mapped[Optional[str]] = mapped_column(Text)
    employee: Mapped["Employee"] = relationship("Employee", back_populates="kpi_configs")
    records: Mapped[list["KPIRecord"]] = relationship("KPIRecord", back_populates="config", cascade="all, delete-orphan")
    __table_args__ = (
        Index("ix_kpi_configs_employee_period", "employee_id", "applicable_year", "applicable_month"),
    )


class KPIRecord(Base):
    __tablename__ = "kpi_records"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    employee_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("employees.id", ondelete="CASCADE"))
    kpi_config_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("kpi_configs.id", ondelete="CASCADE"))
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    achieved_value: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    submission_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    config: Mapped["KPIConfig"] = relationship("KPIConfig", back_populates="records")
    __table_args__ = (
        Index("ix_kpi_records_employee_period", "employee_id", "year", "month"),
    )


# ── PROBLEMS / BEHAVIOUR / TASKS ──────────────────────────────────────────────
class ProblemLog(Base):
    __tablename__ = "problem_logs"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    employee_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("employees.id", ondelete="CASCADE"))
    problem_desc: Mapped[str] = mapped_column(Text, nullable=False)
    solution_status: Mapped[str] = mapped_column(String(20), default="Unsolved")  # Unsolved | Solved
    guidance_given: Mapped[bool] = mapped_column(Boolean, default=False)
    potential_bonus_amount: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    logged_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    solved_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class BehaviorLog(Base):
    __tablename__ = "behavior_logs"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    employee_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("employees.id", ondelete="CASCADE"))
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    # Either a label from MOOD_RATING_MAP or a numeric 1-10 score stored as text
    mood_rating: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)


class Task(Base):
    __tablename__ = "tasks"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    assigned_to: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("employees.id", ondelete="CASCADE"))
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(String(20), default="Pending")  # Pending | Done
    completion_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


# ── FINANCIALS ────────────────────────────────────────────────────────────────
class Financials(Base):
    __tablename__ = "financials"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    employee_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("employees.id", ondelete="CASCADE"))
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    calculated_incentive: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    manual_deduction: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    manual_deduction_note: Mapped[Optional[str]] = mapped_column(Text)
    problem_solving_bonus: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    sales_commission_payout: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    other_commission_payout: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    final_payout: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    base_salary_at_month: Mapped[Optional[float]] = mapped_column(Numeric(12, 2))
    kpi_score_percentage: Mapped[Optional[float]] = mapped_column(Numeric(6, 2))
    manager_feedback: Mapped[Optional[str]] = mapped_column(Text)
    commitment_score: Mapped[Optional[float]] = mapped_column(Numeric(4, 1))
    is_needs_improvement: Mapped[bool] = mapped_column(Boolean, default=False)
    improvement_note: Mapped[Optional[str]] = mapped_column(Text)
    recommendations: Mapped[Optional[str]] = mapped_column(Text)
    report_notes: Mapped[Optional[str]] = mapped_column(Text)
    __table_args__ = (
        UniqueConstraint("employee_id", "month", "year", name="uq_financials_employee_period"),
    )


class OtherCommissionLog(Base):
    __tablename__ = "other_commission_logs"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    employee_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("employees.id", ondelete="CASCADE"))
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    logged_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# ── LEAVE / ATTENDANCE ────────────────────────────────────────────────────────
class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    employee_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("employees.id", ondelete="CASCADE"))
    leave_type: Mapped[str] = mapped_column(String(20), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    days_count: Mapped[float] = mapped_column(Numeric(5, 1), default=0)
    hours_count: Mapped[Optional[float]] = mapped_column(Numeric(4, 1))
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    attachment_url: Mapped[Optional[str]] = mapped_column(Text)
    can_work_remotely: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[str] = mapped_column(String(20), default="Pending")  # Pending | Approved | Rejected
    manager_comment: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    employee: Mapped["Employee"] = relationship("Employee", back_populates="leave_requests")
    __table_args__ = (
        Index("ix_leave_requests_status", "status"),
    )


class AttendanceLog(Base):
    __tablename__ = "attendance_logs"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    employee_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("employees.id", ondelete="CASCADE"))
    log_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # Present | Absent | WFH | Leave | Permission
    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
    )


# ── SITE CONFIG ───────────────────────────────────────────────────────────────
class SiteConfig(Base):
    __tablename__ = "site_configs"
    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[Optional[str]] = mapped_column(Text)
