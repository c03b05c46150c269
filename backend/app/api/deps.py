"""FastAPI dependency injection — auth guards and per-request service wiring."""
import os
from dataclasses import dataclass
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import ADMIN_EMAILS
from app.db import get_db
from app.services.financials_ledger import FinancialsLedger
from app.services.hr_repository import HRRepository
from app.services.kpi_engine import KPIService
from app.services.leave_engine import LeaveEngine
from app.services.payroll_engine import PayrollEngine
from app.services.workforce_analyzer import build_workforce_analyzer
from app.services.workforce_metrics import WorkforceMetricsCollector

SECRET_KEY = os.getenv("JWT_SECRET_KEY", "changethis_use_a_real_secret_in_production_64chars")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

security = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    user_id: str
    email: str
    is_admin: bool


# ── Auth ──────────────────────────────────────────────────────────────────────

def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """Verify a bearer token issued by the hosted auth service."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = jwt.decode(
            credentials.credentials, SECRET_KEY, algorithms=[ALGORITHM],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user_id: Optional[str] = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    email = (payload.get("email") or "").lower()
    return CurrentUser(user_id=user_id, email=email, is_admin=email in ADMIN_EMAILS)


def require_manager(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Approvals, deductions and resets are manager-only. 403 for everyone else."""
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Manager role required")
    return current_user


# ── Services ──────────────────────────────────────────────────────────────────

def get_repository(db: AsyncSession = Depends(get_db)) -> HRRepository:
    return HRRepository(db)


def get_ledger(repo: HRRepository = Depends(get_repository)) -> FinancialsLedger:
    return FinancialsLedger(repo)


def get_kpi_service(repo: HRRepository = Depends(get_repository)) -> KPIService:
    return KPIService(repo)


def get_payroll_engine(
    repo: HRRepository = Depends(get_repository),
    ledger: FinancialsLedger = Depends(get_ledger),
) -> PayrollEngine:
    return PayrollEngine(repo, ledger=ledger)


def get_leave_engine(
    repo: HRRepository = Depends(get_repository),
    ledger: FinancialsLedger = Depends(get_ledger),
) -> LeaveEngine:
    return LeaveEngine(repo, ledger=ledger)


def get_metrics_collector(
    repo: HRRepository = Depends(get_repository),
    kpi: KPIService = Depends(get_kpi_service),
) -> WorkforceMetricsCollector:
    return WorkforceMetricsCollector(repo, kpi)


def get_workforce_analyzer():
    return build_workforce_analyzer()
