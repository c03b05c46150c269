"""
HR backend configuration — single source of truth for payroll thresholds,
leave rules, mood scales, workforce classification cut-offs and LLM routing.

Import from here in services and routes rather than hardcoding values.
"""
from __future__ import annotations

import os

# ── Payroll ───────────────────────────────────────────────────────────────────

# Aggregate KPI completion (percent) that unlocks any KPI incentive payout.
# Inclusive: a score of exactly 65.0 pays.
INCENTIVE_THRESHOLD_PCT: float = 65.0

# Daily rate divisor used when converting unpaid leave days into a deduction
DAYS_PER_SALARY_MONTH: int = 30

# Notes appended to the same Financials row are joined with this separator
DEDUCTION_NOTE_SEPARATOR: str = " | "


# ── Leave ─────────────────────────────────────────────────────────────────────

DEFAULT_ANNUAL_LEAVE_BALANCE: int = 21

# Permission requests are hour-based and capped
MAX_PERMISSION_HOURS: float = 2.0

# site_configs key that restricts new requests to the Exceptional type
LEAVES_LOCKED_KEY: str = "leaves_locked"

# Arabic labels used in generated deduction notes
LEAVE_DEDUCTION_LABELS: dict[str, str] = {
    "Absence":     "غياب",
    "Exceptional": "استثنائي",
}


# ── Behaviour / mood ──────────────────────────────────────────────────────────

MOOD_RATING_MAP: dict[str, int] = {
    "Angry":      1,
    "Distracted": 3,
    "Neutral":    5,
    "Focused":    8,
    "Happy":      10,
}

MIN_MOOD_RATING_FOR_LOW_FOCUS: int = 3
NEUTRAL_MOOD_SCORE: float = 5.0

# Behaviour logs considered for the average mood and for alerts
RECENT_MOOD_WINDOW: int = 5
MOOD_ALERT_WINDOW: int = 3


# ── Workforce classification (rule-based analyzer) ────────────────────────────

CLASS_LEADER: str = "Leader Material"
CLASS_NEEDS_IMPROVEMENT: str = "Needs Improvement"
CLASS_RISK: str = "Plan C (Risk)"
CLASS_STEADY: str = "Steady Performer"

WORKFORCE_CLASSIFICATIONS: list[str] = [
    CLASS_LEADER,
    CLASS_NEEDS_IMPROVEMENT,
    CLASS_RISK,
    CLASS_STEADY,
]

LEADER_MIN_KPI_SCORE: float = 90.0
LEADER_MIN_MOOD: float = 7.0
RISK_MAX_KPI_SCORE: float = 60.0      # strictly below
RISK_MAX_MOOD: float = 4.0            # strictly below
STEADY_MIN_KPI_SCORE: float = 80.0    # below this → Needs Improvement

# Analysis ranges offered by the dashboard → period label sent to the analyzer
ANALYSIS_RANGE_LABELS: dict[str, str] = {
    "3m":  "Last 3 Months",
    "6m":  "Last 6 Months",
    "1y":  "Last Year",
    "all": "All Time",
}


# ── LLM routing ───────────────────────────────────────────────────────────────

AI_PRIMARY_MODEL: str = os.getenv("AI_PRIMARY_MODEL", "gemini/gemini-2.5-pro")
AI_FALLBACK_MODEL: str = os.getenv("AI_FALLBACK_MODEL", "gemini/gemini-2.5-flash")
AI_TEMPERATURE: float = 0.2
AI_MAX_TOKENS: int = 8192


def ai_api_key() -> str:
    """Key for the generative-model API; empty string means rule-based only."""
    return os.getenv("GEMINI_API_KEY", "") or os.getenv("API_KEY", "")


# ── Auth boundary ─────────────────────────────────────────────────────────────

# Tokens are issued by the hosted auth service; managers are recognised by email
ADMIN_EMAILS: list[str] = [
    e.strip().lower()
    for e in os.getenv("ADMIN_EMAILS", "info@ieatd.com").split(",")
    if e.strip()
]
