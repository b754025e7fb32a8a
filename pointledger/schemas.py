"""Domain records for the point ledger.

Every record is frozen: ledger functions build new values with
``model_copy(update=...)`` and never mutate their input.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

AppliedBy = Literal["system", "tutor"]
RiskLevel = Literal["low", "medium", "high"]


class PenaltyType(str, Enum):
    STREAK_BREAK = "streak-break"
    MISSED_SESSION = "missed-session"
    LATE_HOMEWORK = "late-homework"
    NO_HOMEWORK = "no-homework"
    LOW_ENGAGEMENT = "low-engagement"
    CONSTELLATION_DECAY = "constellation-decay"


class BonusType(str, Enum):
    PERFECT_SESSION = "perfect-session"
    STREAK_MILESTONE = "streak-milestone"
    CLEAN_WEEK = "clean-week"
    CLEAN_MONTH = "clean-month"
    HOMEWORK_STREAK = "homework-streak"
    IMPROVEMENT_BONUS = "improvement-bonus"
    ATTENDANCE_BONUS = "attendance-bonus"


class PenaltyRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: PenaltyType
    points_deducted: int = Field(ge=0)
    reason: str
    applied_at: datetime
    applied_by: AppliedBy = "system"
    waived: bool = False
    waived_by: str | None = None
    waived_at: datetime | None = None
    waived_reason: str | None = None


class BonusRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: BonusType
    points_awarded: int
    reason: str
    awarded_at: datetime
    awarded_by: AppliedBy = "system"


class StudentStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    streak_days: int = 0
    longest_streak: int = 0
    missed_sessions_count: int = 0
    late_homework_count: int = 0
    low_engagement_weeks: int = 0
    homework_streak: int = 0
    total_sessions: int = 0
    attendance_rate: float | None = None
    penalty_history: tuple[PenaltyRecord, ...] = ()
    bonus_history: tuple[BonusRecord, ...] = ()


class StudentProfile(BaseModel):
    """The subset of a student record the ledger reads and writes."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    points: int = 0
    stats: StudentStats = StudentStats()
    version: int = 1


class RiskAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    at_risk: bool
    risk_level: RiskLevel
    reasons: list[str]


class PenaltySummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int
    total_points: int


class AvailableBonus(BaseModel):
    """An automatic bonus the student currently qualifies for."""

    model_config = ConfigDict(frozen=True)

    type: BonusType
    label: str
    requirement: str
    reward: int
    reason: str
