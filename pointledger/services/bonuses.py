"""Bonus awards and the automatic bonus rules engine.

Manual awards take whatever amount the tutor supplies, falling back to a
default per bonus type. Automatic checks evaluate independent rules over the
student's stats; any number of them may fire in one pass.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError

from pointledger.schemas import (
    AppliedBy,
    AvailableBonus,
    BonusRecord,
    BonusType,
    PenaltyType,
    StudentProfile,
)
from pointledger.services.ledger import apply_bonus, get_total_penalties_in_period
from pointledger.services.penalties import make_record_id

logger = logging.getLogger(__name__)


class BonusConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    perfect_session_bonus: int = 25
    clean_week_bonus: int = 30
    clean_month_bonus: int = 150
    homework_streak_threshold: int = 5
    homework_streak_bonus: int = 30
    improvement_bonus: int = 50
    perfect_attendance_weekly: int = 20
    # streak length in days -> reward
    streak_milestones: dict[int, int] = {7: 50, 30: 200}
    # Minimum days between two awards of a recurring bonus
    cooldown_days: int = 7


DEFAULT_BONUS_CONFIG = BonusConfig()


def load_bonus_config(path: Path | None) -> BonusConfig:
    """Return the default config updated from a JSON file, if given."""
    if path is None:
        return DEFAULT_BONUS_CONFIG

    try:
        overrides = json.loads(Path(path).read_text(encoding="utf-8"))
        return BonusConfig.model_validate({**DEFAULT_BONUS_CONFIG.model_dump(), **overrides})
    except (OSError, json.JSONDecodeError, ValidationError, TypeError) as e:
        logger.warning("Ignoring bonus config %s: %s", path, e)
        return DEFAULT_BONUS_CONFIG


BONUS_DISPLAY: dict[BonusType, dict[str, str]] = {
    BonusType.PERFECT_SESSION: {"label": "Perfect Session", "color": "blue", "icon": "star"},
    BonusType.STREAK_MILESTONE: {"label": "Streak Milestone", "color": "orange", "icon": "flame"},
    BonusType.CLEAN_WEEK: {"label": "Clean Week", "color": "green", "icon": "shield"},
    BonusType.CLEAN_MONTH: {"label": "Clean Month", "color": "emerald", "icon": "trophy"},
    BonusType.HOMEWORK_STREAK: {"label": "Homework Streak", "color": "purple", "icon": "check-circle"},
    BonusType.IMPROVEMENT_BONUS: {"label": "Improvement Bonus", "color": "cyan", "icon": "trending-up"},
    BonusType.ATTENDANCE_BONUS: {"label": "Perfect Attendance", "color": "yellow", "icon": "calendar"},
}

_GENERIC_BONUS_DISPLAY = {"label": "Bonus", "color": "gray", "icon": "gift"}


def bonus_display_info(bonus_type: BonusType | str) -> dict[str, str]:
    try:
        return BONUS_DISPLAY[BonusType(bonus_type)]
    except ValueError:
        return _GENERIC_BONUS_DISPLAY


def default_bonus_points(bonus_type: BonusType, config: BonusConfig = DEFAULT_BONUS_CONFIG) -> int:
    """Default reward when a tutor awards a bonus without an amount."""
    defaults = {
        BonusType.PERFECT_SESSION: config.perfect_session_bonus,
        BonusType.STREAK_MILESTONE: min(config.streak_milestones.values(), default=50),
        BonusType.CLEAN_WEEK: config.clean_week_bonus,
        BonusType.CLEAN_MONTH: config.clean_month_bonus,
        BonusType.HOMEWORK_STREAK: config.homework_streak_bonus,
        BonusType.IMPROVEMENT_BONUS: config.improvement_bonus,
        BonusType.ATTENDANCE_BONUS: config.perfect_attendance_weekly,
    }
    return defaults[bonus_type]


def create_bonus_record(
    bonus_type: BonusType,
    points: int,
    reason: str,
    awarded_by: AppliedBy = "system",
    now: datetime | None = None,
) -> BonusRecord:
    now = now or datetime.now(timezone.utc)
    return BonusRecord(
        id=make_record_id("bonus", now),
        type=bonus_type,
        points_awarded=points,
        reason=reason,
        awarded_at=now,
        awarded_by=awarded_by,
    )


def award_perfect_session_bonus(
    student: StudentProfile,
    awarded_by: AppliedBy = "tutor",
    config: BonusConfig = DEFAULT_BONUS_CONFIG,
    reason: str | None = None,
    now: datetime | None = None,
) -> tuple[StudentProfile, BonusRecord]:
    bonus = create_bonus_record(
        BonusType.PERFECT_SESSION,
        config.perfect_session_bonus,
        reason or "Perfect tutoring session",
        awarded_by,
        now=now,
    )
    return apply_bonus(student, bonus), bonus


# ---------------------------------------------------------------------------
# Automatic rules
# ---------------------------------------------------------------------------

BonusRule = Callable[[StudentProfile, BonusConfig, datetime], list[AvailableBonus]]


def _awarded_since(student: StudentProfile, bonus_type: BonusType, since: datetime) -> list[BonusRecord]:
    return [
        b for b in student.stats.bonus_history
        if b.type == bonus_type and b.awarded_at >= since
    ]


def _last_streak_break(student: StudentProfile) -> datetime | None:
    breaks = [
        p.applied_at for p in student.stats.penalty_history
        if p.type == PenaltyType.STREAK_BREAK and not p.waived
    ]
    return max(breaks, default=None)


def _streak_milestone_rule(student: StudentProfile, config: BonusConfig, now: datetime) -> list[AvailableBonus]:
    since = _last_streak_break(student) or datetime.min.replace(tzinfo=timezone.utc)
    already = {b.reason for b in _awarded_since(student, BonusType.STREAK_MILESTONE, since)}

    found = []
    for days, reward in sorted(config.streak_milestones.items()):
        reason = f"{days}-day streak milestone"
        if student.stats.streak_days >= days and reason not in already:
            found.append(AvailableBonus(
                type=BonusType.STREAK_MILESTONE,
                label=f"{days}-Day Streak",
                requirement=f"Stay active {days} days in a row",
                reward=reward,
                reason=reason,
            ))
    return found


def _clean_period_rule(bonus_type: BonusType, days: int, reward: Callable[[BonusConfig], int]) -> BonusRule:
    def rule(student: StudentProfile, config: BonusConfig, now: datetime) -> list[AvailableBonus]:
        if student.stats.streak_days <= 0:
            return []
        if get_total_penalties_in_period(student.stats.penalty_history, days, now).count:
            return []
        if _awarded_since(student, bonus_type, now - timedelta(days=days)):
            return []
        return [AvailableBonus(
            type=bonus_type,
            label=BONUS_DISPLAY[bonus_type]["label"],
            requirement=f"No penalties for {days} days",
            reward=reward(config),
            reason=f"No penalties in the last {days} days",
        )]

    return rule


def _homework_streak_rule(student: StudentProfile, config: BonusConfig, now: datetime) -> list[AvailableBonus]:
    streak = student.stats.homework_streak
    if streak < config.homework_streak_threshold:
        return []
    if _awarded_since(student, BonusType.HOMEWORK_STREAK, now - timedelta(days=config.cooldown_days)):
        return []
    return [AvailableBonus(
        type=BonusType.HOMEWORK_STREAK,
        label="Homework Streak",
        requirement=f"{config.homework_streak_threshold} on-time homework submissions in a row",
        reward=config.homework_streak_bonus,
        reason=f"{streak} on-time homework submissions in a row",
    )]


def _attendance_rule(student: StudentProfile, config: BonusConfig, now: datetime) -> list[AvailableBonus]:
    stats = student.stats
    if stats.total_sessions <= 0 or stats.missed_sessions_count > 0:
        return []
    if stats.attendance_rate is not None and stats.attendance_rate < 100:
        return []
    if _awarded_since(student, BonusType.ATTENDANCE_BONUS, now - timedelta(days=config.cooldown_days)):
        return []
    return [AvailableBonus(
        type=BonusType.ATTENDANCE_BONUS,
        label="Perfect Attendance",
        requirement="Attend every scheduled session",
        reward=config.perfect_attendance_weekly,
        reason="Perfect attendance this week",
    )]


BONUS_RULES: tuple[BonusRule, ...] = (
    _streak_milestone_rule,
    _clean_period_rule(BonusType.CLEAN_WEEK, 7, lambda c: c.clean_week_bonus),
    _clean_period_rule(BonusType.CLEAN_MONTH, 30, lambda c: c.clean_month_bonus),
    _homework_streak_rule,
    _attendance_rule,
)


def available_bonuses(
    student: StudentProfile,
    config: BonusConfig = DEFAULT_BONUS_CONFIG,
    now: datetime | None = None,
) -> list[AvailableBonus]:
    """Return every automatic bonus the student qualifies for right now."""
    now = now or datetime.now(timezone.utc)
    found: list[AvailableBonus] = []
    for rule in BONUS_RULES:
        found.extend(rule(student, config, now))
    return found


def run_automatic_bonus_checks(
    student: StudentProfile,
    config: BonusConfig = DEFAULT_BONUS_CONFIG,
    now: datetime | None = None,
) -> tuple[StudentProfile, list[BonusRecord]]:
    """Award every qualifying automatic bonus in one pass."""
    now = now or datetime.now(timezone.utc)
    awarded: list[BonusRecord] = []
    for bonus in available_bonuses(student, config, now):
        record = create_bonus_record(bonus.type, bonus.reward, bonus.reason, "system", now=now)
        student = apply_bonus(student, record)
        awarded.append(record)

    logger.info("Automatic bonus check for student %s: %d awarded", student.id, len(awarded))
    return student, awarded
