"""Ledger applier: appends penalty/bonus records and adjusts the balance.

All functions take a ``StudentProfile`` and return a new one; the input is
never modified and nothing here raises on bad input. Unknown ids, unknown
penalty types and empty histories degrade to no-ops or zero results.

Callers own persistence and must serialise updates per student: two applies
computed from the same starting profile will each see the old history.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from pointledger.schemas import (
    AppliedBy,
    BonusRecord,
    PenaltyRecord,
    PenaltySummary,
    PenaltyType,
    RiskAssessment,
    StudentProfile,
)
from pointledger.services.penalties import (
    DEFAULT_PENALTY_CONFIG,
    PenaltyConfig,
    calculate_penalty,
    create_penalty_record,
    parse_penalty_type,
    penalty_reason_text,
)

logger = logging.getLogger(__name__)

RISK_WINDOW_DAYS = 14


def offense_count(student: StudentProfile, penalty_type: PenaltyType) -> int:
    """Count active (non-waived) penalties of one type already on record."""
    return sum(
        1 for p in student.stats.penalty_history
        if p.type == penalty_type and not p.waived
    )


def apply_penalty(
    student: StudentProfile,
    penalty_type: PenaltyType | str,
    applied_by: AppliedBy = "system",
    custom_reason: str | None = None,
    config: PenaltyConfig = DEFAULT_PENALTY_CONFIG,
    now: datetime | None = None,
) -> tuple[StudentProfile, PenaltyRecord | None]:
    """Deduct points for an offense and record it.

    Returns the updated student and the new record. An unknown penalty type
    returns the student unchanged and ``None``.
    """
    kind = parse_penalty_type(penalty_type)
    if kind is None:
        logger.warning("Unknown penalty type %r for student %s", penalty_type, student.id)
        return student, None

    count = offense_count(student, kind) + 1
    deduction = calculate_penalty(student.points, kind, count, config)
    reason = custom_reason or penalty_reason_text(kind, count)
    penalty = create_penalty_record(kind, deduction, reason, applied_by, now=now)

    stats = student.stats.model_copy(
        update={"penalty_history": (*student.stats.penalty_history, penalty)}
    )
    updated = student.model_copy(
        update={"points": max(0, student.points - deduction), "stats": stats}
    )
    logger.info(
        "Penalty %s applied to student %s: -%d (offense %d)",
        kind.value, student.id, deduction, count,
    )
    return updated, penalty


def apply_bonus(student: StudentProfile, bonus: BonusRecord) -> StudentProfile:
    """Append a bonus record and add its points (no upper bound)."""
    stats = student.stats.model_copy(
        update={"bonus_history": (*student.stats.bonus_history, bonus)}
    )
    logger.info(
        "Bonus %s awarded to student %s: +%d",
        bonus.type.value, student.id, bonus.points_awarded,
    )
    return student.model_copy(
        update={"points": student.points + bonus.points_awarded, "stats": stats}
    )


def waive_penalty(
    student: StudentProfile,
    penalty_id: str,
    waived_by: str,
    reason: str,
    now: datetime | None = None,
) -> StudentProfile:
    """Mark a penalty as waived and restore its points.

    Unknown or already waived ids return the student unchanged.
    """
    history = student.stats.penalty_history
    index = next((i for i, p in enumerate(history) if p.id == penalty_id), None)
    if index is None or history[index].waived:
        logger.debug("Waive of %s on student %s is a no-op", penalty_id, student.id)
        return student

    penalty = history[index]
    waived = penalty.model_copy(
        update={
            "waived": True,
            "waived_by": waived_by,
            "waived_at": now or datetime.now(timezone.utc),
            "waived_reason": reason,
        }
    )
    stats = student.stats.model_copy(
        update={"penalty_history": (*history[:index], waived, *history[index + 1:])}
    )
    logger.info(
        "Penalty %s waived for student %s by %s: +%d restored",
        penalty_id, student.id, waived_by, penalty.points_deducted,
    )
    return student.model_copy(
        update={"points": student.points + penalty.points_deducted, "stats": stats}
    )


def get_total_penalties_in_period(
    history: Iterable[PenaltyRecord],
    days: int = 30,
    now: datetime | None = None,
) -> PenaltySummary:
    """Count and sum active penalties applied within the trailing window."""
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
    recent = [p for p in history if not p.waived and p.applied_at >= cutoff]
    return PenaltySummary(
        count=len(recent),
        total_points=sum(p.points_deducted for p in recent),
    )


def is_student_at_risk(student: StudentProfile, now: datetime | None = None) -> RiskAssessment:
    """Score recent penalties, streak, engagement and attendance.

    Scoring:
    - 3+ penalties in the last 14 days: +2 (1-2 penalties: +1)
    - no active streak: +1
    - 2+ weeks of low engagement: +2
    - 2+ missed sessions: +2

    ``high`` from 4, ``medium`` from 2; at risk from 2.
    """
    stats = student.stats
    reasons: list[str] = []
    score = 0

    recent = get_total_penalties_in_period(stats.penalty_history, RISK_WINDOW_DAYS, now).count
    if recent >= 3:
        score += 2
        reasons.append(f"{recent} penalties in the last 2 weeks")
    elif recent >= 1:
        score += 1
        reasons.append(f"{recent} recent {'penalty' if recent == 1 else 'penalties'}")

    if stats.streak_days == 0:
        score += 1
        reasons.append("No active streak")

    if stats.low_engagement_weeks >= 2:
        score += 2
        reasons.append(f"{stats.low_engagement_weeks} weeks of low engagement")

    if stats.missed_sessions_count >= 2:
        score += 2
        reasons.append(f"{stats.missed_sessions_count} missed sessions")

    if score >= 4:
        level = "high"
    elif score >= 2:
        level = "medium"
    else:
        level = "low"

    return RiskAssessment(at_risk=score >= 2, risk_level=level, reasons=reasons)
