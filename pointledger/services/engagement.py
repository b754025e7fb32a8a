"""Weekly engagement review and topic decay checks."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone

from pointledger.schemas import PenaltyRecord, PenaltyType, StudentProfile
from pointledger.services.ledger import apply_penalty
from pointledger.services.penalties import DEFAULT_PENALTY_CONFIG, PenaltyConfig

logger = logging.getLogger(__name__)

LOW_ENGAGEMENT_THRESHOLD = 50
# Decay level from which a topic costs points
DECAY_PENALTY_LEVEL = 2


def is_low_engagement_week(
    week_data: Mapping[str, float | None],
    enrolled_subjects: Iterable[str],
) -> bool:
    """True when the average progress across enrolled subjects is below 50.

    Subjects without a number are skipped; no data at all counts as low.
    """
    values = [
        week_data[s] for s in enrolled_subjects
        if isinstance(week_data.get(s), (int, float))
    ]
    if not values:
        return True
    return sum(values) / len(values) < LOW_ENGAGEMENT_THRESHOLD


def review_week(
    student: StudentProfile,
    week_data: Mapping[str, float | None],
    enrolled_subjects: Iterable[str],
    config: PenaltyConfig = DEFAULT_PENALTY_CONFIG,
    now: datetime | None = None,
) -> tuple[StudentProfile, PenaltyRecord | None]:
    """Record one week of engagement.

    A low week increments ``low_engagement_weeks``; once the count exceeds
    the configured warning weeks a low-engagement penalty is applied. A good
    week resets the count; with the count already at 0 the student is
    returned unchanged.
    """
    if not is_low_engagement_week(week_data, enrolled_subjects):
        if student.stats.low_engagement_weeks == 0:
            return student, None
        stats = student.stats.model_copy(update={"low_engagement_weeks": 0})
        return student.model_copy(update={"stats": stats}), None

    weeks = student.stats.low_engagement_weeks + 1
    stats = student.stats.model_copy(update={"low_engagement_weeks": weeks})
    student = student.model_copy(update={"stats": stats})

    if weeks <= config.low_engagement.warning_weeks:
        logger.info("Low engagement warning for student %s (week %d)", student.id, weeks)
        return student, None

    return apply_penalty(student, PenaltyType.LOW_ENGAGEMENT, "system", config=config, now=now)


def topic_decay_level(last_practice: datetime | None, now: datetime | None = None) -> int:
    """0 = active, 1 = slight, 2 = moderate, 3 = severe (or never practised)."""
    if last_practice is None:
        return 3

    now = now or datetime.now(timezone.utc)
    if last_practice.tzinfo is None:
        last_practice = last_practice.replace(tzinfo=timezone.utc)
    days_since = math.floor((now - last_practice).total_seconds() / 86400)

    if days_since <= 7:
        return 0
    if days_since <= 14:
        return 1
    if days_since <= 30:
        return 2
    return 3


def check_topic_decay(
    student: StudentProfile,
    topic: str,
    last_practice: datetime | None,
    config: PenaltyConfig = DEFAULT_PENALTY_CONFIG,
    now: datetime | None = None,
) -> tuple[StudentProfile, int, PenaltyRecord | None]:
    """Apply a constellation-decay penalty when a topic has moderately decayed.

    Returns the updated student, the decay level and the penalty, if any.
    """
    level = topic_decay_level(last_practice, now)
    if level < DECAY_PENALTY_LEVEL:
        return student, level, None

    updated, penalty = apply_penalty(
        student,
        PenaltyType.CONSTELLATION_DECAY,
        "system",
        custom_reason=f"{topic} skills decayed from lack of practice",
        config=config,
        now=now,
    )
    return updated, level, penalty

