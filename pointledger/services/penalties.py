"""Penalty calculator: converts an offense into an escalating point deduction.

Each penalty type owns a tier selector that maps the offense count to a
``PenaltyTier`` (percentage of the current balance, bounded by a minimum and
maximum). The resulting deduction never exceeds the student's balance.
"""

from __future__ import annotations

import json
import logging
import math
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from pointledger.schemas import AppliedBy, PenaltyRecord, PenaltyType

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class PenaltyTier(BaseModel):
    model_config = ConfigDict(frozen=True)

    percentage: float
    min_points: int
    max_points: int


class StreakBreakRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_points: int = 10
    # Base percentage; each offense adds 1, up to +2
    percentage: float = 3
    # Hard cap as a share of the current balance
    max_percentage: float = 5


class TwoTierRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    first_offense: PenaltyTier
    repeat: PenaltyTier


class LateHomeworkRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    first_offense: PenaltyTier = PenaltyTier(percentage=5, min_points=25, max_points=50)
    second_offense: PenaltyTier = PenaltyTier(percentage=8, min_points=35, max_points=75)
    repeat: PenaltyTier = PenaltyTier(percentage=10, min_points=50, max_points=100)


class LowEngagementRule(TwoTierRule):
    # Low weeks tolerated before the penalty applies
    warning_weeks: int = 1


class PenaltyConfig(BaseModel):
    """Recognised options for every penalty type."""

    model_config = ConfigDict(frozen=True)

    streak_break: StreakBreakRule = StreakBreakRule()
    missed_session: TwoTierRule = TwoTierRule(
        first_offense=PenaltyTier(percentage=5, min_points=15, max_points=50),
        repeat=PenaltyTier(percentage=10, min_points=25, max_points=75),
    )
    late_homework: LateHomeworkRule = LateHomeworkRule()
    no_homework: TwoTierRule = TwoTierRule(
        first_offense=PenaltyTier(percentage=8, min_points=35, max_points=75),
        repeat=PenaltyTier(percentage=10, min_points=50, max_points=100),
    )
    low_engagement: LowEngagementRule = LowEngagementRule(
        first_offense=PenaltyTier(percentage=5, min_points=20, max_points=50),
        repeat=PenaltyTier(percentage=10, min_points=40, max_points=100),
    )
    constellation_decay: PenaltyTier = PenaltyTier(percentage=2, min_points=5, max_points=25)


DEFAULT_PENALTY_CONFIG = PenaltyConfig()


def load_penalty_config(path: Path | None) -> PenaltyConfig:
    """Return the default config merged with overrides from a JSON file.

    A missing path yields the defaults. An unreadable or invalid file is
    logged and ignored.
    """
    if path is None:
        return DEFAULT_PENALTY_CONFIG

    try:
        overrides = json.loads(Path(path).read_text(encoding="utf-8"))
        merged = _deep_merge(DEFAULT_PENALTY_CONFIG.model_dump(), overrides)
        return PenaltyConfig.model_validate(merged)
    except (OSError, json.JSONDecodeError, ValidationError, TypeError) as e:
        logger.warning("Ignoring penalty config %s: %s", path, e)
        return DEFAULT_PENALTY_CONFIG


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# ---------------------------------------------------------------------------
# Tier selection
# ---------------------------------------------------------------------------

TierSelector = Callable[[PenaltyConfig, int, int], PenaltyTier]


def _streak_break_tier(config: PenaltyConfig, current_points: int, offense_count: int) -> PenaltyTier:
    rule = config.streak_break
    return PenaltyTier(
        percentage=rule.percentage + min(offense_count, 2),
        min_points=rule.min_points,
        max_points=round_half_up(current_points * rule.max_percentage / 100),
    )


def _two_tier(pick: Callable[[PenaltyConfig], TwoTierRule]) -> TierSelector:
    def select(config: PenaltyConfig, current_points: int, offense_count: int) -> PenaltyTier:
        rule = pick(config)
        return rule.first_offense if offense_count <= 1 else rule.repeat

    return select


def _late_homework_tier(config: PenaltyConfig, current_points: int, offense_count: int) -> PenaltyTier:
    rule = config.late_homework
    if offense_count <= 1:
        return rule.first_offense
    if offense_count == 2:
        return rule.second_offense
    return rule.repeat


def _constellation_decay_tier(config: PenaltyConfig, current_points: int, offense_count: int) -> PenaltyTier:
    return config.constellation_decay


TIER_SELECTORS: dict[PenaltyType, TierSelector] = {
    PenaltyType.STREAK_BREAK: _streak_break_tier,
    PenaltyType.MISSED_SESSION: _two_tier(lambda c: c.missed_session),
    PenaltyType.LATE_HOMEWORK: _late_homework_tier,
    PenaltyType.NO_HOMEWORK: _two_tier(lambda c: c.no_homework),
    PenaltyType.LOW_ENGAGEMENT: _two_tier(lambda c: c.low_engagement),
    PenaltyType.CONSTELLATION_DECAY: _constellation_decay_tier,
}


# ===================================================================
# Public API
# ===================================================================


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (Python's round() is banker's)."""
    return math.floor(value + 0.5)


def parse_penalty_type(value: PenaltyType | str) -> PenaltyType | None:
    """Return the matching PenaltyType, or None for an unknown value."""
    try:
        return PenaltyType(value)
    except ValueError:
        return None


def calculate_penalty(
    current_points: int,
    penalty_type: PenaltyType | str,
    offense_count: int,
    config: PenaltyConfig = DEFAULT_PENALTY_CONFIG,
) -> int:
    """Return the points to deduct for an offense.

    Parameters
    ----------
    current_points : int
        The student's balance before the penalty.
    penalty_type : PenaltyType | str
        Unknown types deduct nothing.
    offense_count : int
        1 for a first offense; values below 1 are treated as 1.
    config : PenaltyConfig
        Tier table to use.
    """
    kind = parse_penalty_type(penalty_type)
    if kind is None or current_points <= 0:
        return 0

    offense_count = max(1, offense_count)
    tier = TIER_SELECTORS[kind](config, current_points, offense_count)

    raw = round_half_up(current_points * tier.percentage / 100)
    bounded = max(tier.min_points, min(tier.max_points, raw))
    return min(bounded, current_points)


def penalty_reason_text(penalty_type: PenaltyType | str, offense_count: int) -> str:
    """Default reason shown in the penalty history."""
    kind = parse_penalty_type(penalty_type)
    first = offense_count <= 1

    if kind is PenaltyType.STREAK_BREAK:
        return "Activity streak broken" if first else f"Activity streak broken ({offense_count}x offense)"
    if kind is PenaltyType.MISSED_SESSION:
        return "Missed scheduled tutoring session" if first else f"Missed tutoring session ({offense_count}x offense)"
    if kind is PenaltyType.LATE_HOMEWORK:
        return "Late homework submission" if first else f"Late homework submission ({offense_count}x offense)"
    if kind is PenaltyType.NO_HOMEWORK:
        return "Homework not submitted" if first else f"Homework not submitted ({offense_count}x offense)"
    if kind is PenaltyType.LOW_ENGAGEMENT:
        return "Low engagement this week" if first else f"Continued low engagement ({offense_count} weeks)"
    if kind is PenaltyType.CONSTELLATION_DECAY:
        return "Topic skills decayed from lack of practice"
    return "Penalty applied"


def create_penalty_record(
    penalty_type: PenaltyType,
    points_deducted: int,
    reason: str,
    applied_by: AppliedBy = "system",
    now: datetime | None = None,
) -> PenaltyRecord:
    now = now or datetime.now(timezone.utc)
    return PenaltyRecord(
        id=make_record_id("penalty", now),
        type=penalty_type,
        points_deducted=points_deducted,
        reason=reason,
        applied_at=now,
        applied_by=applied_by,
    )


def make_record_id(prefix: str, now: datetime) -> str:
    """Opaque time + random id, e.g. ``penalty-1760860800000-3f9a1c2be``."""
    return f"{prefix}-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:9]}"


# ---------------------------------------------------------------------------
# Display info for dashboards
# ---------------------------------------------------------------------------
PENALTY_DISPLAY: dict[PenaltyType, dict[str, str]] = {
    PenaltyType.STREAK_BREAK: {"label": "Streak Break", "color": "orange", "icon": "flame-off"},
    PenaltyType.MISSED_SESSION: {"label": "Missed Session", "color": "red", "icon": "calendar-x"},
    PenaltyType.LATE_HOMEWORK: {"label": "Late Homework", "color": "yellow", "icon": "clock"},
    PenaltyType.NO_HOMEWORK: {"label": "Missing Homework", "color": "red", "icon": "file-x"},
    PenaltyType.LOW_ENGAGEMENT: {"label": "Low Engagement", "color": "orange", "icon": "trending-down"},
    PenaltyType.CONSTELLATION_DECAY: {"label": "Skill Decay", "color": "purple", "icon": "star-off"},
}

_GENERIC_PENALTY_DISPLAY = {"label": "Penalty", "color": "gray", "icon": "alert-circle"}


def penalty_display_info(penalty_type: PenaltyType | str) -> dict[str, str]:
    kind = parse_penalty_type(penalty_type)
    return PENALTY_DISPLAY.get(kind, _GENERIC_PENALTY_DISPLAY)
