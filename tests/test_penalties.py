"""Tests for the penalty calculator and its configuration."""

import json

import pytest

from pointledger.schemas import PenaltyType
from pointledger.services.penalties import (
    DEFAULT_PENALTY_CONFIG,
    PenaltyConfig,
    PenaltyTier,
    TwoTierRule,
    calculate_penalty,
    create_penalty_record,
    load_penalty_config,
    penalty_display_info,
    penalty_reason_text,
)


@pytest.mark.parametrize(
    ("penalty_type", "offense_count", "expected"),
    [
        # 5% of 1000 = 50, inside 15..50
        (PenaltyType.MISSED_SESSION, 1, 50),
        # 10% of 1000 = 100, capped at 75
        (PenaltyType.MISSED_SESSION, 2, 75),
        (PenaltyType.LATE_HOMEWORK, 1, 50),
        (PenaltyType.LATE_HOMEWORK, 2, 75),
        (PenaltyType.LATE_HOMEWORK, 3, 100),
        (PenaltyType.NO_HOMEWORK, 1, 75),
        (PenaltyType.NO_HOMEWORK, 4, 100),
        (PenaltyType.LOW_ENGAGEMENT, 1, 50),
        (PenaltyType.LOW_ENGAGEMENT, 2, 100),
        # 3% base + 1 per offense, at most 5%
        (PenaltyType.STREAK_BREAK, 1, 40),
        (PenaltyType.STREAK_BREAK, 2, 50),
        (PenaltyType.STREAK_BREAK, 7, 50),
        (PenaltyType.CONSTELLATION_DECAY, 1, 20),
        (PenaltyType.CONSTELLATION_DECAY, 9, 20),
    ],
)
def test_default_tiers_at_1000_points(penalty_type, offense_count, expected):
    assert calculate_penalty(1000, penalty_type, offense_count) == expected


def test_string_penalty_type_is_accepted():
    assert calculate_penalty(1000, "late-homework", 1) == 50


def test_unknown_penalty_type_deducts_nothing():
    assert calculate_penalty(1000, "detention", 1) == 0


@pytest.mark.parametrize("penalty_type", list(PenaltyType))
def test_zero_balance_deducts_nothing(penalty_type):
    assert calculate_penalty(0, penalty_type, 3) == 0


@pytest.mark.parametrize("penalty_type", list(PenaltyType))
@pytest.mark.parametrize("points", [1, 7, 10, 33, 120, 999, 25_000])
def test_deduction_never_exceeds_balance(penalty_type, points):
    for count in range(1, 5):
        assert 0 <= calculate_penalty(points, penalty_type, count) <= points


def test_minimum_is_clamped_to_balance():
    # low-engagement first offense has a 20 point minimum
    assert calculate_penalty(10, PenaltyType.LOW_ENGAGEMENT, 1) == 10


def test_minimum_applies_when_percentage_is_small():
    # 5% of 200 = 10, raised to the 25 point minimum
    assert calculate_penalty(200, PenaltyType.LATE_HOMEWORK, 1) == 25


def test_streak_break_minimum_beats_five_percent_cap():
    # 4% of 100 = 4, cap 5, minimum 10 wins
    assert calculate_penalty(100, PenaltyType.STREAK_BREAK, 1) == 10


def test_constellation_decay_bounds():
    assert calculate_penalty(100, PenaltyType.CONSTELLATION_DECAY, 1) == 5
    assert calculate_penalty(5000, PenaltyType.CONSTELLATION_DECAY, 1) == 25


@pytest.mark.parametrize("offense_count", [0, -1, -10])
def test_non_positive_offense_count_counts_as_first(offense_count):
    for penalty_type in PenaltyType:
        assert calculate_penalty(1000, penalty_type, offense_count) == calculate_penalty(
            1000, penalty_type, 1
        )


def test_missed_session_repeat_never_below_first_offense_minimum():
    first_min = DEFAULT_PENALTY_CONFIG.missed_session.first_offense.min_points
    repeat_min = DEFAULT_PENALTY_CONFIG.missed_session.repeat.min_points
    for points in range(max(first_min, repeat_min) + 1, 3000, 37):
        assert calculate_penalty(points, PenaltyType.MISSED_SESSION, 2) >= first_min
        assert calculate_penalty(points, PenaltyType.MISSED_SESSION, 2) >= calculate_penalty(
            points, PenaltyType.MISSED_SESSION, 1
        )


def test_rounds_half_up():
    config = PenaltyConfig(
        missed_session=TwoTierRule(
            first_offense=PenaltyTier(percentage=5, min_points=0, max_points=1000),
            repeat=PenaltyTier(percentage=5, min_points=0, max_points=1000),
        )
    )
    # 5% of 530 = 26.5
    assert calculate_penalty(530, PenaltyType.MISSED_SESSION, 1, config) == 27


def test_custom_config_is_used():
    config = DEFAULT_PENALTY_CONFIG.model_copy(
        update={
            "late_homework": DEFAULT_PENALTY_CONFIG.late_homework.model_copy(
                update={"first_offense": PenaltyTier(percentage=5, min_points=20, max_points=50)}
            )
        }
    )
    assert calculate_penalty(1000, PenaltyType.LATE_HOMEWORK, 1, config) == 50
    assert calculate_penalty(300, PenaltyType.LATE_HOMEWORK, 1, config) == 20


def test_calculation_is_deterministic():
    results = {calculate_penalty(777, PenaltyType.NO_HOMEWORK, 2) for _ in range(20)}
    assert len(results) == 1


# ---------------------------------------------------------------------------
# Config loading
# ---------------------------------------------------------------------------


def test_load_config_without_path_returns_defaults():
    assert load_penalty_config(None) is DEFAULT_PENALTY_CONFIG


def test_load_config_merges_partial_overrides(tmp_path):
    path = tmp_path / "penalties.json"
    path.write_text(json.dumps({"missed_session": {"first_offense": {"percentage": 7}}}))

    config = load_penalty_config(path)

    assert config.missed_session.first_offense.percentage == 7
    assert config.missed_session.first_offense.min_points == 15
    assert config.missed_session.repeat == DEFAULT_PENALTY_CONFIG.missed_session.repeat
    assert config.no_homework == DEFAULT_PENALTY_CONFIG.no_homework


def test_load_config_falls_back_on_invalid_file(tmp_path):
    path = tmp_path / "penalties.json"
    path.write_text("{not json")
    assert load_penalty_config(path) is DEFAULT_PENALTY_CONFIG


def test_load_config_falls_back_on_missing_file(tmp_path):
    assert load_penalty_config(tmp_path / "missing.json") is DEFAULT_PENALTY_CONFIG


def test_load_config_falls_back_on_bad_values(tmp_path):
    path = tmp_path / "penalties.json"
    path.write_text(json.dumps({"constellation_decay": {"min_points": "lots"}}))
    assert load_penalty_config(path) is DEFAULT_PENALTY_CONFIG


# ---------------------------------------------------------------------------
# Records and text
# ---------------------------------------------------------------------------


def test_reason_text_escalates():
    assert penalty_reason_text(PenaltyType.STREAK_BREAK, 1) == "Activity streak broken"
    assert penalty_reason_text(PenaltyType.STREAK_BREAK, 3) == "Activity streak broken (3x offense)"
    assert penalty_reason_text(PenaltyType.MISSED_SESSION, 1) == "Missed scheduled tutoring session"
    assert penalty_reason_text(PenaltyType.MISSED_SESSION, 2) == "Missed tutoring session (2x offense)"
    assert penalty_reason_text(PenaltyType.LOW_ENGAGEMENT, 3) == "Continued low engagement (3 weeks)"
    assert penalty_reason_text("detention", 1) == "Penalty applied"


def test_display_info_falls_back_for_unknown_type():
    assert penalty_display_info(PenaltyType.CONSTELLATION_DECAY)["label"] == "Skill Decay"
    assert penalty_display_info("detention")["icon"] == "alert-circle"


def test_create_penalty_record(now):
    record = create_penalty_record(PenaltyType.NO_HOMEWORK, 35, "Homework not submitted", "tutor", now=now)

    assert record.id.startswith(f"penalty-{int(now.timestamp() * 1000)}-")
    assert record.points_deducted == 35
    assert record.applied_at == now
    assert record.applied_by == "tutor"
    assert record.waived is False


def test_record_ids_are_unique(now):
    ids = {create_penalty_record(PenaltyType.STREAK_BREAK, 10, "x", now=now).id for _ in range(50)}
    assert len(ids) == 50
