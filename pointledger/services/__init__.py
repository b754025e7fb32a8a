"""Service layer - the point ledger and its persistence adapter."""

from pointledger.services.bonuses import (
    DEFAULT_BONUS_CONFIG,
    BonusConfig,
    available_bonuses,
    create_bonus_record,
    run_automatic_bonus_checks,
)
from pointledger.services.ledger import (
    apply_bonus,
    apply_penalty,
    get_total_penalties_in_period,
    is_student_at_risk,
    waive_penalty,
)
from pointledger.services.penalties import (
    DEFAULT_PENALTY_CONFIG,
    PenaltyConfig,
    calculate_penalty,
)

__all__ = [
    "DEFAULT_BONUS_CONFIG",
    "DEFAULT_PENALTY_CONFIG",
    "BonusConfig",
    "PenaltyConfig",
    "apply_bonus",
    "apply_penalty",
    "available_bonuses",
    "calculate_penalty",
    "create_bonus_record",
    "get_total_penalties_in_period",
    "is_student_at_risk",
    "run_automatic_bonus_checks",
    "waive_penalty",
]
