"""ORM models package - exports all models and Base."""

from pointledger.database import Base
from pointledger.models.student import Student
from pointledger.models.penalty_record import PenaltyRecordRow
from pointledger.models.bonus_record import BonusRecordRow

__all__ = [
    "Base",
    "Student",
    "PenaltyRecordRow",
    "BonusRecordRow",
]
