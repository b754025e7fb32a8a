"""FastAPI dependencies for route handlers."""

from functools import lru_cache

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from pointledger.config import settings
from pointledger.database import get_db
from pointledger.models.student import Student
from pointledger.schemas import StudentProfile
from pointledger.services.bonuses import BonusConfig, load_bonus_config
from pointledger.services.penalties import PenaltyConfig, load_penalty_config
from pointledger.services.student_store import get_student_row, write_profile


@lru_cache
def get_penalty_config() -> PenaltyConfig:
    """Penalty rules, read once from PENALTY_CONFIG_PATH if set."""
    return load_penalty_config(settings.PENALTY_CONFIG_PATH)


@lru_cache
def get_bonus_config() -> BonusConfig:
    """Bonus rules, read once from BONUS_CONFIG_PATH if set."""
    return load_bonus_config(settings.BONUS_CONFIG_PATH)


async def get_student(student_pk: int, db: AsyncSession = Depends(get_db)) -> Student:
    """Require an existing student. Returns the ORM row."""
    student = await get_student_row(db, student_pk)
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


def check_version(student: Student, expected_version: int | None) -> None:
    """Reject a write computed from an outdated copy of the student."""
    if expected_version is not None and expected_version != student.version:
        raise HTTPException(
            status_code=409,
            detail=f"Student was modified (version {student.version}, expected {expected_version})",
        )


async def save_profile(db: AsyncSession, student: Student, profile: StudentProfile) -> None:
    """Persist a ledger result, turning a concurrent update into a 409."""
    write_profile(student, profile)
    try:
        await db.commit()
    except StaleDataError:
        await db.rollback()
        raise HTTPException(
            status_code=409, detail="Student was modified by another request"
        )
