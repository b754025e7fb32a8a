"""Bonus API routes: manual awards and automatic bonus checks."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from pointledger.database import get_db
from pointledger.dependencies import check_version, get_bonus_config, get_student, save_profile
from pointledger.models.student import Student
from pointledger.schemas import AppliedBy, AvailableBonus, BonusRecord, BonusType
from pointledger.services.bonuses import (
    BonusConfig,
    available_bonuses,
    bonus_display_info,
    create_bonus_record,
    default_bonus_points,
    run_automatic_bonus_checks,
)
from pointledger.services.ledger import apply_bonus
from pointledger.services.student_store import to_profile

router = APIRouter(prefix="/api/students/{student_pk}/bonuses", tags=["bonuses"])


class AwardBonusRequest(BaseModel):
    bonus_type: BonusType
    points: int | None = Field(default=None, ge=1)
    reason: str | None = None
    awarded_by: AppliedBy = "tutor"
    expected_version: int | None = None


class AwardBonusResponse(BaseModel):
    bonus: BonusRecord
    points: int
    version: int


class AutoCheckRequest(BaseModel):
    expected_version: int | None = None


class AutoCheckResponse(BaseModel):
    awarded: list[BonusRecord]
    total_awarded: int
    points: int
    version: int


@router.get("", response_model=list[BonusRecord])
async def list_bonuses(student: Student = Depends(get_student)):
    return list(to_profile(student).stats.bonus_history)


@router.get("/available", response_model=list[AvailableBonus])
async def list_available_bonuses(
    student: Student = Depends(get_student),
    config: BonusConfig = Depends(get_bonus_config),
):
    """Automatic bonuses the student qualifies for right now."""
    return available_bonuses(to_profile(student), config)


@router.post("", response_model=AwardBonusResponse, status_code=201)
async def award_bonus(
    body: AwardBonusRequest,
    student: Student = Depends(get_student),
    db: AsyncSession = Depends(get_db),
    config: BonusConfig = Depends(get_bonus_config),
):
    """Award a bonus; amount and reason default from the bonus type."""
    check_version(student, body.expected_version)

    points = body.points or default_bonus_points(body.bonus_type, config)
    reason = (body.reason or "").strip() or (
        f"Awarded by {body.awarded_by}: {bonus_display_info(body.bonus_type)['label']}"
    )
    bonus = create_bonus_record(body.bonus_type, points, reason, body.awarded_by)
    await save_profile(db, student, apply_bonus(to_profile(student), bonus))

    return AwardBonusResponse(bonus=bonus, points=student.points, version=student.version)


@router.post("/auto-check", response_model=AutoCheckResponse)
async def auto_check(
    body: AutoCheckRequest | None = None,
    student: Student = Depends(get_student),
    db: AsyncSession = Depends(get_db),
    config: BonusConfig = Depends(get_bonus_config),
):
    """Run every automatic bonus rule and award what qualifies."""
    check_version(student, body.expected_version if body else None)

    updated, awarded = run_automatic_bonus_checks(to_profile(student), config)
    if awarded:
        await save_profile(db, student, updated)

    return AutoCheckResponse(
        awarded=awarded,
        total_awarded=sum(b.points_awarded for b in awarded),
        points=student.points,
        version=student.version,
    )
