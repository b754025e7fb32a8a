"""Penalty API routes: preview, apply, waive and summarise penalties."""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from pointledger.database import get_db
from pointledger.dependencies import check_version, get_penalty_config, get_student, save_profile
from pointledger.models.student import Student
from pointledger.schemas import AppliedBy, PenaltyRecord, PenaltySummary, PenaltyType
from pointledger.services.ledger import (
    apply_penalty,
    get_total_penalties_in_period,
    offense_count,
    waive_penalty,
)
from pointledger.services.penalties import PenaltyConfig, calculate_penalty, penalty_display_info
from pointledger.services.student_store import to_profile

router = APIRouter(prefix="/api/students/{student_pk}/penalties", tags=["penalties"])


class ApplyPenaltyRequest(BaseModel):
    penalty_type: PenaltyType
    applied_by: AppliedBy = "tutor"
    reason: str | None = None
    expected_version: int | None = None


class ApplyPenaltyResponse(BaseModel):
    penalty: PenaltyRecord
    points: int
    version: int


class WaiveRequest(BaseModel):
    waived_by: str = Field(min_length=1)
    reason: str = Field(min_length=1)
    expected_version: int | None = None


class WaiveResponse(BaseModel):
    penalty: PenaltyRecord
    changed: bool
    points: int
    version: int


class PenaltyPreview(BaseModel):
    penalty_type: PenaltyType
    label: str
    offense_count: int
    points: int


@router.get("", response_model=list[PenaltyRecord])
async def list_penalties(student: Student = Depends(get_student)):
    """Penalty history, oldest first."""
    return list(to_profile(student).stats.penalty_history)


@router.get("/preview", response_model=PenaltyPreview)
async def preview_penalty(
    penalty_type: PenaltyType,
    student: Student = Depends(get_student),
    config: PenaltyConfig = Depends(get_penalty_config),
):
    """How many points the next penalty of this type would deduct."""
    profile = to_profile(student)
    count = offense_count(profile, penalty_type) + 1
    return PenaltyPreview(
        penalty_type=penalty_type,
        label=penalty_display_info(penalty_type)["label"],
        offense_count=count,
        points=calculate_penalty(profile.points, penalty_type, count, config),
    )


@router.get("/summary", response_model=PenaltySummary)
async def penalty_summary(
    days: int = Query(default=30, ge=1),
    student: Student = Depends(get_student),
):
    """Active penalties in the trailing window."""
    return get_total_penalties_in_period(to_profile(student).stats.penalty_history, days)


@router.post("", response_model=ApplyPenaltyResponse, status_code=201)
async def create_penalty(
    body: ApplyPenaltyRequest,
    student: Student = Depends(get_student),
    db: AsyncSession = Depends(get_db),
    config: PenaltyConfig = Depends(get_penalty_config),
):
    """Apply a penalty to the student."""
    check_version(student, body.expected_version)

    reason = body.reason.strip() if body.reason else None
    updated, penalty = apply_penalty(
        to_profile(student), body.penalty_type, body.applied_by, reason, config
    )
    await save_profile(db, student, updated)

    return ApplyPenaltyResponse(penalty=penalty, points=student.points, version=student.version)


@router.post("/{penalty_id}/waive", response_model=WaiveResponse)
async def waive(
    penalty_id: str,
    body: WaiveRequest,
    student: Student = Depends(get_student),
    db: AsyncSession = Depends(get_db),
):
    """Waive a penalty and restore its points. Waiving twice changes nothing."""
    check_version(student, body.expected_version)
    if not body.reason.strip():
        raise HTTPException(status_code=400, detail="A waive reason is required")

    profile = to_profile(student)
    current = next((p for p in profile.stats.penalty_history if p.id == penalty_id), None)
    if current is None:
        raise HTTPException(status_code=404, detail="Penalty not found")

    updated = waive_penalty(profile, penalty_id, body.waived_by.strip(), body.reason.strip())
    changed = updated is not profile
    if changed:
        await save_profile(db, student, updated)

    penalty = next(p for p in updated.stats.penalty_history if p.id == penalty_id)
    return WaiveResponse(
        penalty=penalty, changed=changed, points=student.points, version=student.version
    )
