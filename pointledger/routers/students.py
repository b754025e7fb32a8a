"""Student API routes: records, risk assessment and engagement reviews."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from pointledger.database import get_db
from pointledger.dependencies import check_version, get_penalty_config, get_student, save_profile
from pointledger.models.student import Student
from pointledger.schemas import PenaltyRecord, RiskAssessment, StudentProfile
from pointledger.services.engagement import check_topic_decay, review_week
from pointledger.services.ledger import is_student_at_risk
from pointledger.services.penalties import PenaltyConfig
from pointledger.services.student_store import STATS_FIELDS, to_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/students", tags=["students"])


class StudentCreate(BaseModel):
    name: str = Field(min_length=1)
    email: str | None = None
    points: int = Field(default=0, ge=0)
    streak_days: int = Field(default=0, ge=0)
    homework_streak: int = Field(default=0, ge=0)
    total_sessions: int = Field(default=0, ge=0)
    attendance_rate: float | None = Field(default=None, ge=0, le=100)


class StudentUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    streak_days: int | None = Field(default=None, ge=0)
    longest_streak: int | None = Field(default=None, ge=0)
    missed_sessions_count: int | None = Field(default=None, ge=0)
    late_homework_count: int | None = Field(default=None, ge=0)
    low_engagement_weeks: int | None = Field(default=None, ge=0)
    homework_streak: int | None = Field(default=None, ge=0)
    total_sessions: int | None = Field(default=None, ge=0)
    attendance_rate: float | None = Field(default=None, ge=0, le=100)
    expected_version: int | None = None


class StudentSummary(BaseModel):
    id: int
    name: str
    points: int
    version: int


class AtRiskStudent(BaseModel):
    id: int
    name: str
    points: int
    risk: RiskAssessment


class EngagementRequest(BaseModel):
    week: dict[str, float | None]
    enrolled_subjects: list[str]
    expected_version: int | None = None


class DecayCheckRequest(BaseModel):
    topic: str = Field(min_length=1)
    last_practice: datetime | None = None
    expected_version: int | None = None


class LedgerResult(BaseModel):
    student: StudentProfile
    penalty: PenaltyRecord | None = None


class DecayCheckResult(LedgerResult):
    decay_level: int


@router.post("", response_model=StudentProfile, status_code=201)
async def create_student(body: StudentCreate, db: AsyncSession = Depends(get_db)):
    """Register a student with an empty ledger."""
    student = Student(**body.model_dump(), penalty_records=[], bonus_records=[])
    db.add(student)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Email already in use")

    logger.info("Created student %s (%s)", student.id, student.name)
    return to_profile(student)


@router.get("", response_model=list[StudentSummary])
async def list_students(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Student).order_by(Student.id))
    return [
        StudentSummary(id=s.id, name=s.name, points=s.points, version=s.version)
        for s in result.scalars().all()
    ]


@router.get("/at-risk", response_model=list[AtRiskStudent])
async def list_at_risk_students(db: AsyncSession = Depends(get_db)):
    """Students whose risk level is medium or high, highest risk first."""
    result = await db.execute(select(Student).order_by(Student.id))

    flagged = []
    for row in result.scalars().all():
        risk = is_student_at_risk(to_profile(row))
        if risk.at_risk:
            flagged.append(AtRiskStudent(id=row.id, name=row.name, points=row.points, risk=risk))

    flagged.sort(key=lambda s: s.risk.risk_level != "high")
    return flagged


@router.get("/{student_pk}", response_model=StudentProfile)
async def get_student_profile(student: Student = Depends(get_student)):
    return to_profile(student)


@router.put("/{student_pk}", response_model=StudentProfile)
async def update_student(
    body: StudentUpdate,
    student: Student = Depends(get_student),
    db: AsyncSession = Depends(get_db),
):
    """Update name and stats counters. Points only change through the ledger."""
    check_version(student, body.expected_version)

    changes = body.model_dump(exclude_unset=True, exclude={"expected_version"})
    if "name" in changes and changes["name"] is None:
        raise HTTPException(status_code=400, detail="Name cannot be empty")
    for field, value in changes.items():
        if field == "name":
            student.name = value.strip()
        elif field in STATS_FIELDS:
            setattr(student, field, value)

    try:
        await db.commit()
    except StaleDataError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Student was modified by another request")

    return to_profile(student)


@router.get("/{student_pk}/risk", response_model=RiskAssessment)
async def get_student_risk(student: Student = Depends(get_student)):
    return is_student_at_risk(to_profile(student))


@router.post("/{student_pk}/engagement", response_model=LedgerResult)
async def record_weekly_engagement(
    body: EngagementRequest,
    student: Student = Depends(get_student),
    db: AsyncSession = Depends(get_db),
    config: PenaltyConfig = Depends(get_penalty_config),
):
    """Review one week of subject progress; repeated low weeks cost points."""
    check_version(student, body.expected_version)

    profile = to_profile(student)
    updated, penalty = review_week(profile, body.week, body.enrolled_subjects, config)
    if updated is not profile:
        await save_profile(db, student, updated)
    return LedgerResult(student=to_profile(student), penalty=penalty)


@router.post("/{student_pk}/topics/decay-check", response_model=DecayCheckResult)
async def topic_decay_check(
    body: DecayCheckRequest,
    student: Student = Depends(get_student),
    db: AsyncSession = Depends(get_db),
    config: PenaltyConfig = Depends(get_penalty_config),
):
    """Apply a skill-decay penalty for a topic that has not been practised."""
    check_version(student, body.expected_version)

    updated, level, penalty = check_topic_decay(
        to_profile(student), body.topic, body.last_practice, config
    )
    if penalty is not None:
        await save_profile(db, student, updated)
    return DecayCheckResult(student=to_profile(student), penalty=penalty, decay_level=level)
