"""Persistence adapter between ORM rows and ledger profiles.

The ledger works on immutable ``StudentProfile`` values; this module loads
them from the database and writes the result of a ledger operation back.
History rows are appended or have their waive fields updated, never deleted.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pointledger.models.bonus_record import BonusRecordRow
from pointledger.models.penalty_record import PenaltyRecordRow
from pointledger.models.student import Student
from pointledger.schemas import BonusRecord, PenaltyRecord, StudentProfile, StudentStats

logger = logging.getLogger(__name__)

STATS_FIELDS = (
    "streak_days",
    "longest_streak",
    "missed_sessions_count",
    "late_homework_count",
    "low_engagement_weeks",
    "homework_streak",
    "total_sessions",
    "attendance_rate",
)


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; stored timestamps are always UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def penalty_from_row(row: PenaltyRecordRow) -> PenaltyRecord:
    return PenaltyRecord(
        id=row.record_id,
        type=row.type,
        points_deducted=row.points_deducted,
        reason=row.reason,
        applied_at=_as_utc(row.applied_at),
        applied_by=row.applied_by,
        waived=bool(row.waived),
        waived_by=row.waived_by,
        waived_at=_as_utc(row.waived_at),
        waived_reason=row.waived_reason,
    )


def bonus_from_row(row: BonusRecordRow) -> BonusRecord:
    return BonusRecord(
        id=row.record_id,
        type=row.type,
        points_awarded=row.points_awarded,
        reason=row.reason,
        awarded_at=_as_utc(row.awarded_at),
        awarded_by=row.awarded_by,
    )


def to_profile(row: Student) -> StudentProfile:
    """Build the ledger view of a loaded student row."""
    stats = StudentStats(
        **{name: getattr(row, name) or 0 for name in STATS_FIELDS if name != "attendance_rate"},
        attendance_rate=row.attendance_rate,
        penalty_history=tuple(penalty_from_row(r) for r in row.penalty_records),
        bonus_history=tuple(bonus_from_row(r) for r in row.bonus_records),
    )
    return StudentProfile(
        id=row.id,
        name=row.name,
        points=row.points or 0,
        stats=stats,
        version=row.version,
    )


async def get_student_row(db: AsyncSession, student_pk: int) -> Student | None:
    result = await db.execute(select(Student).where(Student.id == student_pk))
    return result.scalar_one_or_none()


async def load_profile(db: AsyncSession, student_pk: int) -> StudentProfile | None:
    row = await get_student_row(db, student_pk)
    return to_profile(row) if row is not None else None


def write_profile(row: Student, profile: StudentProfile) -> None:
    """Copy a ledger result onto the ORM row (caller commits).

    New history records are inserted; existing penalties only receive the
    waive fields.
    """
    row.points = profile.points
    for name in STATS_FIELDS:
        setattr(row, name, getattr(profile.stats, name))
    row.updated_at = datetime.now(timezone.utc)

    penalty_rows = {r.record_id: r for r in row.penalty_records}
    for penalty in profile.stats.penalty_history:
        existing = penalty_rows.get(penalty.id)
        if existing is None:
            row.penalty_records.append(PenaltyRecordRow(
                record_id=penalty.id,
                type=penalty.type.value,
                points_deducted=penalty.points_deducted,
                reason=penalty.reason,
                applied_at=penalty.applied_at,
                applied_by=penalty.applied_by,
                waived=penalty.waived,
                waived_by=penalty.waived_by,
                waived_at=penalty.waived_at,
                waived_reason=penalty.waived_reason,
            ))
        elif penalty.waived and not existing.waived:
            existing.waived = True
            existing.waived_by = penalty.waived_by
            existing.waived_at = penalty.waived_at
            existing.waived_reason = penalty.waived_reason

    known_bonuses = {r.record_id for r in row.bonus_records}
    for bonus in profile.stats.bonus_history:
        if bonus.id not in known_bonuses:
            row.bonus_records.append(BonusRecordRow(
                record_id=bonus.id,
                type=bonus.type.value,
                points_awarded=bonus.points_awarded,
                reason=bonus.reason,
                awarded_at=bonus.awarded_at,
                awarded_by=bonus.awarded_by,
            ))

    logger.debug("Wrote ledger state for student %s (points=%d)", row.id, row.points)
