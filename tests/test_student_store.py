"""Tests for persisting ledger results and concurrent writes."""

import pytest
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pointledger.dependencies import save_profile
from pointledger.models.student import Student
from pointledger.schemas import PenaltyType
from pointledger.services.ledger import apply_penalty, waive_penalty
from pointledger.services.student_store import get_student_row, load_profile, to_profile


@pytest.fixture()
def session_factory(async_engine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def student_pk(session_factory) -> int:
    async with session_factory() as session:
        row = Student(name="Shared", points=1000, streak_days=3, penalty_records=[], bonus_records=[])
        session.add(row)
        await session.commit()
        return row.id


async def test_profile_round_trips_through_the_database(session_factory, student_pk, now):
    async with session_factory() as session:
        row = await get_student_row(session, student_pk)
        profile, penalty = apply_penalty(to_profile(row), PenaltyType.LATE_HOMEWORK, "tutor", now=now)
        profile = waive_penalty(profile, penalty.id, "Ms Patel", "Submitted by email", now=now)
        await save_profile(session, row, profile)

    async with session_factory() as session:
        loaded = await load_profile(session, student_pk)

    assert loaded.points == 1000
    assert loaded.version == 2
    [stored] = loaded.stats.penalty_history
    assert stored.id == penalty.id
    assert stored.applied_at == now
    assert stored.waived is True
    assert stored.waived_by == "Ms Patel"


async def test_concurrent_commit_is_rejected(session_factory, student_pk, now):
    async with session_factory() as first, session_factory() as second:
        row_a = await get_student_row(first, student_pk)
        row_b = await get_student_row(second, student_pk)

        updated_a, _ = apply_penalty(to_profile(row_a), PenaltyType.MISSED_SESSION, now=now)
        await save_profile(first, row_a, updated_a)

        updated_b, _ = apply_penalty(to_profile(row_b), PenaltyType.LATE_HOMEWORK, now=now)
        with pytest.raises(HTTPException) as exc_info:
            await save_profile(second, row_b, updated_b)

    assert exc_info.value.status_code == 409

    async with session_factory() as session:
        loaded = await load_profile(session, student_pk)

    assert [p.type for p in loaded.stats.penalty_history] == [PenaltyType.MISSED_SESSION]
    assert loaded.points == 950
    assert loaded.version == 2
