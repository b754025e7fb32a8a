"""Shared pytest fixtures for the point ledger test suite."""

from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import pointledger.models  # noqa: F401
from pointledger.database import Base, get_db
from pointledger.dependencies import get_bonus_config, get_penalty_config
from pointledger.schemas import StudentProfile, StudentStats
from pointledger.services.bonuses import DEFAULT_BONUS_CONFIG
from pointledger.services.penalties import DEFAULT_PENALTY_CONFIG
from main import app

# ---------------------------------------------------------------------------
# Async engine & session fixtures (in-memory SQLite)
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture()
async def async_engine():
    """Create a fresh in-memory async engine per test."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide an async session that rolls back after each test."""
    session_factory = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTPX async client wired to the FastAPI app with test DB override."""

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_penalty_config] = lambda: DEFAULT_PENALTY_CONFIG
    app.dependency_overrides[get_bonus_config] = lambda: DEFAULT_BONUS_CONFIG

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience / data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def now() -> datetime:
    return datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def student() -> StudentProfile:
    """An active student with a clean ledger and 1000 points."""
    return StudentProfile(
        id=1,
        name="Test Student",
        points=1000,
        stats=StudentStats(streak_days=4, total_sessions=8),
    )


@pytest.fixture()
def sample_student_data() -> dict:
    """Sample student registration payload."""
    return {
        "name": "Test Student",
        "email": "test@example.com",
        "points": 1000,
        "streak_days": 4,
    }


@pytest.fixture()
async def created_student(client: httpx.AsyncClient, sample_student_data: dict) -> dict:
    response = await client.post("/api/students", json=sample_student_data)
    assert response.status_code == 201
    return response.json()
