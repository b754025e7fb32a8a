"""Seed the database with demo students and ledger history.

Usage: python scripts/seed_data.py
"""

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Ensure project root is on sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select

from pointledger.config import settings
from pointledger.database import init_db, async_session
from pointledger.models.student import Student
from pointledger.schemas import PenaltyType
from pointledger.services.bonuses import award_perfect_session_bonus, run_automatic_bonus_checks
from pointledger.services.ledger import apply_penalty, waive_penalty
from pointledger.services.student_store import to_profile, write_profile


SEED_STUDENTS = [
    {
        "email": "amira@example.com",
        "name": "Amira Khan",
        "points": 1250,
        "streak_days": 12,
        "longest_streak": 21,
        "homework_streak": 6,
        "total_sessions": 18,
        "attendance_rate": 100.0,
    },
    {
        "email": "leo@example.com",
        "name": "Leo Martins",
        "points": 640,
        "streak_days": 0,
        "longest_streak": 9,
        "missed_sessions_count": 2,
        "low_engagement_weeks": 1,
        "total_sessions": 14,
        "attendance_rate": 85.7,
    },
    {
        "email": "sofia@example.com",
        "name": "Sofia Novak",
        "points": 90,
        "streak_days": 3,
        "longest_streak": 5,
        "late_homework_count": 2,
        "total_sessions": 6,
        "attendance_rate": 100.0,
    },
]

# Offenses recorded for each demo student, by email: (type, days ago, waived)
SEED_PENALTIES = {
    "leo@example.com": [
        (PenaltyType.MISSED_SESSION, 20, False),
        (PenaltyType.MISSED_SESSION, 9, False),
        (PenaltyType.STREAK_BREAK, 5, False),
        (PenaltyType.NO_HOMEWORK, 2, False),
    ],
    "sofia@example.com": [
        (PenaltyType.LATE_HOMEWORK, 25, True),
        (PenaltyType.LATE_HOMEWORK, 11, False),
    ],
}


async def seed() -> None:
    # Ensure data directory exists
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)

    # Create tables
    await init_db()
    print("Database tables created.")

    now = datetime.now(timezone.utc)

    async with async_session() as session:
        for student_data in SEED_STUDENTS:
            # Skip students already seeded (idempotent)
            result = await session.execute(
                select(Student).where(Student.email == student_data["email"])
            )
            if result.scalar_one_or_none():
                print(f"  Skipped: {student_data['email']}")
                continue

            row = Student(**student_data, penalty_records=[], bonus_records=[])
            session.add(row)
            await session.flush()

            profile = to_profile(row)
            for penalty_type, days_ago, waived in SEED_PENALTIES.get(row.email, []):
                applied_at = now - timedelta(days=days_ago)
                profile, penalty = apply_penalty(profile, penalty_type, "system", now=applied_at)
                if waived:
                    profile = waive_penalty(
                        profile, penalty.id, "tutor", "Family emergency", now=applied_at
                    )

            if profile.stats.streak_days > 0:
                profile, _ = award_perfect_session_bonus(profile, now=now - timedelta(days=3))
                profile, _ = run_automatic_bonus_checks(profile, now=now)

            write_profile(row, profile)
            print(f"  Inserted: {row.email} - {profile.points} points")

        await session.commit()

    print("Seed data complete.")


if __name__ == "__main__":
    asyncio.run(seed())
