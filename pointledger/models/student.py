"""Student ORM model."""

from datetime import datetime, timezone

from sqlalchemy import Integer, Float, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pointledger.database import Base


class Student(Base):
    __tablename__ = "students"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0)

    # Stats counters maintained by the tutoring app
    streak_days: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    missed_sessions_count: Mapped[int] = mapped_column(Integer, default=0)
    late_homework_count: Mapped[int] = mapped_column(Integer, default=0)
    low_engagement_weeks: Mapped[int] = mapped_column(Integer, default=0)
    homework_streak: Mapped[int] = mapped_column(Integer, default=0)
    total_sessions: Mapped[int] = mapped_column(Integer, default=0)
    attendance_rate: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Optimistic concurrency token, bumped on every UPDATE
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    penalty_records: Mapped[list["PenaltyRecordRow"]] = relationship(
        "PenaltyRecordRow",
        back_populates="student",
        order_by="PenaltyRecordRow.id",
        lazy="selectin",
    )
    bonus_records: Mapped[list["BonusRecordRow"]] = relationship(
        "BonusRecordRow",
        back_populates="student",
        order_by="BonusRecordRow.id",
        lazy="selectin",
    )
