"""PenaltyRecordRow ORM model: one row per applied penalty, never deleted."""

from datetime import datetime

from sqlalchemy import Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pointledger.database import Base


class PenaltyRecordRow(Base):
    __tablename__ = "penalty_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    record_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String, nullable=False)
    points_deducted: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    applied_by: Mapped[str] = mapped_column(String, nullable=False, default="system")
    waived: Mapped[bool] = mapped_column(Boolean, default=False)
    waived_by: Mapped[str | None] = mapped_column(String, nullable=True)
    waived_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    waived_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="penalty_records")
