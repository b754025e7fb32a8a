"""BonusRecordRow ORM model."""

from datetime import datetime

from sqlalchemy import Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pointledger.database import Base


class BonusRecordRow(Base):
    __tablename__ = "bonus_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    record_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String, nullable=False)
    points_awarded: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    awarded_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    awarded_by: Mapped[str] = mapped_column(String, nullable=False, default="system")

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="bonus_records")
