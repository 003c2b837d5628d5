"""DailyAttempt ORM: one row per guess; at most one final row per user per UTC day.

Invariants:
    - UNIQUE (user_id, final_day_key) is the exactly-once-per-day guarantee
    - final_day_key == day_key for final rows (correct or abandoned), NULL otherwise
    - Rows are never updated once written

Design Decisions:
    - Shadow column final_day_key over a partial index: NULLs are distinct in both
      PostgreSQL and SQLite, so the same constraint works on every supported backend
      (ADR: storage-agnostic insert-if-absent)
"""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    String, Text, Integer, Boolean, Date, DateTime, ForeignKey,
    Index, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from rebuzzle.db.base import Base


class DailyAttempt(Base):
    __tablename__ = "daily_attempts"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "final_day_key", name="uq_daily_attempts_final_per_day",
        ),
        Index("ix_daily_attempts_user_day", "user_id", "day_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    puzzle_id: Mapped[str] = mapped_column(String(64), nullable=False)
    attempted_answer: Mapped[str] = mapped_column(Text, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    abandoned: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False)
    max_attempts: Mapped[int] = mapped_column(Integer, nullable=False)
    time_spent_seconds: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    day_key: Mapped[date] = mapped_column(Date, nullable=False)
    final_day_key: Mapped[date | None] = mapped_column(Date, nullable=True)
    attempted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
