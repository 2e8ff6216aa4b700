from __future__ import annotations
import uuid
from datetime import date, datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Boolean, Integer, Date, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from codestreak.db import Base

class DailyResult(Base):
    __tablename__ = "daily_results"
    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    challenge_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("challenges.id", ondelete="CASCADE"), index=True, nullable=False)
    member_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("challenge_members.id", ondelete="CASCADE"), index=True, nullable=False)

    day: Mapped[date] = mapped_column("date", Date, nullable=False)  # calendar day at the evaluation boundary
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    submissions_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    problems_solved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    evaluated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("challenge_id", "member_id", "date", name="uq_daily_result_one_per_day"),
    )
