import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base

# Month 0 holds credits bridged in from a probation period.
REGULARIZATION_MONTH = 0


class LeaveCredit(Base):
    __tablename__ = "leave_credits"
    __table_args__ = (UniqueConstraint("user_id", "year", "month", name="uq_leave_credits_user_year_month"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    credits_earned: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    credits_used: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    credits_balance: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    accrued_at: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
