import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class LeaveRegularizationCredit(Base):
    """Credits accrued during probation, bridged once into the regularization year."""

    __tablename__ = "leave_regularization_credits"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    credits: Mapped[float] = mapped_column(Float, nullable=False)
    months_accrued: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    regularization_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_pending: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    consumed_by_request_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
