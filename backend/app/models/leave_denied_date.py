import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum as SAEnum, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.user import UserRole


class LeaveDeniedDate(Base):
    __tablename__ = "leave_denied_dates"
    __table_args__ = (
        UniqueConstraint("leave_request_id", "denied_date", name="uq_leave_denied_dates_request_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    leave_request_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("leave_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    denied_date: Mapped[date] = mapped_column(Date, nullable=False)
    denial_reason: Mapped[str] = mapped_column(Text, nullable=False)
    denied_by_id: Mapped[str] = mapped_column(String(36), nullable=False)
    denier_role: Mapped[UserRole] = mapped_column(SAEnum(UserRole, name="user_role"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    leave_request = relationship("LeaveRequest", back_populates="denied_dates")
