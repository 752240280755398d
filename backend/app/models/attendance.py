import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import Date, DateTime, Enum as SAEnum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class AttendanceStatus(str, Enum):
    present = "present"
    absent = "absent"
    tardy = "tardy"
    advised_absence = "advised_absence"
    on_leave = "on_leave"


class Attendance(Base):
    __tablename__ = "attendances"
    __table_args__ = (UniqueConstraint("user_id", "shift_date", name="uq_attendances_user_shift_date"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    shift_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[AttendanceStatus] = mapped_column(
        SAEnum(AttendanceStatus, name="attendance_status"),
        nullable=False,
    )
    leave_request_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("leave_requests.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    # Status the row had before an approved leave took it over; None when the leave created the row.
    pre_leave_status: Mapped[AttendanceStatus | None] = mapped_column(
        SAEnum(AttendanceStatus, name="attendance_status"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
