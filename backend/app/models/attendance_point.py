import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import Date, DateTime, Enum as SAEnum, Float, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class AttendancePointType(str, Enum):
    whole_day_absence = "whole_day_absence"
    half_day_absence = "half_day_absence"
    undertime = "undertime"
    tardy = "tardy"
    ncns = "ncns"


class AttendancePointStatus(str, Enum):
    active = "active"
    excused = "excused"
    expired = "expired"


class AttendancePoint(Base):
    __tablename__ = "attendance_points"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    shift_date: Mapped[date] = mapped_column(Date, nullable=False)
    point_type: Mapped[AttendancePointType] = mapped_column(
        SAEnum(AttendancePointType, name="attendance_point_type"),
        nullable=False,
    )
    points: Mapped[float] = mapped_column(Float, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    gbro_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    current_status: Mapped[AttendancePointStatus] = mapped_column(
        SAEnum(AttendancePointStatus, name="attendance_point_status"),
        nullable=False,
        default=AttendancePointStatus.active,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
