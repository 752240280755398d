from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.models.attendance import Attendance, AttendanceStatus
from app.models.attendance_point import AttendancePoint, AttendancePointStatus
from app.models.leave_request import LeaveRequest, LeaveStatus, LeaveType
from app.services.calendar_math import working_dates
from app.services.leave_policy import policy_for


@dataclass
class LeaveAdvisory:
    code: str
    message: str
    details: dict = field(default_factory=dict)


def active_attendance_points(db: Session, user_id: str) -> float:
    total = db.execute(
        select(func.coalesce(func.sum(AttendancePoint.points), 0)).where(
            AttendancePoint.user_id == user_id,
            AttendancePoint.current_status == AttendancePointStatus.active,
        )
    ).scalar_one()
    return float(total)


def last_absence_on_or_before(db: Session, user_id: str, day: date) -> date | None:
    return db.execute(
        select(func.max(Attendance.shift_date)).where(
            Attendance.user_id == user_id,
            Attendance.status == AttendanceStatus.absent,
            Attendance.shift_date <= day,
        )
    ).scalar_one_or_none()


def short_notice_advisory(
    leave_type: LeaveType,
    start_date: date,
    *,
    submitted_on: date,
    overridden: bool,
) -> LeaveAdvisory | None:
    if not policy_for(leave_type).short_notice_checked or overridden:
        return None
    notice_days = get_settings().leave_short_notice_days
    earliest = submitted_on + timedelta(days=notice_days)
    if start_date >= earliest:
        return None
    return LeaveAdvisory(
        code="short_notice",
        message=(
            f"{leave_type.value} should be filed at least {notice_days} days ahead; "
            f"the earliest date without an override is {earliest.isoformat()}."
        ),
        details={"earliest_date": earliest.isoformat()},
    )


def absence_window_advisory(db: Session, user_id: str, leave_type: LeaveType, start_date: date) -> LeaveAdvisory | None:
    if not policy_for(leave_type).absence_window_checked:
        return None
    last_absence = last_absence_on_or_before(db, user_id, start_date)
    if last_absence is None:
        return None
    window_end = last_absence + timedelta(days=get_settings().leave_absence_window_days)
    if start_date > window_end:
        return None
    return LeaveAdvisory(
        code="recent_absence",
        message=(
            f"Last absence was on {last_absence.isoformat()}; "
            f"vacation leave is normally available from {window_end.isoformat()}."
        ),
        details={"last_absence_date": last_absence.isoformat(), "available_from": window_end.isoformat()},
    )


def attendance_points_advisory(leave_type: LeaveType, points: float) -> LeaveAdvisory | None:
    threshold = get_settings().leave_attendance_points_threshold
    if not policy_for(leave_type).attendance_points_checked or points < threshold:
        return None
    return LeaveAdvisory(
        code="attendance_points",
        message=f"Employee has {points:g} active attendance points; this request may be auto-denied.",
        details={"points": points, "threshold": threshold},
    )


def own_overlap_advisory(
    db: Session,
    user_id: str,
    start_date: date,
    end_date: date,
    *,
    exclude_request_id: str | None = None,
) -> LeaveAdvisory | None:
    query = select(LeaveRequest).where(
        LeaveRequest.user_id == user_id,
        LeaveRequest.status.in_([LeaveStatus.pending, LeaveStatus.approved]),
        LeaveRequest.start_date <= end_date,
        LeaveRequest.end_date >= start_date,
    )
    if exclude_request_id is not None:
        query = query.where(LeaveRequest.id != exclude_request_id)
    wanted = set(working_dates(start_date, end_date))
    overlapping = [
        item
        for item in db.execute(query.order_by(LeaveRequest.start_date.asc())).scalars()
        if wanted & set(working_dates(item.start_date, item.end_date))
    ]
    if not overlapping:
        return None
    return LeaveAdvisory(
        code="own_overlap",
        message="These dates overlap another of your pending or approved leave requests.",
        details={"request_ids": [item.id for item in overlapping]},
    )


def collect_advisories(
    db: Session,
    *,
    user_id: str,
    leave_type: LeaveType,
    start_date: date,
    end_date: date,
    submitted_on: date,
    short_notice_override: bool = False,
    attendance_points: float | None = None,
    exclude_request_id: str | None = None,
) -> list[LeaveAdvisory]:
    points = attendance_points if attendance_points is not None else active_attendance_points(db, user_id)
    candidates = [
        short_notice_advisory(leave_type, start_date, submitted_on=submitted_on, overridden=short_notice_override),
        absence_window_advisory(db, user_id, leave_type, start_date),
        attendance_points_advisory(leave_type, points),
        own_overlap_advisory(db, user_id, start_date, end_date, exclude_request_id=exclude_request_id),
    ]
    return [item for item in candidates if item is not None]
