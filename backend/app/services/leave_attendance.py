from __future__ import annotations

from collections.abc import Iterable
from datetime import date
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.attendance import Attendance, AttendanceStatus
from app.models.leave_request import LeaveRequest

logger = logging.getLogger(__name__)


def sync_attendance(db: Session, leave: LeaveRequest, dates: Iterable[date]) -> int:
    """Mark each approved date ``on_leave``, remembering what the row held before."""
    days = sorted(set(dates))
    if not days:
        return 0
    existing = {
        row.shift_date: row
        for row in db.execute(
            select(Attendance).where(
                Attendance.user_id == leave.user_id,
                Attendance.shift_date.in_(days),
            )
        ).scalars()
    }
    touched = 0
    for day in days:
        row = existing.get(day)
        if row is None:
            db.add(
                Attendance(
                    user_id=leave.user_id,
                    shift_date=day,
                    status=AttendanceStatus.on_leave,
                    leave_request_id=leave.id,
                )
            )
            touched += 1
        elif row.leave_request_id is None:
            row.pre_leave_status = row.status
            row.status = AttendanceStatus.on_leave
            row.leave_request_id = leave.id
            touched += 1
    db.flush()
    logger.debug("Synced %s attendance row(s) for leave %s", touched, leave.id)
    return touched


def rollback_attendance(db: Session, leave: LeaveRequest, dates: Iterable[date] | None = None) -> int:
    """Undo ``sync_attendance`` for the given dates, or for every date of the leave."""
    query = select(Attendance).where(Attendance.leave_request_id == leave.id)
    if dates is not None:
        days = list(set(dates))
        if not days:
            return 0
        query = query.where(Attendance.shift_date.in_(days))

    removed = 0
    for row in db.execute(query).scalars():
        if row.pre_leave_status is None:
            db.delete(row)
        else:
            row.status = row.pre_leave_status
            row.pre_leave_status = None
            row.leave_request_id = None
        removed += 1
    db.flush()
    logger.debug("Rolled back %s attendance row(s) for leave %s", removed, leave.id)
    return removed
