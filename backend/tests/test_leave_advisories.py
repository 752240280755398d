from datetime import date

from app.models.attendance import Attendance, AttendanceStatus
from app.models.attendance_point import AttendancePoint, AttendancePointStatus, AttendancePointType
from app.models.leave_request import LeaveStatus, LeaveType
from app.models.user import UserRole
from app.services.leave_advisories import (
    active_attendance_points,
    absence_window_advisory,
    attendance_points_advisory,
    collect_advisories,
    own_overlap_advisory,
    short_notice_advisory,
)

from conftest import add_leave, make_user

TODAY = date(2025, 3, 3)


def add_points(db, user, points: float, status: AttendancePointStatus = AttendancePointStatus.active) -> None:
    db.add(
        AttendancePoint(
            user_id=user.id,
            shift_date=date(2025, 2, 10),
            point_type=AttendancePointType.whole_day_absence,
            points=points,
            current_status=status,
        )
    )
    db.commit()


def test_short_notice_for_vacation_inside_two_weeks():
    advisory = short_notice_advisory(LeaveType.VL, date(2025, 3, 10), submitted_on=TODAY, overridden=False)
    assert advisory is not None
    assert advisory.code == "short_notice"
    assert advisory.details == {"earliest_date": "2025-03-17"}


def test_short_notice_not_raised_with_enough_notice_or_override():
    assert short_notice_advisory(LeaveType.VL, date(2025, 3, 17), submitted_on=TODAY, overridden=False) is None
    assert short_notice_advisory(LeaveType.VL, date(2025, 3, 10), submitted_on=TODAY, overridden=True) is None
    assert short_notice_advisory(LeaveType.SL, date(2025, 3, 4), submitted_on=TODAY, overridden=False) is None


def test_short_notice_applies_to_bereavement():
    advisory = short_notice_advisory(LeaveType.BL, date(2025, 3, 5), submitted_on=TODAY, overridden=False)
    assert advisory is not None


def test_attendance_points_threshold():
    assert attendance_points_advisory(LeaveType.VL, 6).code == "attendance_points"
    assert attendance_points_advisory(LeaveType.VL, 5.5) is None
    assert attendance_points_advisory(LeaveType.SL, 12) is None


def test_active_attendance_points_ignore_excused(db):
    user = make_user(db, UserRole.employee)
    add_points(db, user, 1.0)
    add_points(db, user, 0.5)
    add_points(db, user, 3.0, AttendancePointStatus.excused)
    assert active_attendance_points(db, user.id) == 1.5


def test_recent_absence_advisory(db):
    user = make_user(db, UserRole.employee)
    db.add(Attendance(user_id=user.id, shift_date=date(2025, 2, 20), status=AttendanceStatus.absent))
    db.commit()

    advisory = absence_window_advisory(db, user.id, LeaveType.VL, date(2025, 3, 10))
    assert advisory is not None
    assert advisory.details["available_from"] == "2025-03-22"

    assert absence_window_advisory(db, user.id, LeaveType.VL, date(2025, 3, 24)) is None
    assert absence_window_advisory(db, user.id, LeaveType.BL, date(2025, 3, 10)) is None


def test_own_overlap_advisory(db):
    user = make_user(db, UserRole.employee)
    existing = add_leave(db, user, date(2025, 3, 17), date(2025, 3, 19))
    add_leave(db, user, date(2025, 3, 18), date(2025, 3, 18), status=LeaveStatus.cancelled)

    advisory = own_overlap_advisory(db, user.id, date(2025, 3, 19), date(2025, 3, 21))
    assert advisory.details == {"request_ids": [existing.id]}
    assert own_overlap_advisory(db, user.id, date(2025, 3, 20), date(2025, 3, 21)) is None


def test_collect_advisories_gathers_every_warning(db):
    user = make_user(db, UserRole.employee)
    add_points(db, user, 6.0)
    db.add(Attendance(user_id=user.id, shift_date=date(2025, 2, 27), status=AttendanceStatus.absent))
    db.commit()

    advisories = collect_advisories(
        db,
        user_id=user.id,
        leave_type=LeaveType.VL,
        start_date=date(2025, 3, 5),
        end_date=date(2025, 3, 6),
        submitted_on=TODAY,
    )

    assert [item.code for item in advisories] == ["short_notice", "recent_absence", "attendance_points"]
