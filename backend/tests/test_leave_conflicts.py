from datetime import date, datetime, timezone

from app.models.leave_request import LeaveStatus, LeaveType
from app.models.user import UserRole
from app.services.conflict_service import LeaveConflictService

from conftest import add_leave, make_user

TODAY = date(2025, 3, 3)


def detect(db, user, start, end, leave_type=LeaveType.VL):
    return LeaveConflictService(db).detect_conflicts(
        campaign="Alpha",
        start_date=start,
        end_date=end,
        leave_type=leave_type,
        exclude_user_id=user.id,
    )


def test_overlap_reports_shared_working_days(db):
    first = make_user(db, UserRole.employee, name="First Agent")
    second = make_user(db, UserRole.employee, name="Second Agent")
    earlier = add_leave(db, first, date(2025, 3, 17), date(2025, 3, 21))

    conflicts = detect(db, second, date(2025, 3, 19), date(2025, 3, 25))

    assert [item.request_id for item in conflicts] == [earlier.id]
    assert conflicts[0].overlapping_dates == [date(2025, 3, 19), date(2025, 3, 20), date(2025, 3, 21)]


def test_conflicts_are_symmetric(db):
    first = make_user(db, UserRole.employee, name="First Agent")
    second = make_user(db, UserRole.employee, name="Second Agent")
    one = add_leave(
        db, first, date(2025, 3, 17), date(2025, 3, 18), created_at=datetime(2025, 3, 1, tzinfo=timezone.utc)
    )
    two = add_leave(
        db, second, date(2025, 3, 18), date(2025, 3, 19), created_at=datetime(2025, 3, 2, tzinfo=timezone.utc)
    )

    seen_by_second = detect(db, second, two.start_date, two.end_date)
    seen_by_first = detect(db, first, one.start_date, one.end_date)

    assert [item.request_id for item in seen_by_second] == [one.id]
    assert [item.request_id for item in seen_by_first] == [two.id]
    assert seen_by_second[0].overlapping_dates == seen_by_first[0].overlapping_dates == [date(2025, 3, 18)]


def test_conflicts_listed_first_come_first_served(db):
    requester = make_user(db, UserRole.employee, name="Requester Agent")
    late = make_user(db, UserRole.employee, name="Late Agent")
    early = make_user(db, UserRole.employee, name="Early Agent")
    late_leave = add_leave(
        db, late, date(2025, 3, 17), date(2025, 3, 17), created_at=datetime(2025, 3, 2, tzinfo=timezone.utc)
    )
    early_leave = add_leave(
        db,
        early,
        date(2025, 3, 17),
        date(2025, 3, 17),
        status=LeaveStatus.approved,
        created_at=datetime(2025, 2, 20, tzinfo=timezone.utc),
    )

    conflicts = detect(db, requester, date(2025, 3, 17), date(2025, 3, 17))

    assert [item.request_id for item in conflicts] == [early_leave.id, late_leave.id]


def test_ignored_requests(db):
    requester = make_user(db, UserRole.employee, name="Requester Agent")
    other = make_user(db, UserRole.employee, name="Other Agent")
    elsewhere = make_user(db, UserRole.employee, name="Elsewhere Agent", campaign="Bravo")
    parent = add_leave(db, other, date(2025, 3, 10), date(2025, 3, 10), status=LeaveStatus.approved)
    add_leave(db, other, date(2025, 3, 17), date(2025, 3, 21), status=LeaveStatus.denied)
    add_leave(db, other, date(2025, 3, 17), date(2025, 3, 21), status=LeaveStatus.cancelled)
    add_leave(db, elsewhere, date(2025, 3, 17), date(2025, 3, 21))
    add_leave(
        db,
        other,
        date(2025, 3, 17),
        date(2025, 3, 21),
        leave_type=LeaveType.UPTO,
        status=LeaveStatus.approved,
        linked_request_id=parent.id,
    )

    assert detect(db, requester, date(2025, 3, 17), date(2025, 3, 21)) == []


def test_weekend_only_overlap_is_not_a_conflict(db):
    requester = make_user(db, UserRole.employee, name="Requester Agent")
    other = make_user(db, UserRole.employee, name="Other Agent")
    add_leave(db, other, date(2025, 3, 15), date(2025, 3, 16), leave_type=LeaveType.UPTO)

    assert detect(db, requester, date(2025, 3, 14), date(2025, 3, 17)) == []


def test_only_vacation_and_unpaid_types_are_checked(db):
    requester = make_user(db, UserRole.employee, name="Requester Agent")
    other = make_user(db, UserRole.employee, name="Other Agent")
    add_leave(db, other, date(2025, 3, 17), date(2025, 3, 21))

    assert detect(db, requester, date(2025, 3, 17), date(2025, 3, 21), LeaveType.SL) == []
    assert detect(db, requester, date(2025, 3, 17), date(2025, 3, 21), LeaveType.UPTO) != []


def test_suggestions_offer_conflict_free_windows(db):
    requester = make_user(db, UserRole.employee, name="Requester Agent")
    other = make_user(db, UserRole.employee, name="Other Agent")
    add_leave(db, other, date(2025, 3, 17), date(2025, 3, 21), status=LeaveStatus.approved)

    suggestions = LeaveConflictService(db).suggest_dates(
        campaign="Alpha",
        start_date=date(2025, 3, 17),
        end_date=date(2025, 3, 21),
        leave_type=LeaveType.VL,
        today=TODAY,
        exclude_user_id=requester.id,
    )

    assert {item.label for item in suggestions} == {"two_weeks_later", "three_weeks_later", "after_conflicts"}
    by_label = {item.label: item for item in suggestions}
    assert (by_label["two_weeks_later"].start_date, by_label["two_weeks_later"].end_date) == (
        date(2025, 3, 31),
        date(2025, 4, 4),
    )
    assert by_label["after_conflicts"].start_date == date(2025, 3, 24)
    assert all(item.working_days == 5 and item.conflict_count == 0 for item in suggestions)


def test_no_suggestions_without_conflicts(db):
    requester = make_user(db, UserRole.employee, name="Requester Agent")
    suggestions = LeaveConflictService(db).suggest_dates(
        campaign="Alpha",
        start_date=date(2025, 3, 17),
        end_date=date(2025, 3, 21),
        leave_type=LeaveType.VL,
        today=TODAY,
        exclude_user_id=requester.id,
    )
    assert suggestions == []
