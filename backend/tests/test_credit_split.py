from datetime import date, datetime, timezone

import pytest

from app.models.leave_denied_date import LeaveDeniedDate
from app.models.leave_regularization_credit import LeaveRegularizationCredit
from app.models.leave_request import LeaveRequest, LeaveStatus, LeaveType
from app.models.user import UserRole
from app.services import credit_ledger
from app.services.credit_ledger import CreditsSummary
from app.services.credit_split import (
    apply_credit_split,
    approved_dates,
    find_companion,
    resolve_credit_split,
    trailing_dates,
)

from conftest import add_leave, give_credits, make_user

NOW = datetime(2025, 3, 3, 8, 0, tzinfo=timezone.utc)
TODAY = date(2025, 3, 3)


def summary(balance: float, *, eligibility_date: date = date(2023, 7, 9)) -> CreditsSummary:
    return CreditsSummary(
        year=2025,
        is_eligible=True,
        eligibility_date=eligibility_date,
        monthly_rate=1.25,
        total_earned=balance,
        total_used=0.0,
        balance=balance,
        pending_credits=0.0,
    )


def resolve(leave_type: LeaveType, days: float, balance: float, **kwargs):
    current = kwargs.pop("current", None) or summary(balance)
    return resolve_credit_split(leave_type, days, current, target=TODAY, today=TODAY, **kwargs)


def test_full_balance_pays_every_day():
    decision = resolve(LeaveType.VL, 2, 3.0)
    assert decision.credits_to_deduct == 2
    assert decision.upto_days == 0
    assert not decision.converts_to_upto
    assert not decision.creates_companion
    assert decision.reason is None
    assert decision.resulting_type == LeaveType.VL


def test_short_balance_splits_into_companion():
    decision = resolve(LeaveType.VL, 5, 3.0)
    assert decision.credits_to_deduct == 3
    assert decision.upto_days == 2
    assert decision.creates_companion
    assert decision.resulting_type == LeaveType.VL
    assert decision.reason == "Partial VL credits: 3 day(s) paid from credits, 2 day(s) filed as UPTO"


def test_fractional_balance_is_spent_in_full():
    decision = resolve(LeaveType.VL, 5, 3.75)
    assert decision.available == 3.75
    assert decision.credits_to_deduct == 3.75
    assert decision.upto_days == 1.25
    assert decision.creates_companion
    assert decision.reason == "Partial VL credits: 3.75 day(s) paid from credits, 1.25 day(s) filed as UPTO"


def test_zero_balance_converts_whole_request():
    decision = resolve(LeaveType.VL, 2, 0.0)
    assert decision.converts_to_upto
    assert decision.resulting_type == LeaveType.UPTO
    assert decision.upto_days == 2
    assert decision.credits_to_deduct == 0
    assert decision.reason == "Converted to UPTO: insufficient balance (no VL credits available)"


def test_balance_below_one_day_still_pays_its_share():
    decision = resolve(LeaveType.VL, 1, 0.5)
    assert not decision.converts_to_upto
    assert decision.resulting_type == LeaveType.VL
    assert decision.credits_to_deduct == 0.5
    assert decision.upto_days == 0.5
    assert decision.creates_companion


@pytest.mark.parametrize(
    ("days", "expected"),
    [
        (0, []),
        (0.5, [date(2025, 3, 7)]),
        (1, [date(2025, 3, 7)]),
        (1.25, [date(2025, 3, 6), date(2025, 3, 7)]),
    ],
)
def test_trailing_dates_round_partial_days_up(days, expected):
    week = [date(2025, 3, day) for day in range(3, 8)]
    assert trailing_dates(week, days) == expected


def test_ineligible_employee_converts_with_eligibility_date():
    current = summary(10.0, eligibility_date=date(2025, 7, 6))
    decision = resolve(LeaveType.VL, 2, 10.0, current=current)
    assert decision.converts_to_upto
    assert not decision.is_eligible
    assert decision.reason == "Converted to UPTO: not eligible for VL credits until 2025-07-06"


def test_sick_leave_without_certificate_keeps_type_and_skips_deduction():
    decision = resolve(LeaveType.SL, 2, 5.0)
    assert decision.resulting_type == LeaveType.SL
    assert not decision.converts_to_upto
    assert decision.credits_to_deduct == 0
    assert decision.reason == "No medical certificate submitted: SL credits not deducted"


def test_missing_certificate_wins_over_eligibility():
    current = summary(0.0, eligibility_date=date(2025, 7, 6))
    decision = resolve(LeaveType.SL, 2, 0.0, current=current)
    assert decision.resulting_type == LeaveType.SL
    assert decision.reason.startswith("No medical certificate submitted")


def test_sick_leave_with_certificate_is_deducted():
    decision = resolve(LeaveType.SL, 2, 5.0, medical_cert_submitted=True)
    assert decision.credits_to_deduct == 2
    assert decision.reason is None


def test_non_credit_types_are_untouched():
    decision = resolve_credit_split(LeaveType.BL, 3, None, target=TODAY, today=TODAY)
    assert decision.credits_to_deduct == 0
    assert decision.resulting_type == LeaveType.BL
    assert decision.reason is None


def approve_in_place(db, leave: LeaveRequest, balance_summary: CreditsSummary | None = None):
    decision = resolve_credit_split(
        leave.leave_type,
        leave.credit_days,
        balance_summary,
        target=leave.start_date,
        today=TODAY,
        medical_cert_submitted=leave.medical_cert_submitted,
    )
    companion = apply_credit_split(db, leave, decision, now=NOW)
    db.commit()
    return companion


def test_apply_split_creates_trailing_companion(db):
    user = make_user(db, UserRole.employee)
    give_credits(db, user, 3.0)
    leave = add_leave(db, user, date(2025, 3, 3), date(2025, 3, 7), status=LeaveStatus.approved)

    current = credit_ledger.build_summary(db, user, 2025, as_of=leave.start_date, exclude_request_id=leave.id)
    companion = approve_in_place(db, leave, current)

    assert companion is not None
    assert companion.leave_type == LeaveType.UPTO
    assert companion.linked_request_id == leave.id
    assert companion.status == LeaveStatus.approved
    assert (companion.start_date, companion.end_date) == (date(2025, 3, 6), date(2025, 3, 7))
    assert companion.days_requested == 2
    assert leave.leave_type == LeaveType.VL
    assert leave.credits_deducted == 3
    assert (leave.start_date, leave.end_date) == (date(2025, 3, 3), date(2025, 3, 7))
    assert leave.vl_no_credit_reason.startswith("Partial VL credits")
    assert find_companion(db, leave).id == companion.id


def test_apply_split_runs_once(db):
    user = make_user(db, UserRole.employee)
    give_credits(db, user, 3.0)
    leave = add_leave(db, user, date(2025, 3, 3), date(2025, 3, 7), status=LeaveStatus.approved)
    current = credit_ledger.build_summary(db, user, 2025, as_of=leave.start_date, exclude_request_id=leave.id)
    approve_in_place(db, leave, current)

    assert approve_in_place(db, leave, current) is None
    again = credit_ledger.build_summary(db, user, 2025, as_of=leave.start_date)
    assert again.balance == 0.0


def test_apply_conversion_retypes_request(db):
    user = make_user(db, UserRole.employee)
    leave = add_leave(db, user, date(2025, 3, 3), date(2025, 3, 4), status=LeaveStatus.approved)
    current = credit_ledger.build_summary(db, user, 2025, as_of=leave.start_date, exclude_request_id=leave.id)

    companion = approve_in_place(db, leave, current)

    assert companion is None
    assert leave.leave_type == LeaveType.UPTO
    assert leave.credits_deducted == 0.0
    assert leave.vl_no_credit_reason == "Converted to UPTO: insufficient balance (no VL credits available)"


def test_sick_reason_is_recorded_on_sick_field(db):
    user = make_user(db, UserRole.employee)
    give_credits(db, user, 5.0)
    leave = add_leave(
        db, user, date(2025, 3, 3), date(2025, 3, 4), leave_type=LeaveType.SL, status=LeaveStatus.approved
    )
    current = credit_ledger.build_summary(db, user, 2025, as_of=leave.start_date, exclude_request_id=leave.id)

    approve_in_place(db, leave, current)

    assert leave.leave_type == LeaveType.SL
    assert leave.credits_deducted is None
    assert leave.sl_no_credit_reason == "No medical certificate submitted: SL credits not deducted"
    assert leave.vl_no_credit_reason is None


def test_companion_skips_denied_dates(db):
    user = make_user(db, UserRole.employee)
    reviewer = make_user(db, UserRole.admin)
    give_credits(db, user, 2.0)
    leave = add_leave(
        db,
        user,
        date(2025, 3, 3),
        date(2025, 3, 7),
        status=LeaveStatus.approved,
        has_partial_denial=True,
        approved_days=4.0,
    )
    leave.denied_dates.append(
        LeaveDeniedDate(
            denied_date=date(2025, 3, 4),
            denial_reason="Quarterly audit on this day",
            denied_by_id=reviewer.id,
            denier_role=reviewer.role,
        )
    )
    db.commit()
    assert approved_dates(leave) == [date(2025, 3, 3), date(2025, 3, 5), date(2025, 3, 6), date(2025, 3, 7)]

    current = credit_ledger.build_summary(db, user, 2025, as_of=leave.start_date, exclude_request_id=leave.id)
    companion = approve_in_place(db, leave, current)

    assert leave.credits_deducted == 2
    assert companion.days_requested == 2
    assert (companion.start_date, companion.end_date) == (date(2025, 3, 6), date(2025, 3, 7))


def test_pending_regularization_is_posted_before_deduction(db):
    user = make_user(db, UserRole.employee)
    db.add(
        LeaveRegularizationCredit(
            user_id=user.id,
            year=2025,
            credits=2.0,
            months_accrued=2,
            regularization_date=date(2025, 1, 15),
            is_pending=True,
        )
    )
    db.commit()
    leave = add_leave(db, user, date(2025, 3, 3), date(2025, 3, 4), status=LeaveStatus.approved)
    current = credit_ledger.build_summary(db, user, 2025, as_of=leave.start_date, exclude_request_id=leave.id)

    companion = approve_in_place(db, leave, current)

    assert companion is None
    assert leave.credits_deducted == 2
    after = credit_ledger.build_summary(db, user, 2025, as_of=leave.start_date)
    assert after.total_earned == 2.0
    assert after.balance == 0.0
    assert after.pending_regularization_credits.is_pending is False


def test_fractional_split_companion_takes_whole_trailing_dates(db):
    user = make_user(db, UserRole.employee)
    give_credits(db, user, 3.75)
    leave = add_leave(db, user, date(2025, 3, 3), date(2025, 3, 7), status=LeaveStatus.approved)
    current = credit_ledger.build_summary(db, user, 2025, as_of=leave.start_date, exclude_request_id=leave.id)

    companion = approve_in_place(db, leave, current)

    assert leave.credits_deducted == 3.75
    assert companion.days_requested == 1.25
    assert (companion.start_date, companion.end_date) == (date(2025, 3, 6), date(2025, 3, 7))
    after = credit_ledger.build_summary(db, user, 2025, as_of=leave.start_date)
    assert after.balance == 0.0
    assert after.total_used == 3.75


def test_half_day_balance_splits_single_day_request(db):
    user = make_user(db, UserRole.employee)
    give_credits(db, user, 0.5)
    leave = add_leave(db, user, date(2025, 3, 5), date(2025, 3, 5), status=LeaveStatus.approved)
    current = credit_ledger.build_summary(db, user, 2025, as_of=leave.start_date, exclude_request_id=leave.id)

    companion = approve_in_place(db, leave, current)

    assert leave.leave_type == LeaveType.VL
    assert leave.credits_deducted == 0.5
    assert companion.days_requested == 0.5
    assert (companion.start_date, companion.end_date) == (date(2025, 3, 5), date(2025, 3, 5))
