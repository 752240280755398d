from datetime import date, datetime, timezone

import pytest

from app.models.leave_credit import REGULARIZATION_MONTH, LeaveCredit
from app.models.leave_regularization_credit import LeaveRegularizationCredit
from app.models.leave_request import LeaveStatus, LeaveType
from app.models.user import UserRole
from app.services import credit_ledger
from app.services.credit_ledger import CreditsSummary, RegularizationSummary

from conftest import add_leave, give_credits, make_user

NOW = datetime(2025, 3, 3, 8, 0, tzinfo=timezone.utc)


def summary(**overrides) -> CreditsSummary:
    values = {
        "year": 2025,
        "is_eligible": True,
        "eligibility_date": date(2023, 7, 9),
        "monthly_rate": 1.25,
        "total_earned": 5.0,
        "total_used": 0.0,
        "balance": 5.0,
        "pending_credits": 0.0,
    }
    values.update(overrides)
    return CreditsSummary(**values)


def rows_by_month(db, user_id: str, year: int = 2025) -> dict[int, LeaveCredit]:
    db.expire_all()
    return {row.month: row for row in credit_ledger.credit_rows(db, user_id, year)}


def test_available_balance_subtracts_pending_requests():
    current = summary(balance=5.0, pending_credits=2.0)
    assert credit_ledger.available_balance(current, date(2025, 3, 10), date(2025, 3, 3)) == 3.0


def test_available_balance_never_negative():
    current = summary(balance=1.0, pending_credits=3.0)
    assert credit_ledger.available_balance(current, date(2025, 3, 10), date(2025, 3, 3)) == 0.0


def test_projected_future_credits_counts_months_after_today():
    current = summary()
    assert credit_ledger.projected_future_credits(current, date(2025, 5, 10), date(2025, 3, 3)) == 2.5
    assert credit_ledger.projected_future_credits(current, date(2025, 3, 20), date(2025, 3, 3)) == 0.0


def test_projected_future_credits_stay_inside_summary_year():
    current = summary()
    assert credit_ledger.projected_future_credits(current, date(2026, 1, 5), date(2025, 12, 1)) == 0.0
    # Filed in November for February: January and February of the new year accrue.
    assert credit_ledger.projected_future_credits(current, date(2025, 2, 3), date(2024, 11, 20)) == 2.5


def test_projection_needs_eligibility_on_target_date():
    current = summary(is_eligible=False, eligibility_date=date(2025, 7, 6))
    assert credit_ledger.projected_future_credits(current, date(2025, 6, 30), date(2025, 3, 3)) == 0.0
    assert credit_ledger.projected_balance(current, date(2025, 6, 30)) == 0.0
    assert credit_ledger.is_eligible(current, date(2025, 7, 6))


def test_projected_balance_includes_pending_regularization():
    bridge = RegularizationSummary(
        year=2025,
        credits=2.0,
        months_accrued=2,
        regularization_date=date(2025, 1, 15),
        is_pending=True,
    )
    current = summary(eligibility_date=date(2025, 1, 15), pending_regularization_credits=bridge)
    assert credit_ledger.projected_balance(current, date(2025, 4, 1)) == 5.75


def test_sufficient_compares_requested_days():
    current = summary(balance=3.0)
    assert credit_ledger.sufficient(current, 3, date(2025, 3, 3), date(2025, 3, 3))
    assert not credit_ledger.sufficient(current, 4, date(2025, 3, 3), date(2025, 3, 3))


def test_monthly_rate_depends_on_role(db):
    employee = make_user(db, UserRole.employee)
    lead = make_user(db, UserRole.team_lead)
    assert credit_ledger.monthly_rate_for(employee) == 1.25
    assert credit_ledger.monthly_rate_for(lead) == 1.5


def test_eligibility_date_is_six_months_after_hire(db):
    user = make_user(db, UserRole.employee, hired_date=date(2024, 8, 31))
    assert credit_ledger.eligibility_date_for(user) == date(2025, 2, 28)
    unknown = make_user(db, UserRole.employee, name="No Hire Date", hired_date=None)
    assert credit_ledger.eligibility_date_for(unknown) is None


def test_deduct_consumes_oldest_month_first(db):
    user = make_user(db, UserRole.employee)
    give_credits(db, user, 1.25, month=1)
    give_credits(db, user, 1.25, month=2)
    leave = add_leave(db, user, date(2025, 3, 10), date(2025, 3, 11), status=LeaveStatus.approved)

    credit_ledger.deduct(db, leave, 2.0, 2025)
    db.commit()

    rows = rows_by_month(db, user.id)
    assert rows[1].credits_used == 1.25
    assert rows[1].credits_balance == 0.0
    assert rows[2].credits_used == 0.75
    assert rows[2].credits_balance == 0.5
    assert leave.credits_deducted == 2.0
    assert leave.credits_year == 2025


def test_deduct_beyond_posted_balance_draws_latest_month(db):
    user = make_user(db, UserRole.employee)
    give_credits(db, user, 1.0, month=1)
    leave = add_leave(db, user, date(2025, 3, 10), date(2025, 3, 11), status=LeaveStatus.approved)

    credit_ledger.deduct(db, leave, 2.0, 2025)
    db.commit()

    rows = rows_by_month(db, user.id)
    assert rows[1].credits_used == 2.0
    assert rows[1].credits_balance == -1.0


def test_deduct_without_rows_creates_one_for_the_leave_month(db):
    user = make_user(db, UserRole.employee)
    leave = add_leave(db, user, date(2025, 3, 10), date(2025, 3, 10), status=LeaveStatus.approved)

    credit_ledger.deduct(db, leave, 1.0, 2025)
    db.commit()

    rows = rows_by_month(db, user.id)
    assert list(rows) == [3]
    assert rows[3].credits_balance == -1.0


def test_restore_returns_everything_and_keeps_history(db):
    user = make_user(db, UserRole.employee)
    give_credits(db, user, 1.25, month=1)
    give_credits(db, user, 1.25, month=2)
    leave = add_leave(db, user, date(2025, 3, 10), date(2025, 3, 11), status=LeaveStatus.approved)
    credit_ledger.deduct(db, leave, 2.0, 2025)
    db.commit()

    restored = credit_ledger.restore(db, leave)
    db.commit()

    assert restored == 2.0
    rows = rows_by_month(db, user.id)
    assert rows[1].credits_balance == 1.25
    assert rows[2].credits_balance == 1.25
    assert rows[1].credits_used == 0.0
    assert rows[2].credits_used == 0.0
    assert leave.credits_deducted == 2.0


def test_restore_is_a_no_op_without_deduction(db):
    user = make_user(db, UserRole.employee)
    leave = add_leave(db, user, date(2025, 3, 10), date(2025, 3, 11), status=LeaveStatus.approved)
    assert credit_ledger.restore(db, leave) == 0.0


def test_restore_partial_lowers_credits_deducted(db):
    user = make_user(db, UserRole.employee)
    give_credits(db, user, 5.0)
    leave = add_leave(db, user, date(2025, 3, 3), date(2025, 3, 7), status=LeaveStatus.approved)
    credit_ledger.deduct(db, leave, 5.0, 2025)
    db.commit()

    restored = credit_ledger.restore_partial(db, leave, 2.0)
    db.commit()

    assert restored == 2.0
    assert leave.credits_deducted == 3.0
    assert rows_by_month(db, user.id)[1].credits_balance == 2.0


def test_restore_partial_caps_at_credits_deducted(db):
    user = make_user(db, UserRole.employee)
    give_credits(db, user, 5.0)
    leave = add_leave(db, user, date(2025, 3, 3), date(2025, 3, 4), status=LeaveStatus.approved)
    credit_ledger.deduct(db, leave, 2.0, 2025)
    db.commit()

    credit_ledger.restore_partial(db, leave, 4.0)
    db.commit()

    assert leave.credits_deducted == 0.0
    assert rows_by_month(db, user.id)[1].credits_balance == 5.0


def test_pending_credit_days_counts_pending_vl_and_sl_only(db):
    user = make_user(db, UserRole.employee)
    vacation = add_leave(db, user, date(2025, 3, 17), date(2025, 3, 19))
    add_leave(db, user, date(2025, 3, 24), date(2025, 3, 25), leave_type=LeaveType.SL)
    add_leave(db, user, date(2025, 4, 7), date(2025, 4, 8), leave_type=LeaveType.BL)
    add_leave(db, user, date(2025, 4, 14), date(2025, 4, 18), status=LeaveStatus.approved)
    add_leave(db, user, date(2026, 1, 5), date(2026, 1, 6))

    assert credit_ledger.pending_credit_days(db, user.id, 2025) == 5.0
    assert credit_ledger.pending_credit_days(db, user.id, 2025, exclude_request_id=vacation.id) == 2.0


def test_pending_credit_days_use_approved_days_after_partial_denial(db):
    user = make_user(db, UserRole.employee)
    add_leave(db, user, date(2025, 3, 17), date(2025, 3, 21), has_partial_denial=True, approved_days=3.0)
    assert credit_ledger.pending_credit_days(db, user.id, 2025) == 3.0


def test_build_summary_totals_rows_and_pending(db):
    user = make_user(db, UserRole.employee)
    give_credits(db, user, 1.25, month=1)
    give_credits(db, user, 1.25, month=2)
    add_leave(db, user, date(2025, 3, 17), date(2025, 3, 18))

    current = credit_ledger.build_summary(db, user, 2025, as_of=date(2025, 3, 3))

    assert current.is_eligible
    assert current.eligibility_date == date(2023, 7, 9)
    assert current.total_earned == 2.5
    assert current.balance == 2.5
    assert current.pending_credits == 2.0
    assert current.pending_regularization_credits is None


def test_build_summary_for_recent_hire_is_not_eligible(db):
    user = make_user(db, UserRole.employee, hired_date=date(2025, 1, 6))
    current = credit_ledger.build_summary(db, user, 2025, as_of=date(2025, 3, 3))
    assert not current.is_eligible
    assert current.eligibility_date == date(2025, 7, 6)


def add_regularization(db, user, credits: float = 3.75) -> LeaveRegularizationCredit:
    record = LeaveRegularizationCredit(
        user_id=user.id,
        year=2025,
        credits=credits,
        months_accrued=3,
        regularization_date=date(2025, 1, 15),
        is_pending=True,
    )
    db.add(record)
    db.commit()
    return record


def test_pending_regularization_counts_toward_balance(db):
    user = make_user(db, UserRole.employee)
    give_credits(db, user, 1.25, month=1)
    add_regularization(db, user)

    current = credit_ledger.build_summary(db, user, 2025, as_of=date(2025, 3, 3))

    assert current.balance == 5.0
    assert current.pending_regularization_credits is not None
    assert current.pending_regularization_credits.is_pending


def test_post_regularization_moves_bridge_into_month_zero(db):
    user = make_user(db, UserRole.employee)
    record = add_regularization(db, user)

    posted = credit_ledger.post_regularization(db, user.id, 2025, request_id="leave-1", now=NOW)
    db.commit()

    assert posted == 3.75
    rows = rows_by_month(db, user.id)
    assert rows[REGULARIZATION_MONTH].credits_earned == 3.75
    assert rows[REGULARIZATION_MONTH].credits_balance == 3.75
    db.refresh(record)
    assert record.is_pending is False
    assert record.consumed_by_request_id == "leave-1"

    # Consumed once; a second post adds nothing and the balance is not double counted.
    assert credit_ledger.post_regularization(db, user.id, 2025, request_id="leave-2", now=NOW) == 0.0
    current = credit_ledger.build_summary(db, user, 2025, as_of=date(2025, 3, 3))
    assert current.balance == 3.75


def test_accrue_monthly_posts_completed_month_once(db):
    user = make_user(db, UserRole.employee)

    row, created = credit_ledger.accrue_monthly(db, user, 2025, 2, today=date(2025, 3, 3))
    assert created
    assert row.credits_earned == 1.25
    assert row.accrued_at == date(2025, 2, 28)

    again, created_again = credit_ledger.accrue_monthly(db, user, 2025, 2, today=date(2025, 3, 3))
    assert not created_again
    assert again.id == row.id


def test_accrue_monthly_skips_open_month_and_pre_hire_month(db):
    user = make_user(db, UserRole.employee, hired_date=date(2025, 3, 1))
    assert credit_ledger.accrue_monthly(db, user, 2025, 3, today=date(2025, 3, 3)) == (None, False)
    assert credit_ledger.accrue_monthly(db, user, 2025, 2, today=date(2025, 3, 3)) == (None, False)


def test_accrue_monthly_uses_manager_rate(db):
    lead = make_user(db, UserRole.team_lead)
    row, created = credit_ledger.accrue_monthly(db, lead, 2025, 1, today=date(2025, 3, 3))
    assert created
    assert row.credits_balance == 1.5


@pytest.mark.parametrize(
    ("hired_date", "expected"),
    [
        (date(2023, 1, 9), 2),
        (date(2025, 2, 10), 1),
        (date(2025, 3, 1), 0),
    ],
)
def test_backfill_credits_fills_completed_months(db, hired_date, expected):
    user = make_user(db, UserRole.employee, hired_date=hired_date)
    assert credit_ledger.backfill_credits(db, user, today=date(2025, 3, 3)) == expected
    assert credit_ledger.backfill_credits(db, user, today=date(2025, 3, 3)) == 0


def test_backfill_credits_for_an_earlier_year(db):
    user = make_user(db, UserRole.employee, hired_date=date(2024, 10, 7))
    assert credit_ledger.backfill_credits(db, user, today=date(2025, 3, 3), year=2024) == 3
    assert [row.month for row in credit_ledger.credit_rows(db, user.id, 2024)] == [10, 11, 12]
    assert credit_ledger.credit_rows(db, user.id, 2025) == []
    assert credit_ledger.backfill_credits(db, user, today=date(2025, 3, 3), year=2023) == 0


@pytest.mark.parametrize(
    ("hired_date", "due"),
    [
        (date(2024, 8, 15), True),
        (date(2024, 9, 10), False),
        (date(2024, 3, 1), False),
        (date(2023, 9, 1), False),
        (date(2025, 1, 6), False),
    ],
)
def test_regularization_due(db, hired_date, due):
    user = make_user(db, UserRole.employee, hired_date=hired_date)
    assert credit_ledger.regularization_due(db, user, 2025, today=date(2025, 3, 3)) is due


def test_process_regularization_computes_probation_accrual(db):
    user = make_user(db, UserRole.team_lead, hired_date=date(2024, 8, 15))

    bridge = credit_ledger.process_regularization(db, user, 2025, today=date(2025, 3, 3))

    assert bridge.credits == 7.5
    assert bridge.months_accrued == 5
    assert bridge.regularization_date == date(2025, 2, 15)
    assert bridge.is_pending is True
    assert credit_ledger.process_regularization(db, user, 2025, today=date(2025, 3, 3)) is None


def test_process_regularization_prefers_posted_probation_rows(db):
    user = make_user(db, UserRole.employee, hired_date=date(2024, 8, 15))
    give_credits(db, user, 1.25, year=2024, month=11)
    give_credits(db, user, 1.25, year=2024, month=12)

    bridge = credit_ledger.process_regularization(db, user, 2025, today=date(2025, 3, 3))
    db.commit()

    assert (bridge.credits, bridge.months_accrued) == (2.5, 2)
    summary = credit_ledger.build_summary(db, user, 2025, as_of=date(2025, 3, 3))
    assert summary.balance == 2.5
    assert summary.pending_regularization_credits.is_pending is True
