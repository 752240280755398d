"""Leave credit accounting.

Credits are accrued one row per (user, year, month) and are year scoped: a new
year starts from zero. A probation period's accrual can be bridged into the
regularization year once, through ``LeaveRegularizationCredit``; while that
bridge is pending it is counted in the summary balance, and the first approval
that consumes credits for the year posts it as a month 0 row.

The pure helpers at the top take a ``CreditsSummary`` plus explicit dates and
never read a clock. The database helpers below them work inside the caller's
transaction and lock the monthly rows they modify.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.models.leave_credit import REGULARIZATION_MONTH, LeaveCredit
from app.models.leave_regularization_credit import LeaveRegularizationCredit
from app.models.leave_request import LeaveRequest, LeaveStatus, LeaveType
from app.models.user import MANAGER_ROLES, User
from app.services.calendar_math import add_months, months_between

logger = logging.getLogger(__name__)

CREDIT_TYPES = (LeaveType.VL, LeaveType.SL)
EPSILON = 1e-9


@dataclass
class RegularizationSummary:
    year: int
    credits: float
    months_accrued: int
    regularization_date: date
    is_pending: bool


@dataclass
class CreditsSummary:
    year: int
    is_eligible: bool
    eligibility_date: date | None
    monthly_rate: float
    total_earned: float
    total_used: float
    balance: float
    pending_credits: float
    pending_regularization_credits: RegularizationSummary | None = None


def monthly_rate_for(user: User) -> float:
    settings = get_settings()
    if user.role in MANAGER_ROLES:
        return settings.leave_manager_monthly_rate
    return settings.leave_employee_monthly_rate


def eligibility_date_for(user: User) -> date | None:
    if user.hired_date is None:
        return None
    return add_months(user.hired_date, get_settings().leave_eligibility_months)


def is_eligible(summary: CreditsSummary, as_of: date) -> bool:
    return summary.eligibility_date is not None and as_of >= summary.eligibility_date


def _pending_regularization(summary: CreditsSummary) -> float:
    bridge = summary.pending_regularization_credits
    if bridge is None or not bridge.is_pending:
        return 0.0
    return bridge.credits


def projected_balance(summary: CreditsSummary, target: date) -> float:
    """Credits the employee will have earned by ``target`` since becoming eligible."""
    if not is_eligible(summary, target):
        return 0.0
    months = max(0, months_between(summary.eligibility_date, target))
    return _pending_regularization(summary) + months * summary.monthly_rate


def projected_future_credits(summary: CreditsSummary, target: date, today: date) -> float:
    """Accrual for the months strictly after ``today`` up to ``target``'s month.

    Only months inside the summary year count, since credits never carry over.
    """
    if target.year != summary.year or not is_eligible(summary, target):
        return 0.0
    anchor = today if today.year >= summary.year else date(summary.year - 1, 12, 1)
    months = max(0, months_between(anchor, target))
    return months * summary.monthly_rate


def available_balance(summary: CreditsSummary, target: date, today: date) -> float:
    available = summary.balance - summary.pending_credits + projected_future_credits(summary, target, today)
    return max(0.0, round(available, 4))


def sufficient(summary: CreditsSummary, requested_days: float, target: date, today: date) -> bool:
    return available_balance(summary, target, today) >= requested_days


def pending_credit_days(
    db: Session,
    user_id: str,
    year: int,
    *,
    exclude_request_id: str | None = None,
) -> float:
    """Days reserved by the employee's pending VL/SL requests starting in ``year``."""
    query = select(LeaveRequest).where(
        LeaveRequest.user_id == user_id,
        LeaveRequest.status == LeaveStatus.pending,
        LeaveRequest.leave_type.in_(CREDIT_TYPES),
    )
    if exclude_request_id is not None:
        query = query.where(LeaveRequest.id != exclude_request_id)
    return sum(item.credit_days for item in db.execute(query).scalars() if item.start_date.year == year)


def _regularization_row(db: Session, user_id: str, year: int) -> LeaveRegularizationCredit | None:
    return db.execute(
        select(LeaveRegularizationCredit).where(
            LeaveRegularizationCredit.user_id == user_id,
            LeaveRegularizationCredit.year == year,
        )
    ).scalar_one_or_none()


def credit_rows(db: Session, user_id: str, year: int, *, lock: bool = False) -> list[LeaveCredit]:
    query = (
        select(LeaveCredit)
        .where(LeaveCredit.user_id == user_id, LeaveCredit.year == year)
        .order_by(LeaveCredit.month.asc())
    )
    if lock:
        query = query.with_for_update()
    return list(db.execute(query).scalars())


def build_summary(
    db: Session,
    user: User,
    year: int,
    *,
    as_of: date,
    exclude_request_id: str | None = None,
) -> CreditsSummary:
    rows = credit_rows(db, user.id, year)
    total_earned = sum(row.credits_earned for row in rows)
    total_used = sum(row.credits_used for row in rows)
    balance = sum(row.credits_balance for row in rows)

    bridge = None
    regularization = _regularization_row(db, user.id, year)
    if regularization is not None:
        bridge = RegularizationSummary(
            year=regularization.year,
            credits=regularization.credits,
            months_accrued=regularization.months_accrued,
            regularization_date=regularization.regularization_date,
            is_pending=regularization.is_pending,
        )
        if regularization.is_pending:
            balance += regularization.credits

    eligibility_date = eligibility_date_for(user)
    return CreditsSummary(
        year=year,
        is_eligible=eligibility_date is not None and as_of >= eligibility_date,
        eligibility_date=eligibility_date,
        monthly_rate=monthly_rate_for(user),
        total_earned=round(total_earned, 4),
        total_used=round(total_used, 4),
        balance=round(balance, 4),
        pending_credits=pending_credit_days(db, user.id, year, exclude_request_id=exclude_request_id),
        pending_regularization_credits=bridge,
    )


def post_regularization(db: Session, user_id: str, year: int, *, request_id: str, now: datetime) -> float:
    """Move a pending regularization bridge into the year's ledger as month 0."""
    regularization = _regularization_row(db, user_id, year)
    if regularization is None or not regularization.is_pending:
        return 0.0

    row = db.execute(
        select(LeaveCredit)
        .where(
            LeaveCredit.user_id == user_id,
            LeaveCredit.year == year,
            LeaveCredit.month == REGULARIZATION_MONTH,
        )
        .with_for_update()
    ).scalar_one_or_none()
    if row is None:
        row = LeaveCredit(
            user_id=user_id,
            year=year,
            month=REGULARIZATION_MONTH,
            credits_earned=0.0,
            credits_used=0.0,
            credits_balance=0.0,
            accrued_at=regularization.regularization_date,
        )
        db.add(row)
    row.credits_earned += regularization.credits
    row.credits_balance += regularization.credits

    regularization.is_pending = False
    regularization.consumed_at = now
    regularization.consumed_by_request_id = request_id
    db.flush()
    logger.info(
        "Posted %.2f regularization credits for user %s into %s (request %s)",
        regularization.credits,
        user_id,
        year,
        request_id,
    )
    return regularization.credits


def deduct(db: Session, leave: LeaveRequest, amount: float, year: int) -> None:
    """Consume ``amount`` credits oldest month first and record it on the request."""
    rows = credit_rows(db, leave.user_id, year, lock=True)
    remaining = amount
    for row in rows:
        if remaining <= EPSILON:
            break
        taken = min(remaining, row.credits_balance)
        if taken > 0:
            row.credits_used += taken
            row.credits_balance -= taken
            remaining -= taken

    # Projected accrual that is not posted yet is drawn against the latest month.
    if remaining > EPSILON:
        if rows:
            target = rows[-1]
        else:
            target = LeaveCredit(
                user_id=leave.user_id,
                year=year,
                month=leave.start_date.month if leave.start_date.year == year else 1,
                credits_earned=0.0,
                credits_used=0.0,
                credits_balance=0.0,
            )
            db.add(target)
        target.credits_used += remaining
        target.credits_balance -= remaining

    leave.credits_deducted = amount
    leave.credits_year = year
    db.flush()
    logger.info("Deducted %.2f credits for leave %s (user %s, %s)", amount, leave.id, leave.user_id, year)


def _give_back(db: Session, user_id: str, year: int, amount: float) -> float:
    rows = credit_rows(db, user_id, year, lock=True)
    remaining = amount
    for row in reversed(rows):
        if remaining <= EPSILON:
            break
        returned = min(remaining, row.credits_used)
        if returned > 0:
            row.credits_used -= returned
            row.credits_balance += returned
            remaining -= returned
    db.flush()
    return amount - max(0.0, remaining)


def restore(db: Session, leave: LeaveRequest) -> float:
    """Return everything the request consumed. ``credits_deducted`` is kept as history."""
    if not leave.credits_deducted or leave.credits_year is None:
        return 0.0
    restored = _give_back(db, leave.user_id, leave.credits_year, leave.credits_deducted)
    logger.info("Restored %.2f credits for leave %s (user %s)", restored, leave.id, leave.user_id)
    return restored


def restore_partial(db: Session, leave: LeaveRequest, days: float) -> float:
    """Return ``days`` credits after the request was shortened and lower ``credits_deducted``."""
    if not leave.credits_deducted or leave.credits_year is None or days <= 0:
        return 0.0
    amount = min(days, leave.credits_deducted)
    restored = _give_back(db, leave.user_id, leave.credits_year, amount)
    leave.credits_deducted = round(leave.credits_deducted - amount, 4)
    logger.info("Restored %.2f of %.2f credits for shortened leave %s", restored, amount, leave.id)
    return restored


def accrue_monthly(db: Session, user: User, year: int, month: int, *, today: date) -> tuple[LeaveCredit | None, bool]:
    """Post one month's accrual. Returns the row and whether it was created now."""
    if user.hired_date is None:
        return None, False
    month_end = date(year, month, calendar.monthrange(year, month)[1])
    if today < month_end or month_end < user.hired_date:
        return None, False

    existing = db.execute(
        select(LeaveCredit).where(
            LeaveCredit.user_id == user.id,
            LeaveCredit.year == year,
            LeaveCredit.month == month,
        )
    ).scalar_one_or_none()
    if existing is not None:
        return existing, False

    rate = monthly_rate_for(user)
    row = LeaveCredit(
        user_id=user.id,
        year=year,
        month=month,
        credits_earned=rate,
        credits_used=0.0,
        credits_balance=rate,
        accrued_at=month_end,
    )
    db.add(row)
    db.flush()
    logger.info("Accrued %.2f credits for user %s (%s-%02d)", rate, user.id, year, month)
    return row, True


def backfill_credits(db: Session, user: User, *, today: date, year: int | None = None) -> int:
    """Accrue every completed month of ``year`` (default: the current year) that has no row yet."""
    year = year or today.year
    if user.hired_date is None or user.hired_date.year > year:
        return 0
    cursor = date(year, 1, 1)
    if user.hired_date.year == year:
        cursor = user.hired_date.replace(day=1)

    created = 0
    while cursor.year == year and cursor <= today:
        _, was_created = accrue_monthly(db, user, cursor.year, cursor.month, today=today)
        if was_created:
            created += 1
        cursor = add_months(cursor, 1)
    return created


def regularization_due(db: Session, user: User, year: int, *, today: date) -> bool:
    """Hired the year before ``year``, regularized during it by ``today``, and not bridged yet."""
    eligibility_date = eligibility_date_for(user)
    if eligibility_date is None or user.hired_date.year != year - 1:
        return False
    if eligibility_date.year != year or eligibility_date > today:
        return False
    return db.execute(
        select(LeaveRegularizationCredit.id).where(LeaveRegularizationCredit.user_id == user.id)
    ).first() is None


def probation_accrual(db: Session, user: User, year: int) -> tuple[float, int]:
    """Credits accrued during the probation year and the number of months behind them.

    Posted monthly rows win; without them the accrual is computed from the hire
    month through December at the user's rate.
    """
    rows = [row for row in credit_rows(db, user.id, year - 1) if row.month != REGULARIZATION_MONTH]
    if rows:
        return round(sum(row.credits_balance for row in rows), 4), len(rows)
    months = 12 - user.hired_date.month + 1
    return round(months * monthly_rate_for(user), 4), months


def process_regularization(
    db: Session, user: User, year: int, *, today: date
) -> LeaveRegularizationCredit | None:
    """Bridge a probation year's accrual into the regularization year as a pending credit."""
    if not regularization_due(db, user, year, today=today):
        return None
    credits, months = probation_accrual(db, user, year)
    if credits <= EPSILON:
        logger.info("No probation credits to bridge for user %s into %s", user.id, year)
        return None

    bridge = LeaveRegularizationCredit(
        user_id=user.id,
        year=year,
        credits=credits,
        months_accrued=months,
        regularization_date=eligibility_date_for(user),
        is_pending=True,
    )
    db.add(bridge)
    db.flush()
    logger.info(
        "Bridged %.2f probation credits (%s month(s)) for user %s into %s",
        credits,
        months,
        user.id,
        year,
    )
    return bridge
