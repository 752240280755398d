from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
import logging
import math

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.leave_request import LeaveRequest, LeaveStatus, LeaveType
from app.services import credit_ledger
from app.services.calendar_math import working_dates
from app.services.credit_ledger import CreditsSummary
from app.services.leave_policy import policy_for

logger = logging.getLogger(__name__)


@dataclass
class CreditSplitDecision:
    leave_type: LeaveType
    resulting_type: LeaveType
    requested_days: float
    available: float
    is_eligible: bool
    credits_to_deduct: float
    upto_days: float
    converts_to_upto: bool
    creates_companion: bool
    reason: str | None


def resolve_credit_split(
    leave_type: LeaveType,
    requested_days: float,
    summary: CreditsSummary | None,
    *,
    target: date,
    today: date,
    medical_cert_submitted: bool = False,
) -> CreditSplitDecision:
    """Decide how many of ``requested_days`` are paid from credits.

    A balance short of the request funds what it holds, fractions included;
    the rest is filed as UPTO.
    """
    decision = CreditSplitDecision(
        leave_type=leave_type,
        resulting_type=leave_type,
        requested_days=requested_days,
        available=0.0,
        is_eligible=False,
        credits_to_deduct=0.0,
        upto_days=0.0,
        converts_to_upto=False,
        creates_companion=False,
        reason=None,
    )
    policy = policy_for(leave_type)
    if not policy.credit_bearing or summary is None:
        return decision

    decision.available = credit_ledger.available_balance(summary, target, today)
    decision.is_eligible = credit_ledger.is_eligible(summary, target)
    label = leave_type.value

    if policy.requires_certificate and not medical_cert_submitted:
        decision.reason = f"No medical certificate submitted: {label} credits not deducted"
        return decision

    if not decision.is_eligible:
        eligible_on = summary.eligibility_date.isoformat() if summary.eligibility_date else "unknown"
        decision.resulting_type = LeaveType.UPTO
        decision.converts_to_upto = True
        decision.upto_days = requested_days
        decision.reason = f"Converted to UPTO: not eligible for {label} credits until {eligible_on}"
        return decision

    available = decision.available
    if available + credit_ledger.EPSILON >= requested_days:
        decision.credits_to_deduct = requested_days
        return decision

    if available <= credit_ledger.EPSILON:
        decision.resulting_type = LeaveType.UPTO
        decision.converts_to_upto = True
        decision.upto_days = requested_days
        decision.reason = f"Converted to UPTO: insufficient balance (no {label} credits available)"
        return decision

    decision.credits_to_deduct = round(available, 4)
    decision.upto_days = round(requested_days - available, 4)
    decision.creates_companion = True
    decision.reason = (
        f"Partial {label} credits: {decision.credits_to_deduct:g} day(s) paid from credits, "
        f"{decision.upto_days:g} day(s) filed as UPTO"
    )
    return decision


def approved_dates(leave: LeaveRequest) -> list[date]:
    denied = {item.denied_date for item in leave.denied_dates}
    return [day for day in working_dates(leave.start_date, leave.end_date) if day not in denied]


def trailing_dates(dates: list[date], days: float) -> list[date]:
    """The last dates needed to hold ``days``; a fractional day takes a whole date."""
    count = math.ceil(days - credit_ledger.EPSILON)
    if count <= 0:
        return []
    return dates[-count:]


def find_companion(db: Session, leave: LeaveRequest) -> LeaveRequest | None:
    return db.execute(
        select(LeaveRequest).where(LeaveRequest.linked_request_id == leave.id)
    ).scalar_one_or_none()


def _record_reason(leave: LeaveRequest, original_type: LeaveType, reason: str | None) -> None:
    if reason is None:
        return
    if original_type == LeaveType.SL:
        leave.sl_no_credit_reason = reason
    else:
        leave.vl_no_credit_reason = reason


def apply_credit_split(
    db: Session,
    leave: LeaveRequest,
    decision: CreditSplitDecision,
    *,
    now: datetime,
) -> LeaveRequest | None:
    """Persist a split decision on an approved request. Returns the companion, if any.

    Runs once per request: a request that already carries ``credits_deducted``
    or a companion is left as it is.
    """
    if leave.credits_deducted is not None or find_companion(db, leave) is not None:
        logger.info("Credit split already applied to leave %s; skipping", leave.id)
        return None

    original_type = leave.leave_type
    year = leave.start_date.year
    _record_reason(leave, original_type, decision.reason)

    if decision.converts_to_upto:
        leave.leave_type = LeaveType.UPTO
        leave.credits_deducted = 0.0
        leave.credits_year = year
        logger.info("Leave %s converted from %s to UPTO", leave.id, original_type.value)
        return None

    if decision.credits_to_deduct <= 0:
        return None

    credit_ledger.post_regularization(db, leave.user_id, year, request_id=leave.id, now=now)
    credit_ledger.deduct(db, leave, decision.credits_to_deduct, year)
    if not decision.creates_companion:
        return None

    remainder = trailing_dates(approved_dates(leave), decision.upto_days)
    companion = LeaveRequest(
        user_id=leave.user_id,
        campaign=leave.campaign,
        leave_type=LeaveType.UPTO,
        start_date=remainder[0],
        end_date=remainder[-1],
        days_requested=decision.upto_days,
        reason=leave.reason,
        status=LeaveStatus.approved,
        requires_tl_approval=False,
        tl_approved_by_id=leave.tl_approved_by_id,
        tl_approved_at=leave.tl_approved_at,
        admin_approved_by_id=leave.admin_approved_by_id,
        admin_approved_at=leave.admin_approved_at,
        hr_approved_by_id=leave.hr_approved_by_id,
        hr_approved_at=leave.hr_approved_at,
        reviewed_by_id=leave.reviewed_by_id,
        reviewed_at=now,
        review_notes=f"Auto-created for the unfunded days of {original_type.value} request {leave.id}",
        force_approved_by_id=leave.force_approved_by_id,
        force_approved_at=leave.force_approved_at,
        credits_deducted=0.0,
        credits_year=year,
        attendance_points_at_request=leave.attendance_points_at_request,
        linked_request_id=leave.id,
        created_at=now,
    )
    db.add(companion)
    db.flush()
    logger.info(
        "Created UPTO companion %s for leave %s covering %.2f day(s)",
        companion.id,
        leave.id,
        decision.upto_days,
    )
    return companion
