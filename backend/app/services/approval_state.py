"""Status transitions and the TL / Admin / HR approval seats of a leave request.

The nullable approval columns on ``LeaveRequest`` are the current view; every
change to them is also appended to ``leave_approval_events``.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import PermissionDeniedError, StateConflictError
from app.models.leave_approval_event import ApprovalAction, ApprovalSeat, LeaveApprovalEvent
from app.models.leave_request import LeaveRequest, LeaveStatus
from app.models.user import User, UserRole

ALLOWED_TRANSITIONS: dict[LeaveStatus, frozenset[LeaveStatus]] = {
    LeaveStatus.pending: frozenset({LeaveStatus.approved, LeaveStatus.denied, LeaveStatus.cancelled}),
    LeaveStatus.approved: frozenset({LeaveStatus.cancelled}),
    LeaveStatus.denied: frozenset(),
    LeaveStatus.cancelled: frozenset(),
}


def can_transition(current: LeaveStatus, target: LeaveStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def transition(leave: LeaveRequest, target: LeaveStatus) -> None:
    if not can_transition(leave.status, target):
        raise StateConflictError(
            f"Cannot move a {leave.status.value} leave request to {target.value}",
            current_status=leave.status.value,
        )
    leave.status = target


def ensure_pending(leave: LeaveRequest) -> None:
    if leave.status != LeaveStatus.pending:
        raise StateConflictError(
            f"Leave request is {leave.status.value}; only pending requests can be reviewed",
            current_status=leave.status.value,
        )


def seat_for(user: User) -> ApprovalSeat:
    """Approval seat a reviewer occupies on the normal approve path."""
    if user.role == UserRole.hr:
        return ApprovalSeat.hr
    if user.role in (UserRole.admin, UserRole.super_admin):
        return ApprovalSeat.admin
    if user.role == UserRole.team_lead:
        return ApprovalSeat.team_lead
    raise PermissionDeniedError("Employees cannot review leave requests")


def event_seat(user: User) -> ApprovalSeat:
    return ApprovalSeat(user.role.value)


def has_role_approved(leave: LeaveRequest, seat: ApprovalSeat) -> bool:
    if seat == ApprovalSeat.team_lead:
        return leave.tl_approved_at is not None
    if seat == ApprovalSeat.hr:
        return leave.hr_approved_at is not None
    return leave.admin_approved_at is not None


def tl_gate_satisfied(leave: LeaveRequest) -> bool:
    return not leave.requires_tl_approval or leave.tl_approved_at is not None


def is_fully_approved(leave: LeaveRequest) -> bool:
    return (
        tl_gate_satisfied(leave)
        and leave.admin_approved_at is not None
        and leave.hr_approved_at is not None
    )


def record_event(
    db: Session,
    leave: LeaveRequest,
    *,
    seat: ApprovalSeat,
    action: ApprovalAction,
    actor: User | None,
    notes: str | None,
    now: datetime,
) -> LeaveApprovalEvent:
    event = LeaveApprovalEvent(
        leave_request_id=leave.id,
        seat=seat,
        action=action,
        actor_id=actor.id if actor is not None else None,
        notes=notes,
        created_at=now,
    )
    db.add(event)
    return event


def list_events(db: Session, leave_id: str) -> list[LeaveApprovalEvent]:
    return list(
        db.execute(
            select(LeaveApprovalEvent)
            .where(LeaveApprovalEvent.leave_request_id == leave_id)
            .order_by(LeaveApprovalEvent.created_at.asc())
        ).scalars()
    )


def record_tl_approval(leave: LeaveRequest, actor: User, notes: str | None, now: datetime) -> None:
    ensure_pending(leave)
    if not leave.requires_tl_approval:
        raise StateConflictError(
            "This leave request does not need Team Lead approval",
            current_status=leave.status.value,
        )
    if has_role_approved(leave, ApprovalSeat.team_lead):
        raise StateConflictError("Team Lead has already approved this request", current_status=leave.status.value)
    leave.tl_approved_by_id = actor.id
    leave.tl_approved_at = now
    leave.tl_review_notes = notes


def record_tl_rejection(leave: LeaveRequest, actor: User, notes: str, now: datetime) -> None:
    ensure_pending(leave)
    if not leave.requires_tl_approval:
        raise StateConflictError(
            "This leave request does not need Team Lead approval",
            current_status=leave.status.value,
        )
    leave.tl_approved_by_id = actor.id
    leave.tl_review_notes = notes
    leave.tl_rejected = True
    transition(leave, LeaveStatus.denied)


def record_seat_approval(
    leave: LeaveRequest,
    seat: ApprovalSeat,
    actor: User,
    notes: str | None,
    now: datetime,
) -> None:
    """Sign the Admin or HR seat. The TL gate must already be open."""
    ensure_pending(leave)
    if not tl_gate_satisfied(leave):
        raise StateConflictError(
            "Team Lead approval is required before Admin/HR approval",
            current_status=leave.status.value,
            details={"pending_role": ApprovalSeat.team_lead.value},
        )
    if has_role_approved(leave, seat):
        raise StateConflictError(
            f"The {seat.value} seat has already approved this request",
            current_status=leave.status.value,
        )
    if seat == ApprovalSeat.hr:
        leave.hr_approved_by_id = actor.id
        leave.hr_approved_at = now
        leave.hr_review_notes = notes
    else:
        leave.admin_approved_by_id = actor.id
        leave.admin_approved_at = now
        leave.admin_review_notes = notes


def pending_role(leave: LeaveRequest) -> str | None:
    """Seat still missing on a pending request, for display."""
    if leave.status != LeaveStatus.pending:
        return None
    if not tl_gate_satisfied(leave):
        return ApprovalSeat.team_lead.value
    if leave.admin_approved_at is None and leave.hr_approved_at is None:
        return "admin_hr"
    if leave.admin_approved_at is None:
        return ApprovalSeat.admin.value
    if leave.hr_approved_at is None:
        return ApprovalSeat.hr.value
    return None


def mark_reviewed(leave: LeaveRequest, actor: User, notes: str | None, now: datetime) -> None:
    leave.reviewed_by_id = actor.id
    leave.reviewed_at = now
    leave.review_notes = notes


def finalize_approval(leave: LeaveRequest, actor: User, notes: str | None, now: datetime) -> None:
    transition(leave, LeaveStatus.approved)
    mark_reviewed(leave, actor, notes, now)
