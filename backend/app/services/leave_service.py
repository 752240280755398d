"""Leave request lifecycle.

``LeaveRequestService`` is the only writer of leave requests. Each mutating
call runs inside ``_serialized``: the request row is re-read with ``FOR
UPDATE``, the whole action is applied, and the transaction commits once. A
lost race (stale version, lock timeout, unique violation) is rolled back and
retried a single time before surfacing as ``ConcurrencyError``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
import logging
from typing import TypeVar

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import get_settings
from app.core.exceptions import (
    ConcurrencyError,
    PermissionDeniedError,
    ResourceNotFoundError,
    StateConflictError,
    ValidationError,
)
from app.models.leave_approval_event import ApprovalAction, ApprovalSeat
from app.models.leave_regularization_credit import LeaveRegularizationCredit
from app.models.leave_request import LeaveRequest, LeaveStatus, LeaveType
from app.models.notification import NotificationType
from app.models.user import REVIEWER_ROLES, User, UserRole
from app.services import approval_state, credit_ledger, partial_denial
from app.services.audit import log_activity
from app.services.calendar_math import add_months, is_weekend, next_weekday, previous_weekday, working_dates
from app.services.conflict_service import DateSuggestion, LeaveConflict, LeaveConflictService
from app.services.credit_ledger import CreditsSummary
from app.services.credit_split import (
    CreditSplitDecision,
    apply_credit_split,
    approved_dates,
    find_companion,
    resolve_credit_split,
    trailing_dates,
)
from app.services.leave_advisories import LeaveAdvisory, active_attendance_points, collect_advisories
from app.services.leave_attendance import rollback_attendance, sync_attendance
from app.services.leave_policy import is_credit_bearing, policy_for
from app.services.notifications import notify_leave_owner, notify_leave_submitted

logger = logging.getLogger(__name__)

T = TypeVar("T")

ADJUSTING_ROLES = frozenset({UserRole.admin, UserRole.super_admin})
RETRYABLE_ERRORS = (StaleDataError, OperationalError, IntegrityError)


@dataclass
class LeaveSubmission:
    leave: LeaveRequest
    advisories: list[LeaveAdvisory] = field(default_factory=list)
    conflicts: list[LeaveConflict] = field(default_factory=list)


@dataclass
class LeaveDecision:
    leave: LeaveRequest
    companion: LeaveRequest | None = None
    pending_role: str | None = None


@dataclass
class CreditSplitPreview:
    employee_id: str
    leave_type: LeaveType
    start_date: date
    end_date: date
    days_requested: float
    summary: CreditsSummary | None
    decision: CreditSplitDecision


class LeaveRequestService:
    def __init__(self, db: Session, *, now: datetime):
        self.db = db
        self.now = now
        self.today = now.date()
        self.settings = get_settings()

    # -- plumbing -----------------------------------------------------------

    def _serialized(self, action: str, operation: Callable[[], T]) -> T:
        for attempt in (1, 2):
            try:
                result = operation()
                self.db.commit()
                return result
            except RETRYABLE_ERRORS as exc:
                self.db.rollback()
                if attempt == 2:
                    logger.warning("%s lost a concurrent update twice; giving up", action)
                    raise ConcurrencyError() from exc
                logger.warning("%s hit a concurrent update (%s); retrying once", action, type(exc).__name__)
            except Exception:
                self.db.rollback()
                raise
        raise ConcurrencyError()

    def _lock(self, leave_id: str) -> LeaveRequest:
        leave = self.db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.id == leave_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if leave is None:
            raise ResourceNotFoundError("LeaveRequest", leave_id)
        return leave

    def _get_user(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise ResourceNotFoundError("User", user_id)
        return user

    def _require_text(self, value: str | None, label: str) -> str:
        minimum = self.settings.leave_review_notes_min_length
        text = (value or "").strip()
        if len(text) < minimum:
            raise ValidationError(f"{label} must be at least {minimum} characters")
        return text

    def _ensure_reviewer(self, actor: User) -> None:
        if actor.role not in REVIEWER_ROLES:
            raise PermissionDeniedError("Only Admin, HR or Super Admin can review leave requests")

    def _ensure_team_lead_of(self, actor: User, leave: LeaveRequest) -> None:
        if actor.role != UserRole.team_lead:
            raise PermissionDeniedError("Only a Team Lead can perform this action")
        if actor.campaign != leave.campaign:
            raise PermissionDeniedError("Team Leads can only act on requests from their own campaign")

    def can_view(self, actor: User, leave: LeaveRequest) -> bool:
        if actor.role in REVIEWER_ROLES or actor.id == leave.user_id:
            return True
        return actor.role == UserRole.team_lead and actor.campaign == leave.campaign

    def _can_act_for(self, actor: User, employee: User) -> bool:
        if actor.id == employee.id or actor.role in REVIEWER_ROLES:
            return True
        return actor.role == UserRole.team_lead and actor.campaign is not None and actor.campaign == employee.campaign

    # -- reads --------------------------------------------------------------

    def get(self, actor: User, leave_id: str) -> LeaveRequest:
        leave = self.db.get(LeaveRequest, leave_id)
        if leave is None:
            raise ResourceNotFoundError("LeaveRequest", leave_id)
        if not self.can_view(actor, leave):
            raise PermissionDeniedError("You cannot view this leave request")
        return leave

    def list_requests(
        self,
        actor: User,
        *,
        status: LeaveStatus | None = None,
        employee_id: str | None = None,
    ) -> list[LeaveRequest]:
        query = select(LeaveRequest)
        if actor.role == UserRole.team_lead:
            query = query.where(or_(LeaveRequest.user_id == actor.id, LeaveRequest.campaign == actor.campaign))
        elif actor.role not in REVIEWER_ROLES:
            query = query.where(LeaveRequest.user_id == actor.id)
        if status is not None:
            query = query.where(LeaveRequest.status == status)
        if employee_id is not None:
            query = query.where(LeaveRequest.user_id == employee_id)
        query = query.order_by(LeaveRequest.start_date.desc(), LeaveRequest.created_at.desc())
        return list(self.db.execute(query).scalars())

    def companion_of(self, leave: LeaveRequest) -> LeaveRequest | None:
        return find_companion(self.db, leave)

    def credits_summary(self, actor: User, *, employee_id: str | None = None, year: int | None = None) -> CreditsSummary:
        employee = self._get_user(employee_id or actor.id)
        if not self._can_act_for(actor, employee):
            raise PermissionDeniedError("You cannot view this employee's leave credits")
        return credit_ledger.build_summary(self.db, employee, year or self.today.year, as_of=self.today)

    def preview_credit_split(
        self,
        actor: User,
        *,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        employee_id: str | None = None,
        medical_cert_submitted: bool = False,
        exclude_request_id: str | None = None,
    ) -> CreditSplitPreview:
        employee = self._get_user(employee_id or actor.id)
        if not self._can_act_for(actor, employee):
            raise PermissionDeniedError("You cannot preview credits for this employee")
        if end_date < start_date:
            raise ValidationError("End date cannot be before start date")

        days = float(len(working_dates(start_date, end_date)))
        summary = None
        if is_credit_bearing(leave_type):
            summary = credit_ledger.build_summary(
                self.db,
                employee,
                start_date.year,
                as_of=start_date,
                exclude_request_id=exclude_request_id,
            )
        decision = resolve_credit_split(
            leave_type,
            days,
            summary,
            target=start_date,
            today=self.today,
            medical_cert_submitted=medical_cert_submitted,
        )
        return CreditSplitPreview(
            employee_id=employee.id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            days_requested=days,
            summary=summary,
            decision=decision,
        )

    def campaign_scope(self, actor: User, campaign: str | None) -> str:
        """Campaign a conflict lookup may read: reviewers pick any, others only their own."""
        if actor.role in REVIEWER_ROLES:
            scoped = campaign or actor.campaign
        else:
            if campaign is not None and campaign != actor.campaign:
                raise PermissionDeniedError("You can only check leave conflicts in your own campaign")
            scoped = actor.campaign
        if not scoped:
            raise ValidationError("A campaign is required to check leave conflicts")
        return scoped

    def check_conflicts(
        self,
        *,
        campaign: str,
        start_date: date,
        end_date: date,
        leave_type: LeaveType,
        exclude_user_id: str | None = None,
    ) -> list[LeaveConflict]:
        return LeaveConflictService(self.db).detect_conflicts(
            campaign=campaign,
            start_date=start_date,
            end_date=end_date,
            leave_type=leave_type,
            exclude_user_id=exclude_user_id,
        )

    def suggest_dates(
        self,
        *,
        campaign: str,
        start_date: date,
        end_date: date,
        leave_type: LeaveType,
        exclude_user_id: str | None = None,
    ) -> list[DateSuggestion]:
        return LeaveConflictService(self.db).suggest_dates(
            campaign=campaign,
            start_date=start_date,
            end_date=end_date,
            leave_type=leave_type,
            today=self.today,
            exclude_user_id=exclude_user_id,
        )

    # -- create -------------------------------------------------------------

    def _validate_schedule(self, leave_type: LeaveType, start_date: date, end_date: date) -> float:
        if end_date < start_date:
            raise ValidationError("End date cannot be before start date")
        policy = policy_for(leave_type)
        if policy.weekend_restricted and (is_weekend(start_date) or is_weekend(end_date)):
            raise ValidationError(f"{leave_type.value} cannot start or end on a weekend")
        days = float(len(working_dates(start_date, end_date)))
        if days < 1:
            raise ValidationError("The selected range contains no working days")

        if policy.backdate_allowed:
            earliest = self.today - timedelta(days=self.settings.leave_sick_backdate_days)
            latest = add_months(self.today, self.settings.leave_sick_advance_months)
            if start_date < earliest:
                raise ValidationError(
                    f"{leave_type.value} can be backdated by at most {self.settings.leave_sick_backdate_days} days",
                    details={"earliest_date": earliest.isoformat()},
                )
            if end_date > latest:
                raise ValidationError(
                    f"{leave_type.value} cannot end more than {self.settings.leave_sick_advance_months} month(s) ahead",
                    details={"latest_date": latest.isoformat()},
                )
        elif start_date < self.today:
            raise ValidationError("Leave cannot start in the past")
        return days

    def create(
        self,
        actor: User,
        *,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        reason: str,
        campaign: str | None = None,
        employee_id: str | None = None,
        medical_cert_submitted: bool = False,
        supporting_document_ref: str | None = None,
        short_notice_override: bool = False,
    ) -> LeaveSubmission:
        employee = actor if employee_id in (None, actor.id) else self._get_user(employee_id)
        if not self._can_act_for(actor, employee):
            raise PermissionDeniedError("You cannot file leave for this employee")
        if short_notice_override and actor.role not in ADJUSTING_ROLES:
            raise PermissionDeniedError("Only Admin or Super Admin can override the short notice rule")

        resolved_campaign = (campaign or employee.campaign or "").strip()
        if not resolved_campaign:
            raise ValidationError("Campaign is required")
        reason_text = (reason or "").strip()
        if len(reason_text) < self.settings.leave_min_reason_length:
            raise ValidationError(f"Reason must be at least {self.settings.leave_min_reason_length} characters")
        days = self._validate_schedule(leave_type, start_date, end_date)

        def operation() -> LeaveSubmission:
            points = active_attendance_points(self.db, employee.id)
            advisories = collect_advisories(
                self.db,
                user_id=employee.id,
                leave_type=leave_type,
                start_date=start_date,
                end_date=end_date,
                submitted_on=self.today,
                short_notice_override=short_notice_override,
                attendance_points=points,
            )
            conflicts = self.check_conflicts(
                campaign=resolved_campaign,
                start_date=start_date,
                end_date=end_date,
                leave_type=leave_type,
                exclude_user_id=employee.id,
            )
            leave = LeaveRequest(
                user_id=employee.id,
                campaign=resolved_campaign,
                leave_type=leave_type,
                start_date=start_date,
                end_date=end_date,
                days_requested=days,
                reason=reason_text,
                medical_cert_submitted=medical_cert_submitted,
                supporting_document_ref=supporting_document_ref,
                status=LeaveStatus.pending,
                requires_tl_approval=employee.role == UserRole.employee,
                attendance_points_at_request=points,
                created_at=self.now,
            )
            if short_notice_override:
                leave.short_notice_override = True
                leave.short_notice_override_by_id = actor.id
                leave.short_notice_override_at = self.now
            self.db.add(leave)
            self.db.flush()

            log_activity(
                self.db,
                user=actor,
                action="leave.create",
                entity_type="leave_request",
                entity_id=leave.id,
                details={
                    "employee_id": employee.id,
                    "leave_type": leave_type.value,
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat(),
                    "days_requested": days,
                    "advisories": [item.code for item in advisories],
                },
            )
            notify_leave_submitted(self.db, leave, requester=employee)
            return LeaveSubmission(leave=leave, advisories=advisories, conflicts=conflicts)

        submission = self._serialized("leave.create", operation)
        logger.info("Leave %s created for user %s (%s)", submission.leave.id, employee.id, leave_type.value)
        return submission

    # -- approval -----------------------------------------------------------

    def _finalize(self, leave: LeaveRequest, actor: User, notes: str | None) -> LeaveRequest | None:
        """Move a request to approved and apply its credit and attendance effects."""
        approval_state.finalize_approval(leave, actor, notes, self.now)
        companion = None
        if is_credit_bearing(leave.leave_type):
            owner = self._get_user(leave.user_id)
            summary = credit_ledger.build_summary(
                self.db,
                owner,
                leave.start_date.year,
                as_of=leave.start_date,
                exclude_request_id=leave.id,
            )
            decision = resolve_credit_split(
                leave.leave_type,
                leave.credit_days,
                summary,
                target=leave.start_date,
                today=self.today,
                medical_cert_submitted=leave.medical_cert_submitted,
            )
            companion = apply_credit_split(self.db, leave, decision, now=self.now)
        sync_attendance(self.db, leave, approved_dates(leave))
        notify_leave_owner(
            self.db,
            leave,
            title="Leave request approved",
            message=(
                f"Your leave from {leave.start_date.isoformat()} to {leave.end_date.isoformat()} "
                f"was approved as {leave.leave_type.value}."
            ),
        )
        logger.info("Leave %s approved (companion=%s)", leave.id, companion.id if companion else None)
        return companion

    def approve(self, leave_id: str, actor: User, notes: str | None = None) -> LeaveDecision:
        self._ensure_reviewer(actor)
        seat = approval_state.seat_for(actor)

        def operation() -> LeaveDecision:
            leave = self._lock(leave_id)
            approval_state.record_seat_approval(leave, seat, actor, notes, self.now)
            approval_state.record_event(
                self.db, leave, seat=seat, action=ApprovalAction.approve, actor=actor, notes=notes, now=self.now
            )
            companion = None
            if approval_state.is_fully_approved(leave):
                companion = self._finalize(leave, actor, notes)
            else:
                logger.info(
                    "Leave %s approved by %s seat; waiting on %s",
                    leave.id,
                    seat.value,
                    approval_state.pending_role(leave),
                )
            log_activity(
                self.db,
                user=actor,
                action="leave.approve",
                entity_type="leave_request",
                entity_id=leave.id,
                details={"seat": seat.value, "status": leave.status.value},
            )
            return LeaveDecision(leave=leave, companion=companion, pending_role=approval_state.pending_role(leave))

        return self._serialized("leave.approve", operation)

    def deny(self, leave_id: str, actor: User, notes: str) -> LeaveDecision:
        self._ensure_reviewer(actor)
        notes_text = self._require_text(notes, "Review notes")

        def operation() -> LeaveDecision:
            leave = self._lock(leave_id)
            approval_state.ensure_pending(leave)
            approval_state.transition(leave, LeaveStatus.denied)
            approval_state.mark_reviewed(leave, actor, notes_text, self.now)
            approval_state.record_event(
                self.db,
                leave,
                seat=approval_state.event_seat(actor),
                action=ApprovalAction.deny,
                actor=actor,
                notes=notes_text,
                now=self.now,
            )
            log_activity(self.db, user=actor, action="leave.deny", entity_type="leave_request", entity_id=leave.id)
            notify_leave_owner(
                self.db,
                leave,
                title="Leave request denied",
                message=f"Your leave from {leave.start_date.isoformat()} was denied: {notes_text}",
                actor_id=actor.id,
            )
            logger.info("Leave %s denied by %s", leave.id, actor.id)
            return LeaveDecision(leave=leave)

        return self._serialized("leave.deny", operation)

    def tl_approve(self, leave_id: str, actor: User, notes: str | None = None) -> LeaveDecision:
        def operation() -> LeaveDecision:
            leave = self._lock(leave_id)
            self._ensure_team_lead_of(actor, leave)
            approval_state.record_tl_approval(leave, actor, notes, self.now)
            approval_state.record_event(
                self.db,
                leave,
                seat=ApprovalSeat.team_lead,
                action=ApprovalAction.approve,
                actor=actor,
                notes=notes,
                now=self.now,
            )
            log_activity(
                self.db, user=actor, action="leave.tl_approve", entity_type="leave_request", entity_id=leave.id
            )
            notify_leave_owner(
                self.db,
                leave,
                title="Team Lead approved your leave",
                message="Your leave request now awaits Admin and HR approval.",
                actor_id=actor.id,
            )
            return LeaveDecision(leave=leave, pending_role=approval_state.pending_role(leave))

        return self._serialized("leave.tl_approve", operation)

    def tl_deny(self, leave_id: str, actor: User, notes: str) -> LeaveDecision:
        notes_text = self._require_text(notes, "Review notes")

        def operation() -> LeaveDecision:
            leave = self._lock(leave_id)
            self._ensure_team_lead_of(actor, leave)
            approval_state.record_tl_rejection(leave, actor, notes_text, self.now)
            approval_state.record_event(
                self.db,
                leave,
                seat=ApprovalSeat.team_lead,
                action=ApprovalAction.reject,
                actor=actor,
                notes=notes_text,
                now=self.now,
            )
            log_activity(self.db, user=actor, action="leave.tl_deny", entity_type="leave_request", entity_id=leave.id)
            notify_leave_owner(
                self.db,
                leave,
                title="Team Lead denied your leave",
                message=f"Your leave from {leave.start_date.isoformat()} was denied: {notes_text}",
                actor_id=actor.id,
            )
            logger.info("Leave %s rejected by Team Lead %s", leave.id, actor.id)
            return LeaveDecision(leave=leave)

        return self._serialized("leave.tl_deny", operation)

    def partial_deny(
        self,
        leave_id: str,
        actor: User,
        *,
        denied_dates: list[date],
        denial_reason: str,
        notes: str | None = None,
    ) -> LeaveDecision:
        """Deny some working days and sign the actor's seat for the rest."""
        if actor.role != UserRole.team_lead:
            self._ensure_reviewer(actor)

        def operation() -> LeaveDecision:
            leave = self._lock(leave_id)
            approval_state.ensure_pending(leave)
            if actor.role == UserRole.team_lead:
                self._ensure_team_lead_of(actor, leave)
                seat = ApprovalSeat.team_lead
            else:
                seat = approval_state.seat_for(actor)
            denied = partial_denial.validate_denied_dates(leave, denied_dates, denial_reason)

            if seat == ApprovalSeat.team_lead:
                approval_state.record_tl_approval(leave, actor, notes, self.now)
            else:
                approval_state.record_seat_approval(leave, seat, actor, notes, self.now)
            approved_days = partial_denial.apply_partial_denial(
                leave, denied, denial_reason=denial_reason, actor=actor
            )
            approval_state.record_event(
                self.db,
                leave,
                seat=seat,
                action=ApprovalAction.partial_deny,
                actor=actor,
                notes=notes or denial_reason,
                now=self.now,
            )

            companion = None
            if seat != ApprovalSeat.team_lead and approval_state.is_fully_approved(leave):
                companion = self._finalize(leave, actor, notes)
            log_activity(
                self.db,
                user=actor,
                action="leave.partial_deny",
                entity_type="leave_request",
                entity_id=leave.id,
                details={
                    "seat": seat.value,
                    "denied_dates": sorted(day.isoformat() for day in denied),
                    "approved_days": approved_days,
                    "status": leave.status.value,
                },
            )
            logger.info("Leave %s partially denied (%s day(s) approved)", leave.id, approved_days)
            return LeaveDecision(leave=leave, companion=companion, pending_role=approval_state.pending_role(leave))

        return self._serialized("leave.partial_deny", operation)

    def force_approve(
        self,
        leave_id: str,
        actor: User,
        *,
        notes: str | None = None,
        denied_dates: list[date] | None = None,
        denial_reason: str | None = None,
    ) -> LeaveDecision:
        if actor.role != UserRole.super_admin:
            raise PermissionDeniedError("Only a Super Admin can force approve a leave request")

        def operation() -> LeaveDecision:
            leave = self._lock(leave_id)
            approval_state.ensure_pending(leave)
            if denied_dates:
                denied = partial_denial.validate_denied_dates(leave, denied_dates, denial_reason or "")
                partial_denial.apply_partial_denial(leave, denied, denial_reason=denial_reason or "", actor=actor)
            leave.force_approved_by_id = actor.id
            leave.force_approved_at = self.now
            approval_state.record_event(
                self.db,
                leave,
                seat=ApprovalSeat.super_admin,
                action=ApprovalAction.force_approve,
                actor=actor,
                notes=notes,
                now=self.now,
            )
            companion = self._finalize(leave, actor, notes)
            log_activity(
                self.db,
                user=actor,
                action="leave.force_approve",
                entity_type="leave_request",
                entity_id=leave.id,
                details={"approved_days": leave.credit_days, "has_partial_denial": leave.has_partial_denial},
            )
            logger.info("Leave %s force approved by %s", leave.id, actor.id)
            return LeaveDecision(leave=leave, companion=companion)

        return self._serialized("leave.force_approve", operation)

    # -- cancellation and adjustment ----------------------------------------

    def _cancel_record(self, leave: LeaveRequest, actor: User, reason: str | None) -> None:
        approval_state.transition(leave, LeaveStatus.cancelled)
        leave.cancelled_by_id = actor.id
        leave.cancelled_at = self.now
        leave.cancellation_reason = reason

    def _unwind_approval(self, leave: LeaveRequest, actor: User, reason: str | None) -> LeaveRequest | None:
        """Give back credits and attendance of an approved request and cancel its companion."""
        credit_ledger.restore(self.db, leave)
        rollback_attendance(self.db, leave)
        companion = find_companion(self.db, leave)
        if companion is not None and companion.status != LeaveStatus.cancelled:
            self._cancel_record(companion, actor, reason)
            approval_state.record_event(
                self.db,
                companion,
                seat=approval_state.event_seat(actor),
                action=ApprovalAction.cancel,
                actor=actor,
                notes=reason,
                now=self.now,
            )
        return companion

    def cancel(self, leave_id: str, actor: User, reason: str | None = None) -> LeaveDecision:
        def operation() -> LeaveDecision:
            leave = self._lock(leave_id)
            if leave.linked_request_id is not None:
                raise StateConflictError(
                    "This UPTO request was created for another request; cancel the parent instead",
                    current_status=leave.status.value,
                    details={"parent_id": leave.linked_request_id},
                )
            reason_text = (reason or "").strip() or None
            companion = None
            if leave.status == LeaveStatus.pending:
                if actor.id != leave.user_id and actor.role not in REVIEWER_ROLES:
                    raise PermissionDeniedError("Only the owner or a reviewer can cancel a pending request")
                self._cancel_record(leave, actor, reason_text)
            elif leave.status == LeaveStatus.approved:
                if actor.role not in ADJUSTING_ROLES:
                    raise PermissionDeniedError("Only Admin or Super Admin can cancel an approved request")
                reason_text = self._require_text(reason, "Cancellation reason")
                companion = self._unwind_approval(leave, actor, reason_text)
                self._cancel_record(leave, actor, reason_text)
            else:
                approval_state.transition(leave, LeaveStatus.cancelled)

            seat = ApprovalSeat.employee if actor.id == leave.user_id else approval_state.event_seat(actor)
            approval_state.record_event(
                self.db, leave, seat=seat, action=ApprovalAction.cancel, actor=actor, notes=reason_text, now=self.now
            )
            log_activity(
                self.db,
                user=actor,
                action="leave.cancel",
                entity_type="leave_request",
                entity_id=leave.id,
                details={"credits_restored": leave.credits_deducted or 0, "companion_id": companion.id if companion else None},
            )
            notify_leave_owner(
                self.db,
                leave,
                title="Leave request cancelled",
                message=f"Your leave from {leave.start_date.isoformat()} was cancelled.",
                notification_type=NotificationType.leave_cancelled,
                actor_id=actor.id,
            )
            logger.info("Leave %s cancelled by %s", leave.id, actor.id)
            return LeaveDecision(leave=leave, companion=companion)

        return self._serialized("leave.cancel", operation)

    def adjust_for_work_day(
        self,
        leave_id: str,
        actor: User,
        *,
        work_date: date,
        mode: str,
        reason: str,
    ) -> LeaveDecision:
        """Shrink an approved request around a day the employee reported for work.

        ``end_early`` ends the leave on the weekday before ``work_date``;
        ``start_late`` starts it on the weekday after. Credits for days that are
        no longer covered go back to the ledger.
        """
        if actor.role not in ADJUSTING_ROLES:
            raise PermissionDeniedError("Only Admin or Super Admin can adjust an approved request")
        if mode not in ("end_early", "start_late"):
            raise ValidationError("Mode must be end_early or start_late")
        reason_text = self._require_text(reason, "Adjustment reason")

        def operation() -> LeaveDecision:
            leave = self._lock(leave_id)
            if leave.status != LeaveStatus.approved:
                raise StateConflictError(
                    "Only approved leave requests can be adjusted", current_status=leave.status.value
                )
            if leave.linked_request_id is not None:
                raise StateConflictError(
                    "Adjust the parent request instead of its UPTO companion",
                    current_status=leave.status.value,
                    details={"parent_id": leave.linked_request_id},
                )
            if work_date not in working_dates(leave.start_date, leave.end_date):
                raise ValidationError("Work date must be a working day inside the leave range")

            before = approved_dates(leave)
            if mode == "end_early":
                new_start, new_end = leave.start_date, previous_weekday(work_date)
            else:
                new_start, new_end = next_weekday(work_date), leave.end_date

            if leave.original_start_date is None:
                leave.original_start_date = leave.start_date
                leave.original_end_date = leave.end_date
            leave.date_modification_reason = reason_text
            leave.date_modified_by_id = actor.id
            leave.date_modified_at = self.now

            denied = {item.denied_date for item in leave.denied_dates}
            remaining = [day for day in working_dates(new_start, new_end) if day not in denied]
            companion = None
            if not remaining:
                companion = self._unwind_approval(leave, actor, reason_text)
                self._cancel_record(leave, actor, reason_text)
                leave.auto_cancelled = True
                leave.auto_cancelled_reason = f"No working days left after reporting for work on {work_date.isoformat()}"
                leave.auto_cancelled_at = self.now
                logger.info("Leave %s auto-cancelled by work-day adjustment", leave.id)
            else:
                companion = self._shrink(leave, new_start, new_end, before, remaining, actor, reason_text)

            approval_state.record_event(
                self.db,
                leave,
                seat=approval_state.event_seat(actor),
                action=ApprovalAction.adjust,
                actor=actor,
                notes=reason_text,
                now=self.now,
            )
            log_activity(
                self.db,
                user=actor,
                action="leave.adjust_for_work_day",
                entity_type="leave_request",
                entity_id=leave.id,
                details={
                    "mode": mode,
                    "work_date": work_date.isoformat(),
                    "start_date": leave.start_date.isoformat(),
                    "end_date": leave.end_date.isoformat(),
                    "auto_cancelled": leave.auto_cancelled,
                },
            )
            notify_leave_owner(
                self.db,
                leave,
                title="Leave dates adjusted",
                message=f"Your leave was adjusted because you reported for work on {work_date.isoformat()}.",
                notification_type=NotificationType.leave_adjusted,
                actor_id=actor.id,
            )
            return LeaveDecision(leave=leave, companion=companion)

        return self._serialized("leave.adjust_for_work_day", operation)

    def _shrink(
        self,
        leave: LeaveRequest,
        new_start: date,
        new_end: date,
        before: list[date],
        remaining: list[date],
        actor: User,
        reason: str,
    ) -> LeaveRequest | None:
        leave.start_date = new_start
        leave.end_date = new_end
        in_range = set(working_dates(new_start, new_end))
        leave.days_requested = float(len(in_range))
        for item in [item for item in leave.denied_dates if item.denied_date not in in_range]:
            leave.denied_dates.remove(item)
        if leave.has_partial_denial:
            if leave.denied_dates:
                leave.approved_days = float(len(remaining))
            else:
                leave.has_partial_denial = False
                leave.approved_days = None
        new_total = leave.credit_days

        old_credits = leave.credits_deducted or 0.0
        new_credits = min(old_credits, new_total)
        if old_credits > new_credits:
            credit_ledger.restore_partial(self.db, leave, old_credits - new_credits)

        companion = find_companion(self.db, leave)
        if companion is not None and companion.status == LeaveStatus.approved:
            upto_days = round(new_total - new_credits, 4)
            if upto_days <= credit_ledger.EPSILON:
                self._cancel_record(companion, actor, reason)
            else:
                trailing = trailing_dates(remaining, upto_days)
                companion.start_date = trailing[0]
                companion.end_date = trailing[-1]
                companion.days_requested = upto_days

        removed = sorted(set(before) - set(remaining))
        rollback_attendance(self.db, leave, removed)
        logger.info(
            "Leave %s shrunk to %s..%s; %s day(s) removed",
            leave.id,
            new_start.isoformat(),
            new_end.isoformat(),
            len(removed),
        )
        return companion

    # -- accrual ------------------------------------------------------------

    def accrue(self, actor: User, *, year: int, month: int | None = None, user_id: str | None = None) -> int:
        """Post one month of accrual, or backfill every completed month of ``year``, for active users."""
        if actor.role not in ADJUSTING_ROLES:
            raise PermissionDeniedError("Only Admin or Super Admin can run leave credit accrual")

        def operation() -> int:
            query = select(User).where(User.is_active.is_(True))
            if user_id is not None:
                query = query.where(User.id == user_id)
            created = 0
            for user in self.db.execute(query).scalars():
                if month is None:
                    created += credit_ledger.backfill_credits(self.db, user, today=self.today, year=year)
                else:
                    _, was_created = credit_ledger.accrue_monthly(self.db, user, year, month, today=self.today)
                    created += int(was_created)
            log_activity(
                self.db,
                user=actor,
                action="leave_credits.accrue",
                entity_type="leave_credit",
                details={"year": year, "month": month, "user_id": user_id, "created": created},
            )
            return created

        return self._serialized("leave_credits.accrue", operation)

    def regularize(self, actor: User, *, year: int, user_id: str | None = None) -> list[LeaveRegularizationCredit]:
        """Bridge probation-year credits for users regularized during ``year``."""
        if actor.role not in ADJUSTING_ROLES:
            raise PermissionDeniedError("Only Admin or Super Admin can process regularization credits")

        def operation() -> list[LeaveRegularizationCredit]:
            query = select(User).where(User.is_active.is_(True))
            if user_id is not None:
                query = query.where(User.id == user_id)
            bridges = []
            for user in self.db.execute(query).scalars():
                bridge = credit_ledger.process_regularization(self.db, user, year, today=self.today)
                if bridge is not None:
                    bridges.append(bridge)
            log_activity(
                self.db,
                user=actor,
                action="leave_credits.regularize",
                entity_type="leave_regularization_credit",
                details={"year": year, "user_id": user_id, "processed": len(bridges)},
            )
            return bridges

        return self._serialized("leave_credits.regularize", operation)
