from datetime import date

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_current_user, get_leave_service, require_roles
from app.models.leave_request import LeaveRequest, LeaveStatus, LeaveType
from app.models.user import User, UserRole
from app.schemas.leave import (
    CreditPreviewRequest,
    CreditSplitPreviewOut,
    DateSuggestionOut,
    LeaveAdjustForWorkDayPayload,
    LeaveAdvisoryOut,
    LeaveApprovalEventOut,
    LeaveCancelPayload,
    LeaveConflictOut,
    LeaveDecisionOut,
    LeaveDenyPayload,
    LeaveForceApprovePayload,
    LeavePartialDenyPayload,
    LeaveRequestCreate,
    LeaveRequestOut,
    LeaveReviewPayload,
    LeaveSubmissionOut,
)
from app.services import approval_state
from app.services.leave_service import LeaveDecision, LeaveRequestService

router = APIRouter()

REVIEWERS = (UserRole.admin, UserRole.hr, UserRole.super_admin)


def _leave_out(service: LeaveRequestService, leave: LeaveRequest) -> LeaveRequestOut:
    companion = service.companion_of(leave)
    return LeaveRequestOut.model_validate(leave).model_copy(
        update={
            "companion_id": companion.id if companion is not None else None,
            "pending_role": approval_state.pending_role(leave),
        }
    )


def _decision_out(service: LeaveRequestService, decision: LeaveDecision) -> LeaveDecisionOut:
    companion = decision.companion
    if companion is None:
        companion = service.companion_of(decision.leave)
    return LeaveDecisionOut(
        leave=_leave_out(service, decision.leave),
        companion=_leave_out(service, companion) if companion is not None else None,
    )


@router.post("/leaves", response_model=LeaveSubmissionOut, status_code=status.HTTP_201_CREATED)
def create_leave_request(
    payload: LeaveRequestCreate,
    current_user: User = Depends(get_current_user),
    service: LeaveRequestService = Depends(get_leave_service),
) -> LeaveSubmissionOut:
    submission = service.create(current_user, **payload.model_dump())
    return LeaveSubmissionOut(
        leave=_leave_out(service, submission.leave),
        advisories=[LeaveAdvisoryOut.model_validate(item) for item in submission.advisories],
        conflicts=[LeaveConflictOut.model_validate(item) for item in submission.conflicts],
    )


@router.get("/leaves", response_model=list[LeaveRequestOut])
def list_leave_requests(
    leave_status: LeaveStatus | None = Query(default=None, alias="status"),
    employee_id: str | None = Query(default=None, max_length=36),
    current_user: User = Depends(get_current_user),
    service: LeaveRequestService = Depends(get_leave_service),
) -> list[LeaveRequestOut]:
    requests = service.list_requests(current_user, status=leave_status, employee_id=employee_id)
    return [_leave_out(service, item) for item in requests]


@router.post("/leaves/credit-preview", response_model=CreditSplitPreviewOut)
def preview_credit_split(
    payload: CreditPreviewRequest,
    current_user: User = Depends(get_current_user),
    service: LeaveRequestService = Depends(get_leave_service),
) -> CreditSplitPreviewOut:
    preview = service.preview_credit_split(current_user, **payload.model_dump())
    return CreditSplitPreviewOut.model_validate(preview)


@router.get("/leaves/conflicts", response_model=list[LeaveConflictOut])
def check_leave_conflicts(
    campaign: str | None = Query(default=None, min_length=1, max_length=255),
    start_date: date = Query(),
    end_date: date = Query(),
    leave_type: LeaveType = Query(default=LeaveType.VL),
    exclude_user_id: str | None = Query(default=None, max_length=36),
    current_user: User = Depends(get_current_user),
    service: LeaveRequestService = Depends(get_leave_service),
) -> list[LeaveConflictOut]:
    conflicts = service.check_conflicts(
        campaign=service.campaign_scope(current_user, campaign),
        start_date=start_date,
        end_date=end_date,
        leave_type=leave_type,
        exclude_user_id=exclude_user_id or current_user.id,
    )
    return [LeaveConflictOut.model_validate(item) for item in conflicts]


@router.get("/leaves/suggestions", response_model=list[DateSuggestionOut])
def suggest_leave_dates(
    campaign: str | None = Query(default=None, min_length=1, max_length=255),
    start_date: date = Query(),
    end_date: date = Query(),
    leave_type: LeaveType = Query(default=LeaveType.VL),
    exclude_user_id: str | None = Query(default=None, max_length=36),
    current_user: User = Depends(get_current_user),
    service: LeaveRequestService = Depends(get_leave_service),
) -> list[DateSuggestionOut]:
    suggestions = service.suggest_dates(
        campaign=service.campaign_scope(current_user, campaign),
        start_date=start_date,
        end_date=end_date,
        leave_type=leave_type,
        exclude_user_id=exclude_user_id or current_user.id,
    )
    return [DateSuggestionOut.model_validate(item) for item in suggestions]


@router.get("/leaves/{leave_id}", response_model=LeaveRequestOut)
def get_leave_request(
    leave_id: str,
    current_user: User = Depends(get_current_user),
    service: LeaveRequestService = Depends(get_leave_service),
) -> LeaveRequestOut:
    return _leave_out(service, service.get(current_user, leave_id))


@router.get("/leaves/{leave_id}/events", response_model=list[LeaveApprovalEventOut])
def list_leave_events(
    leave_id: str,
    current_user: User = Depends(get_current_user),
    service: LeaveRequestService = Depends(get_leave_service),
) -> list[LeaveApprovalEventOut]:
    leave = service.get(current_user, leave_id)
    return approval_state.list_events(service.db, leave.id)


@router.post("/leaves/{leave_id}/approve", response_model=LeaveDecisionOut)
def approve_leave_request(
    leave_id: str,
    payload: LeaveReviewPayload,
    current_user: User = Depends(require_roles(*REVIEWERS)),
    service: LeaveRequestService = Depends(get_leave_service),
) -> LeaveDecisionOut:
    return _decision_out(service, service.approve(leave_id, current_user, payload.review_notes))


@router.post("/leaves/{leave_id}/deny", response_model=LeaveDecisionOut)
def deny_leave_request(
    leave_id: str,
    payload: LeaveDenyPayload,
    current_user: User = Depends(require_roles(*REVIEWERS)),
    service: LeaveRequestService = Depends(get_leave_service),
) -> LeaveDecisionOut:
    return _decision_out(service, service.deny(leave_id, current_user, payload.review_notes))


@router.post("/leaves/{leave_id}/tl-approve", response_model=LeaveDecisionOut)
def tl_approve_leave_request(
    leave_id: str,
    payload: LeaveReviewPayload,
    current_user: User = Depends(require_roles(UserRole.team_lead)),
    service: LeaveRequestService = Depends(get_leave_service),
) -> LeaveDecisionOut:
    return _decision_out(service, service.tl_approve(leave_id, current_user, payload.review_notes))


@router.post("/leaves/{leave_id}/tl-deny", response_model=LeaveDecisionOut)
def tl_deny_leave_request(
    leave_id: str,
    payload: LeaveDenyPayload,
    current_user: User = Depends(require_roles(UserRole.team_lead)),
    service: LeaveRequestService = Depends(get_leave_service),
) -> LeaveDecisionOut:
    return _decision_out(service, service.tl_deny(leave_id, current_user, payload.review_notes))


@router.post("/leaves/{leave_id}/partial-deny", response_model=LeaveDecisionOut)
def partial_deny_leave_request(
    leave_id: str,
    payload: LeavePartialDenyPayload,
    current_user: User = Depends(require_roles(UserRole.team_lead, *REVIEWERS)),
    service: LeaveRequestService = Depends(get_leave_service),
) -> LeaveDecisionOut:
    decision = service.partial_deny(
        leave_id,
        current_user,
        denied_dates=payload.denied_dates,
        denial_reason=payload.denial_reason,
        notes=payload.review_notes,
    )
    return _decision_out(service, decision)


@router.post("/leaves/{leave_id}/force-approve", response_model=LeaveDecisionOut)
def force_approve_leave_request(
    leave_id: str,
    payload: LeaveForceApprovePayload,
    current_user: User = Depends(require_roles(UserRole.super_admin)),
    service: LeaveRequestService = Depends(get_leave_service),
) -> LeaveDecisionOut:
    decision = service.force_approve(
        leave_id,
        current_user,
        notes=payload.review_notes,
        denied_dates=payload.denied_dates,
        denial_reason=payload.denial_reason,
    )
    return _decision_out(service, decision)


@router.post("/leaves/{leave_id}/cancel", response_model=LeaveDecisionOut)
def cancel_leave_request(
    leave_id: str,
    payload: LeaveCancelPayload,
    current_user: User = Depends(get_current_user),
    service: LeaveRequestService = Depends(get_leave_service),
) -> LeaveDecisionOut:
    return _decision_out(service, service.cancel(leave_id, current_user, payload.reason))


@router.post("/leaves/{leave_id}/adjust-for-work-day", response_model=LeaveDecisionOut)
def adjust_leave_for_work_day(
    leave_id: str,
    payload: LeaveAdjustForWorkDayPayload,
    current_user: User = Depends(require_roles(UserRole.admin, UserRole.super_admin)),
    service: LeaveRequestService = Depends(get_leave_service),
) -> LeaveDecisionOut:
    decision = service.adjust_for_work_day(
        leave_id,
        current_user,
        work_date=payload.work_date,
        mode=payload.mode,
        reason=payload.reason,
    )
    return _decision_out(service, decision)
