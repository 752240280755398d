from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.models.leave_approval_event import ApprovalAction, ApprovalSeat
from app.models.leave_request import LeaveStatus, LeaveType
from app.models.user import UserRole
from app.schemas.credits import CreditSplitDecisionOut, CreditsSummaryOut


class LeaveRequestCreate(BaseModel):
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str = Field(max_length=1000)
    campaign: str | None = Field(default=None, max_length=255)
    employee_id: str | None = Field(default=None, max_length=36)
    medical_cert_submitted: bool = False
    supporting_document_ref: str | None = Field(default=None, max_length=500)
    short_notice_override: bool = False


class LeaveReviewPayload(BaseModel):
    review_notes: str | None = Field(default=None, max_length=2000)


class LeaveDenyPayload(BaseModel):
    review_notes: str = Field(max_length=2000)


class LeavePartialDenyPayload(BaseModel):
    denied_dates: list[date] = Field(default_factory=list, max_length=366)
    denial_reason: str = Field(max_length=2000)
    review_notes: str | None = Field(default=None, max_length=2000)


class LeaveForceApprovePayload(BaseModel):
    review_notes: str | None = Field(default=None, max_length=2000)
    denied_dates: list[date] = Field(default_factory=list, max_length=366)
    denial_reason: str | None = Field(default=None, max_length=2000)


class LeaveCancelPayload(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class LeaveAdjustForWorkDayPayload(BaseModel):
    work_date: date
    mode: Literal["end_early", "start_late"]
    reason: str = Field(max_length=2000)


class CreditPreviewRequest(BaseModel):
    leave_type: LeaveType
    start_date: date
    end_date: date
    employee_id: str | None = Field(default=None, max_length=36)
    medical_cert_submitted: bool = False
    exclude_request_id: str | None = Field(default=None, max_length=36)


class LeaveDeniedDateOut(BaseModel):
    denied_date: date
    denial_reason: str
    denied_by_id: str
    denier_role: UserRole

    model_config = {"from_attributes": True}


class LeaveRequestOut(BaseModel):
    id: str
    user_id: str
    campaign: str
    leave_type: LeaveType
    start_date: date
    end_date: date
    days_requested: float
    reason: str
    medical_cert_submitted: bool
    supporting_document_ref: str | None = None
    status: LeaveStatus

    requires_tl_approval: bool
    tl_approved_by_id: str | None = None
    tl_approved_at: datetime | None = None
    tl_review_notes: str | None = None
    tl_rejected: bool
    admin_approved_by_id: str | None = None
    admin_approved_at: datetime | None = None
    admin_review_notes: str | None = None
    hr_approved_by_id: str | None = None
    hr_approved_at: datetime | None = None
    hr_review_notes: str | None = None
    reviewed_by_id: str | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None
    force_approved_by_id: str | None = None
    force_approved_at: datetime | None = None
    short_notice_override: bool
    short_notice_override_by_id: str | None = None
    short_notice_override_at: datetime | None = None

    credits_deducted: float | None = None
    credits_year: int | None = None
    attendance_points_at_request: float | None = None
    has_partial_denial: bool
    approved_days: float | None = None
    denied_dates: list[LeaveDeniedDateOut] = Field(default_factory=list)

    linked_request_id: str | None = None
    companion_id: str | None = None
    sl_no_credit_reason: str | None = None
    vl_no_credit_reason: str | None = None

    original_start_date: date | None = None
    original_end_date: date | None = None
    date_modification_reason: str | None = None
    date_modified_by_id: str | None = None
    date_modified_at: datetime | None = None
    cancellation_reason: str | None = None
    cancelled_by_id: str | None = None
    cancelled_at: datetime | None = None
    auto_cancelled: bool
    auto_cancelled_reason: str | None = None
    auto_cancelled_at: datetime | None = None

    pending_role: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class LeaveAdvisoryOut(BaseModel):
    code: str
    message: str
    details: dict = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class LeaveConflictOut(BaseModel):
    request_id: str
    user_id: str
    leave_type: LeaveType
    status: LeaveStatus
    start_date: date
    end_date: date
    submitted_at: datetime | None = None
    overlapping_dates: list[date]

    model_config = {"from_attributes": True}


class DateSuggestionOut(BaseModel):
    label: str
    start_date: date
    end_date: date
    working_days: int
    conflict_count: int

    model_config = {"from_attributes": True}


class LeaveSubmissionOut(BaseModel):
    leave: LeaveRequestOut
    advisories: list[LeaveAdvisoryOut]
    conflicts: list[LeaveConflictOut]


class LeaveDecisionOut(BaseModel):
    leave: LeaveRequestOut
    companion: LeaveRequestOut | None = None


class LeaveApprovalEventOut(BaseModel):
    id: str
    seat: ApprovalSeat
    action: ApprovalAction
    actor_id: str | None = None
    notes: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CreditSplitPreviewOut(BaseModel):
    employee_id: str
    leave_type: LeaveType
    start_date: date
    end_date: date
    days_requested: float
    summary: CreditsSummaryOut | None = None
    decision: CreditSplitDecisionOut

    model_config = {"from_attributes": True}
