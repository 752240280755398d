from datetime import date

from pydantic import BaseModel, Field

from app.models.leave_request import LeaveType


class RegularizationCreditsOut(BaseModel):
    year: int
    credits: float
    months_accrued: int
    regularization_date: date
    is_pending: bool

    model_config = {"from_attributes": True}


class CreditsSummaryOut(BaseModel):
    year: int
    is_eligible: bool
    eligibility_date: date | None = None
    monthly_rate: float
    total_earned: float
    total_used: float
    balance: float
    pending_credits: float
    pending_regularization_credits: RegularizationCreditsOut | None = None

    model_config = {"from_attributes": True}


class CreditSplitDecisionOut(BaseModel):
    leave_type: LeaveType
    resulting_type: LeaveType
    requested_days: float
    available: float
    is_eligible: bool
    credits_to_deduct: float
    upto_days: float
    converts_to_upto: bool
    creates_companion: bool
    reason: str | None = None

    model_config = {"from_attributes": True}


class CreditAccrualRequest(BaseModel):
    year: int = Field(ge=2000, le=2100)
    month: int | None = Field(default=None, ge=1, le=12)
    user_id: str | None = Field(default=None, max_length=36)


class CreditAccrualOut(BaseModel):
    year: int
    month: int | None = None
    created: int


class RegularizationRequest(BaseModel):
    year: int = Field(ge=2000, le=2100)
    user_id: str | None = Field(default=None, max_length=36)


class RegularizationBridgeOut(RegularizationCreditsOut):
    user_id: str
