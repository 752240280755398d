from fastapi import APIRouter, Depends, Query

from app.api.deps import get_current_user, get_leave_service, require_roles
from app.models.user import User, UserRole
from app.schemas.credits import (
    CreditAccrualOut,
    CreditAccrualRequest,
    CreditsSummaryOut,
    RegularizationBridgeOut,
    RegularizationRequest,
)
from app.services.leave_service import LeaveRequestService

router = APIRouter()


@router.get("/leave-credits/summary", response_model=CreditsSummaryOut)
def get_credits_summary(
    employee_id: str | None = Query(default=None, max_length=36),
    year: int | None = Query(default=None, ge=2000, le=2100),
    current_user: User = Depends(get_current_user),
    service: LeaveRequestService = Depends(get_leave_service),
) -> CreditsSummaryOut:
    summary = service.credits_summary(current_user, employee_id=employee_id, year=year)
    return CreditsSummaryOut.model_validate(summary)


@router.post("/leave-credits/accrue", response_model=CreditAccrualOut)
def accrue_leave_credits(
    payload: CreditAccrualRequest,
    current_user: User = Depends(require_roles(UserRole.admin, UserRole.super_admin)),
    service: LeaveRequestService = Depends(get_leave_service),
) -> CreditAccrualOut:
    created = service.accrue(current_user, year=payload.year, month=payload.month, user_id=payload.user_id)
    return CreditAccrualOut(year=payload.year, month=payload.month, created=created)


@router.post("/leave-credits/regularize", response_model=list[RegularizationBridgeOut])
def process_regularization_credits(
    payload: RegularizationRequest,
    current_user: User = Depends(require_roles(UserRole.admin, UserRole.super_admin)),
    service: LeaveRequestService = Depends(get_leave_service),
) -> list[RegularizationBridgeOut]:
    bridges = service.regularize(current_user, year=payload.year, user_id=payload.user_id)
    return [RegularizationBridgeOut.model_validate(bridge) for bridge in bridges]
