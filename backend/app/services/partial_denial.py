from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from app.core.config import get_settings
from app.core.exceptions import ValidationError
from app.models.leave_denied_date import LeaveDeniedDate
from app.models.leave_request import LeaveRequest
from app.models.user import User
from app.services.calendar_math import working_dates


def validate_denied_dates(leave: LeaveRequest, denied_dates: Iterable[date], denial_reason: str) -> set[date]:
    """Check a denial selection against the request and return the full denied set.

    Dates already denied by an earlier action are part of the returned set.
    """
    settings = get_settings()
    span = working_dates(leave.start_date, leave.end_date)
    if len(span) <= 1:
        raise ValidationError("Partial denial needs a request spanning more than one working day")

    requested = set(denied_dates)
    if not requested:
        raise ValidationError("Select at least one date to deny, or approve the request in full")

    outside = sorted(day for day in requested if day not in span)
    if outside:
        raise ValidationError(
            "Denied dates must be working days inside the request range",
            details={"invalid_dates": [day.isoformat() for day in outside]},
        )

    if len((denial_reason or "").strip()) < settings.leave_review_notes_min_length:
        raise ValidationError(
            f"Denial reason must be at least {settings.leave_review_notes_min_length} characters"
        )

    combined = requested | {item.denied_date for item in leave.denied_dates}
    if len(combined) >= len(span):
        raise ValidationError("At least one date must remain approved; use deny to reject the whole request")
    return combined


def apply_partial_denial(
    leave: LeaveRequest,
    denied_dates: set[date],
    *,
    denial_reason: str,
    actor: User,
) -> float:
    """Persist new DeniedDate rows and recompute ``approved_days``."""
    existing = {item.denied_date for item in leave.denied_dates}
    for day in sorted(denied_dates - existing):
        leave.denied_dates.append(
            LeaveDeniedDate(
                denied_date=day,
                denial_reason=denial_reason.strip(),
                denied_by_id=actor.id,
                denier_role=actor.role,
            )
        )

    span = working_dates(leave.start_date, leave.end_date)
    leave.has_partial_denial = True
    leave.approved_days = float(len(span) - len(denied_dates | existing))
    return leave.approved_days
