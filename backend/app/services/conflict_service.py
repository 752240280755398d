from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.models.leave_request import LeaveRequest, LeaveStatus, LeaveType
from app.services.calendar_math import end_after_working_days, next_weekday, roll_to_weekday, working_dates, working_days
from app.services.leave_policy import is_conflict_checked


@dataclass
class LeaveConflict:
    request_id: str
    user_id: str
    leave_type: LeaveType
    status: LeaveStatus
    start_date: date
    end_date: date
    submitted_at: datetime | None
    overlapping_dates: list[date] = field(default_factory=list)


@dataclass
class DateSuggestion:
    label: str
    start_date: date
    end_date: date
    working_days: int
    conflict_count: int


class LeaveConflictService:
    """First-come-first-served overlap detection within a campaign.

    Results are informational: nothing here blocks or denies a request, and the
    reads take no locks.
    """

    def __init__(self, db: Session):
        self.db = db

    def detect_conflicts(
        self,
        *,
        campaign: str,
        start_date: date,
        end_date: date,
        leave_type: LeaveType,
        exclude_user_id: str | None = None,
        exclude_request_id: str | None = None,
    ) -> list[LeaveConflict]:
        if not is_conflict_checked(leave_type):
            return []
        wanted = set(working_dates(start_date, end_date))
        if not wanted:
            return []

        query = select(LeaveRequest).where(
            LeaveRequest.campaign == campaign,
            LeaveRequest.status.in_([LeaveStatus.pending, LeaveStatus.approved]),
            LeaveRequest.linked_request_id.is_(None),
            LeaveRequest.start_date <= end_date,
            LeaveRequest.end_date >= start_date,
        )
        if exclude_user_id is not None:
            query = query.where(LeaveRequest.user_id != exclude_user_id)
        if exclude_request_id is not None:
            query = query.where(LeaveRequest.id != exclude_request_id)
        query = query.order_by(LeaveRequest.created_at.asc(), LeaveRequest.id.asc())

        conflicts: list[LeaveConflict] = []
        for item in self.db.execute(query).scalars():
            overlap = sorted(wanted & set(working_dates(item.start_date, item.end_date)))
            if not overlap:
                continue
            conflicts.append(
                LeaveConflict(
                    request_id=item.id,
                    user_id=item.user_id,
                    leave_type=item.leave_type,
                    status=item.status,
                    start_date=item.start_date,
                    end_date=item.end_date,
                    submitted_at=item.created_at,
                    overlapping_dates=overlap,
                )
            )
        return conflicts

    def suggest_dates(
        self,
        *,
        campaign: str,
        start_date: date,
        end_date: date,
        leave_type: LeaveType,
        today: date,
        exclude_user_id: str | None = None,
        exclude_request_id: str | None = None,
    ) -> list[DateSuggestion]:
        """Propose alternate windows with the same working-day length and fewer conflicts."""
        settings = get_settings()
        scope = {
            "campaign": campaign,
            "leave_type": leave_type,
            "exclude_user_id": exclude_user_id,
            "exclude_request_id": exclude_request_id,
        }
        original = self.detect_conflicts(start_date=start_date, end_date=end_date, **scope)
        if not original:
            return []

        length = working_days(start_date, end_date)
        lead_date = today + timedelta(days=settings.leave_suggestion_lead_days)
        candidates: list[tuple[str, date]] = [
            ("two_weeks_later", max(start_date + timedelta(days=14), lead_date)),
            ("three_weeks_later", start_date + timedelta(days=21)),
        ]
        after_conflicts = next_weekday(max(item.end_date for item in original))
        if after_conflicts >= lead_date:
            candidates.append(("after_conflicts", after_conflicts))

        suggestions: list[DateSuggestion] = []
        seen: set[date] = set()
        for label, candidate in candidates:
            window_start = roll_to_weekday(candidate)
            if window_start in seen:
                continue
            seen.add(window_start)
            window_end = end_after_working_days(window_start, length)
            count = len(self.detect_conflicts(start_date=window_start, end_date=window_end, **scope))
            if count < len(original):
                suggestions.append(
                    DateSuggestion(
                        label=label,
                        start_date=window_start,
                        end_date=window_end,
                        working_days=length,
                        conflict_count=count,
                    )
                )

        suggestions.sort(key=lambda item: item.conflict_count)
        return suggestions[: settings.leave_suggestion_limit]
