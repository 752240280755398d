"""Working-day and month arithmetic shared by previews and persisted totals."""

from __future__ import annotations

import calendar
from datetime import date, timedelta

SATURDAY = 5


def is_weekend(day: date) -> bool:
    return day.weekday() >= SATURDAY


def working_dates(start: date, end: date) -> list[date]:
    """Monday-Friday dates in the inclusive range, ascending."""
    if end < start:
        return []
    span = (end - start).days + 1
    days = (start + timedelta(days=offset) for offset in range(span))
    return [day for day in days if not is_weekend(day)]


def working_days(start: date, end: date) -> int:
    return len(working_dates(start, end))


def months_between(start: date, end: date) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def next_weekday(day: date) -> date:
    """First weekday strictly after ``day``."""
    candidate = day + timedelta(days=1)
    while is_weekend(candidate):
        candidate += timedelta(days=1)
    return candidate


def previous_weekday(day: date) -> date:
    candidate = day - timedelta(days=1)
    while is_weekend(candidate):
        candidate -= timedelta(days=1)
    return candidate


def roll_to_weekday(day: date) -> date:
    """Return ``day`` itself on a weekday, otherwise the following Monday."""
    while is_weekend(day):
        day += timedelta(days=1)
    return day


def end_after_working_days(start: date, count: int) -> date:
    """Last date of a window that starts on ``start`` and holds ``count`` working days."""
    if count <= 0:
        return start
    current = roll_to_weekday(start)
    remaining = count - 1
    while remaining > 0:
        current = next_weekday(current)
        remaining -= 1
    return current
