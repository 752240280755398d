"""Seed one demo account per role in a single campaign, with starting leave credits.

Run:
  PYTHONPATH=backend python scripts/seed_demo_staff.py
"""

from __future__ import annotations

from datetime import date
import os
from typing import Iterable

from sqlalchemy import select

from app.core.security import get_password_hash
from app.db.session import SessionLocal
from app.models.leave_credit import LeaveCredit
from app.models.user import User, UserRole
from app.services.credit_ledger import backfill_credits

DEFAULT_PASSWORD = os.getenv("DEMO_PASSWORD", "DemoPass123!")
CAMPAIGN = os.getenv("DEMO_CAMPAIGN", "Alpha")
HIRED_DATE = date(2023, 1, 9)


def _env_email(key: str, default: str) -> str:
    value = os.getenv(key, "").strip()
    return value or default


DEMO_ACCOUNTS = {
    "employee": {
        "name": "Demo Agent",
        "email": _env_email("DEMO_EMPLOYEE_EMAIL", "agent.demo@example.com"),
        "role": UserRole.employee,
    },
    "team_lead": {
        "name": "Demo Team Lead",
        "email": _env_email("DEMO_TEAM_LEAD_EMAIL", "lead.demo@example.com"),
        "role": UserRole.team_lead,
    },
    "admin": {
        "name": "Demo Admin",
        "email": _env_email("DEMO_ADMIN_EMAIL", "admin.demo@example.com"),
        "role": UserRole.admin,
    },
    "hr": {
        "name": "Demo HR",
        "email": _env_email("DEMO_HR_EMAIL", "hr.demo@example.com"),
        "role": UserRole.hr,
    },
    "super_admin": {
        "name": "Demo Super Admin",
        "email": _env_email("DEMO_SUPER_ADMIN_EMAIL", "superadmin.demo@example.com"),
        "role": UserRole.super_admin,
    },
}


def _upsert_user(*, name: str, email: str, role: UserRole) -> User:
    with SessionLocal() as session:
        existing = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if existing is None:
            existing = User(
                name=name,
                email=email,
                hashed_password=get_password_hash(DEFAULT_PASSWORD),
                role=role,
                campaign=CAMPAIGN,
                hired_date=HIRED_DATE,
                is_active=True,
            )
            session.add(existing)
        else:
            existing.name = name
            existing.role = role
            existing.campaign = CAMPAIGN
            existing.is_active = True
            if existing.hired_date is None:
                existing.hired_date = HIRED_DATE
        session.commit()
        session.refresh(existing)
        return existing


def _backfill(user: User, today: date) -> int:
    with SessionLocal() as session:
        attached = session.get(User, user.id)
        created = backfill_credits(session, attached, today=today)
        session.commit()
        return created


def _balance(user: User, year: int) -> float:
    with SessionLocal() as session:
        rows = session.execute(
            select(LeaveCredit).where(LeaveCredit.user_id == user.id, LeaveCredit.year == year)
        ).scalars()
        return sum(row.credits_balance for row in rows)


def _print_accounts(items: Iterable[tuple[str, User]], year: int) -> None:
    print(f"\nDemo accounts ready in campaign {CAMPAIGN}:")
    for label, user in items:
        print(f"  - {label}: {user.email} | role={user.role.value} | {year} balance={_balance(user, year):g}")
    print(f"\nPassword for all demo accounts: {DEFAULT_PASSWORD}")


def main() -> None:
    today = date.today()
    created_users: dict[str, User] = {}
    for key, item in DEMO_ACCOUNTS.items():
        created_users[key] = _upsert_user(name=item["name"], email=item["email"], role=item["role"])
        _backfill(created_users[key], today)
    _print_accounts(created_users.items(), today.year)


if __name__ == "__main__":
    main()
