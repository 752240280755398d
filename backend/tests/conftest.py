import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

from datetime import date, datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.api.deps import get_clock, get_db  # noqa: E402
from app.core.security import create_access_token, get_password_hash  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.main import app  # noqa: E402
from app.models.leave_credit import LeaveCredit  # noqa: E402
from app.models.leave_request import LeaveRequest, LeaveStatus, LeaveType  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402
from app.services.calendar_math import working_dates  # noqa: E402

# Monday; the example week 2025-03-03..07 starts today.
FROZEN_NOW = datetime(2025, 3, 3, 8, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    @property
    def today(self) -> date:
        return self.now.date()


@pytest.fixture()
def clock():
    return FrozenClock(FROZEN_NOW)


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory, clock):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock.now

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_user(
    db,
    role: UserRole,
    *,
    name: str | None = None,
    campaign: str | None = "Alpha",
    hired_date: date | None = date(2023, 1, 9),
    password: str = "password123",
) -> User:
    label = name or role.value.replace("_", " ").title()
    user = User(
        name=label,
        email=f"{label.lower().replace(' ', '.')}-{role.value}@example.com",
        hashed_password=get_password_hash(password),
        role=role,
        campaign=campaign,
        hired_date=hired_date,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def give_credits(db, user: User, amount: float, *, year: int = 2025, month: int = 1) -> LeaveCredit:
    row = LeaveCredit(
        user_id=user.id,
        year=year,
        month=month,
        credits_earned=amount,
        credits_used=0.0,
        credits_balance=amount,
        accrued_at=date(year, month, 28),
    )
    db.add(row)
    db.commit()
    return row


def add_leave(
    db,
    user: User,
    start_date: date,
    end_date: date,
    *,
    leave_type: LeaveType = LeaveType.VL,
    status: LeaveStatus = LeaveStatus.pending,
    **fields,
) -> LeaveRequest:
    days = fields.pop("days_requested", None)
    if days is None:
        days = float(len(working_dates(start_date, end_date)))
    leave = LeaveRequest(
        user_id=user.id,
        campaign=fields.pop("campaign", user.campaign or "Alpha"),
        leave_type=leave_type,
        start_date=start_date,
        end_date=end_date,
        days_requested=days,
        reason=fields.pop("reason", "Family trip planned for months"),
        status=status,
        requires_tl_approval=fields.pop("requires_tl_approval", user.role == UserRole.employee),
        created_at=fields.pop("created_at", FROZEN_NOW),
        **fields,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)
    return leave


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def staff(db):
    """One user per role, all in campaign Alpha."""
    return {
        "employee": make_user(db, UserRole.employee, name="Erin Agent"),
        "team_lead": make_user(db, UserRole.team_lead, name="Tara Lead"),
        "admin": make_user(db, UserRole.admin, name="Adrian Admin"),
        "hr": make_user(db, UserRole.hr, name="Harper Hr"),
        "super_admin": make_user(db, UserRole.super_admin, name="Sam Super"),
    }
