from __future__ import annotations

import logging

from sqlalchemy import inspect

from app.db.base import Base
from app.db.session import engine
import app.models  # noqa: F401

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "email", "role", "campaign", "hired_date"},
    "leave_requests": {
        "id",
        "user_id",
        "campaign",
        "leave_type",
        "status",
        "requires_tl_approval",
        "credits_deducted",
        "has_partial_denial",
        "approved_days",
        "linked_request_id",
        "version",
    },
    "leave_denied_dates": {"id", "leave_request_id", "denied_date", "denier_role"},
    "leave_approval_events": {"id", "leave_request_id", "seat", "action"},
    "leave_credits": {"id", "user_id", "year", "month", "credits_balance"},
    "leave_regularization_credits": {"id", "user_id", "year", "credits", "is_pending"},
    "attendances": {"id", "user_id", "shift_date", "status", "leave_request_id", "pre_leave_status"},
    "attendance_points": {"id", "user_id", "points", "current_status"},
}


def schema_report(connection) -> tuple[list[str], dict[str, list[str]]]:
    """Return the missing tables and the missing columns per table."""
    inspector = inspect(connection)
    table_names = set(inspector.get_table_names())
    missing_tables = sorted(name for name in REQUIRED_COLUMNS if name not in table_names)
    missing_columns: dict[str, list[str]] = {}
    for table_name, required in REQUIRED_COLUMNS.items():
        if table_name not in table_names:
            continue
        existing = {item["name"] for item in inspector.get_columns(table_name)}
        missing = sorted(required - existing)
        if missing:
            missing_columns[table_name] = missing
    return missing_tables, missing_columns


def ensure_runtime_schema_compatibility() -> None:
    try:
        # Ensure missing tables are present; column changes go through Alembic.
        Base.metadata.create_all(bind=engine)
        with engine.connect() as connection:
            missing_tables, missing_columns = schema_report(connection)
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(missing_tables)}")
        if missing_columns:
            flattened = [f"{table}.{column}" for table, columns in missing_columns.items() for column in columns]
            raise RuntimeError(f"Missing required columns: {', '.join(flattened)}")
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
