from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.models.activity_log import ActivityLog
from app.models.user import User

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    *,
    user: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    details: dict | None = None,
) -> None:
    record = ActivityLog(
        user_id=user.id if user is not None else None,
        actor_role=user.role.value if user is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    )
    db.add(record)
    logger.info("%s %s %s by %s", action, entity_type or "-", entity_id or "-", record.user_id or "system")
