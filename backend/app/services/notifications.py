from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.leave_request import LeaveRequest
from app.models.notification import Notification, NotificationType
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    *,
    user_id: str,
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.system,
    leave_request_id: str | None = None,
) -> Notification:
    record = Notification(
        user_id=user_id,
        title=title,
        message=message,
        notification_type=notification_type,
        leave_request_id=leave_request_id,
    )
    db.add(record)
    db.flush()
    logger.debug("Queued %s notification for user %s", notification_type.value, user_id)
    return record


def notify_users(
    db: Session,
    *,
    user_ids: list[str] | set[str] | tuple[str, ...],
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.system,
    leave_request_id: str | None = None,
    exclude_user_id: str | None = None,
) -> list[Notification]:
    requested_ids = [item for item in dict.fromkeys(user_ids) if item and item != exclude_user_id]
    if not requested_ids:
        return []

    recipients = list(
        db.execute(
            select(User).where(
                User.id.in_(requested_ids),
                User.is_active.is_(True),
            )
        ).scalars()
    )
    return [
        create_notification(
            db,
            user_id=recipient.id,
            title=title,
            message=message,
            notification_type=notification_type,
            leave_request_id=leave_request_id,
        )
        for recipient in recipients
    ]


def notify_roles(
    db: Session,
    *,
    roles: list[UserRole] | set[UserRole] | tuple[UserRole, ...],
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.system,
    leave_request_id: str | None = None,
    campaign: str | None = None,
    exclude_user_id: str | None = None,
) -> list[Notification]:
    if not roles:
        return []
    query = select(User).where(User.role.in_(list(roles)), User.is_active.is_(True))
    if campaign is not None:
        query = query.where(User.campaign == campaign)
    results: list[Notification] = []
    for recipient in db.execute(query).scalars():
        if exclude_user_id and recipient.id == exclude_user_id:
            continue
        results.append(
            create_notification(
                db,
                user_id=recipient.id,
                title=title,
                message=message,
                notification_type=notification_type,
                leave_request_id=leave_request_id,
            )
        )
    return results


def notify_leave_submitted(db: Session, leave: LeaveRequest, *, requester: User) -> None:
    title = f"{leave.leave_type.value} request submitted"
    message = (
        f"{requester.name} requested {leave.leave_type.value} from {leave.start_date.isoformat()} "
        f"to {leave.end_date.isoformat()} ({leave.days_requested:g} day(s))."
    )
    if leave.requires_tl_approval:
        notify_roles(
            db,
            roles=[UserRole.team_lead],
            campaign=leave.campaign,
            title=title,
            message=message,
            notification_type=NotificationType.leave_submitted,
            leave_request_id=leave.id,
            exclude_user_id=requester.id,
        )
    notify_roles(
        db,
        roles=[UserRole.admin, UserRole.hr],
        title=title,
        message=message,
        notification_type=NotificationType.leave_submitted,
        leave_request_id=leave.id,
        exclude_user_id=requester.id,
    )


def notify_leave_owner(
    db: Session,
    leave: LeaveRequest,
    *,
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.leave_decision,
    actor_id: str | None = None,
) -> None:
    notify_users(
        db,
        user_ids=[leave.user_id],
        title=title,
        message=message,
        notification_type=notification_type,
        leave_request_id=leave.id,
        exclude_user_id=actor_id,
    )
