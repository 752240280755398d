from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.models.notification import Notification, NotificationType
from app.models.user import User
from app.schemas.notification import NotificationOut, UnreadCountOut
from app.services.audit import log_activity

router = APIRouter()


def _own_notifications(user: User, leave_request_id: str | None):
    query = select(Notification).where(Notification.user_id == user.id)
    if leave_request_id is not None:
        query = query.where(Notification.leave_request_id == leave_request_id)
    return query


@router.get("/notifications", response_model=list[NotificationOut])
def list_notifications(
    notification_type: NotificationType | None = Query(default=None),
    leave_request_id: str | None = Query(default=None, max_length=36),
    is_read: bool | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[NotificationOut]:
    query = _own_notifications(current_user, leave_request_id)
    if notification_type:
        query = query.where(Notification.notification_type == notification_type)
    if is_read is not None:
        query = query.where(Notification.is_read == is_read)
    query = query.order_by(Notification.created_at.desc(), Notification.id).offset(offset).limit(limit)
    return list(db.execute(query).scalars())


@router.get("/notifications/unread-count", response_model=UnreadCountOut)
def count_unread_notifications(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UnreadCountOut:
    rows = db.execute(
        select(Notification.notification_type, func.count())
        .where(Notification.user_id == current_user.id, Notification.is_read.is_(False))
        .group_by(Notification.notification_type)
    ).all()
    by_type = {notification_type.value: count for notification_type, count in rows}
    return UnreadCountOut(total=sum(by_type.values()), by_type=by_type)


@router.post("/notifications/{notification_id}/read", response_model=NotificationOut)
def mark_notification_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> NotificationOut:
    notification = db.get(Notification, notification_id)
    if notification is None or notification.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    if not notification.is_read:
        notification.is_read = True
        db.commit()
        db.refresh(notification)
    return notification


@router.post("/notifications/read-all")
def mark_all_notifications_read(
    leave_request_id: str | None = Query(default=None, max_length=36),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, int]:
    """Mark the caller's unread notifications read, optionally for one leave request only."""
    query = _own_notifications(current_user, leave_request_id).where(Notification.is_read.is_(False))
    notifications = list(db.execute(query).scalars())
    for notification in notifications:
        notification.is_read = True

    if notifications:
        log_activity(
            db,
            user=current_user,
            action="notification.read_all",
            entity_type="leave_request" if leave_request_id else "notification",
            entity_id=leave_request_id,
            details={"count": len(notifications)},
        )
    db.commit()
    return {"updated": len(notifications)}
