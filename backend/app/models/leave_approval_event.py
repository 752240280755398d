import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class ApprovalSeat(str, Enum):
    team_lead = "team_lead"
    admin = "admin"
    hr = "hr"
    super_admin = "super_admin"
    employee = "employee"


class ApprovalAction(str, Enum):
    approve = "approve"
    reject = "reject"
    partial_deny = "partial_deny"
    deny = "deny"
    force_approve = "force_approve"
    cancel = "cancel"
    adjust = "adjust"


class LeaveApprovalEvent(Base):
    """Append-only history of every sub-state change on a leave request."""

    __tablename__ = "leave_approval_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    leave_request_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("leave_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    seat: Mapped[ApprovalSeat] = mapped_column(SAEnum(ApprovalSeat, name="approval_seat"), nullable=False)
    action: Mapped[ApprovalAction] = mapped_column(SAEnum(ApprovalAction, name="approval_action"), nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
