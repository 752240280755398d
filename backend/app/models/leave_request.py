import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, Enum as SAEnum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.db.base import Base


class LeaveType(str, Enum):
    VL = "VL"  # vacation
    SL = "SL"  # sick
    BL = "BL"  # bereavement
    SPL = "SPL"  # solo parent
    LOA = "LOA"  # leave of absence
    LDV = "LDV"  # domestic violence
    UPTO = "UPTO"  # unpaid time off
    ML = "ML"  # maternity


class LeaveStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    denied = "denied"
    cancelled = "cancelled"


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    campaign: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    leave_type: Mapped[LeaveType] = mapped_column(SAEnum(LeaveType, name="leave_type"), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    days_requested: Mapped[float] = mapped_column(Float, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    medical_cert_submitted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    supporting_document_ref: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[LeaveStatus] = mapped_column(
        SAEnum(LeaveStatus, name="leave_status"),
        nullable=False,
        default=LeaveStatus.pending,
        index=True,
    )

    requires_tl_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tl_approved_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    tl_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    tl_review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    tl_rejected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    admin_approved_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    admin_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    admin_review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    hr_approved_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    hr_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    hr_review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    reviewed_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    force_approved_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    force_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    short_notice_override: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    short_notice_override_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    short_notice_override_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    credits_deducted: Mapped[float | None] = mapped_column(Float, nullable=True)
    credits_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    attendance_points_at_request: Mapped[float | None] = mapped_column(Float, nullable=True)

    has_partial_denial: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approved_days: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Set only on an auto-created UPTO companion; unique so a parent has at most one.
    linked_request_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("leave_requests.id", ondelete="CASCADE"),
        nullable=True,
        unique=True,
    )
    sl_no_credit_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    vl_no_credit_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    original_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    original_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    date_modification_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_modified_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    date_modified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    auto_cancelled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auto_cancelled_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    auto_cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    denied_dates: Mapped[list["LeaveDeniedDate"]] = relationship(
        back_populates="leave_request",
        cascade="all, delete-orphan",
        order_by="LeaveDeniedDate.denied_date",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def credit_days(self) -> float:
        """Days that count toward credits: approved_days after a partial denial."""
        if self.has_partial_denial and self.approved_days is not None:
            return self.approved_days
        return self.days_requested
