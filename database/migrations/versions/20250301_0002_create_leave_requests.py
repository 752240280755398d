"""create leave requests

Revision ID: 20250301_0002
Revises: 20250301_0001
Create Date: 2025-03-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20250301_0002"
down_revision = "20250301_0001"
branch_labels = None
depends_on = None


leave_type = sa.Enum("VL", "SL", "BL", "SPL", "LOA", "LDV", "UPTO", "ML", name="leave_type")
leave_status = sa.Enum("pending", "approved", "denied", "cancelled", name="leave_status")
# Created together with the users table.
user_role = postgresql.ENUM(
    "employee", "team_lead", "admin", "hr", "super_admin", name="user_role", create_type=False
)


def upgrade() -> None:
    op.create_table(
        "leave_requests",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("campaign", sa.String(length=255), nullable=False),
        sa.Column("leave_type", leave_type, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("days_requested", sa.Float(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("medical_cert_submitted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("supporting_document_ref", sa.String(length=500), nullable=True),
        sa.Column("status", leave_status, nullable=False, server_default="pending"),
        sa.Column("requires_tl_approval", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("tl_approved_by_id", sa.String(length=36), nullable=True),
        sa.Column("tl_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("tl_review_notes", sa.Text(), nullable=True),
        sa.Column("tl_rejected", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("admin_approved_by_id", sa.String(length=36), nullable=True),
        sa.Column("admin_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_review_notes", sa.Text(), nullable=True),
        sa.Column("hr_approved_by_id", sa.String(length=36), nullable=True),
        sa.Column("hr_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("hr_review_notes", sa.Text(), nullable=True),
        sa.Column("reviewed_by_id", sa.String(length=36), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column("force_approved_by_id", sa.String(length=36), nullable=True),
        sa.Column("force_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("short_notice_override", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("short_notice_override_by_id", sa.String(length=36), nullable=True),
        sa.Column("short_notice_override_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("credits_deducted", sa.Float(), nullable=True),
        sa.Column("credits_year", sa.Integer(), nullable=True),
        sa.Column("attendance_points_at_request", sa.Float(), nullable=True),
        sa.Column("has_partial_denial", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("approved_days", sa.Float(), nullable=True),
        sa.Column(
            "linked_request_id",
            sa.String(length=36),
            sa.ForeignKey("leave_requests.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("sl_no_credit_reason", sa.Text(), nullable=True),
        sa.Column("vl_no_credit_reason", sa.Text(), nullable=True),
        sa.Column("original_start_date", sa.Date(), nullable=True),
        sa.Column("original_end_date", sa.Date(), nullable=True),
        sa.Column("date_modification_reason", sa.Text(), nullable=True),
        sa.Column("date_modified_by_id", sa.String(length=36), nullable=True),
        sa.Column("date_modified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_by_id", sa.String(length=36), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("auto_cancelled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("auto_cancelled_reason", sa.Text(), nullable=True),
        sa.Column("auto_cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("linked_request_id", name="uq_leave_requests_linked_request_id"),
    )
    op.create_index("ix_leave_requests_user_id", "leave_requests", ["user_id"], unique=False)
    op.create_index("ix_leave_requests_campaign", "leave_requests", ["campaign"], unique=False)
    op.create_index("ix_leave_requests_status", "leave_requests", ["status"], unique=False)

    op.create_table(
        "leave_denied_dates",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "leave_request_id",
            sa.String(length=36),
            sa.ForeignKey("leave_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("denied_date", sa.Date(), nullable=False),
        sa.Column("denial_reason", sa.Text(), nullable=False),
        sa.Column("denied_by_id", sa.String(length=36), nullable=False),
        sa.Column("denier_role", user_role, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("leave_request_id", "denied_date", name="uq_leave_denied_dates_request_date"),
    )
    op.create_index(
        "ix_leave_denied_dates_leave_request_id",
        "leave_denied_dates",
        ["leave_request_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_leave_denied_dates_leave_request_id", table_name="leave_denied_dates")
    op.drop_table("leave_denied_dates")
    op.drop_index("ix_leave_requests_status", table_name="leave_requests")
    op.drop_index("ix_leave_requests_campaign", table_name="leave_requests")
    op.drop_index("ix_leave_requests_user_id", table_name="leave_requests")
    op.drop_table("leave_requests")
    leave_status.drop(op.get_bind(), checkfirst=True)
    leave_type.drop(op.get_bind(), checkfirst=True)
