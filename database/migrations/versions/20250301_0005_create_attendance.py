"""create attendance and attendance points

Revision ID: 20250301_0005
Revises: 20250301_0004
Create Date: 2025-03-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20250301_0005"
down_revision = "20250301_0004"
branch_labels = None
depends_on = None


attendance_status = sa.Enum(
    "present",
    "absent",
    "tardy",
    "advised_absence",
    "on_leave",
    name="attendance_status",
)
attendance_point_type = sa.Enum(
    "whole_day_absence",
    "half_day_absence",
    "undertime",
    "tardy",
    "ncns",
    name="attendance_point_type",
)
attendance_point_status = sa.Enum("active", "excused", "expired", name="attendance_point_status")


def upgrade() -> None:
    # Shared by status and pre_leave_status.
    attendance_status.create(op.get_bind(), checkfirst=True)
    status_column = postgresql.ENUM(*attendance_status.enums, name="attendance_status", create_type=False)

    op.create_table(
        "attendances",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("shift_date", sa.Date(), nullable=False),
        sa.Column("status", status_column, nullable=False),
        sa.Column(
            "leave_request_id",
            sa.String(length=36),
            sa.ForeignKey("leave_requests.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("pre_leave_status", status_column, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "shift_date", name="uq_attendances_user_shift_date"),
    )
    op.create_index("ix_attendances_user_id", "attendances", ["user_id"], unique=False)
    op.create_index("ix_attendances_leave_request_id", "attendances", ["leave_request_id"], unique=False)

    op.create_table(
        "attendance_points",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("shift_date", sa.Date(), nullable=False),
        sa.Column("point_type", attendance_point_type, nullable=False),
        sa.Column("points", sa.Float(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("gbro_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_status", attendance_point_status, nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_attendance_points_user_id", "attendance_points", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_attendance_points_user_id", table_name="attendance_points")
    op.drop_table("attendance_points")
    op.drop_index("ix_attendances_leave_request_id", table_name="attendances")
    op.drop_index("ix_attendances_user_id", table_name="attendances")
    op.drop_table("attendances")
    attendance_point_status.drop(op.get_bind(), checkfirst=True)
    attendance_point_type.drop(op.get_bind(), checkfirst=True)
    attendance_status.drop(op.get_bind(), checkfirst=True)
