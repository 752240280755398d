"""create leave approval events

Revision ID: 20250301_0003
Revises: 20250301_0002
Create Date: 2025-03-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20250301_0003"
down_revision = "20250301_0002"
branch_labels = None
depends_on = None


approval_seat = sa.Enum("team_lead", "admin", "hr", "super_admin", "employee", name="approval_seat")
approval_action = sa.Enum(
    "approve",
    "reject",
    "partial_deny",
    "deny",
    "force_approve",
    "cancel",
    "adjust",
    name="approval_action",
)


def upgrade() -> None:
    op.create_table(
        "leave_approval_events",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "leave_request_id",
            sa.String(length=36),
            sa.ForeignKey("leave_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("seat", approval_seat, nullable=False),
        sa.Column("action", approval_action, nullable=False),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_leave_approval_events_leave_request_id",
        "leave_approval_events",
        ["leave_request_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_leave_approval_events_leave_request_id", table_name="leave_approval_events")
    op.drop_table("leave_approval_events")
    approval_action.drop(op.get_bind(), checkfirst=True)
    approval_seat.drop(op.get_bind(), checkfirst=True)
