"""create leave credits

Revision ID: 20250301_0004
Revises: 20250301_0003
Create Date: 2025-03-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20250301_0004"
down_revision = "20250301_0003"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "leave_credits",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("credits_earned", sa.Float(), nullable=False, server_default="0"),
        sa.Column("credits_used", sa.Float(), nullable=False, server_default="0"),
        sa.Column("credits_balance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("accrued_at", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "year", "month", name="uq_leave_credits_user_year_month"),
    )
    op.create_index("ix_leave_credits_user_id", "leave_credits", ["user_id"], unique=False)

    op.create_table(
        "leave_regularization_credits",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False, unique=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("credits", sa.Float(), nullable=False),
        sa.Column("months_accrued", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("regularization_date", sa.Date(), nullable=False),
        sa.Column("is_pending", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("consumed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("consumed_by_request_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("leave_regularization_credits")
    op.drop_index("ix_leave_credits_user_id", table_name="leave_credits")
    op.drop_table("leave_credits")
