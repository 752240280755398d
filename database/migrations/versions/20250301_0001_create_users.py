"""create users

Revision ID: 20250301_0001
Revises: None
Create Date: 2025-03-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20250301_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role_enum = sa.Enum("employee", "team_lead", "admin", "hr", "super_admin", name="user_role")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column("campaign", sa.String(length=255), nullable=True),
        sa.Column("hired_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_campaign", "users", ["campaign"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_users_campaign", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    user_role_enum.drop(op.get_bind(), checkfirst=True)
