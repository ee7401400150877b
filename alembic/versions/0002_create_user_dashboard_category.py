"""create user_dashboard_category

Revision ID: 0002
Revises: 0001
Create Date: 2025-11-19 03:15:32.000000

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None

TABLE = "user_dashboard_category"


def _has_table() -> bool:
    return sa.inspect(op.get_bind()).has_table(TABLE)


def upgrade() -> None:
    if _has_table():
        return
    op.create_table(
        TABLE,
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("dashboard_id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("dashboard_uuid", sa.String(length=36), nullable=False),
        sa.Column("space_uuid", sa.String(length=36), nullable=False),
        sa.Column("short_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("category_id", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=255), nullable=False),
        sa.Column("create_time", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ["dashboard_uuid"], ["dashboards.dashboard_uuid"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["space_uuid"], ["spaces.space_uuid"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_dashboard_category_email", TABLE, ["email"], unique=False)


def downgrade() -> None:
    if _has_table():
        op.drop_table(TABLE)
