"""initial schema

Revision ID: 0001
Revises:
Create Date: 2025-11-01 00:00:00.000000

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(*names: str):
    return [
        sa.Column(name, sa.DateTime(), nullable=False, server_default=sa.func.now())
        for name in names
    ]


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("organization_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_uuid", sa.String(length=36), nullable=False),
        sa.Column("organization_name", sa.String(length=255), nullable=False),
        *_timestamps("created_at"),
        sa.PrimaryKeyConstraint("organization_id"),
        sa.UniqueConstraint("organization_uuid"),
    )
    op.create_table(
        "projects",
        sa.Column("project_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_uuid", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("is_customer_use", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps("created_at"),
        sa.ForeignKeyConstraint(
            ["organization_id"], ["organizations.organization_id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("project_id"),
        sa.UniqueConstraint("project_uuid"),
    )

    # users
    op.create_table(
        "users",
        sa.Column("user_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_uuid", sa.String(length=36), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_setup_complete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_trial_account", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_marketing_opted_in", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_tracking_anonymized", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps("created_at", "updated_at"),
        sa.PrimaryKeyConstraint("user_id"),
        sa.UniqueConstraint("user_uuid"),
    )
    op.create_table(
        "emails",
        sa.Column("email_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps("created_at"),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("email_id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index(op.f("ix_emails_user_id"), "emails", ["user_id"], unique=False)
    op.create_table(
        "password_logins",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        *_timestamps("created_at"),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id"),
    )

    # roles
    op.create_table(
        "organization_memberships",
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="member"),
        *_timestamps("created_at"),
        sa.ForeignKeyConstraint(
            ["organization_id"], ["organizations.organization_id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("organization_id", "user_id"),
    )
    op.create_table(
        "project_memberships",
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        *_timestamps("created_at"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.project_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("project_id", "user_id"),
    )
    op.create_table(
        "groups",
        sa.Column("group_uuid", sa.String(length=36), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        *_timestamps("created_at"),
        sa.ForeignKeyConstraint(
            ["organization_id"], ["organizations.organization_id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("group_uuid"),
    )
    op.create_table(
        "group_memberships",
        sa.Column("group_uuid", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["group_uuid"], ["groups.group_uuid"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["organization_id"], ["organizations.organization_id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("group_uuid", "user_id"),
    )
    op.create_table(
        "project_group_access",
        sa.Column("group_uuid", sa.String(length=36), nullable=False),
        sa.Column("project_uuid", sa.String(length=36), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.ForeignKeyConstraint(["group_uuid"], ["groups.group_uuid"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["project_uuid"], ["projects.project_uuid"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("group_uuid", "project_uuid"),
    )

    # spaces
    op.create_table(
        "spaces",
        sa.Column("space_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("space_uuid", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("parent_space_uuid", sa.String(length=36), nullable=True),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps("created_at"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.project_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("space_id"),
        sa.UniqueConstraint("space_uuid"),
    )
    op.create_index(op.f("ix_spaces_project_id"), "spaces", ["project_id"], unique=False)
    op.create_table(
        "space_user_access",
        sa.Column("space_uuid", sa.String(length=36), nullable=False),
        sa.Column("user_uuid", sa.String(length=36), nullable=False),
        sa.Column("space_role", sa.String(length=32), nullable=False, server_default="viewer"),
        sa.ForeignKeyConstraint(["space_uuid"], ["spaces.space_uuid"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_uuid"], ["users.user_uuid"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("space_uuid", "user_uuid"),
    )

    # dashboards & charts
    op.create_table(
        "dashboards",
        sa.Column("dashboard_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("dashboard_uuid", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("space_id", sa.Integer(), nullable=False),
        sa.Column("tiles", sa.JSON(), nullable=False),
        sa.Column("created_by_user_uuid", sa.String(length=36), nullable=True),
        *_timestamps("created_at", "updated_at"),
        sa.ForeignKeyConstraint(["space_id"], ["spaces.space_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("dashboard_id"),
        sa.UniqueConstraint("dashboard_uuid"),
    )
    op.create_index(op.f("ix_dashboards_space_id"), "dashboards", ["space_id"], unique=False)
    op.create_table(
        "dashboard_tabs",
        sa.Column("uuid", sa.String(length=36), nullable=False),
        sa.Column("dashboard_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["dashboard_id"], ["dashboards.dashboard_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("uuid"),
    )
    op.create_index(
        op.f("ix_dashboard_tabs_dashboard_id"), "dashboard_tabs", ["dashboard_id"], unique=False
    )
    op.create_table(
        "saved_queries",
        sa.Column("saved_query_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("saved_query_uuid", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("slug", sa.String(length=255), nullable=True),
        sa.Column("chart_kind", sa.String(length=64), nullable=True),
        sa.Column("space_id", sa.Integer(), nullable=True),
        sa.Column("dashboard_uuid", sa.String(length=36), nullable=True),
        *_timestamps("created_at", "updated_at"),
        sa.ForeignKeyConstraint(["space_id"], ["spaces.space_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["dashboard_uuid"], ["dashboards.dashboard_uuid"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("saved_query_id"),
        sa.UniqueConstraint("saved_query_uuid"),
    )
    op.create_index(op.f("ix_saved_queries_space_id"), "saved_queries", ["space_id"], unique=False)

    # schedulers
    op.create_table(
        "schedulers",
        sa.Column("scheduler_uuid", sa.String(length=36), nullable=False),
        sa.Column("project_uuid", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("cron", sa.String(length=255), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=True),
        sa.Column("format", sa.String(length=16), nullable=False, server_default="csv"),
        sa.Column("saved_chart_uuid", sa.String(length=36), nullable=True),
        sa.Column("dashboard_uuid", sa.String(length=36), nullable=True),
        sa.Column("targets", sa.JSON(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.String(length=36), nullable=False),
        *_timestamps("created_at", "updated_at"),
        sa.ForeignKeyConstraint(["project_uuid"], ["projects.project_uuid"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["saved_chart_uuid"], ["saved_queries.saved_query_uuid"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["dashboard_uuid"], ["dashboards.dashboard_uuid"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("scheduler_uuid"),
    )
    op.create_index(op.f("ix_schedulers_project_uuid"), "schedulers", ["project_uuid"], unique=False)
    op.create_table(
        "scheduler_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("scheduler_uuid", sa.String(length=36), nullable=False),
        sa.Column("job_id", sa.String(length=36), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        *_timestamps("created_at"),
        sa.ForeignKeyConstraint(
            ["scheduler_uuid"], ["schedulers.scheduler_uuid"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_scheduler_log_scheduler_uuid"), "scheduler_log", ["scheduler_uuid"], unique=False
    )

    op.create_table(
        "file_uploads",
        sa.Column("file_upload_uuid", sa.String(length=36), nullable=False),
        sa.Column("organization_uuid", sa.String(length=36), nullable=True),
        sa.Column("user_uuid", sa.String(length=36), nullable=False),
        sa.Column("file_name", sa.String(length=1024), nullable=False),
        sa.Column("content_type", sa.String(length=255), nullable=False),
        sa.Column("s3_key", sa.String(length=2048), nullable=False),
        *_timestamps("created_at"),
        sa.PrimaryKeyConstraint("file_upload_uuid"),
    )


def downgrade() -> None:
    op.drop_table("file_uploads")
    op.drop_index(op.f("ix_scheduler_log_scheduler_uuid"), table_name="scheduler_log")
    op.drop_table("scheduler_log")
    op.drop_index(op.f("ix_schedulers_project_uuid"), table_name="schedulers")
    op.drop_table("schedulers")
    op.drop_index(op.f("ix_saved_queries_space_id"), table_name="saved_queries")
    op.drop_table("saved_queries")
    op.drop_index(op.f("ix_dashboard_tabs_dashboard_id"), table_name="dashboard_tabs")
    op.drop_table("dashboard_tabs")
    op.drop_index(op.f("ix_dashboards_space_id"), table_name="dashboards")
    op.drop_table("dashboards")
    op.drop_table("space_user_access")
    op.drop_index(op.f("ix_spaces_project_id"), table_name="spaces")
    op.drop_table("spaces")
    op.drop_table("project_group_access")
    op.drop_table("group_memberships")
    op.drop_table("groups")
    op.drop_table("project_memberships")
    op.drop_table("organization_memberships")
    op.drop_table("password_logins")
    op.drop_index(op.f("ix_emails_user_id"), table_name="emails")
    op.drop_table("emails")
    op.drop_table("users")
    op.drop_table("projects")
    op.drop_table("organizations")
