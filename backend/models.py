"""
SQLAlchemy ORM models -- relational schema for the BI backend.

Tables
------
organizations             -- tenants
projects                  -- BI projects (is_customer_use enables per-viewer dashboard filtering)
users / emails            -- accounts and their addresses
password_logins           -- bcrypt password hashes
organization_memberships  -- organization roles
project_memberships       -- direct project roles
groups / group_memberships / project_group_access -- group project roles
spaces / space_user_access -- folders and explicit shares of private spaces
dashboards / dashboard_tabs -- dashboards (tiles as JSON) and their tabs
saved_queries             -- charts
user_dashboard_category   -- dashboards visible to a user (by e-mail) with category labels
schedulers / scheduler_log -- recurring deliveries and their run history
file_uploads              -- issued object-storage upload references

The alembic revisions under ``alembic/versions`` are the source of truth for
the deployed schema; these classes mirror them.
"""

from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .database import Base


def new_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Organizations & projects
# ---------------------------------------------------------------------------

class Organization(Base):
    __tablename__ = "organizations"

    organization_id = Column(Integer, primary_key=True, autoincrement=True)
    organization_uuid = Column(String(36), unique=True, nullable=False, default=new_uuid)
    organization_name = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Project(Base):
    __tablename__ = "projects"

    project_id = Column(Integer, primary_key=True, autoincrement=True)
    project_uuid = Column(String(36), unique=True, nullable=False, default=new_uuid)
    name = Column(String(255), nullable=False)
    organization_id = Column(
        Integer, ForeignKey("organizations.organization_id", ondelete="CASCADE"), nullable=False
    )
    is_customer_use = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    user_uuid = Column(String(36), unique=True, nullable=False, default=new_uuid)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    is_setup_complete = Column(Boolean, nullable=False, default=False)
    is_trial_account = Column(Boolean, nullable=False, default=False)
    is_marketing_opted_in = Column(Boolean, nullable=False, default=False)
    is_tracking_anonymized = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Email(Base):
    __tablename__ = "emails"

    email_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False)
    is_primary = Column(Boolean, nullable=False, default=False)
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class PasswordLogin(Base):
    __tablename__ = "password_logins"

    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------

class OrganizationMembership(Base):
    __tablename__ = "organization_memberships"

    organization_id = Column(
        Integer, ForeignKey("organizations.organization_id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True)
    role = Column(String(32), nullable=False, default="member")
    created_at = Column(DateTime, nullable=False, default=utcnow)


class ProjectMembership(Base):
    __tablename__ = "project_memberships"

    project_id = Column(Integer, ForeignKey("projects.project_id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True)
    role = Column(String(32), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Group(Base):
    __tablename__ = "groups"

    group_uuid = Column(String(36), primary_key=True, default=new_uuid)
    organization_id = Column(
        Integer, ForeignKey("organizations.organization_id", ondelete="CASCADE"), nullable=False
    )
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class GroupMembership(Base):
    __tablename__ = "group_memberships"

    group_uuid = Column(String(36), ForeignKey("groups.group_uuid", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.organization_id", ondelete="CASCADE"), nullable=False
    )


class ProjectGroupAccess(Base):
    __tablename__ = "project_group_access"

    group_uuid = Column(String(36), ForeignKey("groups.group_uuid", ondelete="CASCADE"), primary_key=True)
    project_uuid = Column(
        String(36), ForeignKey("projects.project_uuid", ondelete="CASCADE"), primary_key=True
    )
    role = Column(String(32), nullable=False)


# ---------------------------------------------------------------------------
# Spaces
# ---------------------------------------------------------------------------

class Space(Base):
    __tablename__ = "spaces"

    space_id = Column(Integer, primary_key=True, autoincrement=True)
    space_uuid = Column(String(36), unique=True, nullable=False, default=new_uuid)
    name = Column(String(255), nullable=False)
    project_id = Column(Integer, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False, index=True)
    parent_space_uuid = Column(String(36), nullable=True)
    is_private = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class SpaceUserAccess(Base):
    __tablename__ = "space_user_access"

    space_uuid = Column(String(36), ForeignKey("spaces.space_uuid", ondelete="CASCADE"), primary_key=True)
    user_uuid = Column(String(36), ForeignKey("users.user_uuid", ondelete="CASCADE"), primary_key=True)
    space_role = Column(String(32), nullable=False, default="viewer")


# ---------------------------------------------------------------------------
# Dashboards & charts
# ---------------------------------------------------------------------------

class Dashboard(Base):
    __tablename__ = "dashboards"

    dashboard_id = Column(Integer, primary_key=True, autoincrement=True)
    dashboard_uuid = Column(String(36), unique=True, nullable=False, default=new_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    slug = Column(String(255), nullable=False)
    space_id = Column(Integer, ForeignKey("spaces.space_id", ondelete="CASCADE"), nullable=False, index=True)
    # [{"uuid", "type", "tabUuid", "x", "y", "w", "h", "properties": {...}}]
    tiles = Column(JSON, nullable=False, default=list)
    created_by_user_uuid = Column(String(36), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    tabs = relationship(
        "DashboardTab",
        back_populates="dashboard",
        cascade="all, delete-orphan",
        order_by="DashboardTab.order",
        lazy="selectin",
    )


class DashboardTab(Base):
    __tablename__ = "dashboard_tabs"

    uuid = Column(String(36), primary_key=True, default=new_uuid)
    dashboard_id = Column(
        Integer, ForeignKey("dashboards.dashboard_id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    order = Column(Integer, nullable=False, default=0)

    dashboard = relationship("Dashboard", back_populates="tabs")


class SavedQuery(Base):
    __tablename__ = "saved_queries"

    saved_query_id = Column(Integer, primary_key=True, autoincrement=True)
    saved_query_uuid = Column(String(36), unique=True, nullable=False, default=new_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    slug = Column(String(255), nullable=True)
    chart_kind = Column(String(64), nullable=True)
    space_id = Column(Integer, ForeignKey("spaces.space_id", ondelete="CASCADE"), nullable=True, index=True)
    # set for charts that belong to (and are deleted with) a dashboard
    dashboard_uuid = Column(
        String(36), ForeignKey("dashboards.dashboard_uuid", ondelete="CASCADE"), nullable=True
    )
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


# ---------------------------------------------------------------------------
# Per-user dashboard categories
# ---------------------------------------------------------------------------

class UserDashboardCategory(Base):
    __tablename__ = "user_dashboard_category"

    id = Column(String(255), primary_key=True)
    dashboard_id = Column(Integer, nullable=False)
    employee_id = Column(Integer, nullable=False)
    dashboard_uuid = Column(
        String(36), ForeignKey("dashboards.dashboard_uuid", ondelete="CASCADE"), nullable=False
    )
    space_uuid = Column(String(36), ForeignKey("spaces.space_uuid", ondelete="CASCADE"), nullable=False)
    short_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    category_id = Column(String(255), nullable=False)
    category = Column(String(255), nullable=False)
    create_time = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_user_dashboard_category_email", "email"),
    )


# ---------------------------------------------------------------------------
# Schedulers
# ---------------------------------------------------------------------------

class Scheduler(Base):
    __tablename__ = "schedulers"

    scheduler_uuid = Column(String(36), primary_key=True, default=new_uuid)
    project_uuid = Column(
        String(36), ForeignKey("projects.project_uuid", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    cron = Column(String(255), nullable=False)
    timezone = Column(String(64), nullable=True)
    format = Column(String(16), nullable=False, default="csv")
    saved_chart_uuid = Column(
        String(36), ForeignKey("saved_queries.saved_query_uuid", ondelete="CASCADE"), nullable=True
    )
    dashboard_uuid = Column(
        String(36), ForeignKey("dashboards.dashboard_uuid", ondelete="CASCADE"), nullable=True
    )
    targets = Column(JSON, nullable=False, default=list)  # e-mail recipients
    enabled = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(36), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class SchedulerLog(Base):
    __tablename__ = "scheduler_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    scheduler_uuid = Column(
        String(36), ForeignKey("schedulers.scheduler_uuid", ondelete="CASCADE"), nullable=False, index=True
    )
    job_id = Column(String(36), nullable=False)
    status = Column(String(16), nullable=False)  # started | completed | error
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# File uploads
# ---------------------------------------------------------------------------

class FileUpload(Base):
    __tablename__ = "file_uploads"

    file_upload_uuid = Column(String(36), primary_key=True, default=new_uuid)
    organization_uuid = Column(String(36), nullable=True)
    user_uuid = Column(String(36), nullable=False)
    file_name = Column(String(1024), nullable=False)
    content_type = Column(String(255), nullable=False)
    s3_key = Column(String(2048), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
