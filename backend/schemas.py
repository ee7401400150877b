"""Pydantic schemas for FastAPI request / response models.

Fields are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------------------------------------------------------------------------
# Dashboards
# ---------------------------------------------------------------------------

class TabIn(ApiModel):
    uuid: Optional[str] = None
    name: str = Field(min_length=1, max_length=255)


class DashboardCreate(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    space_uuid: Optional[str] = None
    tabs: List[TabIn] = Field(default_factory=list)
    # tile dicts keep their wire keys (tabUuid, properties.savedChartUuid)
    tiles: List[Dict[str, Any]] = Field(default_factory=list)


class DashboardUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    space_uuid: Optional[str] = None
    tabs: Optional[List[TabIn]] = None
    tiles: Optional[List[Dict[str, Any]]] = None


class TabName(ApiModel):
    name: str = Field(min_length=1, max_length=255)


class TileMove(ApiModel):
    tab_uuid: str


class DashboardTabOut(ApiModel):
    uuid: str
    name: str
    order: int


class DashboardDuplicate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None


class DashboardMove(ApiModel):
    space_uuid: Optional[str] = None


class DashboardBulkUpdate(ApiModel):
    uuid: str
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    space_uuid: Optional[str] = None


class DashboardChartIn(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    chart_kind: Optional[str] = None


class DashboardWithChartsCreate(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    space_uuid: Optional[str] = None
    charts: List[DashboardChartIn] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Charts & spaces
# ---------------------------------------------------------------------------

class ChartCreate(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    chart_kind: Optional[str] = None
    space_uuid: Optional[str] = None
    dashboard_uuid: Optional[str] = None


class ChartUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    chart_kind: Optional[str] = None
    space_uuid: Optional[str] = None


class SpaceCreate(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    is_private: bool = False
    parent_space_uuid: Optional[str] = None


class SpaceUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    is_private: Optional[bool] = None


# ---------------------------------------------------------------------------
# User dashboard categories
# ---------------------------------------------------------------------------

class UserDashboardCategoryCreate(ApiModel):
    id: Optional[str] = None
    dashboard_id: int
    employee_id: int
    dashboard_uuid: str
    space_uuid: str
    short_name: str
    email: str = Field(min_length=3)
    category_id: str
    category: str


class UserDashboardCategoryUpdate(ApiModel):
    dashboard_id: Optional[int] = None
    employee_id: Optional[int] = None
    dashboard_uuid: Optional[str] = None
    space_uuid: Optional[str] = None
    short_name: Optional[str] = None
    email: Optional[str] = None
    category_id: Optional[str] = None
    category: Optional[str] = None


class UserDashboardCategoryOut(ApiModel):
    id: str
    dashboard_id: int
    employee_id: int
    dashboard_uuid: str
    space_uuid: str
    short_name: str
    email: str
    category_id: str
    category: str
    create_time: dt.datetime


# ---------------------------------------------------------------------------
# Schedulers
# ---------------------------------------------------------------------------

SchedulerFormat = Literal["csv", "xlsx", "image", "pdf"]


class SchedulerCreate(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    cron: str
    timezone: Optional[str] = None
    format: SchedulerFormat = "csv"
    saved_chart_uuid: Optional[str] = None
    dashboard_uuid: Optional[str] = None
    targets: List[str] = Field(default_factory=list)
    enabled: bool = True


class SchedulerUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    cron: Optional[str] = None
    timezone: Optional[str] = None
    format: Optional[SchedulerFormat] = None
    saved_chart_uuid: Optional[str] = None
    dashboard_uuid: Optional[str] = None
    targets: Optional[List[str]] = None
    enabled: Optional[bool] = None


class SchedulerEnabled(ApiModel):
    enabled: bool


class SchedulerOut(ApiModel):
    scheduler_uuid: str
    project_uuid: str
    name: str
    cron: str
    timezone: Optional[str] = None
    format: str
    saved_chart_uuid: Optional[str] = None
    dashboard_uuid: Optional[str] = None
    targets: List[str] = Field(default_factory=list)
    enabled: bool
    created_by: str
    created_at: dt.datetime
    updated_at: dt.datetime


class SchedulerLogOut(ApiModel):
    scheduler_uuid: str
    job_id: str
    status: str
    details: Optional[Dict[str, Any]] = None
    created_at: dt.datetime


# ---------------------------------------------------------------------------
# Logs & uploads
# ---------------------------------------------------------------------------

class FrontendLogPayload(ApiModel):
    level: Literal["debug", "info", "warn", "error"] = "info"
    message: str
    context: Optional[Dict[str, Any]] = None
    url: Optional[str] = None
    user_agent: Optional[str] = None


class UploadUrlRequest(ApiModel):
    file_name: str = Field(min_length=1, max_length=1024)
    content_type: str = "application/octet-stream"
