"""Dashboard endpoints -- CRUD, duplication, moves, tabs and tile moves."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser, get_current_user
from backend.database import get_session
from backend.dependencies import ok
from backend.scheduler import DeliveryScheduler, get_delivery_scheduler
from backend.schemas import (
    DashboardBulkUpdate,
    DashboardCreate,
    DashboardDuplicate,
    DashboardMove,
    DashboardTabOut,
    DashboardUpdate,
    DashboardWithChartsCreate,
    TabName,
    TileMove,
)
from backend.services.dashboard_service import DashboardRecord, DashboardService

router = APIRouter(tags=["dashboards"])


def get_dashboard_service(
    session: AsyncSession = Depends(get_session),
    worker: DeliveryScheduler = Depends(get_delivery_scheduler),
) -> DashboardService:
    return DashboardService(session, worker)


def serialize_dashboard(record: DashboardRecord, full: bool = True) -> Dict[str, Any]:
    dashboard = record.dashboard
    data: Dict[str, Any] = {
        "uuid": dashboard.dashboard_uuid,
        "name": dashboard.name,
        "description": dashboard.description,
        "slug": dashboard.slug,
        "spaceUuid": record.space.space_uuid,
        "spaceName": record.space.name,
        "projectUuid": record.project.project_uuid,
        "updatedAt": dashboard.updated_at,
    }
    if full:
        data["tabs"] = [
            DashboardTabOut.model_validate(tab).model_dump(by_alias=True) for tab in dashboard.tabs
        ]
        data["tiles"] = list(dashboard.tiles or [])
        data["createdByUserUuid"] = dashboard.created_by_user_uuid
    return data


@router.get("/projects/{project_uuid}/dashboards")
async def list_dashboards(
    project_uuid: str,
    chart_uuid: Optional[str] = Query(default=None, alias="chartUuid"),
    include_private: bool = Query(default=False, alias="includePrivate"),
    user: SessionUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    records = await service.get_all_by_project(
        user, project_uuid, chart_uuid=chart_uuid, include_private=include_private
    )
    return ok([serialize_dashboard(record, full=False) for record in records])


@router.post("/projects/{project_uuid}/dashboards", status_code=201)
async def create_dashboard(
    project_uuid: str,
    body: DashboardCreate,
    user: SessionUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    record = await service.create(user, project_uuid, body.model_dump())
    return ok(serialize_dashboard(record))


@router.patch("/projects/{project_uuid}/dashboards")
async def update_multiple_dashboards(
    project_uuid: str,
    body: List[DashboardBulkUpdate],
    user: SessionUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    records = await service.update_multiple(
        user, project_uuid, [item.model_dump(exclude_unset=True) for item in body]
    )
    return ok([serialize_dashboard(record, full=False) for record in records])


@router.post("/projects/{project_uuid}/dashboards/with-charts", status_code=201)
async def create_dashboard_with_charts(
    project_uuid: str,
    body: DashboardWithChartsCreate,
    user: SessionUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    record = await service.create_with_charts(user, project_uuid, body.model_dump())
    return ok(serialize_dashboard(record))


@router.get("/dashboards/{dashboard_uuid_or_slug}")
async def get_dashboard(
    dashboard_uuid_or_slug: str,
    user: SessionUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    record = await service.get_by_id_or_slug(user, dashboard_uuid_or_slug)
    return ok(serialize_dashboard(record))


@router.patch("/dashboards/{dashboard_uuid}")
async def update_dashboard(
    dashboard_uuid: str,
    body: DashboardUpdate,
    user: SessionUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    record = await service.update(user, dashboard_uuid, body.model_dump(exclude_unset=True))
    return ok(serialize_dashboard(record))


@router.delete("/dashboards/{dashboard_uuid}")
async def delete_dashboard(
    dashboard_uuid: str,
    user: SessionUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    await service.delete(user, dashboard_uuid)
    return ok()


@router.post("/dashboards/{dashboard_uuid}/duplicate", status_code=201)
async def duplicate_dashboard(
    dashboard_uuid: str,
    body: Optional[DashboardDuplicate] = None,
    user: SessionUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    data = body.model_dump(exclude_unset=True) if body else {}
    return ok(serialize_dashboard(await service.duplicate(user, dashboard_uuid, data)))


@router.post("/dashboards/{dashboard_uuid}/move")
async def move_dashboard(
    dashboard_uuid: str,
    body: DashboardMove,
    user: SessionUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    record = await service.move_to_space(user, dashboard_uuid, body.space_uuid)
    return ok(serialize_dashboard(record, full=False))


# ---------------------------------------------------------------------------
# Tabs & tiles
# ---------------------------------------------------------------------------

@router.post("/dashboards/{dashboard_uuid}/tabs", status_code=201)
async def add_tab(
    dashboard_uuid: str,
    body: TabName,
    user: SessionUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    tab = await service.add_tab(user, dashboard_uuid, body.name)
    return ok(DashboardTabOut.model_validate(tab).model_dump(by_alias=True))


@router.patch("/dashboards/{dashboard_uuid}/tabs/{tab_uuid}")
async def rename_tab(
    dashboard_uuid: str,
    tab_uuid: str,
    body: TabName,
    user: SessionUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    tab = await service.rename_tab(user, dashboard_uuid, tab_uuid, body.name)
    return ok(DashboardTabOut.model_validate(tab).model_dump(by_alias=True))


@router.delete("/dashboards/{dashboard_uuid}/tabs/{tab_uuid}")
async def delete_tab(
    dashboard_uuid: str,
    tab_uuid: str,
    user: SessionUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    record = await service.delete_tab(user, dashboard_uuid, tab_uuid)
    return ok(serialize_dashboard(record))


@router.post("/dashboards/{dashboard_uuid}/tiles/{tile_uuid}/move")
async def move_tile(
    dashboard_uuid: str,
    tile_uuid: str,
    body: TileMove,
    user: SessionUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    record = await service.move_tile_to_tab(user, dashboard_uuid, tile_uuid, body.tab_uuid)
    return ok(serialize_dashboard(record))
