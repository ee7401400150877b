"""Saved chart CRUD.

A chart lives either in a space or inside a dashboard (``dashboard_uuid``);
dashboard charts take their visibility from the dashboard's space.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser
from backend.errors import ForbiddenError, NotFoundError
from backend.models import Dashboard, Project, SavedQuery, Space, new_uuid
from backend.scheduler import DeliveryScheduler, get_delivery_scheduler
from backend.services.access import (
    can_view_space,
    get_shared_space_uuids,
    require_project_access,
    resolve_space,
)
from backend.services.dashboard_service import DashboardService, slugify, unique_chart_slug
from backend.services.scheduler_service import delete_schedulers_for

logger = logging.getLogger(__name__)


@dataclass
class ChartRecord:
    chart: SavedQuery
    space: Space
    project: Project


class ChartService:
    def __init__(self, session: AsyncSession, worker: Optional[DeliveryScheduler] = None):
        self.session = session
        self.worker = worker or get_delivery_scheduler()

    async def _load(self, chart_uuid: str) -> ChartRecord:
        chart = (
            await self.session.execute(select(SavedQuery).where(SavedQuery.saved_query_uuid == chart_uuid))
        ).scalar_one_or_none()
        if chart is None:
            raise NotFoundError(f"Chart {chart_uuid} not found")

        if chart.space_id is not None:
            space = await self.session.get(Space, chart.space_id)
        else:
            space = (
                await self.session.execute(
                    select(Space)
                    .join(Dashboard, Dashboard.space_id == Space.space_id)
                    .where(Dashboard.dashboard_uuid == chart.dashboard_uuid)
                )
            ).scalar_one_or_none()
        if space is None:
            raise NotFoundError(f"Chart {chart_uuid} not found")
        project = await self.session.get(Project, space.project_id)
        return ChartRecord(chart, space, project)

    async def _check_space(self, user: SessionUser, record: ChartRecord, manage: bool) -> None:
        access = await require_project_access(self.session, user, record.project.project_uuid, manage=manage)
        shared = await get_shared_space_uuids(self.session, user.user_uuid, [record.space.space_uuid])
        if not can_view_space(record.space, access.role, record.space.space_uuid in shared):
            raise ForbiddenError("You don't have access to the space this chart belongs to")

    async def get(self, user: SessionUser, chart_uuid: str) -> ChartRecord:
        record = await self._load(chart_uuid)
        await self._check_space(user, record, manage=False)
        return record

    async def create(self, user: SessionUser, project_uuid: str, data: Dict[str, Any]) -> ChartRecord:
        access = await require_project_access(self.session, user, project_uuid, manage=True)

        dashboard_uuid = data.get("dashboard_uuid")
        if dashboard_uuid:
            row = (
                await self.session.execute(
                    select(Dashboard, Space)
                    .join(Space, Space.space_id == Dashboard.space_id)
                    .where(Dashboard.dashboard_uuid == dashboard_uuid)
                    .where(Space.project_id == access.project.project_id)
                )
            ).first()
            if row is None:
                raise NotFoundError(f"Dashboard {dashboard_uuid} not found in this project")
            _, space = row
            shared = await get_shared_space_uuids(self.session, user.user_uuid, [space.space_uuid])
            if not can_view_space(space, access.role, space.space_uuid in shared):
                raise ForbiddenError("You don't have access to the space this dashboard belongs to")
            space_id = None
        else:
            space = await resolve_space(self.session, user, access.project, access.role, data.get("space_uuid"))
            space_id = space.space_id

        chart = SavedQuery(
            saved_query_uuid=new_uuid(),
            name=data["name"],
            description=data.get("description"),
            chart_kind=data.get("chart_kind"),
            slug=await unique_chart_slug(self.session, access.project.project_id, slugify(data["name"], "chart")),
            space_id=space_id,
            dashboard_uuid=dashboard_uuid or None,
        )
        self.session.add(chart)
        await self.session.commit()
        logger.info(
            "saved_chart.created",
            extra={
                "event": "saved_chart.created",
                "userId": user.user_uuid,
                "savedQueryId": chart.saved_query_uuid,
                "projectId": project_uuid,
                "dashboardId": chart.dashboard_uuid,
            },
        )
        return ChartRecord(chart, space, access.project)

    async def update(self, user: SessionUser, chart_uuid: str, data: Dict[str, Any]) -> ChartRecord:
        record = await self._load(chart_uuid)
        await self._check_space(user, record, manage=True)
        chart = record.chart

        if data.get("name"):
            chart.name = data["name"]
        for key in ("description", "chart_kind"):
            if key in data:
                setattr(chart, key, data[key])
        if data.get("space_uuid") and data["space_uuid"] != record.space.space_uuid:
            access = await require_project_access(self.session, user, record.project.project_uuid, manage=True)
            record.space = await resolve_space(self.session, user, record.project, access.role, data["space_uuid"])
            # a chart moved to a space no longer belongs to its dashboard
            chart.space_id = record.space.space_id
            chart.dashboard_uuid = None

        await self.session.commit()
        logger.info(
            "saved_chart.updated",
            extra={"event": "saved_chart.updated", "userId": user.user_uuid, "savedQueryId": chart_uuid},
        )
        return record

    async def purge(self, project: Project, chart_uuids: Iterable[str]) -> List[str]:
        """
        Delete charts, the schedulers delivering them and the dashboard tiles
        showing them. Does not commit; returns the deleted scheduler uuids.
        """
        chart_uuids = list(chart_uuids)
        if not chart_uuids:
            return []
        scheduler_uuids = await delete_schedulers_for(self.session, chart_uuids=chart_uuids)

        doomed = set(chart_uuids)
        dashboards = (
            await self.session.execute(
                select(Dashboard)
                .join(Space, Space.space_id == Dashboard.space_id)
                .where(Space.project_id == project.project_id)
            )
        ).scalars().all()
        for dashboard in dashboards:
            tiles = dashboard.tiles or []
            if doomed.intersection(DashboardService.find_charts_in_tiles(tiles)):
                dashboard.tiles = [
                    tile
                    for tile in tiles
                    if (tile.get("properties") or {}).get("savedChartUuid") not in doomed
                ]

        await self.session.execute(delete(SavedQuery).where(SavedQuery.saved_query_uuid.in_(chart_uuids)))
        return scheduler_uuids

    async def delete(self, user: SessionUser, chart_uuid: str) -> None:
        record = await self._load(chart_uuid)
        await self._check_space(user, record, manage=True)
        scheduler_uuids = await self.purge(record.project, [chart_uuid])
        await self.session.commit()
        for scheduler_uuid in scheduler_uuids:
            self.worker.remove_job(scheduler_uuid)
        logger.info(
            "saved_chart.deleted",
            extra={"event": "saved_chart.deleted", "userId": user.user_uuid, "savedQueryId": chart_uuid},
        )
