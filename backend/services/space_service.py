"""Space CRUD. Deleting a space removes its child spaces and their content."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser
from backend.errors import ForbiddenError, NotFoundError
from backend.models import Dashboard, Project, SavedQuery, Space, SpaceUserAccess, UserDashboardCategory, new_uuid
from backend.scheduler import DeliveryScheduler, get_delivery_scheduler
from backend.services.access import (
    can_view_space,
    get_shared_space_uuids,
    require_project_access,
    resolve_space,
)
from backend.services.chart_service import ChartService
from backend.services.dashboard_service import DashboardService

logger = logging.getLogger(__name__)


@dataclass
class SpaceRecord:
    space: Space
    project: Project


class SpaceService:
    def __init__(self, session: AsyncSession, worker: Optional[DeliveryScheduler] = None):
        self.session = session
        self.worker = worker or get_delivery_scheduler()

    async def _load(self, user: SessionUser, space_uuid: str, manage: bool) -> SpaceRecord:
        space = (
            await self.session.execute(select(Space).where(Space.space_uuid == space_uuid))
        ).scalar_one_or_none()
        if space is None:
            raise NotFoundError(f"Space {space_uuid} not found")
        project = await self.session.get(Project, space.project_id)
        access = await require_project_access(self.session, user, project.project_uuid, manage=manage)
        shared = await get_shared_space_uuids(self.session, user.user_uuid, [space.space_uuid])
        if not can_view_space(space, access.role, space.space_uuid in shared):
            raise ForbiddenError("You don't have access to this space")
        return SpaceRecord(space, project)

    async def get(self, user: SessionUser, space_uuid: str) -> SpaceRecord:
        return await self._load(user, space_uuid, manage=False)

    async def create(self, user: SessionUser, project_uuid: str, data: Dict[str, Any]) -> SpaceRecord:
        access = await require_project_access(self.session, user, project_uuid, manage=True)
        parent = None
        if data.get("parent_space_uuid"):
            parent = await resolve_space(
                self.session, user, access.project, access.role, data["parent_space_uuid"]
            )

        space = Space(
            space_uuid=new_uuid(),
            name=data["name"],
            project_id=access.project.project_id,
            parent_space_uuid=parent.space_uuid if parent else None,
            # nested spaces share the privacy of their parent
            is_private=parent.is_private if parent else bool(data.get("is_private")),
        )
        self.session.add(space)
        await self.session.commit()
        logger.info(
            "space.created",
            extra={
                "event": "space.created",
                "userId": user.user_uuid,
                "spaceId": space.space_uuid,
                "projectId": project_uuid,
                "isNested": parent is not None,
            },
        )
        return SpaceRecord(space, access.project)

    async def update(self, user: SessionUser, space_uuid: str, data: Dict[str, Any]) -> SpaceRecord:
        record = await self._load(user, space_uuid, manage=True)
        if data.get("name"):
            record.space.name = data["name"]
        if data.get("is_private") is not None:
            for space in [record.space] + await self._descendants(record.space):
                space.is_private = data["is_private"]
        await self.session.commit()
        logger.info(
            "space.updated",
            extra={"event": "space.updated", "userId": user.user_uuid, "spaceId": space_uuid},
        )
        return record

    async def _descendants(self, root: Space) -> List[Space]:
        spaces = (
            await self.session.execute(select(Space).where(Space.project_id == root.project_id))
        ).scalars().all()
        children: Dict[str, List[Space]] = {}
        for space in spaces:
            if space.parent_space_uuid:
                children.setdefault(space.parent_space_uuid, []).append(space)

        found: List[Space] = []
        pending = [root.space_uuid]
        while pending:
            for child in children.get(pending.pop(), []):
                found.append(child)
                pending.append(child.space_uuid)
        return found

    async def delete(self, user: SessionUser, space_uuid: str) -> None:
        record = await self._load(user, space_uuid, manage=True)
        spaces = [record.space] + await self._descendants(record.space)
        space_ids = [space.space_id for space in spaces]
        space_uuids = [space.space_uuid for space in spaces]

        dashboard_uuids = (
            await self.session.execute(select(Dashboard.dashboard_uuid).where(Dashboard.space_id.in_(space_ids)))
        ).scalars().all()
        _, scheduler_uuids = await DashboardService(self.session, self.worker).purge(dashboard_uuids)
        chart_uuids = (
            await self.session.execute(
                select(SavedQuery.saved_query_uuid).where(SavedQuery.space_id.in_(space_ids))
            )
        ).scalars().all()
        scheduler_uuids += await ChartService(self.session, self.worker).purge(record.project, chart_uuids)

        await self.session.execute(
            delete(UserDashboardCategory).where(UserDashboardCategory.space_uuid.in_(space_uuids))
        )
        await self.session.execute(delete(SpaceUserAccess).where(SpaceUserAccess.space_uuid.in_(space_uuids)))
        for space in spaces:
            await self.session.delete(space)
        await self.session.commit()

        for scheduler_uuid in scheduler_uuids:
            self.worker.remove_job(scheduler_uuid)
        logger.info(
            "space.deleted",
            extra={
                "event": "space.deleted",
                "userId": user.user_uuid,
                "spaceId": space_uuid,
                "dashboardsDeleted": len(dashboard_uuids),
                "chartsDeleted": len(chart_uuids),
            },
        )
