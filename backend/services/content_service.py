"""Content listing -- dashboards, charts and spaces across a user's projects."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser
from backend.errors import NotFoundError
from backend.models import Dashboard, Project, SavedQuery, Space
from backend.services.access import can_view_project, can_view_space, get_shared_space_uuids, resolve_project_role
from backend.services.dashboard_service import DashboardService

logger = logging.getLogger(__name__)

CONTENT_TYPES = ("dashboard", "chart", "space")


class ContentService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.dashboard_service = DashboardService(session)

    async def find(
        self,
        user: SessionUser,
        project_uuids: Optional[Sequence[str]] = None,
        space_uuids: Optional[Sequence[str]] = None,
        content_types: Optional[Sequence[str]] = None,
        page: int = 1,
        page_size: int = 25,
    ) -> Dict[str, Any]:
        if user.organization_id is None:
            raise NotFoundError("Organization not found")

        projects = (
            await self.session.execute(
                select(Project).where(Project.organization_id == user.organization_id)
            )
        ).scalars().all()
        roles = {p.project_id: await resolve_project_role(self.session, user.user_id, p) for p in projects}
        allowed_projects = [p for p in projects if can_view_project(roles[p.project_id])]
        if project_uuids:
            wanted = set(project_uuids)
            allowed_projects = [p for p in allowed_projects if p.project_uuid in wanted]
        projects_by_id = {p.project_id: p for p in allowed_projects}

        space_stmt = select(Space).where(Space.project_id.in_(list(projects_by_id)))
        if space_uuids:
            space_stmt = space_stmt.where(Space.space_uuid.in_(list(space_uuids)))
        spaces = (await self.session.execute(space_stmt)).scalars().all()
        shared = await get_shared_space_uuids(self.session, user.user_uuid, [s.space_uuid for s in spaces])
        allowed_spaces = {
            s.space_id: s
            for s in spaces
            if can_view_space(s, roles[s.project_id], s.space_uuid in shared)
        }

        types = [t for t in (content_types or CONTENT_TYPES) if t in CONTENT_TYPES]
        items: List[Dict[str, Any]] = []

        if "space" in types:
            for space in allowed_spaces.values():
                # only root spaces unless the caller asked for specific spaces
                if not space_uuids and space.parent_space_uuid:
                    continue
                items.append(self._space_item(space, projects_by_id[space.project_id]))

        if "dashboard" in types and allowed_spaces:
            dashboards = (
                await self.session.execute(
                    select(Dashboard).where(Dashboard.space_id.in_(list(allowed_spaces)))
                )
            ).scalars().all()
            for dashboard in dashboards:
                space = allowed_spaces[dashboard.space_id]
                items.append(self._dashboard_item(dashboard, space, projects_by_id[space.project_id]))

        if "chart" in types and allowed_spaces:
            charts = (
                await self.session.execute(
                    select(SavedQuery).where(SavedQuery.space_id.in_(list(allowed_spaces)))
                )
            ).scalars().all()
            for chart in charts:
                space = allowed_spaces[chart.space_id]
                items.append(self._chart_item(chart, space, projects_by_id[space.project_id]))

        items.sort(key=lambda item: (item["updatedAt"] or "", item["uuid"]), reverse=True)
        total_results = len(items)

        if "dashboard" in types:
            allowed_by_project = {}
            for project in allowed_projects:
                allowed = await self.dashboard_service.get_allowed_dashboard_uuids_for_viewer(
                    user, project.project_uuid
                )
                if allowed is not None:
                    allowed_by_project[project.project_uuid] = allowed
            if allowed_by_project:
                items = [
                    item
                    for item in items
                    if item["contentType"] != "dashboard"
                    or item["project"]["uuid"] not in allowed_by_project
                    or item["uuid"] in allowed_by_project[item["project"]["uuid"]]
                ]

        # totalResults is the count before per-viewer dashboard filtering
        start = (page - 1) * page_size
        page_items = items[start:start + page_size]
        total_pages = (total_results + page_size - 1) // page_size if page_size else 0
        return {
            "data": page_items,
            "pagination": {
                "page": page,
                "pageSize": page_size,
                "totalResults": total_results,
                "totalPageCount": total_pages,
            },
        }

    @staticmethod
    def _project_ref(project: Project) -> Dict[str, str]:
        return {"uuid": project.project_uuid, "name": project.name}

    def _space_item(self, space: Space, project: Project) -> Dict[str, Any]:
        return {
            "contentType": "space",
            "uuid": space.space_uuid,
            "name": space.name,
            "description": None,
            "project": self._project_ref(project),
            "space": {"uuid": space.space_uuid, "name": space.name},
            "isPrivate": space.is_private,
            "updatedAt": space.created_at.isoformat() if space.created_at else None,
        }

    def _dashboard_item(self, dashboard: Dashboard, space: Space, project: Project) -> Dict[str, Any]:
        return {
            "contentType": "dashboard",
            "uuid": dashboard.dashboard_uuid,
            "name": dashboard.name,
            "description": dashboard.description,
            "slug": dashboard.slug,
            "project": self._project_ref(project),
            "space": {"uuid": space.space_uuid, "name": space.name},
            "updatedAt": dashboard.updated_at.isoformat() if dashboard.updated_at else None,
        }

    def _chart_item(self, chart: SavedQuery, space: Space, project: Project) -> Dict[str, Any]:
        return {
            "contentType": "chart",
            "uuid": chart.saved_query_uuid,
            "name": chart.name,
            "description": chart.description,
            "slug": chart.slug,
            "chartKind": chart.chart_kind,
            "project": self._project_ref(project),
            "space": {"uuid": space.space_uuid, "name": space.name},
            "updatedAt": chart.updated_at.isoformat() if chart.updated_at else None,
        }
