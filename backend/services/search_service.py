"""Project search across dashboards, tabs, charts and spaces."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser
from backend.models import Dashboard, DashboardTab, SavedQuery, Space
from backend.services.access import can_view_space, get_shared_space_uuids, require_project_access
from backend.services.dashboard_service import DashboardService

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 50


def _like(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SearchService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.dashboard_service = DashboardService(session)

    async def search(self, user: SessionUser, project_uuid: str, query: str) -> Dict[str, List[Dict[str, Any]]]:
        access = await require_project_access(self.session, user, project_uuid)
        project_id = access.project.project_id
        pattern = _like(query.strip())

        spaces = (
            await self.session.execute(select(Space).where(Space.project_id == project_id))
        ).scalars().all()
        shared = await get_shared_space_uuids(self.session, user.user_uuid, [s.space_uuid for s in spaces])
        visible_spaces = {
            s.space_id: s for s in spaces if can_view_space(s, access.role, s.space_uuid in shared)
        }
        space_ids = list(visible_spaces)

        dashboards = (
            await self.session.execute(
                select(Dashboard)
                .where(Dashboard.space_id.in_(space_ids))
                .where(
                    or_(
                        Dashboard.name.ilike(pattern, escape="\\"),
                        Dashboard.description.ilike(pattern, escape="\\"),
                    )
                )
                .order_by(Dashboard.name)
                .limit(SEARCH_LIMIT)
            )
        ).scalars().all()

        tab_rows = (
            await self.session.execute(
                select(DashboardTab, Dashboard)
                .join(Dashboard, Dashboard.dashboard_id == DashboardTab.dashboard_id)
                .where(Dashboard.space_id.in_(space_ids))
                .where(DashboardTab.name.ilike(pattern, escape="\\"))
                .order_by(DashboardTab.name)
                .limit(SEARCH_LIMIT)
            )
        ).all()

        charts = (
            await self.session.execute(
                select(SavedQuery)
                .where(SavedQuery.space_id.in_(space_ids))
                .where(
                    or_(
                        SavedQuery.name.ilike(pattern, escape="\\"),
                        SavedQuery.description.ilike(pattern, escape="\\"),
                    )
                )
                .order_by(SavedQuery.name)
                .limit(SEARCH_LIMIT)
            )
        ).scalars().all()

        matching_spaces = [
            s for s in visible_spaces.values() if query.strip().lower() in s.name.lower()
        ]

        allowed = None
        if user.has_organization:
            allowed = await self.dashboard_service.get_allowed_dashboard_uuids_for_viewer(user, project_uuid)

        def dashboard_allowed(dashboard_uuid: str) -> bool:
            return allowed is None or dashboard_uuid in allowed

        results = {
            "dashboards": [
                {
                    "uuid": d.dashboard_uuid,
                    "name": d.name,
                    "description": d.description,
                    "spaceUuid": visible_spaces[d.space_id].space_uuid,
                }
                for d in dashboards
                if dashboard_allowed(d.dashboard_uuid)
            ],
            "dashboardTabs": [
                {
                    "uuid": tab.uuid,
                    "name": tab.name,
                    "dashboardUuid": d.dashboard_uuid,
                    "dashboardName": d.name,
                    "spaceUuid": visible_spaces[d.space_id].space_uuid,
                }
                for tab, d in tab_rows
                if dashboard_allowed(d.dashboard_uuid)
            ],
            "savedCharts": [
                {
                    "uuid": c.saved_query_uuid,
                    "name": c.name,
                    "description": c.description,
                    "chartKind": c.chart_kind,
                    "spaceUuid": visible_spaces[c.space_id].space_uuid,
                }
                for c in charts
            ],
            "spaces": [{"uuid": s.space_uuid, "name": s.name} for s in matching_spaces],
        }

        logger.info(
            "project.search",
            extra={
                "event": "project.search",
                "userId": user.user_uuid,
                "projectId": project_uuid,
                "spacesResultsCount": len(results["spaces"]),
                "dashboardsResultsCount": len(results["dashboards"]),
                "dashboardTabsResultsCount": len(results["dashboardTabs"]),
                "savedChartsResultsCount": len(results["savedCharts"]),
            },
        )
        return results
