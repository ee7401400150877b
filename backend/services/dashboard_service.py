"""
Dashboard service -- access-checked CRUD over dashboards, tabs and tiles.

Viewers of customer-use projects only see the dashboards mapped to their
e-mail in ``user_dashboard_category``; see
``get_allowed_dashboard_uuids_for_viewer``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser
from backend.errors import ForbiddenError, NotFoundError, ParameterError
from backend.models import (
    Dashboard,
    DashboardTab,
    Project,
    SavedQuery,
    Space,
    User,
    UserDashboardCategory,
    new_uuid,
)
from backend.repositories import UserDashboardCategoryRepository, normalize_email
from backend.scheduler import DeliveryScheduler, get_delivery_scheduler
from backend.services.access import (
    can_view_space,
    get_project,
    get_shared_space_uuids,
    has_direct_access_to_space,
    require_project_access,
    resolve_project_role,
    resolve_space,
)
from backend.services.scheduler_service import delete_schedulers_for

logger = logging.getLogger(__name__)

TILE_TYPES = ("saved_chart", "sql_chart", "markdown", "loom")
CHART_TILE_TYPES = ("saved_chart", "sql_chart")


def slugify(name: str, fallback: str = "dashboard") -> str:
    slug = re.sub(r"[\W_]+", "-", name.strip().lower()).strip("-")
    return slug or fallback


def next_free_slug(base: str, taken: Set[str]) -> str:
    if base not in taken:
        return base
    suffix = 1
    while f"{base}-{suffix}" in taken:
        suffix += 1
    return f"{base}-{suffix}"


def _slug_like(column, base: str):
    return or_(column == base, column.like(f"{base}-%"))


async def unique_slug(
    session: AsyncSession, project_id: int, base: str, model=Dashboard
) -> str:
    """``base``, or ``base-N`` with the lowest N free within the project."""
    rows = await session.execute(
        select(model.slug)
        .join(Space, Space.space_id == model.space_id)
        .where(Space.project_id == project_id)
        .where(_slug_like(model.slug, base))
    )
    return next_free_slug(base, set(rows.scalars().all()))


async def unique_chart_slug(session: AsyncSession, project_id: int, base: str) -> str:
    """Like ``unique_slug`` for charts, counting charts owned by dashboards."""
    space_ids = select(Space.space_id).where(Space.project_id == project_id)
    dashboard_uuids = select(Dashboard.dashboard_uuid).where(Dashboard.space_id.in_(space_ids))
    rows = await session.execute(
        select(SavedQuery.slug)
        .where(or_(SavedQuery.space_id.in_(space_ids), SavedQuery.dashboard_uuid.in_(dashboard_uuids)))
        .where(_slug_like(SavedQuery.slug, base))
    )
    return next_free_slug(base, set(rows.scalars().all()))


def two_column_tiles(chart_uuids: Sequence[str], tab_uuid: Optional[str] = None) -> List[Dict[str, Any]]:
    return [
        {
            "uuid": new_uuid(),
            "type": "saved_chart",
            "tabUuid": tab_uuid,
            "x": (index % 2) * 6,
            "y": (index // 2) * 3,
            "w": 6,
            "h": 3,
            "properties": {"savedChartUuid": chart_uuid, "belongsToDashboard": True},
        }
        for index, chart_uuid in enumerate(chart_uuids)
    ]


@dataclass
class DashboardRecord:
    dashboard: Dashboard
    space: Space
    project: Project


class DashboardService:
    def __init__(self, session: AsyncSession, worker: Optional[DeliveryScheduler] = None):
        self.session = session
        self.worker = worker or get_delivery_scheduler()
        self.user_dashboard_categories = UserDashboardCategoryRepository(session)

    @staticmethod
    def get_create_event_properties(record: DashboardRecord) -> Dict[str, Any]:
        dashboard = record.dashboard
        tiles = dashboard.tiles or []

        def count(tile_type: str) -> int:
            return sum(1 for tile in tiles if tile.get("type") == tile_type)

        return {
            "title": dashboard.name,
            "description": dashboard.description,
            "projectId": record.project.project_uuid,
            "dashboardId": dashboard.dashboard_uuid,
            "tilesCount": len(tiles),
            "chartTilesCount": count("saved_chart"),
            "sqlChartTilesCount": count("sql_chart"),
            "markdownTilesCount": count("markdown"),
            "loomTilesCount": count("loom"),
            "tabsCount": len(dashboard.tabs),
        }

    @staticmethod
    def find_charts_in_tiles(tiles: Sequence[Dict[str, Any]]) -> List[str]:
        return [
            tile["properties"]["savedChartUuid"]
            for tile in tiles
            if tile.get("type") in CHART_TILE_TYPES
            and (tile.get("properties") or {}).get("savedChartUuid")
        ]

    # ------------------------------------------------------------------
    # Viewer filtering
    # ------------------------------------------------------------------

    async def get_allowed_dashboard_uuids_for_viewer(
        self, user: SessionUser, project_uuid: str
    ) -> Optional[Set[str]]:
        """
        Dashboards a viewer of a customer-use project may see.

        Returns None when no filtering applies (unknown project, project not
        in customer use, unknown user, or a role other than viewer). An empty
        set hides every dashboard.
        """
        project = await get_project(self.session, project_uuid)
        if project is None or not project.is_customer_use:
            return None

        user_id = (
            await self.session.execute(select(User.user_id).where(User.user_uuid == user.user_uuid))
        ).scalar_one_or_none()
        if user_id is None:
            return None

        role = await resolve_project_role(self.session, user_id, project)
        if role != "viewer":
            return None

        if not user.email:
            logger.warning(
                "User %s has no email, filtering out all dashboards for project %s",
                user.user_uuid,
                project_uuid,
            )
            return set()

        email = normalize_email(user.email)
        categories = await self.user_dashboard_categories.find(email=email)
        allowed = {row.dashboard_uuid for row in categories if row.dashboard_uuid}
        if not allowed:
            logger.warning(
                "No dashboard categories found for user %s in project %s, filtering out all dashboards",
                email,
                project_uuid,
            )
        return allowed

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_all_by_project(
        self,
        user: SessionUser,
        project_uuid: str,
        chart_uuid: Optional[str] = None,
        include_private: bool = False,
    ) -> List[DashboardRecord]:
        project = await get_project(self.session, project_uuid)
        if project is None:
            raise NotFoundError(f"Project {project_uuid} not found")
        role = await resolve_project_role(self.session, user.user_id, project)

        rows = (
            await self.session.execute(
                select(Dashboard, Space)
                .join(Space, Space.space_id == Dashboard.space_id)
                .where(Space.project_id == project.project_id)
                .order_by(Dashboard.name, Dashboard.dashboard_id)
            )
        ).all()
        shared = await get_shared_space_uuids(
            self.session, user.user_uuid, {space.space_uuid for _, space in rows}
        )
        allowed = await self.get_allowed_dashboard_uuids_for_viewer(user, project_uuid)

        records = []
        for dashboard, space in rows:
            if chart_uuid and chart_uuid not in self.find_charts_in_tiles(dashboard.tiles or []):
                continue
            # an empty allowed set hides everything
            if allowed is not None and dashboard.dashboard_uuid not in allowed:
                continue
            is_shared = space.space_uuid in shared
            visible = can_view_space(space, role, is_shared)
            if not include_private:
                visible = visible and has_direct_access_to_space(space, is_shared)
            if visible:
                records.append(DashboardRecord(dashboard, space, project))
        return records

    async def _load(self, dashboard_uuid_or_slug: str, by_slug: bool = True) -> DashboardRecord:
        condition = Dashboard.dashboard_uuid == dashboard_uuid_or_slug
        if by_slug:
            condition = or_(condition, Dashboard.slug == dashboard_uuid_or_slug)
        row = (
            await self.session.execute(
                select(Dashboard, Space, Project)
                .join(Space, Space.space_id == Dashboard.space_id)
                .join(Project, Project.project_id == Space.project_id)
                .where(condition)
                .order_by(Dashboard.created_at)
                .limit(1)
            )
        ).first()
        if not row:
            raise NotFoundError("Dashboard not found")
        dashboard, space, project = row
        return DashboardRecord(dashboard, space, project)

    async def get_by_id_or_slug(self, user: SessionUser, dashboard_uuid_or_slug: str) -> DashboardRecord:
        record = await self._load(dashboard_uuid_or_slug)
        await self._check_view(user, record)
        logger.info(
            "dashboard.view",
            extra={
                "event": "dashboard.view",
                "userId": user.user_uuid,
                "dashboardId": record.dashboard.dashboard_uuid,
                "projectId": record.project.project_uuid,
            },
        )
        return record

    async def _check_view(self, user: SessionUser, record: DashboardRecord) -> None:
        role = await resolve_project_role(self.session, user.user_id, record.project)
        shared = await get_shared_space_uuids(self.session, user.user_uuid, [record.space.space_uuid])
        if not can_view_space(record.space, role, record.space.space_uuid in shared):
            raise ForbiddenError("You don't have access to the space this dashboard belongs to")

        allowed = await self.get_allowed_dashboard_uuids_for_viewer(user, record.project.project_uuid)
        if allowed is not None and record.dashboard.dashboard_uuid not in allowed:
            raise ForbiddenError("You don't have access to this dashboard")

    async def _load_for_update(self, user: SessionUser, dashboard_uuid: str) -> DashboardRecord:
        record = await self._load(dashboard_uuid, by_slug=False)
        await require_project_access(self.session, user, record.project.project_uuid, manage=True)
        shared = await get_shared_space_uuids(self.session, user.user_uuid, [record.space.space_uuid])
        role = await resolve_project_role(self.session, user.user_id, record.project)
        if not can_view_space(record.space, role, record.space.space_uuid in shared):
            raise ForbiddenError("You don't have access to the space this dashboard belongs to")
        return record

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_tiles(tiles: Sequence[Dict[str, Any]], tab_uuids: Sequence[str]) -> List[Dict[str, Any]]:
        validated = []
        for tile in tiles:
            tile_type = tile.get("type")
            if tile_type not in TILE_TYPES:
                raise ParameterError(f"Unknown tile type: {tile_type}")
            tab_uuid = tile.get("tabUuid")
            if tab_uuids:
                if tab_uuid is None:
                    tab_uuid = tab_uuids[0]
                elif tab_uuid not in tab_uuids:
                    raise ParameterError(f"Tile references unknown tab {tab_uuid}")
            else:
                tab_uuid = None
            validated.append(
                {
                    "uuid": tile.get("uuid") or new_uuid(),
                    "type": tile_type,
                    "tabUuid": tab_uuid,
                    "x": int(tile.get("x", 0)),
                    "y": int(tile.get("y", 0)),
                    "w": int(tile.get("w", 6)),
                    "h": int(tile.get("h", 3)),
                    "properties": dict(tile.get("properties") or {}),
                }
            )
        return validated

    def _log_created(self, user: SessionUser, record: DashboardRecord, **extra_properties) -> None:
        logger.info(
            "dashboard.created",
            extra={
                "event": "dashboard.created",
                "userId": user.user_uuid,
                "properties": {**self.get_create_event_properties(record), **extra_properties},
            },
        )

    async def create(self, user: SessionUser, project_uuid: str, data: Dict[str, Any]) -> DashboardRecord:
        access = await require_project_access(self.session, user, project_uuid, manage=True)
        space = await resolve_space(self.session, user, access.project, access.role, data.get("space_uuid"))

        tabs = [
            DashboardTab(uuid=tab.get("uuid") or new_uuid(), name=tab["name"], order=index)
            for index, tab in enumerate(data.get("tabs") or [])
        ]
        tiles = self._validate_tiles(data.get("tiles") or [], [tab.uuid for tab in tabs])
        slug = await unique_slug(self.session, access.project.project_id, slugify(data["name"]))

        dashboard = Dashboard(
            dashboard_uuid=new_uuid(),
            name=data["name"],
            description=data.get("description"),
            slug=slug,
            space_id=space.space_id,
            tiles=tiles,
            created_by_user_uuid=user.user_uuid,
            tabs=tabs,
        )
        self.session.add(dashboard)
        await self.session.commit()

        record = DashboardRecord(dashboard, space, access.project)
        self._log_created(user, record)
        return record

    async def create_with_charts(
        self, user: SessionUser, project_uuid: str, data: Dict[str, Any]
    ) -> DashboardRecord:
        """Create a dashboard together with charts it owns, laid out two per row."""
        access = await require_project_access(self.session, user, project_uuid, manage=True)
        space = await resolve_space(self.session, user, access.project, access.role, data.get("space_uuid"))
        project_id = access.project.project_id

        dashboard = Dashboard(
            dashboard_uuid=new_uuid(),
            name=data["name"],
            description=data.get("description"),
            slug=await unique_slug(self.session, project_id, slugify(data["name"])),
            space_id=space.space_id,
            tiles=[],
            created_by_user_uuid=user.user_uuid,
            tabs=[],
        )
        self.session.add(dashboard)
        await self.session.flush()

        charts = []
        for chart_data in data.get("charts") or []:
            chart = SavedQuery(
                saved_query_uuid=new_uuid(),
                name=chart_data["name"],
                description=chart_data.get("description"),
                chart_kind=chart_data.get("chart_kind"),
                slug=await unique_chart_slug(self.session, project_id, slugify(chart_data["name"], "chart")),
                dashboard_uuid=dashboard.dashboard_uuid,
            )
            self.session.add(chart)
            charts.append(chart)
        dashboard.tiles = two_column_tiles([chart.saved_query_uuid for chart in charts])
        await self.session.commit()

        record = DashboardRecord(dashboard, space, access.project)
        for chart in charts:
            logger.info(
                "saved_chart.created",
                extra={
                    "event": "saved_chart.created",
                    "userId": user.user_uuid,
                    "savedQueryId": chart.saved_query_uuid,
                    "dashboardId": dashboard.dashboard_uuid,
                },
            )
        self._log_created(user, record)
        return record

    async def duplicate(
        self, user: SessionUser, dashboard_uuid: str, data: Optional[Dict[str, Any]] = None
    ) -> DashboardRecord:
        """
        Copy a dashboard into the same space.

        Tabs get new uuids and tiles follow them. Charts owned by the source
        dashboard are copied too and the copied tiles point at the copies;
        tiles of space charts keep pointing at the same chart.
        """
        data = data or {}
        source = await self._load_for_update(user, dashboard_uuid)
        original = source.dashboard
        project_id = source.project.project_id

        tab_uuids = {tab.uuid: new_uuid() for tab in original.tabs}
        tabs = [DashboardTab(uuid=tab_uuids[tab.uuid], name=tab.name, order=tab.order) for tab in original.tabs]
        name = data.get("name") or f"Copy of {original.name}"
        dashboard = Dashboard(
            dashboard_uuid=new_uuid(),
            name=name,
            description=data["description"] if data.get("description") is not None else original.description,
            slug=await unique_slug(self.session, project_id, slugify(name)),
            space_id=original.space_id,
            tiles=[],
            created_by_user_uuid=user.user_uuid,
            tabs=tabs,
        )
        self.session.add(dashboard)
        await self.session.flush()

        owned_charts = (
            await self.session.execute(
                select(SavedQuery)
                .where(SavedQuery.dashboard_uuid == original.dashboard_uuid)
                .order_by(SavedQuery.saved_query_id)
            )
        ).scalars().all()
        chart_uuids = {}
        for chart in owned_charts:
            copy = SavedQuery(
                saved_query_uuid=new_uuid(),
                name=chart.name,
                description=chart.description,
                chart_kind=chart.chart_kind,
                slug=await unique_chart_slug(self.session, project_id, slugify(chart.name, "chart")),
                dashboard_uuid=dashboard.dashboard_uuid,
            )
            self.session.add(copy)
            chart_uuids[chart.saved_query_uuid] = copy.saved_query_uuid

        tiles = []
        for tile in original.tiles or []:
            properties = dict(tile.get("properties") or {})
            if properties.get("savedChartUuid") in chart_uuids:
                properties["savedChartUuid"] = chart_uuids[properties["savedChartUuid"]]
            tiles.append(
                {
                    **tile,
                    "uuid": new_uuid(),
                    "tabUuid": tab_uuids.get(tile.get("tabUuid")),
                    "properties": properties,
                }
            )
        dashboard.tiles = tiles
        await self.session.commit()

        record = DashboardRecord(dashboard, source.space, source.project)
        for copy_uuid in chart_uuids.values():
            logger.info(
                "saved_chart.created",
                extra={
                    "event": "saved_chart.created",
                    "userId": user.user_uuid,
                    "savedQueryId": copy_uuid,
                    "dashboardId": dashboard.dashboard_uuid,
                    "duplicated": True,
                },
            )
        self._log_created(user, record, duplicated=True)
        logger.info(
            "duplicated_dashboard_created",
            extra={
                "event": "duplicated_dashboard_created",
                "userId": user.user_uuid,
                "newDashboardId": dashboard.dashboard_uuid,
                "duplicateOfDashboardId": original.dashboard_uuid,
            },
        )
        return record

    async def _change_space(self, user: SessionUser, record: DashboardRecord, space_uuid: str) -> None:
        role = await resolve_project_role(self.session, user.user_id, record.project)
        record.space = await resolve_space(self.session, user, record.project, role, space_uuid)
        record.dashboard.space_id = record.space.space_id

    async def update(self, user: SessionUser, dashboard_uuid: str, data: Dict[str, Any]) -> DashboardRecord:
        record = await self._load_for_update(user, dashboard_uuid)
        dashboard = record.dashboard

        if data.get("name"):
            dashboard.name = data["name"]
        if "description" in data:
            dashboard.description = data["description"]
        if data.get("space_uuid") and data["space_uuid"] != record.space.space_uuid:
            await self._change_space(user, record, data["space_uuid"])

        tiles = list(dashboard.tiles or [])
        if data.get("tabs") is not None:
            existing = {tab.uuid: tab for tab in dashboard.tabs}
            new_tabs = []
            for index, tab_data in enumerate(data["tabs"]):
                tab = existing.get(tab_data.get("uuid") or "")
                if tab is None:
                    tab = DashboardTab(uuid=tab_data.get("uuid") or new_uuid())
                tab.name = tab_data["name"]
                tab.order = index
                new_tabs.append(tab)
            dashboard.tabs = new_tabs
            kept = {tab.uuid for tab in new_tabs}
            removed = set(existing) - kept
            if not existing or not kept:
                # no tabs before or after: every tile moves to the first tab (or none)
                tiles = [{**tile, "tabUuid": None} for tile in tiles]
            else:
                # tiles of removed tabs go away with them
                tiles = [tile for tile in tiles if tile.get("tabUuid") not in removed]

        tab_uuids = [tab.uuid for tab in dashboard.tabs]
        if data.get("tiles") is not None:
            tiles = data["tiles"]
        dashboard.tiles = self._validate_tiles(tiles, tab_uuids)

        await self.session.commit()
        logger.info(
            "dashboard.updated",
            extra={"event": "dashboard.updated", "userId": user.user_uuid, "dashboardId": dashboard_uuid},
        )
        return record

    async def update_multiple(
        self, user: SessionUser, project_uuid: str, items: Sequence[Dict[str, Any]]
    ) -> List[DashboardRecord]:
        """Rename and move several dashboards of one project in a single commit."""
        records = []
        for item in items:
            record = await self._load_for_update(user, item["uuid"])
            if record.project.project_uuid != project_uuid:
                raise NotFoundError(f"Dashboard {item['uuid']} not found in this project")
            if item.get("name"):
                record.dashboard.name = item["name"]
            if "description" in item:
                record.dashboard.description = item["description"]
            if item.get("space_uuid") and item["space_uuid"] != record.space.space_uuid:
                await self._change_space(user, record, item["space_uuid"])
            records.append(record)

        await self.session.commit()
        logger.info(
            "dashboard.updated_multiple",
            extra={
                "event": "dashboard.updated_multiple",
                "userId": user.user_uuid,
                "dashboardIds": [record.dashboard.dashboard_uuid for record in records],
                "projectId": project_uuid,
            },
        )
        return records

    async def move_to_space(
        self, user: SessionUser, dashboard_uuid: str, space_uuid: Optional[str]
    ) -> DashboardRecord:
        if not space_uuid:
            raise ParameterError("You cannot move a dashboard outside of a space")
        record = await self._load_for_update(user, dashboard_uuid)
        await self._change_space(user, record, space_uuid)
        await self.session.commit()
        logger.info(
            "dashboard.moved",
            extra={
                "event": "dashboard.moved",
                "userId": user.user_uuid,
                "projectId": record.project.project_uuid,
                "dashboardId": dashboard_uuid,
                "targetSpaceId": space_uuid,
            },
        )
        return record

    async def purge(self, dashboard_uuids: Iterable[str]) -> Tuple[List[str], List[str]]:
        """
        Delete dashboards with the charts they own, the schedulers delivering
        either and their category rows. Does not commit.

        Returns ``(deleted_chart_uuids, deleted_scheduler_uuids)``.
        """
        dashboard_uuids = list(dashboard_uuids)
        if not dashboard_uuids:
            return [], []
        owned_charts = list(
            (
                await self.session.execute(
                    select(SavedQuery.saved_query_uuid).where(SavedQuery.dashboard_uuid.in_(dashboard_uuids))
                )
            ).scalars().all()
        )
        scheduler_uuids = await delete_schedulers_for(self.session, dashboard_uuids, owned_charts)
        if owned_charts:
            await self.session.execute(
                delete(SavedQuery).where(SavedQuery.saved_query_uuid.in_(owned_charts))
            )
        await self.session.execute(
            delete(UserDashboardCategory).where(UserDashboardCategory.dashboard_uuid.in_(dashboard_uuids))
        )
        dashboards = (
            await self.session.execute(select(Dashboard).where(Dashboard.dashboard_uuid.in_(dashboard_uuids)))
        ).scalars().all()
        for dashboard in dashboards:
            await self.session.delete(dashboard)
        return owned_charts, scheduler_uuids

    async def delete(self, user: SessionUser, dashboard_uuid: str) -> None:
        await self._load_for_update(user, dashboard_uuid)
        orphaned_charts, scheduler_uuids = await self.purge([dashboard_uuid])
        await self.session.commit()
        for scheduler_uuid in scheduler_uuids:
            self.worker.remove_job(scheduler_uuid)

        for chart_uuid in orphaned_charts:
            logger.info(
                "saved_chart.deleted",
                extra={"event": "saved_chart.deleted", "userId": user.user_uuid, "savedQueryId": chart_uuid},
            )
        logger.info(
            "dashboard.deleted",
            extra={"event": "dashboard.deleted", "userId": user.user_uuid, "dashboardId": dashboard_uuid},
        )

    # ------------------------------------------------------------------
    # Tabs
    # ------------------------------------------------------------------

    @staticmethod
    def _find_tab(dashboard: Dashboard, tab_uuid: str) -> DashboardTab:
        for tab in dashboard.tabs:
            if tab.uuid == tab_uuid:
                return tab
        raise NotFoundError(f"Tab {tab_uuid} not found")

    async def add_tab(self, user: SessionUser, dashboard_uuid: str, name: str) -> DashboardTab:
        record = await self._load_for_update(user, dashboard_uuid)
        dashboard = record.dashboard
        order = max((tab.order for tab in dashboard.tabs), default=-1) + 1
        tab = DashboardTab(uuid=new_uuid(), name=name, order=order)
        first_tab = not dashboard.tabs
        dashboard.tabs.append(tab)
        if first_tab:
            # tiles created before any tab existed land on the first one
            dashboard.tiles = [{**tile, "tabUuid": tab.uuid} for tile in dashboard.tiles or []]
        await self.session.commit()
        return tab

    async def rename_tab(self, user: SessionUser, dashboard_uuid: str, tab_uuid: str, name: str) -> DashboardTab:
        record = await self._load_for_update(user, dashboard_uuid)
        tab = self._find_tab(record.dashboard, tab_uuid)
        tab.name = name
        await self.session.commit()
        return tab

    async def delete_tab(self, user: SessionUser, dashboard_uuid: str, tab_uuid: str) -> DashboardRecord:
        record = await self._load_for_update(user, dashboard_uuid)
        dashboard = record.dashboard
        tab = self._find_tab(dashboard, tab_uuid)
        dashboard.tabs.remove(tab)

        tiles = dashboard.tiles or []
        if dashboard.tabs:
            dashboard.tiles = [tile for tile in tiles if tile.get("tabUuid") != tab_uuid]
        else:
            dashboard.tiles = [{**tile, "tabUuid": None} for tile in tiles]
        for index, remaining in enumerate(dashboard.tabs):
            remaining.order = index

        await self.session.commit()
        return record

    async def move_tile_to_tab(
        self, user: SessionUser, dashboard_uuid: str, tile_uuid: str, tab_uuid: str
    ) -> DashboardRecord:
        record = await self._load_for_update(user, dashboard_uuid)
        dashboard = record.dashboard
        self._find_tab(dashboard, tab_uuid)

        tiles = [dict(tile) for tile in dashboard.tiles or []]
        for tile in tiles:
            if tile.get("uuid") == tile_uuid:
                tile["tabUuid"] = tab_uuid
                break
        else:
            raise NotFoundError(f"Tile {tile_uuid} not found")
        dashboard.tiles = tiles
        await self.session.commit()
        return record
