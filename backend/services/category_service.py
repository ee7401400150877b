"""Category listing, per-user dashboard sync against the admin RPC service and
access-checked ``user_dashboard_category`` CRUD."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser
from backend.errors import NotFoundError, ParameterError
from backend.models import Dashboard, Project, Space, UserDashboardCategory
from backend.repositories import UserDashboardCategoryRepository, normalize_email
from backend.services.access import get_project_access, require_project_access
from services.category_rpc_client import CategoryRpcClient

logger = logging.getLogger(__name__)


def mobile_from_email(email: str) -> str:
    """Login e-mails are ``<mobile>@<domain>``."""
    return email.strip().split("@", 1)[0]


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class CategoryService:
    def __init__(self, session: AsyncSession, rpc_client: CategoryRpcClient):
        self.session = session
        self.rpc_client = rpc_client
        self.repository = UserDashboardCategoryRepository(session)

    async def list_categories(self) -> List[Dict[str, Any]]:
        return await self.rpc_client.find_all_categories()

    async def sync_user_dashboards(self, user: SessionUser) -> List[UserDashboardCategory]:
        """
        Replace the user's ``user_dashboard_category`` rows with the dashboards
        the admin service grants to their mobile number.

        Items whose ``dashboardUuid`` does not exist locally are skipped.
        """
        if not user.email:
            raise ParameterError("User has no email to derive a mobile number from")
        mobile = mobile_from_email(user.email)
        items = await self.rpc_client.find_all_dashboards_by_mobile(mobile)

        uuids = {item.get("dashboardUuid") for item in items if item.get("dashboardUuid")}
        local = {}
        if uuids:
            rows = await self.session.execute(
                select(Dashboard.dashboard_uuid, Dashboard.dashboard_id, Space.space_uuid)
                .join(Space, Space.space_id == Dashboard.space_id)
                .where(Dashboard.dashboard_uuid.in_(uuids))
            )
            local = {row.dashboard_uuid: row for row in rows}

        mappings = []
        for item in items:
            dashboard = local.get(item.get("dashboardUuid"))
            if dashboard is None:
                logger.warning(
                    "Skipping unknown dashboard %s for %s", item.get("dashboardUuid"), mobile
                )
                continue
            mappings.append(
                {
                    "dashboard_uuid": dashboard.dashboard_uuid,
                    "dashboard_id": _to_int(item.get("dashboardId")) or dashboard.dashboard_id,
                    "space_uuid": dashboard.space_uuid,
                    "employee_id": _to_int(item.get("employeeId")),
                    "short_name": str(item.get("shortName") or ""),
                    "category_id": str(item.get("categoryId") or ""),
                    "category": str(item.get("category") or ""),
                }
            )

        rows = await self.repository.replace_for_email(user.email, mappings)
        logger.info("Synced %d dashboard categories for %s", len(rows), mobile)
        return rows


class UserDashboardCategoryService:
    """
    Access-checked ``user_dashboard_category`` CRUD.

    Writes need manage rights on the project of the mapped dashboard. Reads
    return a user's own rows plus the rows of projects they can manage.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repository = UserDashboardCategoryRepository(session)

    async def _project_uuid_for(self, dashboard_uuid: str) -> Optional[str]:
        return (
            await self.session.execute(
                select(Project.project_uuid)
                .join(Space, Space.project_id == Project.project_id)
                .join(Dashboard, Dashboard.space_id == Space.space_id)
                .where(Dashboard.dashboard_uuid == dashboard_uuid)
            )
        ).scalar_one_or_none()

    async def _require_manage(self, user: SessionUser, dashboard_uuid: str) -> None:
        project_uuid = await self._project_uuid_for(dashboard_uuid)
        if project_uuid is None:
            raise NotFoundError(f"Dashboard {dashboard_uuid} not found")
        await require_project_access(self.session, user, project_uuid, manage=True)

    @staticmethod
    def _is_own(user: SessionUser, row: UserDashboardCategory) -> bool:
        return bool(user.email) and row.email == normalize_email(user.email)

    async def find(self, user: SessionUser, **filters) -> List[UserDashboardCategory]:
        rows = await self.repository.find(**filters)
        manageable: Dict[str, bool] = {}
        visible = []
        for row in rows:
            if self._is_own(user, row):
                visible.append(row)
                continue
            if row.dashboard_uuid not in manageable:
                project_uuid = await self._project_uuid_for(row.dashboard_uuid)
                access = await get_project_access(self.session, user, project_uuid) if project_uuid else None
                manageable[row.dashboard_uuid] = bool(access and access.can_manage)
            if manageable[row.dashboard_uuid]:
                visible.append(row)
        return visible

    async def get(self, user: SessionUser, id: str) -> UserDashboardCategory:
        row = await self.repository.get(id)
        if not self._is_own(user, row):
            await self._require_manage(user, row.dashboard_uuid)
        return row

    async def create(self, user: SessionUser, data: Dict[str, Any]) -> UserDashboardCategory:
        await self._require_manage(user, data["dashboard_uuid"])
        row = await self.repository.create(data)
        logger.info("User %s mapped dashboard %s to %s", user.user_uuid, row.dashboard_uuid, row.email)
        return row

    async def update(self, user: SessionUser, id: str, data: Dict[str, Any]) -> UserDashboardCategory:
        row = await self.repository.get(id)
        await self._require_manage(user, row.dashboard_uuid)
        if data.get("dashboard_uuid") and data["dashboard_uuid"] != row.dashboard_uuid:
            await self._require_manage(user, data["dashboard_uuid"])
        return await self.repository.update(id, data)

    async def delete(self, user: SessionUser, id: str) -> None:
        row = await self.repository.get(id)
        await self._require_manage(user, row.dashboard_uuid)
        await self.repository.delete(id)
