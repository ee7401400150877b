"""Data access for ``user_dashboard_category``."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.errors import NotFoundError
from backend.models import UserDashboardCategory, new_uuid, utcnow

UPDATABLE_FIELDS = (
    "dashboard_id",
    "employee_id",
    "dashboard_uuid",
    "space_uuid",
    "short_name",
    "email",
    "category_id",
    "category",
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserDashboardCategoryRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find(
        self,
        dashboard_uuid: Optional[str] = None,
        space_uuid: Optional[str] = None,
        employee_id: Optional[int] = None,
        email: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> List[UserDashboardCategory]:
        stmt = select(UserDashboardCategory)
        if dashboard_uuid:
            stmt = stmt.where(UserDashboardCategory.dashboard_uuid == dashboard_uuid)
        if space_uuid:
            stmt = stmt.where(UserDashboardCategory.space_uuid == space_uuid)
        if employee_id:
            stmt = stmt.where(UserDashboardCategory.employee_id == employee_id)
        if email:
            stmt = stmt.where(UserDashboardCategory.email == normalize_email(email))
        if category_id:
            stmt = stmt.where(UserDashboardCategory.category_id == category_id)
        stmt = stmt.order_by(UserDashboardCategory.create_time, UserDashboardCategory.id)
        return list((await self.session.execute(stmt)).scalars().all())

    async def get(self, id: str) -> UserDashboardCategory:
        row = await self.session.get(UserDashboardCategory, id)
        if row is None:
            raise NotFoundError(f"UserDashboardCategory with id {id} not found")
        return row

    async def create(self, data: Dict[str, Any]) -> UserDashboardCategory:
        values = {key: data[key] for key in UPDATABLE_FIELDS if key in data}
        values["email"] = normalize_email(values["email"])
        row = UserDashboardCategory(
            id=data.get("id") or new_uuid(),
            create_time=utcnow(),
            **values,
        )
        self.session.add(row)
        await self.session.commit()
        return row

    async def update(self, id: str, data: Dict[str, Any]) -> UserDashboardCategory:
        row = await self.get(id)
        for key in UPDATABLE_FIELDS:
            if key in data and data[key] is not None:
                value = normalize_email(data[key]) if key == "email" else data[key]
                setattr(row, key, value)
        await self.session.commit()
        return row

    async def delete(self, id: str) -> None:
        result = await self.session.execute(
            delete(UserDashboardCategory).where(UserDashboardCategory.id == id)
        )
        if result.rowcount == 0:
            raise NotFoundError(f"UserDashboardCategory with id {id} not found")
        await self.session.commit()

    async def replace_for_email(
        self, email: str, rows: Iterable[Dict[str, Any]]
    ) -> List[UserDashboardCategory]:
        """Make ``rows`` the complete set of mappings for ``email``.

        Rows are matched on ``(dashboard_uuid, category_id)``; when several
        stored rows share a key the oldest is kept and the rest are deleted.
        """
        email = normalize_email(email)
        existing: Dict[Tuple[str, str], List[UserDashboardCategory]] = {}
        for row in await self.find(email=email):
            existing.setdefault((row.dashboard_uuid, row.category_id), []).append(row)

        kept: List[UserDashboardCategory] = []
        seen = set()
        for data in rows:
            match_key = (data["dashboard_uuid"], data["category_id"])
            if match_key in seen:
                continue
            seen.add(match_key)

            matches = existing.get(match_key)
            row = matches.pop(0) if matches else None
            if row is None:
                row = UserDashboardCategory(id=new_uuid(), create_time=utcnow(), email=email)
                self.session.add(row)
            for key in UPDATABLE_FIELDS:
                if key != "email" and key in data:
                    setattr(row, key, data[key])
            kept.append(row)

        for leftovers in existing.values():
            for row in leftovers:
                await self.session.delete(row)

        await self.session.commit()
        return kept
