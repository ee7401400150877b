"""Category endpoints -- admin-service categories and per-user dashboard mappings."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser, get_current_user
from backend.database import get_session
from backend.dependencies import get_category_rpc_client, ok
from backend.schemas import (
    UserDashboardCategoryCreate,
    UserDashboardCategoryOut,
    UserDashboardCategoryUpdate,
)
from backend.services.category_service import CategoryService, UserDashboardCategoryService
from services.category_rpc_client import CategoryRpcClient

router = APIRouter(tags=["categories"])


def _out(row) -> dict:
    return UserDashboardCategoryOut.model_validate(row).model_dump(by_alias=True)


@router.get("/categories")
async def list_categories(
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    rpc_client: CategoryRpcClient = Depends(get_category_rpc_client),
):
    return ok(await CategoryService(session, rpc_client).list_categories())


@router.post("/categories/sync")
async def sync_categories(
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    rpc_client: CategoryRpcClient = Depends(get_category_rpc_client),
):
    rows = await CategoryService(session, rpc_client).sync_user_dashboards(user)
    return ok([_out(row) for row in rows])


# ---------------------------------------------------------------------------
# user_dashboard_category CRUD
# ---------------------------------------------------------------------------

@router.get("/user-dashboard-categories")
async def find_user_dashboard_categories(
    dashboard_uuid: Optional[str] = Query(default=None, alias="dashboardUuid"),
    space_uuid: Optional[str] = Query(default=None, alias="spaceUuid"),
    employee_id: Optional[int] = Query(default=None, alias="employeeId"),
    email: Optional[str] = None,
    category_id: Optional[str] = Query(default=None, alias="categoryId"),
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    rows = await UserDashboardCategoryService(session).find(
        user,
        dashboard_uuid=dashboard_uuid,
        space_uuid=space_uuid,
        employee_id=employee_id,
        email=email,
        category_id=category_id,
    )
    return ok([_out(row) for row in rows])


@router.post("/user-dashboard-categories", status_code=201)
async def create_user_dashboard_category(
    body: UserDashboardCategoryCreate,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    row = await UserDashboardCategoryService(session).create(user, body.model_dump(exclude_none=True))
    return ok(_out(row))


@router.get("/user-dashboard-categories/{id}")
async def get_user_dashboard_category(
    id: str,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return ok(_out(await UserDashboardCategoryService(session).get(user, id)))


@router.patch("/user-dashboard-categories/{id}")
async def update_user_dashboard_category(
    id: str,
    body: UserDashboardCategoryUpdate,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    row = await UserDashboardCategoryService(session).update(user, id, body.model_dump(exclude_unset=True))
    return ok(_out(row))


@router.delete("/user-dashboard-categories/{id}")
async def delete_user_dashboard_category(
    id: str,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await UserDashboardCategoryService(session).delete(user, id)
    return ok()
