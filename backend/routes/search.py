"""Search endpoint -- name/description match within a project."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser, get_current_user
from backend.database import get_session
from backend.dependencies import ok
from backend.services.search_service import SearchService

router = APIRouter(tags=["search"])


@router.get("/projects/{project_uuid}/search")
async def search_project(
    project_uuid: str,
    query: str = Query(min_length=1),
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return ok(await SearchService(session).search(user, project_uuid, query))
