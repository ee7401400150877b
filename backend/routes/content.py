"""Content listing endpoint -- dashboards, charts and spaces across projects."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser, get_current_user
from backend.database import get_session
from backend.dependencies import ok
from backend.services.content_service import ContentService

router = APIRouter(prefix="/content", tags=["content"])


@router.get("")
async def find_content(
    project_uuids: Optional[List[str]] = Query(default=None, alias="projectUuids"),
    space_uuids: Optional[List[str]] = Query(default=None, alias="spaceUuids"),
    content_types: Optional[List[str]] = Query(default=None, alias="contentTypes"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=25, ge=1, le=100, alias="pageSize"),
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    results = await ContentService(session).find(
        user,
        project_uuids=project_uuids,
        space_uuids=space_uuids,
        content_types=content_types,
        page=page,
        page_size=page_size,
    )
    return ok(results)
