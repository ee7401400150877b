"""Frontend log ingestion endpoint."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import USER_HEADER, load_session_user
from backend.database import get_session
from backend.schemas import FrontendLogPayload
from backend.services.log_service import LogService

router = APIRouter(prefix="/logs", tags=["logs"])


@router.post("")
async def ingest_frontend_log(
    body: FrontendLogPayload,
    x_user_uuid: Optional[str] = Header(default=None, alias=USER_HEADER),
    session: AsyncSession = Depends(get_session),
):
    # logs are accepted before login too
    user = await load_session_user(session, x_user_uuid) if x_user_uuid else None
    LogService().log(
        user,
        level=body.level,
        message=body.message,
        context=body.context,
        url=body.url,
        user_agent=body.user_agent,
    )
    return {"status": "ok"}
