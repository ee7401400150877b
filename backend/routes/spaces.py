"""Space endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser, get_current_user
from backend.database import get_session
from backend.dependencies import ok
from backend.scheduler import DeliveryScheduler, get_delivery_scheduler
from backend.schemas import SpaceCreate, SpaceUpdate
from backend.services.space_service import SpaceRecord, SpaceService

router = APIRouter(tags=["spaces"])


def get_space_service(
    session: AsyncSession = Depends(get_session),
    worker: DeliveryScheduler = Depends(get_delivery_scheduler),
) -> SpaceService:
    return SpaceService(session, worker)


def serialize_space(record: SpaceRecord) -> Dict[str, Any]:
    space = record.space
    return {
        "uuid": space.space_uuid,
        "name": space.name,
        "isPrivate": space.is_private,
        "parentSpaceUuid": space.parent_space_uuid,
        "projectUuid": record.project.project_uuid,
    }


@router.post("/projects/{project_uuid}/spaces", status_code=201)
async def create_space(
    project_uuid: str,
    body: SpaceCreate,
    user: SessionUser = Depends(get_current_user),
    service: SpaceService = Depends(get_space_service),
):
    return ok(serialize_space(await service.create(user, project_uuid, body.model_dump())))


@router.get("/spaces/{space_uuid}")
async def get_space(
    space_uuid: str,
    user: SessionUser = Depends(get_current_user),
    service: SpaceService = Depends(get_space_service),
):
    return ok(serialize_space(await service.get(user, space_uuid)))


@router.patch("/spaces/{space_uuid}")
async def update_space(
    space_uuid: str,
    body: SpaceUpdate,
    user: SessionUser = Depends(get_current_user),
    service: SpaceService = Depends(get_space_service),
):
    record = await service.update(user, space_uuid, body.model_dump(exclude_unset=True))
    return ok(serialize_space(record))


@router.delete("/spaces/{space_uuid}")
async def delete_space(
    space_uuid: str,
    user: SessionUser = Depends(get_current_user),
    service: SpaceService = Depends(get_space_service),
):
    await service.delete(user, space_uuid)
    return ok()
