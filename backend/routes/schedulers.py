"""Scheduler endpoints -- recurring chart/dashboard deliveries."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser, get_current_user
from backend.database import get_session
from backend.dependencies import ok
from backend.scheduler import DeliveryScheduler, get_delivery_scheduler
from backend.schemas import (
    SchedulerCreate,
    SchedulerEnabled,
    SchedulerLogOut,
    SchedulerOut,
    SchedulerUpdate,
)
from backend.services.scheduler_service import SchedulerService

router = APIRouter(tags=["schedulers"])


def _out(scheduler) -> dict:
    return SchedulerOut.model_validate(scheduler).model_dump(by_alias=True)


def get_scheduler_service(
    session: AsyncSession = Depends(get_session),
    worker: DeliveryScheduler = Depends(get_delivery_scheduler),
) -> SchedulerService:
    return SchedulerService(session, worker)


@router.get("/projects/{project_uuid}/schedulers")
async def list_schedulers(
    project_uuid: str,
    user: SessionUser = Depends(get_current_user),
    service: SchedulerService = Depends(get_scheduler_service),
):
    return ok([_out(s) for s in await service.list_for_project(user, project_uuid)])


@router.post("/projects/{project_uuid}/schedulers", status_code=201)
async def create_scheduler(
    project_uuid: str,
    body: SchedulerCreate,
    user: SessionUser = Depends(get_current_user),
    service: SchedulerService = Depends(get_scheduler_service),
):
    return ok(_out(await service.create(user, project_uuid, body.model_dump())))


@router.get("/schedulers/{scheduler_uuid}")
async def get_scheduler(
    scheduler_uuid: str,
    user: SessionUser = Depends(get_current_user),
    service: SchedulerService = Depends(get_scheduler_service),
):
    return ok(_out(await service.get(user, scheduler_uuid)))


@router.patch("/schedulers/{scheduler_uuid}")
async def update_scheduler(
    scheduler_uuid: str,
    body: SchedulerUpdate,
    user: SessionUser = Depends(get_current_user),
    service: SchedulerService = Depends(get_scheduler_service),
):
    scheduler = await service.update(user, scheduler_uuid, body.model_dump(exclude_unset=True))
    return ok(_out(scheduler))


@router.patch("/schedulers/{scheduler_uuid}/enabled")
async def set_scheduler_enabled(
    scheduler_uuid: str,
    body: SchedulerEnabled,
    user: SessionUser = Depends(get_current_user),
    service: SchedulerService = Depends(get_scheduler_service),
):
    return ok(_out(await service.set_enabled(user, scheduler_uuid, body.enabled)))


@router.delete("/schedulers/{scheduler_uuid}")
async def delete_scheduler(
    scheduler_uuid: str,
    user: SessionUser = Depends(get_current_user),
    service: SchedulerService = Depends(get_scheduler_service),
):
    await service.delete(user, scheduler_uuid)
    return ok()


@router.get("/schedulers/{scheduler_uuid}/logs")
async def get_scheduler_logs(
    scheduler_uuid: str,
    limit: int = Query(default=50, ge=1, le=500),
    user: SessionUser = Depends(get_current_user),
    service: SchedulerService = Depends(get_scheduler_service),
):
    logs = await service.get_logs(user, scheduler_uuid, limit=limit)
    return ok([SchedulerLogOut.model_validate(log).model_dump(by_alias=True) for log in logs])


@router.post("/schedulers/{scheduler_uuid}/send")
async def send_scheduler_now(
    scheduler_uuid: str,
    user: SessionUser = Depends(get_current_user),
    service: SchedulerService = Depends(get_scheduler_service),
):
    return ok(await service.send_now(user, scheduler_uuid))
