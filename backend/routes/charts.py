"""Saved chart endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser, get_current_user
from backend.database import get_session
from backend.dependencies import ok
from backend.scheduler import DeliveryScheduler, get_delivery_scheduler
from backend.schemas import ChartCreate, ChartUpdate
from backend.services.chart_service import ChartRecord, ChartService

router = APIRouter(tags=["charts"])


def get_chart_service(
    session: AsyncSession = Depends(get_session),
    worker: DeliveryScheduler = Depends(get_delivery_scheduler),
) -> ChartService:
    return ChartService(session, worker)


def serialize_chart(record: ChartRecord) -> Dict[str, Any]:
    chart = record.chart
    return {
        "uuid": chart.saved_query_uuid,
        "name": chart.name,
        "description": chart.description,
        "slug": chart.slug,
        "chartKind": chart.chart_kind,
        "spaceUuid": record.space.space_uuid,
        "spaceName": record.space.name,
        "dashboardUuid": chart.dashboard_uuid,
        "projectUuid": record.project.project_uuid,
        "updatedAt": chart.updated_at,
    }


@router.post("/projects/{project_uuid}/charts", status_code=201)
async def create_chart(
    project_uuid: str,
    body: ChartCreate,
    user: SessionUser = Depends(get_current_user),
    service: ChartService = Depends(get_chart_service),
):
    return ok(serialize_chart(await service.create(user, project_uuid, body.model_dump())))


@router.get("/charts/{chart_uuid}")
async def get_chart(
    chart_uuid: str,
    user: SessionUser = Depends(get_current_user),
    service: ChartService = Depends(get_chart_service),
):
    return ok(serialize_chart(await service.get(user, chart_uuid)))


@router.patch("/charts/{chart_uuid}")
async def update_chart(
    chart_uuid: str,
    body: ChartUpdate,
    user: SessionUser = Depends(get_current_user),
    service: ChartService = Depends(get_chart_service),
):
    record = await service.update(user, chart_uuid, body.model_dump(exclude_unset=True))
    return ok(serialize_chart(record))


@router.delete("/charts/{chart_uuid}")
async def delete_chart(
    chart_uuid: str,
    user: SessionUser = Depends(get_current_user),
    service: ChartService = Depends(get_chart_service),
):
    await service.delete(user, chart_uuid)
    return ok()
