"""Scheduler CRUD for recurring chart/dashboard deliveries."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser
from backend.errors import NotFoundError, ParameterError
from backend.models import Dashboard, SavedQuery, Scheduler, SchedulerLog, Space, new_uuid
from backend.scheduler import DeliveryScheduler, build_trigger, get_delivery_scheduler, run_delivery
from backend.services.access import ProjectAccess, require_project_access

logger = logging.getLogger(__name__)

SCHEDULER_FORMATS = ("csv", "xlsx", "image", "pdf")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_cron(cron: str, timezone: Optional[str] = None) -> None:
    try:
        build_trigger(cron, timezone)
    except (ValueError, KeyError) as e:
        raise ParameterError(f"Invalid cron expression or timezone: {e}") from e


def validate_targets(targets: List[str]) -> List[str]:
    cleaned = []
    for target in targets:
        target = target.strip()
        if not _EMAIL_RE.match(target):
            raise ParameterError(f"Invalid email target: {target}")
        if target not in cleaned:
            cleaned.append(target)
    return cleaned


async def delete_schedulers_for(
    session: AsyncSession,
    dashboard_uuids: Iterable[str] = (),
    chart_uuids: Iterable[str] = (),
) -> List[str]:
    """Delete the schedulers (and their logs) delivering any of the given
    dashboards or charts. Returns their uuids; the caller commits and drops
    the worker jobs.
    """
    conditions = []
    dashboard_uuids = list(dashboard_uuids)
    chart_uuids = list(chart_uuids)
    if dashboard_uuids:
        conditions.append(Scheduler.dashboard_uuid.in_(dashboard_uuids))
    if chart_uuids:
        conditions.append(Scheduler.saved_chart_uuid.in_(chart_uuids))
    if not conditions:
        return []

    scheduler_uuids = list(
        (await session.execute(select(Scheduler.scheduler_uuid).where(or_(*conditions)))).scalars().all()
    )
    if scheduler_uuids:
        await session.execute(delete(SchedulerLog).where(SchedulerLog.scheduler_uuid.in_(scheduler_uuids)))
        await session.execute(delete(Scheduler).where(Scheduler.scheduler_uuid.in_(scheduler_uuids)))
    return scheduler_uuids


class SchedulerService:
    def __init__(self, session: AsyncSession, worker: Optional[DeliveryScheduler] = None):
        self.session = session
        self.worker = worker or get_delivery_scheduler()

    async def _access_for(self, user: SessionUser, scheduler: Scheduler, manage: bool) -> ProjectAccess:
        return await require_project_access(self.session, user, scheduler.project_uuid, manage=manage)

    async def _get(self, scheduler_uuid: str) -> Scheduler:
        scheduler = await self.session.get(Scheduler, scheduler_uuid)
        if scheduler is None:
            raise NotFoundError(f"Scheduler {scheduler_uuid} not found")
        return scheduler

    async def _check_resource(self, project_id: int, saved_chart_uuid: Optional[str], dashboard_uuid: Optional[str]):
        if bool(saved_chart_uuid) == bool(dashboard_uuid):
            raise ParameterError("A scheduler must target exactly one of a chart or a dashboard")
        if saved_chart_uuid:
            # space charts, or charts owned by a dashboard of the project
            space_ids = select(Space.space_id).where(Space.project_id == project_id)
            dashboard_uuids = select(Dashboard.dashboard_uuid).where(Dashboard.space_id.in_(space_ids))
            stmt = (
                select(SavedQuery.saved_query_uuid)
                .where(SavedQuery.saved_query_uuid == saved_chart_uuid)
                .where(or_(SavedQuery.space_id.in_(space_ids), SavedQuery.dashboard_uuid.in_(dashboard_uuids)))
            )
            what = f"Chart {saved_chart_uuid}"
        else:
            stmt = (
                select(Dashboard.dashboard_uuid)
                .join(Space, Space.space_id == Dashboard.space_id)
                .where(Dashboard.dashboard_uuid == dashboard_uuid)
                .where(Space.project_id == project_id)
            )
            what = f"Dashboard {dashboard_uuid}"
        if (await self.session.execute(stmt)).scalar_one_or_none() is None:
            raise NotFoundError(f"{what} not found in this project")

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def list_for_project(self, user: SessionUser, project_uuid: str) -> List[Scheduler]:
        await require_project_access(self.session, user, project_uuid)
        rows = await self.session.execute(
            select(Scheduler)
            .where(Scheduler.project_uuid == project_uuid)
            .order_by(Scheduler.created_at, Scheduler.name)
        )
        return list(rows.scalars().all())

    async def get(self, user: SessionUser, scheduler_uuid: str) -> Scheduler:
        scheduler = await self._get(scheduler_uuid)
        await self._access_for(user, scheduler, manage=False)
        return scheduler

    async def get_logs(self, user: SessionUser, scheduler_uuid: str, limit: int = 50) -> List[SchedulerLog]:
        scheduler = await self.get(user, scheduler_uuid)
        rows = await self.session.execute(
            select(SchedulerLog)
            .where(SchedulerLog.scheduler_uuid == scheduler.scheduler_uuid)
            .order_by(SchedulerLog.created_at.desc(), SchedulerLog.id.desc())
            .limit(limit)
        )
        return list(rows.scalars().all())

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def create(self, user: SessionUser, project_uuid: str, data: Dict[str, Any]) -> Scheduler:
        access = await require_project_access(self.session, user, project_uuid, manage=True)
        if data.get("format", "csv") not in SCHEDULER_FORMATS:
            raise ParameterError(f"Unsupported format: {data.get('format')}")
        validate_cron(data["cron"], data.get("timezone"))
        await self._check_resource(
            access.project.project_id, data.get("saved_chart_uuid"), data.get("dashboard_uuid")
        )

        scheduler = Scheduler(
            scheduler_uuid=new_uuid(),
            project_uuid=project_uuid,
            name=data["name"],
            cron=data["cron"],
            timezone=data.get("timezone"),
            format=data.get("format", "csv"),
            saved_chart_uuid=data.get("saved_chart_uuid"),
            dashboard_uuid=data.get("dashboard_uuid"),
            targets=validate_targets(data.get("targets") or []),
            enabled=data.get("enabled", True),
            created_by=user.user_uuid,
        )
        self.session.add(scheduler)
        await self.session.commit()
        self.worker.sync_job(scheduler)
        logger.info(
            "scheduler.created",
            extra={"event": "scheduler.created", "userId": user.user_uuid, "schedulerId": scheduler.scheduler_uuid},
        )
        return scheduler

    async def update(self, user: SessionUser, scheduler_uuid: str, data: Dict[str, Any]) -> Scheduler:
        scheduler = await self._get(scheduler_uuid)
        access = await self._access_for(user, scheduler, manage=True)

        if data.get("name"):
            scheduler.name = data["name"]
        if data.get("format"):
            if data["format"] not in SCHEDULER_FORMATS:
                raise ParameterError(f"Unsupported format: {data['format']}")
            scheduler.format = data["format"]
        if data.get("cron") or "timezone" in data:
            cron = data.get("cron") or scheduler.cron
            timezone = data["timezone"] if "timezone" in data else scheduler.timezone
            validate_cron(cron, timezone)
            scheduler.cron = cron
            scheduler.timezone = timezone
        if data.get("saved_chart_uuid") or data.get("dashboard_uuid"):
            await self._check_resource(
                access.project.project_id, data.get("saved_chart_uuid"), data.get("dashboard_uuid")
            )
            scheduler.saved_chart_uuid = data.get("saved_chart_uuid")
            scheduler.dashboard_uuid = data.get("dashboard_uuid")
        if data.get("targets") is not None:
            scheduler.targets = validate_targets(data["targets"])
        if data.get("enabled") is not None:
            scheduler.enabled = data["enabled"]

        await self.session.commit()
        self.worker.sync_job(scheduler)
        return scheduler

    async def set_enabled(self, user: SessionUser, scheduler_uuid: str, enabled: bool) -> Scheduler:
        return await self.update(user, scheduler_uuid, {"enabled": enabled})

    async def delete(self, user: SessionUser, scheduler_uuid: str) -> None:
        scheduler = await self._get(scheduler_uuid)
        await self._access_for(user, scheduler, manage=True)
        await self.session.execute(delete(SchedulerLog).where(SchedulerLog.scheduler_uuid == scheduler_uuid))
        await self.session.delete(scheduler)
        await self.session.commit()
        self.worker.remove_job(scheduler_uuid)
        logger.info(
            "scheduler.deleted",
            extra={"event": "scheduler.deleted", "userId": user.user_uuid, "schedulerId": scheduler_uuid},
        )

    async def send_now(self, user: SessionUser, scheduler_uuid: str) -> Optional[Dict[str, Any]]:
        scheduler = await self._get(scheduler_uuid)
        await self._access_for(user, scheduler, manage=True)
        return await run_delivery(self.session, scheduler_uuid)
