"""
Background delivery worker for schedulers.

Runs inside the FastAPI process (ENABLE_SCHEDULER_WORKER=true).
Uses APScheduler to hold one cron job per enabled scheduler; each run:
    1. writes a ``started`` row to scheduler_log
    2. resolves the chart or dashboard being delivered
    3. writes ``completed`` (with the delivery summary) or ``error``

Outbound e-mail/Slack transport lives outside this service; the worker logs
the delivery and its recipients.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database import async_session
from backend.errors import NotFoundError
from backend.models import Dashboard, SavedQuery, Scheduler, SchedulerLog, new_uuid

logger = logging.getLogger(__name__)


def build_trigger(cron: str, timezone: Optional[str] = None) -> CronTrigger:
    """Raises ValueError (bad cron) or KeyError (unknown timezone)."""
    return CronTrigger.from_crontab(cron, timezone=timezone or "UTC")


async def build_delivery_summary(session: AsyncSession, scheduler: Scheduler) -> Dict[str, Any]:
    summary: Dict[str, Any] = {
        "schedulerName": scheduler.name,
        "format": scheduler.format,
        "targets": list(scheduler.targets or []),
    }
    if scheduler.saved_chart_uuid:
        chart = (
            await session.execute(
                select(SavedQuery).where(SavedQuery.saved_query_uuid == scheduler.saved_chart_uuid)
            )
        ).scalar_one_or_none()
        if chart is None:
            raise NotFoundError(f"Chart {scheduler.saved_chart_uuid} not found")
        summary.update(resourceType="chart", resourceUuid=chart.saved_query_uuid, resourceName=chart.name)
    else:
        dashboard = (
            await session.execute(
                select(Dashboard).where(Dashboard.dashboard_uuid == scheduler.dashboard_uuid)
            )
        ).scalar_one_or_none()
        if dashboard is None:
            raise NotFoundError(f"Dashboard {scheduler.dashboard_uuid} not found")
        summary.update(
            resourceType="dashboard",
            resourceUuid=dashboard.dashboard_uuid,
            resourceName=dashboard.name,
            tilesCount=len(dashboard.tiles or []),
        )
    return summary


async def _log_error(session: AsyncSession, scheduler_uuid: str, job_id: str, message: str):
    session.add(
        SchedulerLog(scheduler_uuid=scheduler_uuid, job_id=job_id, status="error", details={"error": message})
    )
    await session.commit()


async def run_delivery(session: AsyncSession, scheduler_uuid: str) -> Optional[Dict[str, Any]]:
    """Execute one delivery of ``scheduler_uuid`` and record it in scheduler_log."""
    scheduler = await session.get(Scheduler, scheduler_uuid)
    if scheduler is None:
        logger.warning("Scheduler %s no longer exists, skipping delivery", scheduler_uuid)
        return None

    job_id = new_uuid()
    session.add(SchedulerLog(scheduler_uuid=scheduler_uuid, job_id=job_id, status="started"))
    await session.commit()

    try:
        summary = await build_delivery_summary(session, scheduler)
    except NotFoundError as e:
        logger.warning("Delivery %s failed: %s", scheduler_uuid, e.message)
        await _log_error(session, scheduler_uuid, job_id, e.message)
        return None
    except Exception as e:
        await session.rollback()
        await _log_error(session, scheduler_uuid, job_id, str(e) or type(e).__name__)
        raise

    logger.info(
        "Delivering %s %s as %s to %d target(s)",
        summary["resourceType"],
        summary["resourceUuid"],
        scheduler.format,
        len(summary["targets"]),
    )
    session.add(
        SchedulerLog(scheduler_uuid=scheduler_uuid, job_id=job_id, status="completed", details=summary)
    )
    await session.commit()
    return summary


class DeliveryScheduler:
    """Cron jobs for enabled schedulers."""

    def __init__(self, session_factory: Callable[[], AsyncSession] = async_session):
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False
        self._session_factory = session_factory

    def start(self):
        """Start the APScheduler event-loop scheduler (jobs are added by load_jobs)."""
        self._scheduler = AsyncIOScheduler()
        self._scheduler.start()
        self._running = True
        logger.info("Delivery scheduler started")

    def stop(self):
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Delivery scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def load_jobs(self) -> int:
        async with self._session_factory() as session:
            schedulers = (
                await session.execute(select(Scheduler).where(Scheduler.enabled.is_(True)))
            ).scalars().all()
        for scheduler in schedulers:
            self.sync_job(scheduler)
        logger.info("Loaded %d scheduler job(s)", len(schedulers))
        return len(schedulers)

    def sync_job(self, scheduler: Scheduler):
        if not self._running:
            return
        if not scheduler.enabled:
            self.remove_job(scheduler.scheduler_uuid)
            return
        try:
            trigger = build_trigger(scheduler.cron, scheduler.timezone)
        except (ValueError, KeyError) as e:
            logger.warning("Invalid schedule for %s: %s", scheduler.scheduler_uuid, e)
            self.remove_job(scheduler.scheduler_uuid)
            return
        self._scheduler.add_job(
            self._run,
            trigger,
            args=[scheduler.scheduler_uuid],
            id=scheduler.scheduler_uuid,
            name=f"Scheduler delivery: {scheduler.name}",
            replace_existing=True,
        )

    def remove_job(self, scheduler_uuid: str):
        if self._running and self._scheduler.get_job(scheduler_uuid):
            self._scheduler.remove_job(scheduler_uuid)

    async def _run(self, scheduler_uuid: str):
        async with self._session_factory() as session:
            try:
                await run_delivery(session, scheduler_uuid)
            except Exception:
                logger.exception("Delivery %s crashed", scheduler_uuid)


_delivery_scheduler: Optional[DeliveryScheduler] = None


def get_delivery_scheduler() -> DeliveryScheduler:
    """Get or create the global scheduler singleton."""
    global _delivery_scheduler
    if _delivery_scheduler is None:
        _delivery_scheduler = DeliveryScheduler()
    return _delivery_scheduler
