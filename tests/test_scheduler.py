"""Scheduler validation, SchedulerService CRUD and the delivery worker."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from backend.errors import ForbiddenError, NotFoundError, ParameterError
from backend.models import Scheduler, SchedulerLog
import backend.scheduler
from backend.scheduler import run_delivery
from backend.services.scheduler_service import SchedulerService, validate_cron, validate_targets


@pytest.fixture
def chart_scheduler_data(world):
    return {
        "name": "Weekly revenue",
        "cron": "0 9 * * 1",
        "timezone": "Asia/Shanghai",
        "format": "csv",
        "saved_chart_uuid": world.revenue_chart.saved_query_uuid,
        "targets": ["a@example.com", " a@example.com", "b@example.com"],
    }


# =============================================================================
# Validation
# =============================================================================


@pytest.mark.parametrize("cron", ["not a cron", "61 * * * *", "* * *"])
def test_validate_cron_rejects_bad_expressions(cron):
    with pytest.raises(ParameterError):
        validate_cron(cron)


def test_validate_cron_rejects_unknown_timezone():
    with pytest.raises(ParameterError):
        validate_cron("0 9 * * *", "Mars/Olympus_Mons")


def test_validate_cron_accepts_valid_expression():
    validate_cron("*/15 8-18 * * mon-fri", "Europe/Berlin")


def test_validate_targets_dedupes_and_rejects_non_emails():
    assert validate_targets(["a@x.io", " a@x.io ", "b@x.io"]) == ["a@x.io", "b@x.io"]
    with pytest.raises(ParameterError):
        validate_targets(["not-an-email"])


# =============================================================================
# SchedulerService
# =============================================================================


async def test_create_and_list(session, world, as_user, worker, chart_scheduler_data):
    editor = await as_user(world.editor)
    service = SchedulerService(session, worker)

    scheduler = await service.create(editor, world.sales.project_uuid, chart_scheduler_data)
    assert scheduler.targets == ["a@example.com", "b@example.com"]
    assert scheduler.created_by == world.editor.user_uuid

    viewer = await as_user(world.viewer)
    listed = await service.list_for_project(viewer, world.sales.project_uuid)
    assert [s.scheduler_uuid for s in listed] == [scheduler.scheduler_uuid]


async def test_create_requires_manage_rights(session, world, as_user, worker, chart_scheduler_data):
    viewer = await as_user(world.viewer)
    with pytest.raises(ForbiddenError):
        await SchedulerService(session, worker).create(viewer, world.sales.project_uuid, chart_scheduler_data)


async def test_create_requires_exactly_one_target_resource(session, world, as_user, worker, chart_scheduler_data):
    editor = await as_user(world.editor)
    service = SchedulerService(session, worker)

    with pytest.raises(ParameterError):
        await service.create(
            editor,
            world.sales.project_uuid,
            {**chart_scheduler_data, "dashboard_uuid": world.revenue.dashboard_uuid},
        )
    with pytest.raises(NotFoundError):
        await service.create(
            editor,
            world.sales.project_uuid,
            {**chart_scheduler_data, "saved_chart_uuid": None, "dashboard_uuid": world.ops_board.dashboard_uuid},
        )


async def test_update_validates_cron_and_toggles_enabled(session, world, as_user, worker, chart_scheduler_data):
    editor = await as_user(world.editor)
    service = SchedulerService(session, worker)
    scheduler = await service.create(editor, world.sales.project_uuid, chart_scheduler_data)

    with pytest.raises(ParameterError):
        await service.update(editor, scheduler.scheduler_uuid, {"cron": "bogus"})

    updated = await service.update(editor, scheduler.scheduler_uuid, {"cron": "30 7 * * *", "timezone": None})
    assert updated.cron == "30 7 * * *"
    assert updated.timezone is None

    disabled = await service.set_enabled(editor, scheduler.scheduler_uuid, False)
    assert disabled.enabled is False


async def test_send_now_writes_logs_and_delete_removes_them(session, world, as_user, worker, chart_scheduler_data):
    editor = await as_user(world.editor)
    service = SchedulerService(session, worker)
    scheduler = await service.create(editor, world.sales.project_uuid, chart_scheduler_data)

    summary = await service.send_now(editor, scheduler.scheduler_uuid)
    assert summary["resourceType"] == "chart"
    assert summary["resourceName"] == "Revenue chart"
    assert summary["targets"] == ["a@example.com", "b@example.com"]

    logs = await service.get_logs(editor, scheduler.scheduler_uuid)
    assert [log.status for log in logs] == ["completed", "started"]
    assert logs[0].job_id == logs[1].job_id

    await service.delete(editor, scheduler.scheduler_uuid)
    assert (await session.execute(select(SchedulerLog))).scalars().all() == []
    with pytest.raises(NotFoundError):
        await service.get(editor, scheduler.scheduler_uuid)


# =============================================================================
# Delivery worker
# =============================================================================


async def test_run_delivery_for_missing_scheduler(session):
    assert await run_delivery(session, "missing") is None


async def test_run_delivery_records_error_for_missing_dashboard(session, world):
    scheduler = Scheduler(
        project_uuid=world.sales.project_uuid,
        name="Broken",
        cron="0 9 * * *",
        dashboard_uuid="gone",
        targets=["a@example.com"],
        created_by=world.editor.user_uuid,
    )
    session.add(scheduler)
    await session.commit()

    assert await run_delivery(session, scheduler.scheduler_uuid) is None
    logs = (
        await session.execute(select(SchedulerLog).order_by(SchedulerLog.id))
    ).scalars().all()
    assert [log.status for log in logs] == ["started", "error"]
    assert logs[1].details == {"error": "Dashboard gone not found"}


async def test_run_delivery_records_error_for_unexpected_failure(session, world, monkeypatch):
    scheduler = Scheduler(
        project_uuid=world.sales.project_uuid,
        name="Flaky",
        cron="0 9 * * *",
        dashboard_uuid=world.revenue.dashboard_uuid,
        targets=["a@example.com"],
        created_by=world.editor.user_uuid,
    )
    session.add(scheduler)
    await session.commit()

    async def explode(session, scheduler):
        raise RuntimeError("renderer unavailable")

    monkeypatch.setattr(backend.scheduler, "build_delivery_summary", explode)

    with pytest.raises(RuntimeError):
        await run_delivery(session, scheduler.scheduler_uuid)
    logs = (
        await session.execute(select(SchedulerLog).order_by(SchedulerLog.id))
    ).scalars().all()
    assert [log.status for log in logs] == ["started", "error"]
    assert logs[1].details == {"error": "renderer unavailable"}
    assert logs[0].job_id == logs[1].job_id


async def test_run_delivery_dashboard_summary(session, world):
    scheduler = Scheduler(
        project_uuid=world.sales.project_uuid,
        name="Daily",
        cron="0 9 * * *",
        format="pdf",
        dashboard_uuid=world.revenue.dashboard_uuid,
        targets=[],
        created_by=world.editor.user_uuid,
    )
    session.add(scheduler)
    await session.commit()

    summary = await run_delivery(session, scheduler.scheduler_uuid)
    assert summary["resourceType"] == "dashboard"
    assert summary["tilesCount"] == 2
    assert summary["format"] == "pdf"


async def test_worker_syncs_jobs(session, world, worker):
    enabled = Scheduler(
        project_uuid=world.sales.project_uuid,
        name="On",
        cron="0 9 * * *",
        saved_chart_uuid=world.revenue_chart.saved_query_uuid,
        targets=[],
        created_by=world.editor.user_uuid,
    )
    disabled = Scheduler(
        project_uuid=world.sales.project_uuid,
        name="Off",
        cron="0 9 * * *",
        saved_chart_uuid=world.revenue_chart.saved_query_uuid,
        targets=[],
        enabled=False,
        created_by=world.editor.user_uuid,
    )
    session.add_all([enabled, disabled])
    await session.commit()

    worker.sync_job(enabled)
    assert worker._scheduler is None

    worker.start()
    try:
        assert await worker.load_jobs() == 1
        assert worker._scheduler.get_job(enabled.scheduler_uuid) is not None
        assert worker._scheduler.get_job(disabled.scheduler_uuid) is None

        enabled.enabled = False
        worker.sync_job(enabled)
        assert worker._scheduler.get_job(enabled.scheduler_uuid) is None
    finally:
        worker.stop()
    assert not worker.is_running
