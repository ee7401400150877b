"""DashboardService: viewer category filtering, CRUD, tabs and tiles."""

from __future__ import annotations

import logging

import pytest
from sqlalchemy import select

from backend.errors import ForbiddenError, NotFoundError, ParameterError
from backend.models import Email, SavedQuery, Scheduler, UserDashboardCategory
from backend.services.dashboard_service import DashboardService, slugify
from backend.services.scheduler_service import SchedulerService


def names(records):
    return [record.dashboard.name for record in records]


# =============================================================================
# Viewer filtering
# =============================================================================


async def test_viewer_in_customer_use_project_sees_only_mapped_dashboards(session, world, as_user):
    viewer = await as_user(world.viewer)
    records = await DashboardService(session).get_all_by_project(viewer, world.sales.project_uuid)
    assert names(records) == ["Revenue"]


async def test_viewer_without_mappings_sees_nothing(session, world, as_user):
    viewer = await as_user(world.viewer_no_rows)
    service = DashboardService(session)

    assert await service.get_allowed_dashboard_uuids_for_viewer(viewer, world.sales.project_uuid) == set()
    assert await service.get_all_by_project(viewer, world.sales.project_uuid) == []


async def test_viewer_in_regular_project_is_not_filtered(session, world, as_user):
    viewer = await as_user(world.viewer)
    service = DashboardService(session)

    assert await service.get_allowed_dashboard_uuids_for_viewer(viewer, world.ops.project_uuid) is None
    assert names(await service.get_all_by_project(viewer, world.ops.project_uuid)) == ["Ops board"]


async def test_editor_is_not_filtered(session, world, as_user):
    editor = await as_user(world.editor)
    service = DashboardService(session)

    assert await service.get_allowed_dashboard_uuids_for_viewer(editor, world.sales.project_uuid) is None
    assert names(await service.get_all_by_project(editor, world.sales.project_uuid)) == ["Churn", "Revenue"]


async def test_allowed_set_is_none_for_unknown_project(session, world, as_user):
    viewer = await as_user(world.viewer)
    assert await DashboardService(session).get_allowed_dashboard_uuids_for_viewer(viewer, "missing") is None


async def test_viewer_email_is_matched_case_insensitively(session, world, as_user):
    email = (
        await session.execute(select(Email).where(Email.user_id == world.viewer_no_rows.user_id))
    ).scalar_one()
    email.email = " 13800000002@Example.COM"
    world.viewer_category.email = "13800000002@example.com"
    await session.commit()
    viewer = await as_user(world.viewer_no_rows)

    allowed = await DashboardService(session).get_allowed_dashboard_uuids_for_viewer(
        viewer, world.sales.project_uuid
    )
    assert allowed == {world.revenue.dashboard_uuid}


async def test_admin_sees_private_spaces_only_when_asked(session, world, as_user):
    admin = await as_user(world.admin)
    service = DashboardService(session)

    assert names(await service.get_all_by_project(admin, world.sales.project_uuid)) == ["Churn", "Revenue"]
    assert names(
        await service.get_all_by_project(admin, world.sales.project_uuid, include_private=True)
    ) == ["Churn", "Hidden", "Revenue"]


async def test_filter_by_chart(session, world, as_user):
    editor = await as_user(world.editor)
    records = await DashboardService(session).get_all_by_project(
        editor, world.sales.project_uuid, chart_uuid=world.revenue_chart.saved_query_uuid
    )
    assert names(records) == ["Revenue"]


async def test_unknown_project_raises(session, world, as_user):
    editor = await as_user(world.editor)
    with pytest.raises(NotFoundError):
        await DashboardService(session).get_all_by_project(editor, "missing")


# =============================================================================
# Get by id or slug
# =============================================================================


async def test_get_by_slug(session, world, as_user):
    viewer = await as_user(world.viewer)
    record = await DashboardService(session).get_by_id_or_slug(viewer, "revenue")
    assert record.dashboard.dashboard_uuid == world.revenue.dashboard_uuid
    assert record.project.project_uuid == world.sales.project_uuid


async def test_get_unmapped_dashboard_as_viewer_is_forbidden(session, world, as_user):
    viewer = await as_user(world.viewer)
    with pytest.raises(ForbiddenError):
        await DashboardService(session).get_by_id_or_slug(viewer, world.churn.dashboard_uuid)


async def test_get_private_dashboard_as_editor_is_forbidden(session, world, as_user):
    editor = await as_user(world.editor)
    with pytest.raises(ForbiddenError):
        await DashboardService(session).get_by_id_or_slug(editor, world.hidden.dashboard_uuid)


async def test_get_as_org_member_without_project_role_is_forbidden(session, world, as_user):
    member = await as_user(world.member)
    with pytest.raises(ForbiddenError):
        await DashboardService(session).get_by_id_or_slug(member, world.churn.dashboard_uuid)


async def test_get_missing_dashboard(session, world, as_user):
    editor = await as_user(world.editor)
    with pytest.raises(NotFoundError):
        await DashboardService(session).get_by_id_or_slug(editor, "no-such-dashboard")


# =============================================================================
# Create / update / delete
# =============================================================================


def test_slugify():
    assert slugify("  Revenue by Month! ") == "revenue-by-month"
    assert slugify("***") == "dashboard"


async def test_create_generates_unique_slug_and_default_space(session, world, as_user):
    editor = await as_user(world.editor)
    record = await DashboardService(session).create(
        editor, world.sales.project_uuid, {"name": "Revenue", "tiles": [{"type": "markdown"}]}
    )

    assert record.dashboard.slug == "revenue-1"
    assert record.space.space_uuid == world.main.space_uuid
    assert record.dashboard.created_by_user_uuid == world.editor.user_uuid
    assert record.dashboard.tiles[0]["tabUuid"] is None


async def test_create_requires_manage_rights(session, world, as_user):
    viewer = await as_user(world.viewer)
    with pytest.raises(ForbiddenError):
        await DashboardService(session).create(viewer, world.sales.project_uuid, {"name": "Nope"})


async def test_create_rejects_unknown_tile_type(session, world, as_user):
    editor = await as_user(world.editor)
    with pytest.raises(ParameterError):
        await DashboardService(session).create(
            editor, world.sales.project_uuid, {"name": "Bad", "tiles": [{"type": "iframe"}]}
        )


async def test_tiles_land_on_first_tab_and_must_reference_known_tabs(session, world, as_user):
    editor = await as_user(world.editor)
    service = DashboardService(session)
    record = await service.create(
        editor,
        world.sales.project_uuid,
        {
            "name": "Tabbed",
            "tabs": [{"uuid": "tab-a", "name": "A"}, {"uuid": "tab-b", "name": "B"}],
            "tiles": [{"type": "markdown"}, {"type": "loom", "tabUuid": "tab-b"}],
        },
    )
    assert [tile["tabUuid"] for tile in record.dashboard.tiles] == ["tab-a", "tab-b"]

    with pytest.raises(ParameterError):
        await service.update(
            editor,
            record.dashboard.dashboard_uuid,
            {"tiles": [{"type": "markdown", "tabUuid": "tab-z"}]},
        )


async def test_update_renames_and_drops_tiles_of_removed_tabs(session, world, as_user):
    editor = await as_user(world.editor)
    service = DashboardService(session)
    record = await service.create(
        editor,
        world.sales.project_uuid,
        {
            "name": "Tabbed",
            "tabs": [{"uuid": "tab-a", "name": "A"}, {"uuid": "tab-b", "name": "B"}],
            "tiles": [{"type": "markdown", "tabUuid": "tab-a"}, {"type": "loom", "tabUuid": "tab-b"}],
        },
    )

    updated = await service.update(
        editor,
        record.dashboard.dashboard_uuid,
        {"name": "Renamed", "tabs": [{"uuid": "tab-b", "name": "B"}]},
    )
    assert updated.dashboard.name == "Renamed"
    assert [tab.uuid for tab in updated.dashboard.tabs] == ["tab-b"]
    assert [tile["type"] for tile in updated.dashboard.tiles] == ["loom"]


async def test_update_with_first_tabs_keeps_untabbed_tiles(session, world, as_user):
    editor = await as_user(world.editor)
    record = await DashboardService(session).update(
        editor, world.revenue.dashboard_uuid, {"tabs": [{"name": "First"}, {"name": "Second"}]}
    )

    first = record.dashboard.tabs[0]
    assert first.name == "First"
    assert len(record.dashboard.tiles) == 2
    assert {tile["tabUuid"] for tile in record.dashboard.tiles} == {first.uuid}


async def test_update_removing_every_tab_keeps_tiles(session, world, as_user):
    editor = await as_user(world.editor)
    service = DashboardService(session)
    await service.add_tab(editor, world.revenue.dashboard_uuid, "Only")

    record = await service.update(editor, world.revenue.dashboard_uuid, {"tabs": []})
    assert record.dashboard.tabs == []
    assert [tile["tabUuid"] for tile in record.dashboard.tiles] == [None, None]


async def test_delete_removes_owned_charts_and_category_rows(session, world, as_user):
    editor = await as_user(world.editor)
    owned = SavedQuery(name="Owned", dashboard_uuid=world.revenue.dashboard_uuid)
    session.add(owned)
    await session.commit()

    await DashboardService(session).delete(editor, world.revenue.dashboard_uuid)

    remaining_charts = (await session.execute(select(SavedQuery.name))).scalars().all()
    assert remaining_charts == ["Revenue chart"]
    categories = (await session.execute(select(UserDashboardCategory))).scalars().all()
    assert categories == []
    with pytest.raises(NotFoundError):
        await DashboardService(session).get_by_id_or_slug(editor, "revenue")


async def test_delete_requires_manage_rights(session, world, as_user):
    viewer = await as_user(world.viewer)
    with pytest.raises(ForbiddenError):
        await DashboardService(session).delete(viewer, world.revenue.dashboard_uuid)


async def test_delete_unschedules_deliveries(session, world, as_user, worker):
    editor = await as_user(world.editor)
    owned = SavedQuery(name="Owned", dashboard_uuid=world.revenue.dashboard_uuid)
    session.add(owned)
    await session.commit()

    worker.start()
    schedulers = SchedulerService(session, worker)
    base = {"cron": "0 9 * * *", "targets": ["a@example.com"]}
    on_dashboard = await schedulers.create(
        editor, world.sales.project_uuid, {**base, "name": "Board", "dashboard_uuid": world.revenue.dashboard_uuid}
    )
    on_owned_chart = await schedulers.create(
        editor, world.sales.project_uuid, {**base, "name": "Owned", "saved_chart_uuid": owned.saved_query_uuid}
    )
    await schedulers.send_now(editor, on_dashboard.scheduler_uuid)

    await DashboardService(session, worker).delete(editor, world.revenue.dashboard_uuid)

    assert worker._scheduler.get_job(on_dashboard.scheduler_uuid) is None
    assert worker._scheduler.get_job(on_owned_chart.scheduler_uuid) is None
    assert (await session.execute(select(Scheduler))).scalars().all() == []


# =============================================================================
# Tabs & tiles
# =============================================================================


async def test_first_tab_adopts_existing_tiles(session, world, as_user):
    editor = await as_user(world.editor)
    tab = await DashboardService(session).add_tab(editor, world.revenue.dashboard_uuid, "Overview")

    assert tab.order == 0
    assert {tile["tabUuid"] for tile in world.revenue.tiles} == {tab.uuid}


async def test_rename_tab(session, world, as_user):
    editor = await as_user(world.editor)
    service = DashboardService(session)
    tab = await service.add_tab(editor, world.churn.dashboard_uuid, "Old")

    renamed = await service.rename_tab(editor, world.churn.dashboard_uuid, tab.uuid, "New")
    assert renamed.name == "New"

    with pytest.raises(NotFoundError):
        await service.rename_tab(editor, world.churn.dashboard_uuid, "missing", "New")


async def test_delete_tab_removes_its_tiles_and_last_tab_keeps_tiles(session, world, as_user):
    editor = await as_user(world.editor)
    service = DashboardService(session)
    dashboard_uuid = world.revenue.dashboard_uuid
    first = await service.add_tab(editor, dashboard_uuid, "First")
    second = await service.add_tab(editor, dashboard_uuid, "Second")

    chart_tile_uuid = world.revenue.tiles[0]["uuid"]
    await service.move_tile_to_tab(editor, dashboard_uuid, chart_tile_uuid, second.uuid)

    record = await service.delete_tab(editor, dashboard_uuid, first.uuid)
    assert [tab.uuid for tab in record.dashboard.tabs] == [second.uuid]
    assert record.dashboard.tabs[0].order == 0
    assert [tile["uuid"] for tile in record.dashboard.tiles] == [chart_tile_uuid]

    record = await service.delete_tab(editor, dashboard_uuid, second.uuid)
    assert record.dashboard.tabs == []
    assert [tile["tabUuid"] for tile in record.dashboard.tiles] == [None]


async def test_move_unknown_tile(session, world, as_user):
    editor = await as_user(world.editor)
    service = DashboardService(session)
    tab = await service.add_tab(editor, world.revenue.dashboard_uuid, "Tab")

    with pytest.raises(NotFoundError):
        await service.move_tile_to_tab(editor, world.revenue.dashboard_uuid, "no-tile", tab.uuid)


def test_create_event_properties_count_tiles(world):
    from backend.services.dashboard_service import DashboardRecord

    props = DashboardService.get_create_event_properties(
        DashboardRecord(world.revenue, world.main, world.sales)
    )
    assert props["tilesCount"] == 2
    assert props["chartTilesCount"] == 1
    assert props["markdownTilesCount"] == 1
    assert props["tabsCount"] == 0


# =============================================================================
# Duplicate, move & bulk updates
# =============================================================================


async def test_duplicate_copies_tabs_and_owned_charts(session, world, as_user):
    editor = await as_user(world.editor)
    service = DashboardService(session)
    owned = SavedQuery(name="Owned", chart_kind="bar", dashboard_uuid=world.revenue.dashboard_uuid)
    session.add(owned)
    await session.commit()
    await service.update(
        editor,
        world.revenue.dashboard_uuid,
        {
            "tabs": [{"uuid": "tab-a", "name": "A"}, {"uuid": "tab-b", "name": "B"}],
            "tiles": list(world.revenue.tiles)
            + [{"type": "saved_chart", "tabUuid": "tab-b", "properties": {"savedChartUuid": owned.saved_query_uuid}}],
        },
    )

    copy = await service.duplicate(editor, world.revenue.dashboard_uuid)

    dashboard = copy.dashboard
    assert dashboard.name == "Copy of Revenue"
    assert dashboard.slug == "copy-of-revenue"
    assert dashboard.dashboard_uuid != world.revenue.dashboard_uuid
    assert copy.space.space_uuid == world.main.space_uuid
    assert [tab.name for tab in dashboard.tabs] == ["A", "B"]
    new_tabs = [tab.uuid for tab in dashboard.tabs]
    assert not set(new_tabs) & {"tab-a", "tab-b"}
    assert [tile["tabUuid"] for tile in dashboard.tiles] == [new_tabs[0], new_tabs[0], new_tabs[1]]

    copied_chart = (
        await session.execute(select(SavedQuery).where(SavedQuery.dashboard_uuid == dashboard.dashboard_uuid))
    ).scalar_one()
    assert copied_chart.name == "Owned"
    assert copied_chart.chart_kind == "bar"
    chart_refs = DashboardService.find_charts_in_tiles(dashboard.tiles)
    # space charts are shared, owned charts are copied
    assert chart_refs == [world.revenue_chart.saved_query_uuid, copied_chart.saved_query_uuid]


async def test_duplicate_with_name_and_rights(session, world, as_user):
    editor = await as_user(world.editor)
    copy = await DashboardService(session).duplicate(
        editor, world.churn.dashboard_uuid, {"name": "Churn 2", "description": "Second"}
    )
    assert (copy.dashboard.name, copy.dashboard.description) == ("Churn 2", "Second")

    viewer = await as_user(world.viewer)
    with pytest.raises(ForbiddenError):
        await DashboardService(session).duplicate(viewer, world.revenue.dashboard_uuid)


async def test_move_to_space_tracks_event(session, world, as_user, caplog):
    editor = await as_user(world.editor)
    with caplog.at_level(logging.INFO, logger="backend.services.dashboard_service"):
        record = await DashboardService(session).move_to_space(
            editor, world.churn.dashboard_uuid, world.sub.space_uuid
        )

    assert record.space.space_uuid == world.sub.space_uuid
    assert world.churn.space_id == world.sub.space_id
    moved = next(r for r in caplog.records if r.getMessage() == "dashboard.moved")
    assert moved.dashboardId == world.churn.dashboard_uuid
    assert moved.targetSpaceId == world.sub.space_uuid
    assert moved.projectId == world.sales.project_uuid


async def test_move_to_space_rejects_missing_and_hidden_spaces(session, world, as_user):
    editor = await as_user(world.editor)
    service = DashboardService(session)
    with pytest.raises(ParameterError):
        await service.move_to_space(editor, world.churn.dashboard_uuid, None)
    with pytest.raises(ForbiddenError):
        await service.move_to_space(editor, world.churn.dashboard_uuid, world.secret.space_uuid)
    with pytest.raises(NotFoundError):
        await service.move_to_space(editor, world.churn.dashboard_uuid, world.ops_main.space_uuid)


async def test_update_multiple(session, world, as_user):
    admin = await as_user(world.admin)
    service = DashboardService(session)
    records = await service.update_multiple(
        admin,
        world.sales.project_uuid,
        [
            {"uuid": world.revenue.dashboard_uuid, "name": "Revenue 2026"},
            {"uuid": world.churn.dashboard_uuid, "space_uuid": world.sub.space_uuid},
        ],
    )
    assert [r.dashboard.name for r in records] == ["Revenue 2026", "Churn"]
    assert records[1].space.space_uuid == world.sub.space_uuid

    with pytest.raises(NotFoundError):
        await service.update_multiple(
            admin, world.sales.project_uuid, [{"uuid": world.ops_board.dashboard_uuid, "name": "x"}]
        )


async def test_create_with_charts_lays_out_two_columns(session, world, as_user):
    editor = await as_user(world.editor)
    record = await DashboardService(session).create_with_charts(
        editor,
        world.sales.project_uuid,
        {"name": "Funnel", "charts": [{"name": "Visits"}, {"name": "Signups"}, {"name": "Visits"}]},
    )

    charts = (
        await session.execute(
            select(SavedQuery)
            .where(SavedQuery.dashboard_uuid == record.dashboard.dashboard_uuid)
            .order_by(SavedQuery.saved_query_id)
        )
    ).scalars().all()
    assert [c.slug for c in charts] == ["visits", "signups", "visits-1"]
    tiles = record.dashboard.tiles
    assert [(t["x"], t["y"]) for t in tiles] == [(0, 0), (6, 0), (0, 3)]
    assert DashboardService.find_charts_in_tiles(tiles) == [c.saved_query_uuid for c in charts]
