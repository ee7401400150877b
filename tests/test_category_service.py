"""CategoryService: category proxy and per-user dashboard sync."""

from __future__ import annotations

import pytest

from backend.errors import ParameterError
from backend.repositories import UserDashboardCategoryRepository
from backend.services.category_service import CategoryService, mobile_from_email
from config_env import AdminApiConfig
from services.category_rpc_client import CategoryRpcClient
from tests.helpers import rpc_transport

DASHBOARDS_BY_MOBILE = "winwin.report.ReportObj.findAllDashboardByMobile"


def test_mobile_from_email():
    assert mobile_from_email(" 13800000001@brandct.cn") == "13800000001"


async def test_sync_replaces_rows_with_known_dashboards(session, world, as_user):
    items = [
        {
            "dashboardUuid": world.revenue.dashboard_uuid,
            "dashboardId": "501",
            "employeeId": 7,
            "shortName": "REV",
            "categoryId": "cat-1",
            "category": "Finance 2",
        },
        {
            "dashboardUuid": world.churn.dashboard_uuid,
            "employeeId": "8",
            "shortName": "CH",
            "categoryId": "cat-2",
            "category": "Retention",
        },
        {"dashboardUuid": "not-here", "categoryId": "cat-3", "category": "Ghost"},
    ]
    transport = rpc_transport({DASHBOARDS_BY_MOBILE: items})
    rpc = CategoryRpcClient(AdminApiConfig(host="http://admin.test", api_key="k"), transport=transport)
    viewer = await as_user(world.viewer)

    rows = await CategoryService(session, rpc).sync_user_dashboards(viewer)

    assert transport.calls[0]["body"]["params"] == ["13800000001"]
    assert len(rows) == 2
    stored = {
        row.category_id: row
        for row in await UserDashboardCategoryRepository(session).find(email=viewer.email)
    }
    assert set(stored) == {"cat-1", "cat-2"}
    assert stored["cat-1"].id == "udc-1"
    assert stored["cat-1"].category == "Finance 2"
    assert stored["cat-1"].dashboard_id == 501
    assert stored["cat-2"].dashboard_id == world.churn.dashboard_id
    assert stored["cat-2"].employee_id == 8
    assert stored["cat-2"].space_uuid == world.main.space_uuid


async def test_sync_requires_email(session, world, as_user):
    rpc = CategoryRpcClient(AdminApiConfig(host="http://admin.test", api_key="k"), transport=rpc_transport())
    outsider = await as_user(world.outsider)
    with pytest.raises(ParameterError):
        await CategoryService(session, rpc).sync_user_dashboards(outsider)
