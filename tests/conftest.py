from __future__ import annotations

import os
from types import SimpleNamespace

os.environ.setdefault("DATABASE_URL_FALLBACK", "sqlite+aiosqlite://")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from backend.auth import load_session_user
from backend.database import Base
from backend.models import (
    Dashboard,
    Email,
    Organization,
    OrganizationMembership,
    Project,
    ProjectMembership,
    SavedQuery,
    Space,
    User,
    UserDashboardCategory,
)
from backend.scheduler import DeliveryScheduler


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


# =============================================================================
# Seed data
# =============================================================================
#
# Acme organization
#   Sales (customer use)             Ops
#     Main (public)                    Ops main (public)
#       Revenue  <- Revenue chart        Ops board
#       Churn
#       Sub (child space)
#     Secret (private)
#       Hidden
#
# Users: admin (org admin), editor (Sales editor), viewer (Sales + Ops viewer,
# mapped to Revenue), viewer_no_rows (Sales viewer, no mappings), member (org
# member only), outsider (no organization, no e-mail).


def _tile(chart_uuid=None, tile_type="saved_chart"):
    return {
        "uuid": f"tile-{chart_uuid or tile_type}",
        "type": tile_type,
        "tabUuid": None,
        "x": 0,
        "y": 0,
        "w": 6,
        "h": 3,
        "properties": {"savedChartUuid": chart_uuid} if chart_uuid else {},
    }


async def seed_world(session) -> SimpleNamespace:
    world = SimpleNamespace()

    world.org = Organization(organization_name="Acme")
    session.add(world.org)
    await session.flush()

    world.sales = Project(name="Sales", organization_id=world.org.organization_id, is_customer_use=True)
    world.ops = Project(name="Ops", organization_id=world.org.organization_id)
    session.add_all([world.sales, world.ops])
    await session.flush()

    async def make_user(first_name, email=None, org_role="member", memberships=()):
        user = User(first_name=first_name, last_name="Test")
        session.add(user)
        await session.flush()
        if email:
            session.add(Email(user_id=user.user_id, email=email, is_primary=True, is_verified=True))
        if org_role:
            session.add(
                OrganizationMembership(
                    organization_id=world.org.organization_id, user_id=user.user_id, role=org_role
                )
            )
        for project, role in memberships:
            session.add(ProjectMembership(project_id=project.project_id, user_id=user.user_id, role=role))
        return user

    world.admin = await make_user("Ada", "admin@example.com", org_role="admin")
    world.editor = await make_user("Ed", "editor@example.com", memberships=[(world.sales, "editor")])
    world.viewer = await make_user(
        "Vi",
        "13800000001@example.com",
        memberships=[(world.sales, "viewer"), (world.ops, "viewer")],
    )
    world.viewer_no_rows = await make_user(
        "Nora", "13800000002@example.com", memberships=[(world.sales, "viewer")]
    )
    world.member = await make_user("Mo", "member@example.com")
    world.outsider = await make_user("Otto", org_role=None)

    world.main = Space(name="Main", project_id=world.sales.project_id)
    world.secret = Space(name="Secret", project_id=world.sales.project_id, is_private=True)
    world.ops_main = Space(name="Ops main", project_id=world.ops.project_id)
    session.add_all([world.main, world.secret, world.ops_main])
    await session.flush()
    world.sub = Space(name="Sub", project_id=world.sales.project_id, parent_space_uuid=world.main.space_uuid)
    session.add(world.sub)

    world.revenue_chart = SavedQuery(
        name="Revenue chart",
        description="Monthly revenue",
        slug="revenue-chart",
        chart_kind="line",
        space_id=world.main.space_id,
    )
    session.add(world.revenue_chart)
    await session.flush()

    world.revenue = Dashboard(
        name="Revenue",
        slug="revenue",
        space_id=world.main.space_id,
        tabs=[],
        tiles=[_tile(world.revenue_chart.saved_query_uuid), _tile(tile_type="markdown")],
    )
    world.churn = Dashboard(name="Churn", slug="churn", space_id=world.main.space_id, tiles=[], tabs=[])
    world.hidden = Dashboard(name="Hidden", slug="hidden", space_id=world.secret.space_id, tiles=[], tabs=[])
    world.ops_board = Dashboard(name="Ops board", slug="ops-board", space_id=world.ops_main.space_id, tiles=[], tabs=[])
    session.add_all([world.revenue, world.churn, world.hidden, world.ops_board])
    await session.flush()

    world.viewer_category = UserDashboardCategory(
        id="udc-1",
        dashboard_id=world.revenue.dashboard_id,
        employee_id=7,
        dashboard_uuid=world.revenue.dashboard_uuid,
        space_uuid=world.main.space_uuid,
        short_name="REV",
        email="13800000001@example.com",
        category_id="cat-1",
        category="Finance",
    )
    session.add(world.viewer_category)
    await session.commit()
    return world


@pytest.fixture
async def world(session):
    return await seed_world(session)


@pytest.fixture
def as_user(session):
    async def _as_user(user):
        return await load_session_user(session, user.user_uuid)

    return _as_user


@pytest.fixture
def worker(session_factory):
    worker = DeliveryScheduler(session_factory=session_factory)
    yield worker
    if worker.is_running:
        worker.stop()


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
async def client(session_factory, world, worker):
    from backend.app import app
    from backend.database import get_session
    from backend.scheduler import get_delivery_scheduler

    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_delivery_scheduler] = lambda: worker

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


@pytest.fixture
def override(client):
    """Swap a FastAPI dependency for a fixed value for the rest of the test."""
    from backend.app import app

    def _override(dependency, value):
        app.dependency_overrides[dependency] = lambda: value

    return _override
