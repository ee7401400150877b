"""
Project and space access rules.

Project role resolution, highest priority first:
    1. direct project membership
    2. group membership with access to the project
    3. organization role converted to a project role
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser
from backend.errors import ForbiddenError, NotFoundError
from backend.models import (
    GroupMembership,
    OrganizationMembership,
    Project,
    ProjectGroupAccess,
    ProjectMembership,
    Space,
    SpaceUserAccess,
)

PROJECT_ROLES = ("viewer", "interactive_viewer", "editor", "developer", "admin")
_ROLE_RANK = {role: rank for rank, role in enumerate(PROJECT_ROLES)}


def convert_organization_role_to_project_role(role: Optional[str]) -> Optional[str]:
    # "member" only grants access to the organization, not to its projects
    return role if role in _ROLE_RANK else None


def role_at_least(role: Optional[str], minimum: str) -> bool:
    if role not in _ROLE_RANK:
        return False
    return _ROLE_RANK[role] >= _ROLE_RANK[minimum]


def can_view_project(role: Optional[str]) -> bool:
    return role in _ROLE_RANK


def can_manage_content(role: Optional[str]) -> bool:
    return role_at_least(role, "editor")


def has_direct_access_to_space(space: Space, shared: bool) -> bool:
    return not space.is_private or shared


def can_view_space(space: Space, role: Optional[str], shared: bool) -> bool:
    if not can_view_project(role):
        return False
    return has_direct_access_to_space(space, shared) or role == "admin"


async def get_project(session: AsyncSession, project_uuid: str) -> Optional[Project]:
    return (
        await session.execute(select(Project).where(Project.project_uuid == project_uuid))
    ).scalar_one_or_none()


async def resolve_project_role(
    session: AsyncSession, user_id: int, project: Project
) -> Optional[str]:
    direct_role = (
        await session.execute(
            select(ProjectMembership.role)
            .where(ProjectMembership.project_id == project.project_id)
            .where(ProjectMembership.user_id == user_id)
            .limit(1)
        )
    ).scalar_one_or_none()
    if direct_role:
        return direct_role

    group_role = (
        await session.execute(
            select(ProjectGroupAccess.role)
            .join(GroupMembership, GroupMembership.group_uuid == ProjectGroupAccess.group_uuid)
            .where(GroupMembership.organization_id == project.organization_id)
            .where(GroupMembership.user_id == user_id)
            .where(ProjectGroupAccess.project_uuid == project.project_uuid)
            .limit(1)
        )
    ).scalar_one_or_none()
    if group_role:
        return group_role

    org_role = (
        await session.execute(
            select(OrganizationMembership.role)
            .where(OrganizationMembership.organization_id == project.organization_id)
            .where(OrganizationMembership.user_id == user_id)
            .limit(1)
        )
    ).scalar_one_or_none()
    return convert_organization_role_to_project_role(org_role)


async def get_shared_space_uuids(
    session: AsyncSession, user_uuid: str, space_uuids: Iterable[str]
) -> Set[str]:
    space_uuids = list(space_uuids)
    if not space_uuids:
        return set()
    rows = await session.execute(
        select(SpaceUserAccess.space_uuid)
        .where(SpaceUserAccess.user_uuid == user_uuid)
        .where(SpaceUserAccess.space_uuid.in_(space_uuids))
    )
    return set(rows.scalars().all())


@dataclass
class ProjectAccess:
    project: Project
    role: Optional[str]

    @property
    def can_view(self) -> bool:
        return can_view_project(self.role)

    @property
    def can_manage(self) -> bool:
        return can_manage_content(self.role)


async def get_project_access(
    session: AsyncSession, user: SessionUser, project_uuid: str
) -> ProjectAccess:
    project = await get_project(session, project_uuid)
    if project is None:
        raise NotFoundError(f"Project {project_uuid} not found")
    role = await resolve_project_role(session, user.user_id, project)
    return ProjectAccess(project=project, role=role)


async def require_project_access(
    session: AsyncSession, user: SessionUser, project_uuid: str, manage: bool = False
) -> ProjectAccess:
    access = await get_project_access(session, user, project_uuid)
    if not access.can_view or (manage and not access.can_manage):
        raise ForbiddenError()
    return access


async def project_roles_by_id(
    session: AsyncSession, user: SessionUser, projects: Iterable[Project]
) -> Dict[int, Optional[str]]:
    return {
        project.project_id: await resolve_project_role(session, user.user_id, project)
        for project in projects
    }


async def resolve_space(
    session: AsyncSession,
    user: SessionUser,
    project: Project,
    role: Optional[str],
    space_uuid: Optional[str],
) -> Space:
    """``space_uuid`` within ``project``, or the first space the user can view."""
    if space_uuid:
        space = (
            await session.execute(
                select(Space)
                .where(Space.space_uuid == space_uuid)
                .where(Space.project_id == project.project_id)
            )
        ).scalar_one_or_none()
        if space is None:
            raise NotFoundError(f"Space {space_uuid} not found")
        shared = await get_shared_space_uuids(session, user.user_uuid, [space.space_uuid])
        if not can_view_space(space, role, space.space_uuid in shared):
            raise ForbiddenError("You don't have access to this space")
        return space

    spaces = (
        await session.execute(
            select(Space)
            .where(Space.project_id == project.project_id)
            .order_by(Space.created_at, Space.space_id)
        )
    ).scalars().all()
    shared = await get_shared_space_uuids(session, user.user_uuid, [s.space_uuid for s in spaces])
    for space in spaces:
        if can_view_space(space, role, space.space_uuid in shared):
            return space
    raise NotFoundError("No accessible space found in this project")
