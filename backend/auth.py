"""
Session user resolution.

Login and sessions are handled by the fronting proxy, which forwards the
authenticated user's uuid in the ``X-User-Uuid`` header.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database import get_session
from backend.errors import AuthorizationError
from backend.models import Email, Organization, OrganizationMembership, User

USER_HEADER = "X-User-Uuid"


@dataclass(frozen=True)
class SessionUser:
    user_uuid: str
    user_id: int
    email: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    organization_uuid: Optional[str] = None
    organization_id: Optional[int] = None
    organization_role: Optional[str] = None
    is_trial_account: bool = False

    @property
    def has_organization(self) -> bool:
        return self.organization_uuid is not None


async def load_session_user(session: AsyncSession, user_uuid: str) -> Optional[SessionUser]:
    user = (
        await session.execute(select(User).where(User.user_uuid == user_uuid))
    ).scalar_one_or_none()
    if user is None or not user.is_active:
        return None

    email = (
        await session.execute(
            select(Email.email)
            .where(Email.user_id == user.user_id)
            .order_by(Email.is_primary.desc(), Email.email_id)
            .limit(1)
        )
    ).scalar_one_or_none()

    membership = (
        await session.execute(
            select(Organization.organization_uuid, Organization.organization_id, OrganizationMembership.role)
            .join(
                OrganizationMembership,
                OrganizationMembership.organization_id == Organization.organization_id,
            )
            .where(OrganizationMembership.user_id == user.user_id)
            .order_by(Organization.created_at)
            .limit(1)
        )
    ).first()

    return SessionUser(
        user_uuid=user.user_uuid,
        user_id=user.user_id,
        email=email,
        first_name=user.first_name,
        last_name=user.last_name,
        organization_uuid=membership.organization_uuid if membership else None,
        organization_id=membership.organization_id if membership else None,
        organization_role=membership.role if membership else None,
        is_trial_account=bool(user.is_trial_account),
    )


async def get_current_user(
    x_user_uuid: Optional[str] = Header(default=None, alias=USER_HEADER),
    session: AsyncSession = Depends(get_session),
) -> SessionUser:
    if not x_user_uuid:
        raise AuthorizationError("User session not found")
    user = await load_session_user(session, x_user_uuid)
    if user is None:
        raise AuthorizationError("User session not found")
    return user
