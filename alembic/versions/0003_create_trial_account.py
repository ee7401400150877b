"""create trial account

Revision ID: 0003
Revises: 0002
Create Date: 2026-01-08 02:06:40.000000

"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from alembic import op
import bcrypt
import sqlalchemy as sa

from config_env import TRIAL_ACCOUNT_EMAIL, TRIAL_ACCOUNT_PASSWORD


# revision identifiers, used by Alembic.
revision = "0003"
down_revision = "0002"
branch_labels = None
depends_on = None

logger = logging.getLogger("alembic.runtime.migration")

TRIAL_ACCOUNT_FIRST_NAME = "体验"
TRIAL_ACCOUNT_LAST_NAME = "账号"

organizations = sa.table(
    "organizations",
    sa.column("organization_id", sa.Integer),
    sa.column("organization_uuid", sa.String),
    sa.column("created_at", sa.DateTime),
)
users = sa.table(
    "users",
    sa.column("user_id", sa.Integer),
    sa.column("user_uuid", sa.String),
    sa.column("first_name", sa.String),
    sa.column("last_name", sa.String),
    sa.column("is_active", sa.Boolean),
    sa.column("is_setup_complete", sa.Boolean),
    sa.column("is_trial_account", sa.Boolean),
    sa.column("is_marketing_opted_in", sa.Boolean),
    sa.column("is_tracking_anonymized", sa.Boolean),
    sa.column("created_at", sa.DateTime),
    sa.column("updated_at", sa.DateTime),
)
emails = sa.table(
    "emails",
    sa.column("user_id", sa.Integer),
    sa.column("email", sa.String),
    sa.column("is_primary", sa.Boolean),
    sa.column("is_verified", sa.Boolean),
    sa.column("created_at", sa.DateTime),
)
password_logins = sa.table(
    "password_logins",
    sa.column("user_id", sa.Integer),
    sa.column("password_hash", sa.String),
    sa.column("created_at", sa.DateTime),
)
organization_memberships = sa.table(
    "organization_memberships",
    sa.column("organization_id", sa.Integer),
    sa.column("user_id", sa.Integer),
    sa.column("role", sa.String),
    sa.column("created_at", sa.DateTime),
)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def upgrade() -> None:
    conn = op.get_bind()

    existing = conn.execute(
        sa.select(emails.c.user_id).where(emails.c.email == TRIAL_ACCOUNT_EMAIL)
    ).first()
    if existing:
        is_trial = conn.execute(
            sa.select(users.c.is_trial_account).where(users.c.user_id == existing.user_id)
        ).scalar()
        if is_trial:
            logger.info("Trial account already exists, skipping")
        else:
            logger.info("Email %s belongs to a regular account, skipping", TRIAL_ACCOUNT_EMAIL)
        return

    first_org = conn.execute(
        sa.select(organizations.c.organization_id, organizations.c.organization_uuid)
        .order_by(organizations.c.created_at)
        .limit(1)
    ).first()

    now = datetime.now(timezone.utc).replace(tzinfo=None)
    user_uuid = str(uuid.uuid4())
    conn.execute(
        users.insert().values(
            user_uuid=user_uuid,
            first_name=TRIAL_ACCOUNT_FIRST_NAME,
            last_name=TRIAL_ACCOUNT_LAST_NAME,
            is_active=True,
            is_setup_complete=True,
            is_trial_account=True,
            is_marketing_opted_in=False,
            is_tracking_anonymized=False,
            created_at=now,
            updated_at=now,
        )
    )
    user_id = conn.execute(
        sa.select(users.c.user_id).where(users.c.user_uuid == user_uuid)
    ).scalar_one()

    conn.execute(
        emails.insert().values(
            user_id=user_id,
            email=TRIAL_ACCOUNT_EMAIL,
            is_primary=True,
            is_verified=True,
            created_at=now,
        )
    )
    conn.execute(
        password_logins.insert().values(
            user_id=user_id,
            password_hash=hash_password(TRIAL_ACCOUNT_PASSWORD),
            created_at=now,
        )
    )

    if first_org:
        conn.execute(
            organization_memberships.insert().values(
                organization_id=first_org.organization_id,
                user_id=user_id,
                role="member",
                created_at=now,
            )
        )
        logger.info("Trial account created in organization %s", first_org.organization_uuid)
    else:
        logger.info("Trial account created without an organization")


def downgrade() -> None:
    conn = op.get_bind()
    user_id = conn.execute(
        sa.select(emails.c.user_id).where(emails.c.email == TRIAL_ACCOUNT_EMAIL)
    ).scalar()
    if user_id is None:
        return

    conn.execute(password_logins.delete().where(password_logins.c.user_id == user_id))
    conn.execute(
        organization_memberships.delete().where(organization_memberships.c.user_id == user_id)
    )
    conn.execute(emails.delete().where(emails.c.user_id == user_id))
    conn.execute(users.delete().where(users.c.user_id == user_id))
