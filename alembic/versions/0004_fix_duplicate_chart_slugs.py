"""fix duplicate chart slugs

One-off data repair: charts sharing a slug within a project keep the oldest
slug; the others become ``<slug>-<short uuid>``.

Revision ID: 0004
Revises: 0003
Create Date: 2026-02-06 10:00:00.000000

"""

from __future__ import annotations

import logging
from collections import defaultdict

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0004"
down_revision = "0003"
branch_labels = None
depends_on = None

logger = logging.getLogger("alembic.runtime.migration")

CHART_PROJECTS = sa.text(
    """
    SELECT
        sq.saved_query_uuid,
        sq.slug,
        sq.created_at,
        COALESCE(chart_space.project_id, dashboard_space.project_id) AS project_id
    FROM saved_queries sq
    LEFT JOIN spaces chart_space ON chart_space.space_id = sq.space_id
    LEFT JOIN dashboards d ON d.dashboard_uuid = sq.dashboard_uuid
    LEFT JOIN spaces dashboard_space ON dashboard_space.space_id = d.space_id
    WHERE sq.slug IS NOT NULL
    """
)

saved_queries = sa.table(
    "saved_queries",
    sa.column("saved_query_uuid", sa.String),
    sa.column("slug", sa.String),
)


def deduplicated_slug(slug: str, saved_query_uuid: str) -> str:
    return f"{slug}-{saved_query_uuid[:8].replace('-', '')}"


def find_renames(rows) -> dict:
    """``{saved_query_uuid: new_slug}`` for every chart after the first of its (project, slug) group."""
    groups = defaultdict(list)
    for row in rows:
        if row.project_id is None:
            continue
        groups[(row.project_id, row.slug)].append(row)

    renames = {}
    for (_, slug), charts in groups.items():
        if len(charts) < 2:
            continue
        charts.sort(key=lambda chart: (str(chart.created_at), chart.saved_query_uuid))
        for chart in charts[1:]:
            renames[chart.saved_query_uuid] = deduplicated_slug(slug, chart.saved_query_uuid)
    return renames


def upgrade() -> None:
    conn = op.get_bind()
    renames = find_renames(conn.execute(CHART_PROJECTS).all())
    for saved_query_uuid, slug in renames.items():
        conn.execute(
            saved_queries.update()
            .where(saved_queries.c.saved_query_uuid == saved_query_uuid)
            .values(slug=slug)
        )
    logger.info("Renamed %d duplicate chart slug(s)", len(renames))


def downgrade() -> None:
    # renamed slugs cannot be restored reliably
    pass
