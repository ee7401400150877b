"""
FastAPI application -- Insightboard BI backend.

Run locally:
    uvicorn backend.app:app --reload --port 8080

Apply schema changes first with ``alembic upgrade head`` (or set
DB_AUTO_CREATE=true for a throwaway local database).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.database import init_db
from backend.dependencies import close_clients
from backend.errors import register_error_handlers
from backend.logger import configure_logging
from backend.routes import (
    categories,
    charts,
    content,
    dashboards,
    logs,
    results,
    schedulers,
    search,
    spaces,
    uploads,
)
from backend.scheduler import get_delivery_scheduler
from config_env import DB_AUTO_CREATE, ENABLE_SCHEDULER_WORKER, LOG_FORMAT, LOG_LEVEL

configure_logging(LOG_LEVEL, LOG_FORMAT)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if DB_AUTO_CREATE:
        await init_db()
        logger.info("Database schema created (DB_AUTO_CREATE)")

    worker = None
    if ENABLE_SCHEDULER_WORKER:
        worker = get_delivery_scheduler()
        worker.start()
        await worker.load_jobs()

    yield

    # Shutdown
    if worker and worker.is_running:
        worker.stop()
    await close_clients()


app = FastAPI(
    title="Insightboard API",
    version="1.0.0",
    description="BI backend -- dashboards, charts, spaces, scheduled deliveries",
    lifespan=lifespan,
)

register_error_handlers(app)

for module in (dashboards, charts, spaces, content, search, categories, schedulers, logs, uploads, results):
    app.include_router(module.router, prefix=API_PREFIX)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "scheduler_running": get_delivery_scheduler().is_running,
    }
