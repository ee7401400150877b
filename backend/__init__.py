# backend -- FastAPI server + SQLAlchemy models
#
# Modules:
#   app          -- FastAPI application with lifespan management
#   database     -- PostgreSQL / SQLite async engine
#   models       -- SQLAlchemy ORM models (projects, spaces, dashboards, schedulers, ...)
#   schemas      -- Pydantic request/response schemas
#   errors       -- typed API errors + FastAPI handlers
#   logger       -- logging setup (pretty / json)
#   auth         -- session user from the X-User-Uuid header
#   repositories -- user_dashboard_category data access
#   dependencies -- shared clients (RPC, S3) for routers
#   scheduler    -- APScheduler delivery worker
#   services/    -- dashboard, content, search, category, scheduler, log, upload services
#   routes/      -- API endpoints under /api/v1
