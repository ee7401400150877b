"""Logging setup, environment configuration, error payloads and API schemas."""

from __future__ import annotations

import json
import logging

import pytest

from backend.database import normalize_database_url
from backend.errors import ForbiddenError, MissingConfigError, NotFoundError, ParameterError
from backend.logger import JsonFormatter, configure_logging
from backend.schemas import SchedulerCreate, TabIn
from config_env import DEFAULT_S3_EXPIRATION_TIME, AdminApiConfig, S3Config, results_s3_config


# =============================================================================
# Logging
# =============================================================================


def test_json_formatter_keeps_extra_fields():
    record = logging.LogRecord("frontend", logging.WARNING, __file__, 1, "hello %s", ("world",), None)
    record.userUuid = "u-1"
    record.context = {"chart": "c1"}

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "hello world"
    assert payload["level"] == "warning"
    assert payload["logger"] == "frontend"
    assert payload["userUuid"] == "u-1"
    assert payload["context"] == {"chart": "c1"}
    assert "args" not in payload


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_configure_logging_is_idempotent(restore_root_logger):
    configure_logging("warning", "json")
    configure_logging("debug", "json")

    ours = [h for h in restore_root_logger.handlers if getattr(h, "_insightboard", False)]
    assert len(ours) == 1
    assert isinstance(ours[0].formatter, JsonFormatter)
    assert restore_root_logger.level == logging.DEBUG


# =============================================================================
# Configuration
# =============================================================================


S3_VARS = ("BUCKET", "ENDPOINT", "REGION", "PATH_PREFIX", "EXPIRATION_TIME", "FORCE_PATH_STYLE")


@pytest.fixture
def clean_s3_env(monkeypatch):
    for prefix in ("S3_", "RESULTS_S3_"):
        for name in S3_VARS:
            monkeypatch.delenv(prefix + name, raising=False)
    return monkeypatch


def test_results_config_falls_back_to_upload_bucket(clean_s3_env):
    clean_s3_env.setenv("S3_BUCKET", "shared")
    clean_s3_env.setenv("S3_FORCE_PATH_STYLE", "true")
    clean_s3_env.setenv("RESULTS_S3_PATH_PREFIX", "results")

    config = results_s3_config()

    assert config.bucket == "shared"
    assert config.force_path_style is True
    assert config.path_prefix == "results"
    assert config.region == "us-east-1"


def test_s3_config_ignores_bad_numbers(clean_s3_env):
    clean_s3_env.setenv("S3_BUCKET", "uploads")
    clean_s3_env.setenv("S3_EXPIRATION_TIME", "soon")

    config = S3Config.from_env("S3_")

    assert config.expiration_time == DEFAULT_S3_EXPIRATION_TIME
    assert config.is_configured


def test_admin_api_config_from_env(monkeypatch):
    monkeypatch.setenv("ADMIN_API_HOST", " http://admin.test/rpc ")
    monkeypatch.setenv("ADMIN_API_KEY", "secret")
    monkeypatch.setenv("ADMIN_API_TIMEOUT", "nope")

    config = AdminApiConfig.from_env()

    assert config == AdminApiConfig(host="http://admin.test/rpc", api_key="secret", timeout=30.0)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("postgres://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("postgresql://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("sqlite+aiosqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
    ],
)
def test_normalize_database_url(raw, expected):
    assert normalize_database_url(raw) == expected


# =============================================================================
# Errors
# =============================================================================


@pytest.mark.parametrize(
    "error, status",
    [
        (ParameterError(), 400),
        (ForbiddenError(), 403),
        (NotFoundError("Chart x not found"), 404),
        (MissingConfigError(), 422),
    ],
)
def test_error_status_codes(error, status):
    assert error.to_payload()["error"]["statusCode"] == status


def test_error_payload_shape():
    error = ParameterError("Bad tile", data={"tile": 3})
    assert error.to_payload() == {
        "status": "error",
        "error": {
            "statusCode": 400,
            "name": "ParameterError",
            "message": "Bad tile",
            "data": {"tile": 3},
        },
    }
    assert str(error) == "Bad tile"


# =============================================================================
# Schemas
# =============================================================================


def test_api_models_accept_camel_and_snake_case():
    wire = SchedulerCreate.model_validate({"name": "Daily", "cron": "0 9 * * *", "savedChartUuid": "c1"})
    python = SchedulerCreate.model_validate({"name": "Daily", "cron": "0 9 * * *", "saved_chart_uuid": "c1"})

    assert wire == python
    assert wire.model_dump(by_alias=True)["savedChartUuid"] == "c1"


def test_api_models_read_attributes():
    class Tab:
        uuid = "t1"
        name = "Overview"

    assert TabIn.model_validate(Tab()).model_dump() == {"uuid": "t1", "name": "Overview"}
