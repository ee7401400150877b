# Configuration from environment variables (.env or deployment variables).

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _env_bool(key: str, default: str = "false") -> bool:
    return _env(key, default).lower() in ("1", "true", "yes")


def _env_int(key: str, default: int) -> int:
    try:
        return int(_env(key, str(default)))
    except ValueError:
        return default


# ============================================================================
# Logging
# ============================================================================
LOG_LEVEL = _env("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = _env("LOG_FORMAT", "pretty").lower()  # pretty | json

# ============================================================================
# Database
# ============================================================================
DB_AUTO_CREATE = _env_bool("DB_AUTO_CREATE", "false")

# ============================================================================
# Scheduler delivery worker
# ============================================================================
ENABLE_SCHEDULER_WORKER = _env_bool("ENABLE_SCHEDULER_WORKER", "false")

# ============================================================================
# Trial account (used by the trial-account migration)
# ============================================================================
TRIAL_ACCOUNT_EMAIL = "dev-trial@brandct.cn"
TRIAL_ACCOUNT_PASSWORD = _env("TRIAL_ACCOUNT_PASSWORD", "TrialAccount2026!@#")


# ============================================================================
# Admin API (JSON-RPC category service)
# ============================================================================

@dataclass(frozen=True)
class AdminApiConfig:
    host: str = ""
    api_key: str = ""
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "AdminApiConfig":
        return cls(
            host=_env("ADMIN_API_HOST"),
            api_key=_env("ADMIN_API_KEY"),
            timeout=float(_env_int("ADMIN_API_TIMEOUT", 30)),
        )


# ============================================================================
# Object storage (uploads + results cache)
# ============================================================================

DEFAULT_S3_REQUEST_TIMEOUT_MS = 1_800_000  # 30 minutes
DEFAULT_S3_EXPIRATION_TIME = 259_200  # 3 days


@dataclass(frozen=True)
class S3Config:
    bucket: str = ""
    endpoint: Optional[str] = None
    region: str = "us-east-1"
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    force_path_style: bool = False
    path_prefix: str = ""
    request_timeout: int = DEFAULT_S3_REQUEST_TIMEOUT_MS
    expiration_time: int = DEFAULT_S3_EXPIRATION_TIME

    @property
    def is_configured(self) -> bool:
        return bool(self.bucket)

    @classmethod
    def from_env(cls, prefix: str = "S3_", fallback_prefix: Optional[str] = None) -> "S3Config":
        """Read ``<prefix>BUCKET`` etc., falling back to ``<fallback_prefix>BUCKET``."""

        def read(name: str, default: str = "") -> str:
            value = _env(prefix + name)
            if not value and fallback_prefix:
                value = _env(fallback_prefix + name)
            return value or default

        try:
            request_timeout = int(read("REQUEST_TIMEOUT", str(DEFAULT_S3_REQUEST_TIMEOUT_MS)))
        except ValueError:
            request_timeout = DEFAULT_S3_REQUEST_TIMEOUT_MS
        try:
            expiration_time = int(read("EXPIRATION_TIME", str(DEFAULT_S3_EXPIRATION_TIME)))
        except ValueError:
            expiration_time = DEFAULT_S3_EXPIRATION_TIME

        return cls(
            bucket=read("BUCKET"),
            endpoint=read("ENDPOINT") or None,
            region=read("REGION", "us-east-1"),
            access_key=read("ACCESS_KEY") or None,
            secret_key=read("SECRET_KEY") or None,
            force_path_style=read("FORCE_PATH_STYLE", "false").lower() in ("1", "true", "yes"),
            path_prefix=read("PATH_PREFIX"),
            request_timeout=request_timeout or DEFAULT_S3_REQUEST_TIMEOUT_MS,
            expiration_time=expiration_time or DEFAULT_S3_EXPIRATION_TIME,
        )


def upload_s3_config() -> S3Config:
    return S3Config.from_env("S3_")


def results_s3_config() -> S3Config:
    return S3Config.from_env("RESULTS_S3_", fallback_prefix="S3_")
