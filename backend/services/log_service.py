"""Frontend log ingestion -- browser logs forwarded to the server log stream."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from backend.auth import SessionUser

frontend_logger = logging.getLogger("frontend")

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

MAX_MESSAGE_LENGTH = 10_000


class LogService:
    def log(
        self,
        user: Optional[SessionUser],
        level: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        url: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        frontend_logger.log(
            LEVELS.get(level, logging.INFO),
            message[:MAX_MESSAGE_LENGTH],
            extra={
                "source": "frontend",
                "userUuid": user.user_uuid if user else None,
                "organizationUuid": user.organization_uuid if user else None,
                "url": url,
                "userAgent": user_agent,
                "context": context or {},
            },
        )
