"""
Typed API errors and the FastAPI handlers that render them.

Services raise these; routers let them propagate. The handlers turn them into
the structured payload the frontend expects::

    {"status": "error",
     "error": {"statusCode": 404, "name": "NotFoundError", "message": "...", "data": {}}}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class InsightboardError(Exception):
    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.data = data or {}
        super().__init__(self.message)

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_payload(self) -> Dict[str, Any]:
        return {
            "status": "error",
            "error": {
                "statusCode": self.status_code,
                "name": self.name,
                "message": self.message,
                "data": self.data,
            },
        }


class ParameterError(InsightboardError):
    status_code = 400
    default_message = "Incorrect parameters"


class AuthorizationError(InsightboardError):
    status_code = 401
    default_message = "Authorization error"


class ForbiddenError(InsightboardError):
    status_code = 403
    default_message = "You don't have access to this resource or action"


class NotFoundError(InsightboardError):
    status_code = 404
    default_message = "Resource not found"


class AlreadyExistsError(InsightboardError):
    status_code = 409
    default_message = "Resource already exists"


class MissingConfigError(InsightboardError):
    status_code = 422
    default_message = "Missing configuration"


class UnexpectedServerError(InsightboardError):
    status_code = 500
    default_message = "Something went wrong."


class S3Error(InsightboardError):
    status_code = 500
    default_message = "Object storage error"


# ---------------------------------------------------------------------------
# FastAPI handlers
# ---------------------------------------------------------------------------

async def _insightboard_error_handler(request: Request, exc: InsightboardError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s: %s", request.method, request.url.path, exc.name, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "location": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    error = ParameterError("Request validation failed", data={"errors": errors})
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = UnexpectedServerError()
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InsightboardError, _insightboard_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
