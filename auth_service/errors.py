"""
Application error hierarchy and the FastAPI handlers that render it.

Every client-correctable failure is raised as an ``AppError`` subclass and
translated into a uniform JSON body::

    {"success": false, "message": "...", "error": "Validation Error", "details": ...}
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from auth_service.config import ENVIRONMENT

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    label = "Internal Error"

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    """Bad input, duplicate identity, or OTP mismatch / expiry / lock."""

    status_code = 400
    label = "Validation Error"


class AuthError(AppError):
    status_code = 401
    label = "Authentication Error"


class ForbiddenError(AppError):
    status_code = 403
    label = "Authorization Error"


class RateLimitError(AppError):
    status_code = 429
    label = "Rate Limit Error"


class DatabaseError(AppError):
    status_code = 500
    label = "Database Error"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.info(
        "%s %s -> %d %s: %s",
        request.method,
        request.url.path,
        exc.status_code,
        type(exc).__name__,
        exc.message,
    )
    body: dict[str, Any] = {
        "success": False,
        "message": exc.message,
        "error": exc.label,
    }
    if exc.details is not None:
        body["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=body)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "Internal server error",
            "error": str(exc) if ENVIRONMENT == "development" else "Something went wrong",
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach the AppError and catch-all handlers to *app*."""
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
