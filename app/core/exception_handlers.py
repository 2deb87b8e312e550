"""Map exceptions to JSON error responses.

Every error body has the shape ``{"error": {code, message, request_id,
details?}}``. Status codes:

- ValidationAppError (and any other AppError) → 400
- RateLimitExceededError → 429, with Retry-After and X-RateLimit-* headers
- StoreAppError → 503, with a top-level ``connected: false`` for the dashboard
- anything else → 500 with a generic message; details stay in the logs
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.errors import AppError, RateLimitExceededError, StoreAppError
from app.core.logging import get_request_id
from app.core.rate_limit import rate_limit_headers

logger = logging.getLogger(__name__)

# Checked in order; the first matching class wins
_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (RateLimitExceededError, 429),
    (StoreAppError, 503),
)


def _status_for(exc: AppError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _error_body(code: str, message: str, details: dict | None = None) -> dict:
    error: dict = {"code": code, "message": message, "request_id": get_request_id()}
    if details:
        error["details"] = details
    return {"error": error}


def _retry_headers(exc: RateLimitExceededError) -> dict[str, str]:
    details = exc.details or {}
    if "reset_at" not in details:
        return {}
    return rate_limit_headers(
        limit=details.get("limit", 0),
        remaining=details.get("remaining", 0),
        reset_at=details["reset_at"],
        retry_after=details.get("retry_after", 0),
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a domain error.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the mapped status code, plus rate limit headers for
        429 and ``connected: false`` for 503.
    """
    status_code = _status_for(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
        },
    )

    body = _error_body(exc.code, exc.message, dict(exc.details) if exc.details else None)
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitExceededError):
        headers = _retry_headers(exc)
    elif isinstance(exc, StoreAppError):
        body["connected"] = False

    return JSONResponse(status_code=status_code, content=body, headers=headers or None)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors; no stack traces reach the client."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )
    return JSONResponse(
        status_code=500,
        content=_error_body(
            "internal_server_error",
            "An unexpected error occurred. Please try again later.",
        ),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
