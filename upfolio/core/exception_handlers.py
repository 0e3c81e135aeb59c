"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

Design:
- AppError subclasses → status from ``STATUS_BY_ERROR`` (400-502)
- Request body/query validation → 422 in the same envelope
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from upfolio.core.config import settings
from upfolio.core.errors import (
    AppError,
    AuthenticationAppError,
    InsufficientCreditsAppError,
    InvalidTransitionAppError,
    LLMAppError,
    NotFoundAppError,
    NotOwnerAppError,
    RateLimitedAppError,
    ValidationAppError,
)
from upfolio.core.logging import get_request_id

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (AuthenticationAppError, 401),
    (InsufficientCreditsAppError, 402),
    (NotOwnerAppError, 403),
    (NotFoundAppError, 404),
    (InvalidTransitionAppError, 409),
    (RateLimitedAppError, 429),
    (LLMAppError, 502),
)


def status_for(exc: AppError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def rate_limit_headers(exc: RateLimitedAppError) -> dict[str, str]:
    """Retry-After plus the X-RateLimit-* trio for a throttled request."""
    return {
        "Retry-After": str(exc.retry_after_seconds),
        "X-RateLimit-Limit": str(exc.limit),
        "X-RateLimit-Remaining": "0",
        "X-RateLimit-Reset": str(exc.reset_at),
    }


def _envelope(code: str, message: str, details=None) -> dict:
    error_content = {
        "code": code,
        "message": message,
        "request_id": get_request_id(),
    }
    if details:
        error_content["details"] = details
    return {"error": error_content}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context

    Throttled requests also carry ``Retry-After`` and ``X-RateLimit-*``
    headers unless disabled with ``RATE_LIMIT_INCLUDE_HEADERS=false``.
    """
    status_code = status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
        },
    )

    headers: dict[str, str] | None = None
    if isinstance(exc, RateLimitedAppError) and settings.rate_limit.include_headers:
        headers = rate_limit_headers(exc)

    return JSONResponse(
        status_code=status_code,
        content=_envelope(exc.code, exc.message, exc.details),
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Wrap FastAPI's 422 in the standard error envelope."""
    errors = jsonable_encoder(exc.errors(), exclude={"input", "ctx", "url"})
    logger.info(
        "request_validation_failed",
        extra={"request_path": request.url.path, "error_count": len(errors)},
    )
    return JSONResponse(
        status_code=422,
        content=_envelope(
            "request_validation_failed",
            "Request payload is invalid.",
            {"context": {"errors": errors}},
        ),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message. No stack traces reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
        exc_info=exc,
    )

    return JSONResponse(
        status_code=500,
        content=_envelope(
            "internal_server_error",
            "An unexpected error occurred. Please try again later.",
        ),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with FastAPI app.

    Order matters: specific handlers registered before general fallback.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
