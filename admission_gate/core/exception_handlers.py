"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

Design:
- AppError subclasses → mapped HTTP status (400, 404, 429, 500, 503)
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from admission_gate.core.errors import (
    AppError,
    CallLimitReachedError,
    ConfigurationError,
    FunctionNotConfiguredError,
    OriginNotResolvedError,
    StoreOperationFailed,
)
from admission_gate.core.logging import get_request_id

logger = logging.getLogger(__name__)

# Checked in order; the first matching class wins.
STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (CallLimitReachedError, 429),
    (FunctionNotConfiguredError, 404),
    (OriginNotResolvedError, 400),
    (StoreOperationFailed, 503),
    (ConfigurationError, 500),
)

# Server-side failures whose details may reference internal keys.
_PRIVATE_DETAILS = (StoreOperationFailed, ConfigurationError)


def status_for_error(exc: AppError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context (client-side errors only)

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = status_for_error(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }

    if exc.details and not isinstance(exc, _PRIVATE_DETAILS):
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message,
    so no stack traces leak to the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
