"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain, request validation and unexpected) and return consistent responses
with proper HTTP status codes.

Design:
- AppError subclasses → appropriate HTTP status (400, 404, 409, 429, 500)
- RequestValidationError → 400 "Fields missing in the request."
- Unexpected Exception → generic 500 (safety net)
- JSON error bodies are always ``{"error": "<message>"}``
- Store failures are logged in full but reach the client as a generic message
- Rate limit rejections are plain text, carrying the policy message
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from machinedata_api.core.errors import (
    AppError,
    ConflictAppError,
    NotFoundAppError,
    RateLimitAppError,
    StoreAppError,
)
from machinedata_api.core.logging import get_request_id

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"
FIELDS_MISSING_MESSAGE = "Fields missing in the request."


def _status_code_for(exc: AppError) -> int:
    status_code = 400  # Default: client error
    if isinstance(exc, NotFoundAppError):
        status_code = 404
    elif isinstance(exc, ConflictAppError):
        status_code = 409
    elif isinstance(exc, RateLimitAppError):
        status_code = 429
    elif isinstance(exc, StoreAppError):
        status_code = 500
    return status_code


def rate_limit_error_response(
    exc: RateLimitAppError,
    headers: dict[str, str] | None = None,
) -> PlainTextResponse:
    """Build the 429 response for a quota breach.

    Shared by the exception handler and the rate limit middleware, which
    cannot raise into FastAPI's handlers.
    """
    return PlainTextResponse(exc.message, status_code=429, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> PlainTextResponse | JSONResponse:
    """Handle domain application errors.

    Routes domain errors to appropriate HTTP status codes:
    - ValidationAppError → 400 Bad Request
    - NotFoundAppError → 404 Not Found
    - ConflictAppError → 409 Conflict
    - RateLimitAppError → 429 Too Many Requests (plain text)
    - StoreAppError → 500 Internal Server Error (message not exposed)

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        Response with appropriate status code and error message.
    """
    status_code = _status_code_for(exc)

    if isinstance(exc, RateLimitAppError):
        return rate_limit_error_response(exc)

    if status_code >= 500:
        logger.error(
            "store_error_handled",
            extra={
                "error_code": exc.code,
                "error_message": exc.message,
                "details": exc.details,
                "request_path": request.url.path,
                "request_method": request.method,
                "request_id": get_request_id(),
            },
        )
        return JSONResponse(status_code=status_code, content={"error": INTERNAL_ERROR_MESSAGE})

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )
    return JSONResponse(status_code=status_code, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Turn body/path validation failures into a 400 with a fixed message.

    Missing, empty or wrongly typed fields are all reported the same way;
    the offending field locations are logged for diagnosis.
    """
    fields = [".".join(str(part) for part in error.get("loc", ())) for error in exc.errors()]
    logger.warning(
        "request_validation_failed",
        extra={
            "fields": fields,
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )
    return JSONResponse(status_code=400, content={"error": FIELDS_MISSING_MESSAGE})


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Catches any exception not handled by specific handlers.
    Logs detailed information for debugging while returning generic message.
    Prevents information leakage (no stack traces to client).

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with generic error (no implementation details leaked).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        }
    )

    return JSONResponse(status_code=500, content={"error": INTERNAL_ERROR_MESSAGE})


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.

    Example:
        >>> from fastapi import FastAPI
        >>> from machinedata_api.core.exception_handlers import setup_exception_handlers
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
        >>> # Now all errors are handled consistently
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
