"""Global exception handling middleware for FastAPI application.

This module provides centralized error handling, converting various exception
types into consistent JSON responses following the ErrorResponse schema. It
ensures proper HTTP status codes and error formatting across the application.
"""

from collections.abc import Awaitable, Callable, Sequence
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel, to_snake
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.domain.exceptions import (
    AlreadyExistsError,
    ConcurrencyConflictError,
    DomainException,
    EntityNotFoundError,
    LockTimeoutError,
    ValidationError,
)
from src.infrastructure.logging.config import get_logger
from src.presentation.schemas.error import ErrorResponse


logger = get_logger(__name__)

# Type alias for cleaner function signatures
ExceptionHandler = Callable[[Request, Any], Awaitable[JSONResponse]]

LOCK_TIMEOUT_MESSAGE = "The resource is busy, please retry later"
UNEXPECTED_MESSAGE = "An unexpected error occurred"


def error_response(
    status_code: int,
    message: str,
    validation_errors: dict[str, list[str]] | None = None,
) -> JSONResponse:
    """Build the JSON error envelope for ``status_code``."""
    body = ErrorResponse.build(
        status=status_code,
        error=HTTPStatus(status_code).phrase,
        message=message,
        validation_errors=validation_errors or None,
    )
    return JSONResponse(status_code=status_code, content=body.to_body())


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Handle domain-layer exceptions with appropriate HTTP status codes.

    Maps domain exceptions to REST API responses:
    - EntityNotFoundError → 404 Not Found
    - AlreadyExistsError → 409 Conflict
    - ValidationError → 400 Bad Request (with per-field messages)
    - ConcurrencyConflictError → 409 Conflict
    - LockTimeoutError → 503 Service Unavailable (generic message)
    - Generic DomainException → 400 Bad Request

    Args:
        request: Incoming HTTP request
        exc: Domain exception instance

    Returns:
        JSON response with error details
    """
    logger.warning(
        "domain_exception",
        exception_type=type(exc).__name__,
        code=exc.code,
        message=exc.message,
        path=request.url.path,
        method=request.method,
    )

    if isinstance(exc, EntityNotFoundError):
        return error_response(status.HTTP_404_NOT_FOUND, exc.message)
    if isinstance(exc, AlreadyExistsError | ConcurrencyConflictError):
        return error_response(status.HTTP_409_CONFLICT, exc.message)
    if isinstance(exc, ValidationError):
        return error_response(status.HTTP_400_BAD_REQUEST, exc.message, exc.field_errors)
    if isinstance(exc, LockTimeoutError):
        return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, LOCK_TIMEOUT_MESSAGE)
    return error_response(status.HTTP_400_BAD_REQUEST, exc.message)


_SOURCES = ("body", "query", "path", "header", "cookie")


def _field_name(loc: Sequence[int | str]) -> str:
    """Public (camelCase) name of the offending input, without the source prefix."""
    parts = [str(part) for part in loc if part not in _SOURCES]
    if not parts:
        return "body"
    return ".".join(part if part.isdigit() else to_camel(to_snake(part)) for part in parts)


def _message(error: dict[str, Any]) -> str:
    """Human-readable message for one pydantic error entry."""
    if error["type"] == "missing":
        label = to_snake(str(error["loc"][-1])).replace("_", " ").capitalize()
        return f"{label} is required"
    ctx = error.get("ctx") or {}
    if error["type"] == "value_error" and "error" in ctx:
        return str(ctx["error"])
    return str(error["msg"])


def collect_field_errors(errors: Sequence[dict[str, Any]]) -> dict[str, list[str]]:
    """Group pydantic errors by public field name.

    Example:
        >>> collect_field_errors([{"type": "missing", "loc": ("body", "email"), "msg": "x"}])
        {'email': ['Email is required']}
    """
    field_errors: dict[str, list[str]] = {}
    for error in errors:
        messages = field_errors.setdefault(_field_name(error["loc"]), [])
        message = _message(error)
        if message not in messages:
            messages.append(message)
    return field_errors


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors from request parsing.

    Args:
        request: Incoming HTTP request
        exc: Request validation error with detailed error information

    Returns:
        JSON response with per-field messages (400 status)
    """
    field_errors = collect_field_errors(exc.errors())
    logger.warning(
        "validation_error",
        fields=sorted(field_errors),
        path=request.url.path,
        method=request.method,
    )
    return error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", field_errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap framework HTTP errors (unknown route, wrong method) in the error envelope."""
    logger.warning(
        "http_exception",
        status=exc.status_code,
        detail=str(exc.detail),
        path=request.url.path,
        method=request.method,
    )
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Handle database integrity constraint violations that escaped the use cases.

    Args:
        request: Incoming HTTP request
        exc: SQLAlchemy integrity error

    Returns:
        JSON response with error details (409 status)
    """
    logger.error(
        "database_integrity_error",
        error=str(exc.orig),
        path=request.url.path,
    )
    return error_response(status.HTTP_409_CONFLICT, "Resource already exists")


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle generic SQLAlchemy database errors.

    Catches database errors that aren't integrity violations (timeouts,
    connection errors, etc.) and returns a generic error response to
    avoid leaking implementation details.

    Args:
        request: Incoming HTTP request
        exc: SQLAlchemy error

    Returns:
        JSON response with generic error message (500 status)
    """
    logger.error(
        "database_error",
        error=str(exc),
        path=request.url.path,
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, UNEXPECTED_MESSAGE)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions as last resort.

    Catches all unhandled exceptions to prevent raw error responses
    from reaching clients. Logs full exception details for debugging
    while returning a safe generic message.

    Args:
        request: Incoming HTTP request
        exc: Unhandled exception

    Returns:
        JSON response with generic error message (500 status)
    """
    logger.exception(
        "unhandled_exception",
        exception_type=type(exc).__name__,
        error=str(exc),
        path=request.url.path,
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, UNEXPECTED_MESSAGE)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    # Domain exceptions
    domain_handler: ExceptionHandler = domain_exception_handler
    app.add_exception_handler(DomainException, domain_handler)

    # Request validation
    validation_handler: ExceptionHandler = validation_exception_handler
    app.add_exception_handler(RequestValidationError, validation_handler)
    http_handler: ExceptionHandler = http_exception_handler
    app.add_exception_handler(StarletteHTTPException, http_handler)

    # Database exceptions
    integrity_handler: ExceptionHandler = integrity_error_handler
    sqlalchemy_handler: ExceptionHandler = sqlalchemy_error_handler
    app.add_exception_handler(IntegrityError, integrity_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_handler)

    # Generic exception handler (catch-all)
    generic_handler: ExceptionHandler = generic_exception_handler
    app.add_exception_handler(Exception, generic_handler)
