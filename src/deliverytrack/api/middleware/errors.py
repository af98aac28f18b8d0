"""Error handling for consistent JSON error responses.

All errors are converted to a consistent JSON structure with:
- error: Error type/code
- message: Human-readable description
- detail: Optional additional information
- request_id: Correlation ID for debugging

Domain errors from the service layer are mapped to HTTP status codes by
exception handlers, and malformed request bodies or parameters become a 400
validation_error like any other invalid input. Anything unexpected is caught
by ErrorHandlerMiddleware, logged, and returned as a generic 500.
"""

import logging
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from deliverytrack.api.middleware.request_id import get_request_id
from deliverytrack.services.errors import (
    CredentialValidationError,
    DeliveryConflictError,
    DeliveryNotFoundError,
    DeliveryServiceError,
    DeliveryValidationError,
    DuplicateIdentityError,
    IdentityNotFoundError,
    StorageError,
)

logger = logging.getLogger(__name__)

# Domain error -> (status code, machine-readable error code)
ERROR_STATUS_MAP: dict[type[DeliveryServiceError], tuple[int, str]] = {
    DeliveryValidationError: (400, "validation_error"),
    CredentialValidationError: (400, "validation_error"),
    DeliveryNotFoundError: (404, "not_found"),
    IdentityNotFoundError: (404, "not_found"),
    DeliveryConflictError: (409, "conflict"),
    DuplicateIdentityError: (409, "conflict"),
    StorageError: (500, "storage_error"),
}


class APIError(Exception):
    """Base exception for API errors with structured details."""

    def __init__(
        self,
        error: str,
        message: str,
        status_code: int = 400,
        detail: dict[str, Any] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            error: Machine-readable error code (e.g., "unauthorized").
            message: Human-readable error description.
            status_code: HTTP status code to return.
            detail: Optional additional details for debugging.
        """
        self.error = error
        self.message = message
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class AuthenticationError(APIError):
    """Authentication error (401)."""

    def __init__(
        self, message: str = "Invalid username or password", detail: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            error="unauthorized",
            message=message,
            status_code=401,
            detail=detail,
        )


def build_error_response(
    error: str,
    message: str,
    status_code: int,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build a standardized error response.

    Args:
        error: Machine-readable error code.
        message: Human-readable description.
        status_code: HTTP status code.
        detail: Optional additional details.

    Returns:
        JSONResponse with consistent error structure.
    """
    body: dict[str, Any] = {
        "error": error,
        "message": message,
    }

    request_id = get_request_id()
    if request_id:
        body["request_id"] = request_id

    if detail:
        body["detail"] = detail

    return JSONResponse(status_code=status_code, content=body)


def _status_for(exc: DeliveryServiceError) -> tuple[int, str]:
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_MAP:
            return ERROR_STATUS_MAP[error_type]
    return 500, "internal_error"


async def service_error_handler(request: Request, exc: DeliveryServiceError) -> JSONResponse:
    """Translate a domain error into its HTTP response."""
    status_code, error = _status_for(exc)
    if status_code >= 500:
        logger.error(
            "Service failure on %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
        )
        return build_error_response(
            error=error,
            message="A storage error occurred",
            status_code=status_code,
        )
    return build_error_response(
        error=error,
        message=exc.message,
        status_code=status_code,
        detail=exc.detail,
    )


async def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    """Render an APIError with its own structure."""
    return build_error_response(
        error=exc.error,
        message=exc.message,
        status_code=exc.status_code,
        detail=exc.detail,
    )


async def request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies and parameters as a 400 validation_error.

    Only the first problem is reported, naming the offending field the same
    way the service layer does.
    """
    errors = exc.errors()
    first = errors[0] if errors else {}
    # loc is e.g. ("body", "customer"); the leading part names the source
    location = [str(part) for part in first.get("loc", ())[1:]]
    field = None if first.get("type") == "json_invalid" else ".".join(location) or None
    message = f"Invalid value for '{field}': {first.get('msg')}" if field else "Invalid request"
    return build_error_response(
        error="validation_error",
        message=message,
        status_code=400,
        detail={"field": field} if field else None,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the domain and API error handlers on an application."""
    app.add_exception_handler(DeliveryServiceError, service_error_handler)
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware that turns unexpected exceptions into a JSON 500."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        """Process request and handle any exceptions that escaped the handlers."""
        try:
            return await call_next(request)
        except Exception:
            logger.exception(
                "Unexpected error processing request: %s %s",
                request.method,
                request.url.path,
            )
            return build_error_response(
                error="internal_error",
                message="An internal error occurred",
                status_code=500,
            )
