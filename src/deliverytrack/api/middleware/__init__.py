"""Delivery Tracker API middleware components.

- Request ID tracking for request correlation
- Consistent error response formatting
"""

from deliverytrack.api.middleware.errors import (
    APIError,
    AuthenticationError,
    ErrorHandlerMiddleware,
    build_error_response,
    register_exception_handlers,
)
from deliverytrack.api.middleware.request_id import RequestIDMiddleware, get_request_id

__all__ = [
    "APIError",
    "AuthenticationError",
    "ErrorHandlerMiddleware",
    "RequestIDMiddleware",
    "build_error_response",
    "get_request_id",
    "register_exception_handlers",
]
