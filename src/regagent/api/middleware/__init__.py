"""API middleware components.

This module provides middleware for:
- Request ID tracking and log correlation
- Consistent error response formatting
"""

from regagent.api.middleware.errors import APIError, ErrorHandlerMiddleware
from regagent.api.middleware.request_id import (
    RequestIDLogFilter,
    RequestIDMiddleware,
    get_request_id,
)

__all__ = [
    "APIError",
    "ErrorHandlerMiddleware",
    "RequestIDLogFilter",
    "RequestIDMiddleware",
    "get_request_id",
]
