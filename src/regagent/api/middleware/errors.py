"""Error handling middleware for consistent JSON error responses.

All errors are returned as:

    {"error": <code>, "message": <text>, "detail": {...}?, "request_id": <id>}

Domain exceptions raised by the services are mapped to HTTP statuses in
DOMAIN_ERRORS; anything unexpected is logged and returned as a generic 500.
"""

import logging
from collections.abc import Callable
from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from regagent.api.middleware.request_id import get_request_id
from regagent.services.agent_consent import ConsentNotFoundError
from regagent.services.agent_registry import AgentAddressInactiveError, UnsupportedStateError
from regagent.services.documents import DocumentNotFoundError, InvalidStatusTransitionError
from regagent.services.entities import EntityNotFoundError
from regagent.services.mailbox_client import MailboxProviderError

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Exception carrying a ready-made error response."""

    def __init__(
        self,
        error: str,
        message: str,
        status_code: int = 400,
        detail: dict[str, Any] | None = None,
    ) -> None:
        self.error = error
        self.message = message
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


# Checked in order, so subclasses come before their bases
DOMAIN_ERRORS: tuple[tuple[type[Exception], str, int], ...] = (
    (AgentAddressInactiveError, "agent_address_inactive", 404),
    (UnsupportedStateError, "unsupported_state", 404),
    (EntityNotFoundError, "entity_not_found", 404),
    (DocumentNotFoundError, "document_not_found", 404),
    (ConsentNotFoundError, "consent_not_found", 404),
    (InvalidStatusTransitionError, "invalid_status_transition", 409),
    (MailboxProviderError, "mailbox_provider_error", 502),
)


def _domain_error_detail(exc: Exception) -> dict[str, Any] | None:
    if isinstance(exc, UnsupportedStateError):
        return {"state": exc.state, "requested": exc.requested}
    if isinstance(exc, InvalidStatusTransitionError):
        return {"from_status": exc.from_status.value, "to_status": exc.to_status.value}
    if isinstance(exc, MailboxProviderError) and exc.status_code is not None:
        return {"provider_status": exc.status_code}
    return None


def build_error_response(
    error: str,
    message: str,
    status_code: int,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build a standardized error response."""
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


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware that catches exceptions and returns consistent JSON errors."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        try:
            return await call_next(request)
        except APIError as exc:
            return build_error_response(
                error=exc.error,
                message=exc.message,
                status_code=exc.status_code,
                detail=exc.detail,
            )
        except HTTPException as exc:
            return build_error_response(
                error="http_error",
                message=str(exc.detail),
                status_code=exc.status_code,
            )
        except ValidationError as exc:
            return build_error_response(
                error="validation_error",
                message="Request validation failed",
                status_code=422,
                detail={"errors": exc.errors(include_url=False, include_context=False)},
            )
        except Exception as exc:
            for exc_type, error, status_code in DOMAIN_ERRORS:
                if isinstance(exc, exc_type):
                    if status_code >= 500:
                        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
                    return build_error_response(
                        error=error,
                        message=str(exc),
                        status_code=status_code,
                        detail=_domain_error_detail(exc),
                    )

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
