"""Error response body shared by all endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Body returned by ErrorHandlerMiddleware."""

    error: str
    message: str
    request_id: str | None = None
    detail: dict[str, Any] | None = None
