"""Pydantic schemas for virtual mailbox endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class WebhookAcceptedResponse(BaseModel):
    """Acknowledgement of a mail notification webhook.

    The provider gets a 202 for every parseable body; status tells whether
    a document was created or the notification was dropped.
    """

    status: Literal["processed", "dropped"]
    document_id: UUID | None = None


class ConfigureMailboxRequest(BaseModel):
    state: str = Field(..., min_length=1, max_length=64, description="State name or abbreviation")


class MailboxConfigResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    config_id: UUID
    business_entity_id: UUID
    address_id: str
    physical_address: str
    is_active: bool
    last_sync_date: datetime | None = None
