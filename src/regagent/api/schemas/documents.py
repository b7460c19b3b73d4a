"""Pydantic schemas for received document endpoints."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress

from regagent.db.models.base import (
    AuditAction,
    DocumentCategory,
    DocumentStatus,
    DocumentType,
    UrgencyLevel,
)


class DocumentResponse(BaseModel):
    """A received document as shown to staff and clients."""

    model_config = ConfigDict(from_attributes=True)

    document_id: UUID
    business_entity_id: UUID
    document_type: DocumentType
    document_category: DocumentCategory
    urgency_level: UrgencyLevel
    status: DocumentStatus

    sender_name: str
    sender_address: str | None = None
    document_title: str
    document_description: str | None = None

    # Scan and OCR results
    digital_document_url: str | None = None
    thumbnail_url: str | None = None
    mailbox_scan_id: str | None = None
    ocr_confidence: float | None = None
    is_simulated: bool = False

    tracking_number: str | None = None
    mail_type: str | None = None
    handled_by: str | None = None

    received_date: datetime
    forwarded_date: datetime | None = None
    client_notified_date: datetime | None = None


class DocumentListResponse(BaseModel):
    business_entity_id: UUID
    documents: list[DocumentResponse]
    total: int


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    log_id: UUID
    action: AuditAction
    performed_by: str
    details: str | None = None
    ip_address: IPvAnyAddress | None = None
    user_agent: str | None = None
    timestamp: datetime


class AuditTrailResponse(BaseModel):
    document_id: UUID
    entries: list[AuditEntryResponse]


class ProcessDocumentRequest(BaseModel):
    handled_by: str = Field(..., min_length=1, max_length=255)


class ForwardDocumentRequest(BaseModel):
    handled_by: str = Field(..., min_length=1, max_length=255)
    digital_url: str | None = Field(
        None, max_length=2048, description="Digital copy URL, replaces the scan URL when set"
    )
