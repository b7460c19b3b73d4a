"""Received document models: mail items and their audit log.

Documents are never hard-deleted. The audit log is append-only; every
state change on a document adds exactly one entry.
"""

from __future__ import annotations

# Required at runtime for SQLAlchemy type resolution
import uuid  # noqa: TC003
from datetime import datetime  # noqa: TC003
from typing import TYPE_CHECKING

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Identity,
    Index,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import INET, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from regagent.db.models.base import (
    AuditAction,
    Base,
    DocumentCategory,
    DocumentStatus,
    DocumentType,
    OptionalTimestampTZ,
    TimestampTZ,
    UrgencyLevel,
    UUIDPrimaryKey,
    pg_enum,
)

if TYPE_CHECKING:
    from regagent.db.models.entities import BusinessEntity


class ReceivedDocument(Base):
    """Physical mail item received at a registered agent address."""

    __tablename__ = "received_documents"

    document_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[TimestampTZ]

    business_entity_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("business_entities.entity_id"),
        nullable=False,
    )

    # Classification (set once at intake)
    document_type: Mapped[DocumentType] = mapped_column(
        pg_enum(DocumentType, "document_type"),
        nullable=False,
    )
    document_category: Mapped[DocumentCategory] = mapped_column(
        pg_enum(DocumentCategory, "document_category"),
        nullable=False,
    )
    urgency_level: Mapped[UrgencyLevel] = mapped_column(
        pg_enum(UrgencyLevel, "urgency_level"),
        nullable=False,
        default=UrgencyLevel.NORMAL,
    )

    sender_name: Mapped[str] = mapped_column(String(255), nullable=False)
    sender_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    document_title: Mapped[str] = mapped_column(String(500), nullable=False)
    document_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Scan output
    digital_document_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    mailbox_scan_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ocr_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    extracted_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    # True when the scan or OCR provider fell back to placeholder data
    is_simulated: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )

    # Postal metadata
    tracking_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    mail_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    handled_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    received_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    status: Mapped[DocumentStatus] = mapped_column(
        pg_enum(DocumentStatus, "document_status"),
        nullable=False,
        default=DocumentStatus.RECEIVED,
    )
    forwarded_date: Mapped[OptionalTimestampTZ]
    client_notified_date: Mapped[OptionalTimestampTZ]

    business_entity: Mapped[BusinessEntity] = relationship(
        "BusinessEntity",
        back_populates="documents",
    )
    audit_entries: Mapped[list[DocumentAuditLog]] = relationship(
        "DocumentAuditLog",
        back_populates="document",
        order_by="DocumentAuditLog.entry_seq",
    )

    __table_args__ = (
        Index(
            "ix_received_documents_entity_received",
            "business_entity_id",
            "received_date",
        ),
        Index("ix_received_documents_status", "status"),
    )


class DocumentAuditLog(Base):
    """Append-only audit entry for a received document."""

    __tablename__ = "document_audit_log"

    log_id: Mapped[UUIDPrimaryKey]

    # Monotonic insertion order, breaks timestamp ties
    entry_seq: Mapped[int] = mapped_column(
        BigInteger,
        Identity(always=True),
        nullable=False,
        unique=True,
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("received_documents.document_id"),
        nullable=False,
    )

    action: Mapped[AuditAction] = mapped_column(
        pg_enum(AuditAction, "audit_action"),
        nullable=False,
    )
    performed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    # Free text or serialized JSON
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(INET, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )

    document: Mapped[ReceivedDocument] = relationship(
        "ReceivedDocument",
        back_populates="audit_entries",
    )

    __table_args__ = (Index("ix_document_audit_log_document_ts", "document_id", "timestamp"),)
