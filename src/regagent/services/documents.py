"""Received document lifecycle operations.

Document status only moves forward:

    received -> processed -> forwarded
    received -> forwarded

Each transition appends one audit entry in the same unit of work.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, ClassVar

from sqlalchemy import select

from regagent.db.models.base import AuditAction, DocumentStatus
from regagent.services.audit_trail import DocumentAuditTrail

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from regagent.db.models.documents import DocumentAuditLog, ReceivedDocument

logger = logging.getLogger(__name__)

PROCESSED_DETAILS = "Document processed and categorized"
FORWARDED_DETAILS = "Document forwarded to client and notification sent"


class DocumentNotFoundError(Exception):
    """Raised when a received document is not found."""

    def __init__(self, document_id: UUID) -> None:
        self.document_id = document_id
        super().__init__(f"Document {document_id} not found")


class InvalidStatusTransitionError(Exception):
    """Raised when a document status change would move backward or repeat."""

    def __init__(self, from_status: DocumentStatus, to_status: DocumentStatus) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot transition document from {from_status.value} to {to_status.value}"
        )


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Client details recorded on operator audit entries."""

    ip_address: str | None = None
    user_agent: str | None = None


class DocumentLifecycleService:
    """Service for staff actions on received documents.

    Attributes:
        session: SQLAlchemy async session for database operations.
    """

    VALID_TRANSITIONS: ClassVar[dict[DocumentStatus, set[DocumentStatus]]] = {
        DocumentStatus.RECEIVED: {DocumentStatus.PROCESSED, DocumentStatus.FORWARDED},
        DocumentStatus.PROCESSED: {DocumentStatus.FORWARDED},
        DocumentStatus.FORWARDED: set(),
    }

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._audit = DocumentAuditTrail(session)

    @classmethod
    def is_valid_transition(cls, from_status: DocumentStatus, to_status: DocumentStatus) -> bool:
        return to_status in cls.VALID_TRANSITIONS.get(from_status, set())

    async def get_document(
        self, document_id: UUID, *, for_update: bool = False
    ) -> ReceivedDocument:
        """Load a document by id, optionally locking the row.

        Raises:
            DocumentNotFoundError: If no such document exists.
        """
        from regagent.db.models.documents import ReceivedDocument

        document = await self._session.get(
            ReceivedDocument, document_id, with_for_update=True if for_update else None
        )
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    async def process_document(
        self,
        document_id: UUID,
        handled_by: str,
        *,
        context: RequestContext | None = None,
    ) -> ReceivedDocument:
        """Mark a document as reviewed and categorized.

        Raises:
            DocumentNotFoundError: If no such document exists.
            InvalidStatusTransitionError: If the document is not in received status.
        """
        document = await self._transition(document_id, DocumentStatus.PROCESSED)
        document.handled_by = handled_by

        await self._audit.record(
            document.document_id,
            AuditAction.PROCESSED,
            performed_by=handled_by,
            details=PROCESSED_DETAILS,
            ip_address=context.ip_address if context else None,
            user_agent=context.user_agent if context else None,
        )

        logger.info(
            "Document processed",
            extra={"document_id": str(document_id), "handled_by": handled_by},
        )
        return document

    async def forward_document(
        self,
        document_id: UUID,
        handled_by: str,
        digital_url: str | None = None,
        *,
        context: RequestContext | None = None,
    ) -> ReceivedDocument:
        """Forward a document to the client.

        Sets forwarded_date and client_notified_date to now and stores the
        digital copy URL when one is given.

        Raises:
            DocumentNotFoundError: If no such document exists.
            InvalidStatusTransitionError: If the document was already forwarded.
        """
        document = await self._transition(document_id, DocumentStatus.FORWARDED)
        now = datetime.now(UTC)
        document.handled_by = handled_by
        document.forwarded_date = now
        document.client_notified_date = now
        if digital_url:
            document.digital_document_url = digital_url

        await self._audit.record(
            document.document_id,
            AuditAction.FORWARDED,
            performed_by=handled_by,
            details=FORWARDED_DETAILS,
            ip_address=context.ip_address if context else None,
            user_agent=context.user_agent if context else None,
        )

        logger.info(
            "Document forwarded",
            extra={"document_id": str(document_id), "handled_by": handled_by},
        )
        return document

    async def get_documents_for_entity(self, business_entity_id: UUID) -> list[ReceivedDocument]:
        """List an entity's documents, most recently received first."""
        from regagent.db.models.documents import ReceivedDocument

        result = await self._session.execute(
            select(ReceivedDocument)
            .where(ReceivedDocument.business_entity_id == business_entity_id)
            .order_by(ReceivedDocument.received_date.desc())
        )
        return list(result.scalars().all())

    async def get_document_audit_trail(self, document_id: UUID) -> list[DocumentAuditLog]:
        """Return a document's audit entries, oldest first.

        Raises:
            DocumentNotFoundError: If no such document exists.
        """
        await self.get_document(document_id)
        return await self._audit.get_trail(document_id)

    async def _transition(self, document_id: UUID, to_status: DocumentStatus) -> ReceivedDocument:
        document = await self.get_document(document_id, for_update=True)
        if not self.is_valid_transition(document.status, to_status):
            raise InvalidStatusTransitionError(document.status, to_status)
        document.status = to_status
        document.updated_at = datetime.now(UTC)
        return document
