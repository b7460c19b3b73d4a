"""Append-only audit trail for received documents.

Every state-changing operation on a received document appends exactly
one entry. Entries are never updated or deleted. Reading a trail returns
entries in timestamp order, with the insertion sequence as tie-break.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from regagent.db.models.base import AuditAction

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from regagent.db.models.documents import DocumentAuditLog

logger = logging.getLogger(__name__)


class DocumentAuditTrail:
    """Service for writing and reading document audit entries.

    Example:
        trail = DocumentAuditTrail(session)
        await trail.record(
            document_id,
            AuditAction.PROCESSED,
            performed_by="jane@agent.example",
            details="Document processed and categorized",
        )
        entries = await trail.get_trail(document_id)
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(
        self,
        document_id: uuid.UUID,
        action: AuditAction,
        performed_by: str,
        details: str | dict[str, Any] | None = None,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> DocumentAuditLog:
        """Append an audit entry for a document.

        Args:
            document_id: Document the entry belongs to.
            action: Action being recorded.
            performed_by: Person or system that performed the action.
            details: Free text, or a dict stored as JSON.
            ip_address: Client IP for operator actions.
            user_agent: Client user agent for operator actions.

        Returns:
            The persisted entry.
        """
        from regagent.db.models.documents import DocumentAuditLog

        if isinstance(details, dict):
            details = json.dumps(details, default=str)

        entry = DocumentAuditLog(
            log_id=uuid.uuid4(),
            document_id=document_id,
            action=action,
            performed_by=performed_by,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
            timestamp=datetime.now(UTC),
        )
        self._session.add(entry)
        await self._session.flush()

        logger.debug(
            "Audit entry recorded",
            extra={"document_id": str(document_id), "action": action.value},
        )
        return entry

    async def get_trail(self, document_id: uuid.UUID) -> list[DocumentAuditLog]:
        """Return a document's audit entries, oldest first."""
        from regagent.db.models.documents import DocumentAuditLog

        result = await self._session.execute(
            select(DocumentAuditLog)
            .where(DocumentAuditLog.document_id == document_id)
            .order_by(DocumentAuditLog.timestamp.asc(), DocumentAuditLog.entry_seq.asc())
        )
        return list(result.scalars().all())
