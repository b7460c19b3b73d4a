"""SQLAlchemy ORM models for the registered agent intake service.

This package contains all database models organized by domain:
- base: Common metadata, column types and enums
- entities: Business entities and virtual mailbox configuration
- agents: Registered agent addresses and consents
- documents: Received documents and their audit log
"""

from regagent.db.models.agents import RegisteredAgentAddress, RegisteredAgentConsent
from regagent.db.models.base import (
    AuditAction,
    Base,
    ConsentMethod,
    DocumentCategory,
    DocumentStatus,
    DocumentType,
    UrgencyLevel,
    metadata,
)
from regagent.db.models.documents import DocumentAuditLog, ReceivedDocument
from regagent.db.models.entities import BusinessEntity, VirtualMailboxConfig

__all__ = [
    "AuditAction",
    "Base",
    "BusinessEntity",
    "ConsentMethod",
    "DocumentAuditLog",
    "DocumentCategory",
    "DocumentStatus",
    "DocumentType",
    "ReceivedDocument",
    "RegisteredAgentAddress",
    "RegisteredAgentConsent",
    "UrgencyLevel",
    "VirtualMailboxConfig",
    "metadata",
]
