"""regagent service layer.

This package contains service implementations for external integrations
and business logic orchestration:
- AgentRegistryService: Registered agent addresses, one per supported state
- AgentConsentService: Consent to appointment and its rendered statement
- VirtualMailboxClient: Virtual mailbox provider (scans, address provisioning)
- MindeeOcrProvider: Structured field extraction from scanned mail
- MailIntakeService: Mail notification pipeline (resolve, scan, OCR, classify, record, notify)
- DocumentLifecycleService: Received document status transitions
- DocumentAuditTrail: Append-only per-document audit log
- EntityResolver: Recipient address routing and mailbox configuration
"""

from regagent.services.agent_consent import AgentConsentService, ConsentNotFoundError
from regagent.services.agent_registry import (
    DEFAULT_AGENT_ADDRESSES,
    AgentAddressInactiveError,
    AgentAddressSeed,
    AgentInfo,
    AgentRegistryService,
    UnsupportedStateError,
)
from regagent.services.audit_trail import DocumentAuditTrail
from regagent.services.classifier import DocumentClassification, categorize_document
from regagent.services.documents import (
    DocumentLifecycleService,
    DocumentNotFoundError,
    InvalidStatusTransitionError,
    RequestContext,
)
from regagent.services.entities import EntityNotFoundError, EntityResolver
from regagent.services.intake import MailIntakeService, MailNotification
from regagent.services.mailbox_client import (
    MailboxAddress,
    MailboxClientConfig,
    MailboxProviderError,
    MailScanResult,
    VirtualMailboxClient,
)
from regagent.services.notifications import (
    ClientNotifier,
    EmailClientNotifier,
    LoggingClientNotifier,
    NotificationResult,
    build_client_notifier,
)
from regagent.services.ocr import (
    ExtractedFields,
    MindeeConfig,
    MindeeOcrProvider,
    OcrProvider,
    SimulatedOcrProvider,
)

__all__ = [
    "DEFAULT_AGENT_ADDRESSES",
    "AgentAddressInactiveError",
    "AgentAddressSeed",
    "AgentConsentService",
    "AgentInfo",
    "AgentRegistryService",
    "ClientNotifier",
    "ConsentNotFoundError",
    "DocumentAuditTrail",
    "DocumentClassification",
    "DocumentLifecycleService",
    "DocumentNotFoundError",
    "EmailClientNotifier",
    "EntityNotFoundError",
    "EntityResolver",
    "ExtractedFields",
    "InvalidStatusTransitionError",
    "LoggingClientNotifier",
    "MailIntakeService",
    "MailNotification",
    "MailScanResult",
    "MailboxAddress",
    "MailboxClientConfig",
    "MailboxProviderError",
    "MindeeConfig",
    "MindeeOcrProvider",
    "NotificationResult",
    "OcrProvider",
    "RequestContext",
    "SimulatedOcrProvider",
    "VirtualMailboxClient",
    "build_client_notifier",
    "categorize_document",
]
