"""Request and response schemas for the regagent API."""

from regagent.api.schemas.agents import (
    AgentAddressResponse,
    AgentInfoResponse,
    ConsentDocumentResponse,
    ConsentListResponse,
    ConsentResponse,
    CreateConsentRequest,
    PricingResponse,
    SupportedStatesResponse,
)
from regagent.api.schemas.documents import (
    AuditEntryResponse,
    AuditTrailResponse,
    DocumentListResponse,
    DocumentResponse,
    ForwardDocumentRequest,
    ProcessDocumentRequest,
)
from regagent.api.schemas.errors import ErrorResponse
from regagent.api.schemas.mailbox import (
    ConfigureMailboxRequest,
    MailboxConfigResponse,
    WebhookAcceptedResponse,
)

__all__ = [
    "AgentAddressResponse",
    "AgentInfoResponse",
    "AuditEntryResponse",
    "AuditTrailResponse",
    "ConfigureMailboxRequest",
    "ConsentDocumentResponse",
    "ConsentListResponse",
    "ConsentResponse",
    "CreateConsentRequest",
    "DocumentListResponse",
    "DocumentResponse",
    "ErrorResponse",
    "ForwardDocumentRequest",
    "MailboxConfigResponse",
    "PricingResponse",
    "ProcessDocumentRequest",
    "SupportedStatesResponse",
    "WebhookAcceptedResponse",
]
