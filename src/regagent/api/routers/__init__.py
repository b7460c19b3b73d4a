"""regagent API routers.

Each router handles one API namespace:
- mailbox: Provider webhook and mailbox address provisioning
- agents: Registered agent addresses and consents
- documents: Received document queries and status transitions
"""

from regagent.api.routers.agents import router as agents_router
from regagent.api.routers.documents import router as documents_router
from regagent.api.routers.mailbox import router as mailbox_router

__all__ = [
    "agents_router",
    "documents_router",
    "mailbox_router",
]
