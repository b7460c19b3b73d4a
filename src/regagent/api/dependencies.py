"""FastAPI dependencies shared by the API routers.

Provider clients (virtual mailbox, OCR, client notifier) and the agent
address seed table are created once in the application lifespan and kept
on app.state; the service objects below are built per request around the
request's database session.
"""

import ipaddress
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from regagent.core.config import Settings
from regagent.core.settings import get_settings
from regagent.db import get_async_session
from regagent.services.agent_consent import AgentConsentService
from regagent.services.agent_registry import AgentRegistryService
from regagent.services.documents import DocumentLifecycleService, RequestContext
from regagent.services.entities import EntityResolver
from regagent.services.intake import MailIntakeService


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides an async database session."""
    async with get_async_session() as session:
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_app_settings(request: Request) -> Settings:
    """Settings the app was created with, falling back to the environment."""
    return getattr(request.app.state, "settings", None) or get_settings()


AppSettings = Annotated[Settings, Depends(get_app_settings)]


def _app_resource(request: Request, name: str):
    resource = getattr(request.app.state, name, None)
    if resource is None:
        msg = f"Application resource {name!r} is not initialized"
        raise RuntimeError(msg)
    return resource


def _valid_ip(value: str | None) -> str | None:
    if not value:
        return None
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


def _get_client_ip(request: Request) -> str | None:
    """Extract client IP from request, considering proxy headers.

    Values that are not IP addresses (e.g. "unknown") are ignored.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        forwarded_ip = _valid_ip(forwarded_for.split(",")[0])
        if forwarded_ip is not None:
            return forwarded_ip
    return _valid_ip(request.client.host) if request.client else None


def get_request_context(request: Request) -> RequestContext:
    """Client details recorded on operator audit entries."""
    return RequestContext(
        ip_address=_get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )


ClientContext = Annotated[RequestContext, Depends(get_request_context)]


def get_agent_registry(request: Request, db: DbSession, settings: AppSettings) -> AgentRegistryService:
    return AgentRegistryService(
        db,
        getattr(request.app.state, "agent_seeds", None),
        agent_name=settings.agent.name,
        annual_fee=settings.agent.annual_fee,
        setup_fee=settings.agent.setup_fee,
    )


AgentRegistry = Annotated[AgentRegistryService, Depends(get_agent_registry)]


def get_consent_service(db: DbSession, registry: AgentRegistry) -> AgentConsentService:
    return AgentConsentService(db, registry)


ConsentService = Annotated[AgentConsentService, Depends(get_consent_service)]


def get_entity_resolver(request: Request, db: DbSession) -> EntityResolver:
    return EntityResolver(db, mailbox_client=_app_resource(request, "mailbox_client"))


Entities = Annotated[EntityResolver, Depends(get_entity_resolver)]


def get_document_service(db: DbSession) -> DocumentLifecycleService:
    return DocumentLifecycleService(db)


DocumentService = Annotated[DocumentLifecycleService, Depends(get_document_service)]


def get_intake_service(request: Request, db: DbSession, settings: AppSettings) -> MailIntakeService:
    return MailIntakeService(
        db,
        mailbox_client=_app_resource(request, "mailbox_client"),
        ocr_provider=_app_resource(request, "ocr_provider"),
        notifier=_app_resource(request, "notifier"),
        handled_by=settings.agent.mailbox_handler,
    )


IntakeService = Annotated[MailIntakeService, Depends(get_intake_service)]
