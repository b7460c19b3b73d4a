"""Virtual mailbox API router.

Receives mail notification webhooks from the virtual mailbox provider and
lets operators provision a mailbox address for a business entity.

Webhooks are always acknowledged with 202 once the body is valid JSON:
notifications that are malformed or addressed to an unknown mailbox are
logged and dropped so the provider does not retry them.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Body, status

from regagent.api.dependencies import AgentRegistry, DbSession, Entities, IntakeService
from regagent.api.schemas.errors import ErrorResponse
from regagent.api.schemas.mailbox import (
    ConfigureMailboxRequest,
    MailboxConfigResponse,
    WebhookAcceptedResponse,
)
from regagent.services.agent_registry import UnsupportedStateError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/mailbox",
    tags=["mailbox"],
    responses={
        422: {"description": "Invalid request body", "model": ErrorResponse},
    },
)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------


@router.get("/health")
async def mailbox_health() -> dict[str, str]:
    """Health check for mailbox namespace."""
    return {"status": "healthy", "namespace": "mailbox"}


# ---------------------------------------------------------------------------
# Provider webhook
# ---------------------------------------------------------------------------


@router.post(
    "/webhook",
    response_model=WebhookAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Mail notification webhook",
    description="Called by the mailbox provider when physical mail is received.",
)
async def mail_webhook(
    payload: Annotated[Any, Body()],
    intake: IntakeService,
    db: DbSession,
) -> WebhookAcceptedResponse:
    if not isinstance(payload, dict):
        logger.warning("Dropping mail notification with non-object body")
        return WebhookAcceptedResponse(status="dropped")

    document = await intake.handle_mail_notification(payload)
    if document is None:
        return WebhookAcceptedResponse(status="dropped")

    await db.commit()
    return WebhookAcceptedResponse(status="processed", document_id=document.document_id)


# ---------------------------------------------------------------------------
# Mailbox configuration
# ---------------------------------------------------------------------------


@router.post(
    "/entities/{entity_id}/configure",
    response_model=MailboxConfigResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Provision a virtual mailbox address",
    responses={
        404: {"description": "Entity not found or state not served", "model": ErrorResponse},
        502: {"description": "Mailbox provider error", "model": ErrorResponse},
    },
)
async def configure_mailbox(
    entity_id: UUID,
    request: ConfigureMailboxRequest,
    entities: Entities,
    registry: AgentRegistry,
    db: DbSession,
) -> MailboxConfigResponse:
    """Provision a registered agent mailbox address and make it the entity's active one."""
    state = registry.normalize_state(request.state)
    if registry.get_seed(state) is None:
        raise UnsupportedStateError(state, requested=request.state)

    config = await entities.configure_mailbox_for_entity(entity_id, state)
    await db.commit()
    return MailboxConfigResponse.model_validate(config)
