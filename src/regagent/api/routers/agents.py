"""Registered agent API router.

Exposes the supported states and per-state offering, and records the
agent's consent to serve a business entity.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, status

from regagent.api.dependencies import AgentRegistry, ConsentService, DbSession
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
from regagent.api.schemas.errors import ErrorResponse
from regagent.services.agent_registry import STATE_ABBREVIATIONS

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/agents",
    tags=["agents"],
    responses={
        404: {"description": "Not found", "model": ErrorResponse},
    },
)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------


@router.get("/health")
async def agents_health() -> dict[str, str]:
    """Health check for agents namespace."""
    return {"status": "healthy", "namespace": "agents"}


# ---------------------------------------------------------------------------
# Supported states
# ---------------------------------------------------------------------------


@router.get("/states", response_model=SupportedStatesResponse)
async def list_states(registry: AgentRegistry) -> SupportedStatesResponse:
    """List the states with a registered agent address."""
    states = registry.list_supported_states()
    return SupportedStatesResponse(
        states=states,
        abbreviations={code: name for code, name in STATE_ABBREVIATIONS.items() if name in states},
    )


# ---------------------------------------------------------------------------
# Consents
# ---------------------------------------------------------------------------


@router.post(
    "/consents",
    response_model=ConsentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record consent to serve as registered agent",
)
async def create_consent(
    request: CreateConsentRequest,
    consents: ConsentService,
    db: DbSession,
) -> ConsentResponse:
    """Record the agent's consent for an entity, superseding any active consent."""
    consent = await consents.create_consent(
        request.business_entity_id,
        request.state,
        consent_method=request.consent_method,
        consent_document_url=request.consent_document_url,
    )
    await db.commit()
    return ConsentResponse.model_validate(consent)


@router.get("/consents/{consent_id}", response_model=ConsentResponse)
async def get_consent(consent_id: UUID, consents: ConsentService) -> ConsentResponse:
    consent = await consents.get_consent(consent_id)
    return ConsentResponse.model_validate(consent)


@router.get("/consents/{consent_id}/document", response_model=ConsentDocumentResponse)
async def get_consent_document(
    consent_id: UUID, consents: ConsentService
) -> ConsentDocumentResponse:
    """Render the consent-to-appointment statement for a recorded consent."""
    content = await consents.render_consent(consent_id)
    return ConsentDocumentResponse(consent_id=consent_id, content=content)


@router.get("/entities/{entity_id}/consents", response_model=ConsentListResponse)
async def list_entity_consents(entity_id: UUID, consents: ConsentService) -> ConsentListResponse:
    """List an entity's consents, newest first."""
    records = await consents.list_consents(entity_id)
    active = next((c for c in records if c.is_active), None)
    return ConsentListResponse(
        business_entity_id=entity_id,
        active_consent_id=active.consent_id if active else None,
        consents=[ConsentResponse.model_validate(c) for c in records],
        total=len(records),
    )


# ---------------------------------------------------------------------------
# Per-state offering (declared last so it does not shadow the routes above)
# ---------------------------------------------------------------------------


@router.get("/{state}", response_model=AgentInfoResponse)
async def get_agent_info(state: str, registry: AgentRegistry) -> AgentInfoResponse:
    """Describe the registered agent offering in a state.

    Unsupported states are not an error: available is false and address
    is null.
    """
    info = registry.get_agent_info(state)
    address = None
    if info.address is not None:
        address = AgentAddressResponse.model_validate(info.address)
    return AgentInfoResponse(
        agent_name=info.agent_name,
        state=info.state,
        available=info.available,
        address=address,
        pricing=PricingResponse(annual_fee=info.annual_fee, setup_fee=info.setup_fee),
        services=list(info.services),
    )
