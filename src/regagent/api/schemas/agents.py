"""Pydantic schemas for registered agent endpoints.

Covers the agent address registry (supported states, per-state offering)
and consent to appointment as registered agent.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from regagent.db.models.base import ConsentMethod


class AgentAddressResponse(BaseModel):
    """Registered agent street address in one state."""

    model_config = ConfigDict(from_attributes=True)

    state: str
    street_address: str
    city: str
    zip_code: str
    phone_number: str | None = None
    business_hours: str | None = None
    formatted_address: str


class PricingResponse(BaseModel):
    annual_fee: int = Field(..., description="Annual subscription fee in USD")
    setup_fee: int = Field(..., description="One-time setup fee in USD")


class AgentInfoResponse(BaseModel):
    """Registered agent offering in a state.

    address is null when the agent does not serve the state.
    """

    agent_name: str
    state: str
    available: bool
    address: AgentAddressResponse | None = None
    pricing: PricingResponse
    services: list[str]


class SupportedStatesResponse(BaseModel):
    states: list[str]
    abbreviations: dict[str, str] = Field(
        ..., description="Two-letter codes accepted in place of full state names"
    )


class CreateConsentRequest(BaseModel):
    """Request to record the agent's consent to serve an entity."""

    business_entity_id: UUID
    state: str = Field(..., min_length=1, max_length=64, description="State name or abbreviation")
    consent_method: ConsentMethod = ConsentMethod.ELECTRONIC
    consent_document_url: str | None = Field(None, max_length=2048)


class ConsentResponse(BaseModel):
    """A recorded consent to appointment."""

    model_config = ConfigDict(from_attributes=True)

    consent_id: UUID
    business_entity_id: UUID
    agent_address_id: UUID
    agent_name: str
    consent_date: datetime
    consent_method: ConsentMethod
    consent_document_url: str | None = None
    is_active: bool


class ConsentListResponse(BaseModel):
    business_entity_id: UUID
    active_consent_id: UUID | None = None
    consents: list[ConsentResponse]
    total: int


class ConsentDocumentResponse(BaseModel):
    consent_id: UUID
    content: str = Field(..., description="Plain-text consent statement")
