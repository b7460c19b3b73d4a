"""Registered agent consent management.

An entity has at most one active consent. Creating a new consent
supersedes the previous one: the old record is kept with is_active set
to false so the appointment history stays auditable.

The consent document is a plain-text statement rendered from a Jinja2
template with the agent, entity and address details.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape
from sqlalchemy import select, update

from regagent.db.models.base import ConsentMethod
from regagent.services.agent_registry import AgentAddressInactiveError

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from regagent.db.models.agents import RegisteredAgentAddress, RegisteredAgentConsent
    from regagent.db.models.entities import BusinessEntity
    from regagent.services.agent_registry import AgentRegistryService

logger = logging.getLogger(__name__)

CONSENT_SERVICES: tuple[str, ...] = (
    "Receipt of legal documents and official correspondence",
    "Digital scanning and secure storage of all documents",
    "Immediate notification to client upon document receipt",
    "Professional forwarding of all received materials",
    "Compliance monitoring and reminder services",
)


class ConsentNotFoundError(Exception):
    """Raised when a consent record is not found."""

    def __init__(self, consent_id: UUID) -> None:
        self.consent_id = consent_id
        super().__init__(f"Consent {consent_id} not found")


def format_consent_date(value: date) -> str:
    """Format a date as M/D/YYYY."""
    return f"{value.month}/{value.day}/{value.year}"


class AgentConsentService:
    """Service for recording and rendering consents to serve as agent.

    Attributes:
        session: SQLAlchemy async session for database operations.
        registry: Agent address registry used to resolve the state address.
    """

    def __init__(self, session: AsyncSession, registry: AgentRegistryService) -> None:
        self._session = session
        self._registry = registry
        self._env = Environment(
            loader=PackageLoader("regagent", "templates/consent"),
            autoescape=select_autoescape(["html", "xml"]),
            undefined=StrictUndefined,
            keep_trailing_newline=False,
        )

    async def create_consent(
        self,
        business_entity_id: UUID,
        state: str,
        *,
        consent_method: ConsentMethod = ConsentMethod.ELECTRONIC,
        consent_document_url: str | None = None,
    ) -> RegisteredAgentConsent:
        """Record the agent's consent to serve an entity in a state.

        Any active consent for the entity is deactivated first.

        Args:
            business_entity_id: Entity being served.
            state: Full state name or abbreviation of the agent address.
            consent_method: How consent was given.
            consent_document_url: Optional link to a signed consent document.

        Returns:
            The new active consent record.

        Raises:
            UnsupportedStateError: If the state has no agent address.
            AgentAddressInactiveError: If the state's address is deactivated.
        """
        from regagent.db.models.agents import RegisteredAgentConsent

        address = await self._registry.get_or_create_address(state)
        if not address.is_active:
            raise AgentAddressInactiveError(address.state)

        superseded = await self._session.execute(
            update(RegisteredAgentConsent)
            .where(
                RegisteredAgentConsent.business_entity_id == business_entity_id,
                RegisteredAgentConsent.is_active.is_(True),
            )
            .values(is_active=False)
        )

        now = datetime.now(UTC)
        consent = RegisteredAgentConsent(
            consent_id=uuid.uuid4(),
            business_entity_id=business_entity_id,
            agent_address_id=address.address_id,
            agent_name=self._registry.agent_name,
            consent_method=consent_method,
            consent_document_url=consent_document_url,
            consent_date=now,
            is_active=True,
        )
        self._session.add(consent)
        await self._session.flush()

        logger.info(
            "Registered agent consent recorded",
            extra={
                "business_entity_id": str(business_entity_id),
                "state": address.state,
                "consent_method": consent_method.value,
                "superseded": superseded.rowcount,
            },
        )
        return consent

    async def get_consent(self, consent_id: UUID) -> RegisteredAgentConsent:
        """Get a consent by id.

        Raises:
            ConsentNotFoundError: If no such consent exists.
        """
        from regagent.db.models.agents import RegisteredAgentConsent

        consent = await self._session.get(RegisteredAgentConsent, consent_id)
        if consent is None:
            raise ConsentNotFoundError(consent_id)
        return consent

    async def get_active_consent(self, business_entity_id: UUID) -> RegisteredAgentConsent | None:
        from regagent.db.models.agents import RegisteredAgentConsent

        result = await self._session.execute(
            select(RegisteredAgentConsent).where(
                RegisteredAgentConsent.business_entity_id == business_entity_id,
                RegisteredAgentConsent.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def list_consents(self, business_entity_id: UUID) -> list[RegisteredAgentConsent]:
        """List all consents of an entity, newest first."""
        from regagent.db.models.agents import RegisteredAgentConsent

        result = await self._session.execute(
            select(RegisteredAgentConsent)
            .where(RegisteredAgentConsent.business_entity_id == business_entity_id)
            .order_by(RegisteredAgentConsent.consent_date.desc())
        )
        return list(result.scalars().all())

    async def render_consent(self, consent_id: UUID) -> str:
        """Render the statement for a recorded consent, dated on its consent date.

        Raises:
            ConsentNotFoundError: If no such consent exists.
            EntityNotFoundError: If the consenting entity no longer exists.
        """
        from regagent.db.models.agents import RegisteredAgentAddress
        from regagent.db.models.entities import BusinessEntity
        from regagent.services.entities import EntityNotFoundError

        consent = await self.get_consent(consent_id)
        entity = await self._session.get(BusinessEntity, consent.business_entity_id)
        if entity is None:
            raise EntityNotFoundError(consent.business_entity_id)
        address = await self._session.get(RegisteredAgentAddress, consent.agent_address_id)

        return self.generate_consent_document(
            entity, address, effective_date=consent.consent_date.date()
        )

    def generate_consent_document(
        self,
        entity: BusinessEntity,
        address: RegisteredAgentAddress,
        *,
        effective_date: date | None = None,
    ) -> str:
        """Render the consent-to-appointment statement.

        Args:
            entity: The entity being served.
            address: The agent address in the entity's state.
            effective_date: Date printed on the statement (defaults to today, UTC).

        Returns:
            The statement as plain text.
        """
        effective = effective_date or datetime.now(UTC).date()
        template = self._env.get_template("consent.txt")
        return template.render(
            agent_name=self._registry.agent_name,
            entity_name=entity.name,
            entity_type=entity.entity_type,
            entity_state=entity.state,
            street_address=address.street_address,
            city=address.city,
            zip_code=address.zip_code,
            phone_number=address.phone_number or "",
            business_hours=address.business_hours or "",
            services=CONSENT_SERVICES,
            effective_date=format_consent_date(effective),
        ).strip()
