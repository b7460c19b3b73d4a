"""Business entity lookup and virtual mailbox configuration.

Inbound mail is routed to the entity whose active virtual mailbox config
matches the notification's recipient address, either by provider address
id or by physical address (compared case- and whitespace-insensitively).
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from regagent.db.models.entities import BusinessEntity, VirtualMailboxConfig
    from regagent.services.mailbox_client import VirtualMailboxClient

logger = logging.getLogger(__name__)


class EntityNotFoundError(Exception):
    """Raised when a business entity is not found."""

    def __init__(self, entity_id: UUID) -> None:
        self.entity_id = entity_id
        super().__init__(f"Business entity {entity_id} not found")


def normalize_address(address: str) -> str:
    """Collapse whitespace and lowercase an address for comparison."""
    return " ".join(address.split()).lower()


class EntityResolver:
    """Resolves business entities and manages their mailbox addresses.

    Attributes:
        session: SQLAlchemy async session for database operations.
        mailbox_client: Provider client, required for mailbox configuration.
    """

    def __init__(
        self,
        session: AsyncSession,
        mailbox_client: VirtualMailboxClient | None = None,
    ) -> None:
        self._session = session
        self._mailbox_client = mailbox_client

    async def get_entity(self, entity_id: UUID) -> BusinessEntity:
        """Load an entity by id.

        Raises:
            EntityNotFoundError: If no such entity exists.
        """
        from regagent.db.models.entities import BusinessEntity

        entity = await self._session.get(BusinessEntity, entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        return entity

    async def find_by_recipient_address(self, address: str) -> BusinessEntity | None:
        """Find the entity that owns a mailbox address.

        A provider address id match wins over a physical address match.
        When several active configs share a physical address the most
        recently created one is used.

        Args:
            address: Recipient address from the mail notification.

        Returns:
            The owning entity, or None if no active mailbox matches.
        """
        from regagent.db.models.entities import BusinessEntity, VirtualMailboxConfig

        cleaned = address.strip()
        if not cleaned:
            return None

        base = (
            select(BusinessEntity)
            .join(
                VirtualMailboxConfig,
                VirtualMailboxConfig.business_entity_id == BusinessEntity.entity_id,
            )
            .where(VirtualMailboxConfig.is_active.is_(True))
            .order_by(VirtualMailboxConfig.created_at.desc())
        )

        result = await self._session.execute(
            base.where(VirtualMailboxConfig.address_id == cleaned).limit(1)
        )
        entity = result.scalars().first()
        if entity is not None:
            return entity

        normalized_column = func.lower(
            func.regexp_replace(func.trim(VirtualMailboxConfig.physical_address), r"\s+", " ", "g")
        )
        result = await self._session.execute(
            base.where(normalized_column == normalize_address(cleaned))
        )
        matches = list(result.scalars().unique().all())
        if len(matches) > 1:
            logger.warning(
                "Recipient address %r matches %d entities, routing to most recent mailbox",
                cleaned,
                len(matches),
            )
        return matches[0] if matches else None

    async def configure_mailbox_for_entity(self, entity_id: UUID, state: str) -> VirtualMailboxConfig:
        """Provision a mailbox address for an entity and make it the active one.

        Args:
            entity_id: Entity to configure.
            state: State in which the address is provisioned.

        Returns:
            The new active mailbox configuration.

        Raises:
            EntityNotFoundError: If no such entity exists.
            MailboxProviderError: If the provider fails to provision the address.
        """
        from regagent.db.models.entities import VirtualMailboxConfig

        if self._mailbox_client is None:
            msg = "EntityResolver needs a mailbox client to configure mailboxes"
            raise RuntimeError(msg)

        entity = await self.get_entity(entity_id)
        provisioned = await self._mailbox_client.configure_address(entity.entity_id, state)

        await self._session.execute(
            update(VirtualMailboxConfig)
            .where(
                VirtualMailboxConfig.business_entity_id == entity.entity_id,
                VirtualMailboxConfig.is_active.is_(True),
            )
            .values(is_active=False)
        )

        now = datetime.now(UTC)
        config = VirtualMailboxConfig(
            config_id=uuid.uuid4(),
            business_entity_id=entity.entity_id,
            address_id=provisioned.address_id,
            physical_address=provisioned.physical_address,
            is_active=True,
            last_sync_date=now,
        )
        self._session.add(config)
        await self._session.flush()

        logger.info(
            "Virtual mailbox configured",
            extra={
                "business_entity_id": str(entity.entity_id),
                "address_id": provisioned.address_id,
                "simulated": provisioned.simulated,
            },
        )
        return config
