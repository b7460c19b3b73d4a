"""Business entity models: client companies and their virtual mailboxes.

Business entities are owned by the formation platform; this service keeps
the subset of columns it needs to route mail and address notifications.
"""

from __future__ import annotations

# Required at runtime for SQLAlchemy type resolution
import uuid  # noqa: TC003
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from regagent.db.models.base import (
    Base,
    OptionalTimestampTZ,
    TimestampTZ,
    UUIDPrimaryKey,
)

if TYPE_CHECKING:
    from regagent.db.models.agents import RegisteredAgentConsent
    from regagent.db.models.documents import ReceivedDocument


class BusinessEntity(Base):
    """Client business entity (LLC, corporation, ...)."""

    __tablename__ = "business_entities"

    entity_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    # Full state name of formation
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    mailbox_configs: Mapped[list[VirtualMailboxConfig]] = relationship(
        "VirtualMailboxConfig",
        back_populates="business_entity",
    )
    consents: Mapped[list[RegisteredAgentConsent]] = relationship(
        "RegisteredAgentConsent",
        back_populates="business_entity",
    )
    documents: Mapped[list[ReceivedDocument]] = relationship(
        "ReceivedDocument",
        back_populates="business_entity",
    )


class VirtualMailboxConfig(Base):
    """Virtual mailbox address provisioned for an entity.

    Inbound mail notifications carry the recipient address; the active
    config whose physical address (or provider address id) matches it
    identifies the owning entity.
    """

    __tablename__ = "virtual_mailbox_configs"

    config_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[TimestampTZ]

    business_entity_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("business_entities.entity_id"),
        nullable=False,
    )

    # Provider-side address identifier
    address_id: Mapped[str] = mapped_column(String(255), nullable=False)
    physical_address: Mapped[str] = mapped_column(Text, nullable=False)
    webhook_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("true"),
        default=True,
    )
    last_sync_date: Mapped[OptionalTimestampTZ]

    business_entity: Mapped[BusinessEntity] = relationship(
        "BusinessEntity",
        back_populates="mailbox_configs",
    )

    __table_args__ = (
        Index("ix_virtual_mailbox_configs_entity", "business_entity_id"),
        Index("ix_virtual_mailbox_configs_address_id", "address_id"),
    )
