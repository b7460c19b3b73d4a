"""Registered agent models: agent addresses and consents to serve."""

from __future__ import annotations

# Required at runtime for SQLAlchemy type resolution
import uuid  # noqa: TC003
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from regagent.db.models.base import (
    Base,
    ConsentMethod,
    OptionalTimestampTZ,
    TimestampTZ,
    UUIDPrimaryKey,
    pg_enum,
)

if TYPE_CHECKING:
    from regagent.db.models.entities import BusinessEntity


class RegisteredAgentAddress(Base):
    """Registered agent street address for a state.

    At most one row exists per state. Rows are created on first request
    from the curated seed table and are never deleted, only deactivated.
    """

    __tablename__ = "registered_agent_addresses"

    address_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[TimestampTZ]

    # Full state name (e.g., "Delaware")
    state: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    street_address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    zip_code: Mapped[str] = mapped_column(String(20), nullable=False)
    phone_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    business_hours: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("true"),
        default=True,
    )
    verified_date: Mapped[OptionalTimestampTZ]

    consents: Mapped[list[RegisteredAgentConsent]] = relationship(
        "RegisteredAgentConsent",
        back_populates="agent_address",
    )

    @property
    def formatted_address(self) -> str:
        """Single-line mailing address including the state name."""
        return f"{self.street_address}, {self.city}, {self.state} {self.zip_code}"


class RegisteredAgentConsent(Base):
    """Consent of the agent organization to serve an entity.

    Creating a new consent supersedes the active one for the same entity;
    superseded rows are kept with is_active false.
    """

    __tablename__ = "registered_agent_consents"

    consent_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]
    consent_date: Mapped[TimestampTZ]

    business_entity_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("business_entities.entity_id"),
        nullable=False,
    )
    agent_address_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("registered_agent_addresses.address_id"),
        nullable=False,
    )

    agent_name: Mapped[str] = mapped_column(String(255), nullable=False)
    consent_method: Mapped[ConsentMethod] = mapped_column(
        pg_enum(ConsentMethod, "consent_method"),
        nullable=False,
        default=ConsentMethod.ELECTRONIC,
    )
    consent_document_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("true"),
        default=True,
    )

    business_entity: Mapped[BusinessEntity] = relationship(
        "BusinessEntity",
        back_populates="consents",
    )
    agent_address: Mapped[RegisteredAgentAddress] = relationship(
        "RegisteredAgentAddress",
        back_populates="consents",
    )

    __table_args__ = (
        Index("ix_registered_agent_consents_entity", "business_entity_id"),
        # One active consent per entity
        Index(
            "uq_registered_agent_consents_active_entity",
            "business_entity_id",
            unique=True,
            postgresql_where=text("is_active"),
        ),
    )
