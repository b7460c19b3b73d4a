"""Base model definitions and common types.

This module provides:
- SQLAlchemy declarative base with naming conventions
- Reusable column type annotations
- Enum types used across multiple models
"""

import enum
import uuid
from datetime import datetime
from typing import Annotated

from sqlalchemy import DateTime, Enum, MetaData, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, mapped_column, registry

# Naming convention for constraints ensures consistent migration generation.
# See: https://alembic.sqlalchemy.org/en/latest/naming.html
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)

type_registry = registry()

# UUID primary key with server-side default generation
UUIDPrimaryKey = Annotated[
    uuid.UUID,
    mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
]

# Timestamp with timezone, defaults to now
TimestampTZ = Annotated[
    datetime,
    mapped_column(DateTime(timezone=True), server_default=text("now()")),
]

OptionalTimestampTZ = Annotated[
    datetime | None,
    mapped_column(DateTime(timezone=True), nullable=True),
]


class Base(DeclarativeBase):
    """Declarative base for all registered agent intake models."""

    metadata = metadata
    registry = type_registry


# =============================================================================
# Common Enums
# =============================================================================


class DocumentStatus(enum.Enum):
    """Received document lifecycle states.

    States only move forward: received -> processed -> forwarded.
    A document may be forwarded directly from received.

    States:
        RECEIVED: Mail logged at intake, not yet reviewed
        PROCESSED: Reviewed and categorized by staff
        FORWARDED: Delivered to the client, client notified
    """

    RECEIVED = "received"
    PROCESSED = "processed"
    FORWARDED = "forwarded"


class UrgencyLevel(enum.Enum):
    """Urgency assigned to a received document at intake.

    Values:
        URGENT: Legal process, court or tax matters
        NORMAL: Routine compliance and correspondence
        LOW: Informational mail
    """

    URGENT = "urgent"
    NORMAL = "normal"
    LOW = "low"


class DocumentType(enum.Enum):
    """Document type assigned by the classifier."""

    LEGAL_NOTICE = "legal_notice"
    COURT_DOCUMENT = "court_document"
    TAX_NOTICE = "tax_notice"
    ANNUAL_REPORT = "annual_report"
    OTHER = "other"


class DocumentCategory(enum.Enum):
    """Document category assigned by the classifier."""

    SUBPOENA = "subpoena"
    LEGAL_PROCEEDING = "legal_proceeding"
    TAX_ASSESSMENT = "tax_assessment"
    COMPLIANCE_NOTICE = "compliance_notice"
    GENERAL_CORRESPONDENCE = "general_correspondence"


class ConsentMethod(enum.Enum):
    """How the consent to serve as registered agent was given.

    Values:
        ELECTRONIC: Accepted online
        WRITTEN: Signed paper form on file
    """

    ELECTRONIC = "electronic"
    WRITTEN = "written"


class AuditAction(enum.Enum):
    """Actions recorded in the document audit log.

    Values:
        RECEIVED: Mail item logged at intake
        PROCESSED: Document reviewed and categorized
        FORWARDED: Document forwarded to the client
        MAIL_PROCESSED: Automated intake pipeline completed
    """

    RECEIVED = "received"
    PROCESSED = "processed"
    FORWARDED = "forwarded"
    MAIL_PROCESSED = "mail_processed"


def pg_enum(enum_cls: type[enum.Enum], name: str) -> Enum:
    """Build a PostgreSQL enum column type that stores member values."""
    return Enum(
        enum_cls,
        name=name,
        create_constraint=True,
        values_callable=lambda members: [member.value for member in members],
    )
