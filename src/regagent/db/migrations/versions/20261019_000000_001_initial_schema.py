"""Initial schema.

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

Creates all tables for the registered agent intake service:
- business_entities, virtual_mailbox_configs (routing)
- registered_agent_addresses, registered_agent_consents (agent registry)
- received_documents, document_audit_log (mail intake)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _uuid_pk(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    """Apply migration: Initial schema."""
    consent_method = postgresql.ENUM(
        "electronic", "written", name="consent_method", create_type=False
    )
    consent_method.create(op.get_bind(), checkfirst=True)

    document_type = postgresql.ENUM(
        "legal_notice",
        "court_document",
        "tax_notice",
        "annual_report",
        "other",
        name="document_type",
        create_type=False,
    )
    document_type.create(op.get_bind(), checkfirst=True)

    document_category = postgresql.ENUM(
        "subpoena",
        "legal_proceeding",
        "tax_assessment",
        "compliance_notice",
        "general_correspondence",
        name="document_category",
        create_type=False,
    )
    document_category.create(op.get_bind(), checkfirst=True)

    urgency_level = postgresql.ENUM(
        "urgent", "normal", "low", name="urgency_level", create_type=False
    )
    urgency_level.create(op.get_bind(), checkfirst=True)

    document_status = postgresql.ENUM(
        "received", "processed", "forwarded", name="document_status", create_type=False
    )
    document_status.create(op.get_bind(), checkfirst=True)

    audit_action = postgresql.ENUM(
        "received",
        "processed",
        "forwarded",
        "mail_processed",
        name="audit_action",
        create_type=False,
    )
    audit_action.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "business_entities",
        _uuid_pk("entity_id"),
        _timestamp("created_at"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("state", sa.String(100), nullable=False),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint("entity_id", name=op.f("pk_business_entities")),
    )

    op.create_table(
        "virtual_mailbox_configs",
        _uuid_pk("config_id"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.Column("business_entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("address_id", sa.String(255), nullable=False),
        sa.Column("physical_address", sa.Text(), nullable=False),
        sa.Column("webhook_url", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("last_sync_date", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["business_entity_id"],
            ["business_entities.entity_id"],
            name=op.f("fk_virtual_mailbox_configs_business_entity_id_business_entities"),
        ),
        sa.PrimaryKeyConstraint("config_id", name=op.f("pk_virtual_mailbox_configs")),
    )
    op.create_index(
        op.f("ix_virtual_mailbox_configs_entity"),
        "virtual_mailbox_configs",
        ["business_entity_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_virtual_mailbox_configs_address_id"),
        "virtual_mailbox_configs",
        ["address_id"],
        unique=False,
    )

    op.create_table(
        "registered_agent_addresses",
        _uuid_pk("address_id"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.Column("state", sa.String(100), nullable=False),
        sa.Column("street_address", sa.String(255), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("zip_code", sa.String(20), nullable=False),
        sa.Column("phone_number", sa.String(50), nullable=True),
        sa.Column("business_hours", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("verified_date", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("address_id", name=op.f("pk_registered_agent_addresses")),
        sa.UniqueConstraint("state", name=op.f("uq_registered_agent_addresses_state")),
    )

    op.create_table(
        "registered_agent_consents",
        _uuid_pk("consent_id"),
        _timestamp("created_at"),
        _timestamp("consent_date"),
        sa.Column("business_entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("agent_address_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("agent_name", sa.String(255), nullable=False),
        sa.Column("consent_method", consent_method, nullable=False),
        sa.Column("consent_document_url", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.ForeignKeyConstraint(
            ["business_entity_id"],
            ["business_entities.entity_id"],
            name=op.f("fk_registered_agent_consents_business_entity_id_business_entities"),
        ),
        sa.ForeignKeyConstraint(
            ["agent_address_id"],
            ["registered_agent_addresses.address_id"],
            name=op.f(
                "fk_registered_agent_consents_agent_address_id_registered_agent_addresses"
            ),
        ),
        sa.PrimaryKeyConstraint("consent_id", name=op.f("pk_registered_agent_consents")),
    )
    op.create_index(
        op.f("ix_registered_agent_consents_entity"),
        "registered_agent_consents",
        ["business_entity_id"],
        unique=False,
    )
    op.create_index(
        op.f("uq_registered_agent_consents_active_entity"),
        "registered_agent_consents",
        ["business_entity_id"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "received_documents",
        _uuid_pk("document_id"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.Column("business_entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("document_type", document_type, nullable=False),
        sa.Column("document_category", document_category, nullable=False),
        sa.Column("urgency_level", urgency_level, nullable=False),
        sa.Column("sender_name", sa.String(255), nullable=False),
        sa.Column("sender_address", sa.Text(), nullable=True),
        sa.Column("document_title", sa.String(500), nullable=False),
        sa.Column("document_description", sa.Text(), nullable=True),
        sa.Column("digital_document_url", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("mailbox_scan_id", sa.String(255), nullable=True),
        sa.Column("ocr_confidence", sa.Float(), nullable=True),
        sa.Column("extracted_text", sa.Text(), nullable=True),
        sa.Column("is_simulated", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("tracking_number", sa.String(100), nullable=True),
        sa.Column("mail_type", sa.String(50), nullable=True),
        sa.Column("handled_by", sa.String(255), nullable=True),
        sa.Column("received_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", document_status, nullable=False),
        sa.Column("forwarded_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("client_notified_date", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["business_entity_id"],
            ["business_entities.entity_id"],
            name=op.f("fk_received_documents_business_entity_id_business_entities"),
        ),
        sa.PrimaryKeyConstraint("document_id", name=op.f("pk_received_documents")),
    )
    op.create_index(
        op.f("ix_received_documents_entity_received"),
        "received_documents",
        ["business_entity_id", "received_date"],
        unique=False,
    )
    op.create_index(
        op.f("ix_received_documents_status"), "received_documents", ["status"], unique=False
    )

    op.create_table(
        "document_audit_log",
        _uuid_pk("log_id"),
        sa.Column("entry_seq", sa.BigInteger(), sa.Identity(always=True), nullable=False),
        sa.Column("document_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action", audit_action, nullable=False),
        sa.Column("performed_by", sa.String(255), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("ip_address", postgresql.INET(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        _timestamp("timestamp"),
        sa.ForeignKeyConstraint(
            ["document_id"],
            ["received_documents.document_id"],
            name=op.f("fk_document_audit_log_document_id_received_documents"),
        ),
        sa.PrimaryKeyConstraint("log_id", name=op.f("pk_document_audit_log")),
        sa.UniqueConstraint("entry_seq", name=op.f("uq_document_audit_log_entry_seq")),
    )
    op.create_index(
        op.f("ix_document_audit_log_document_ts"),
        "document_audit_log",
        ["document_id", "timestamp"],
        unique=False,
    )


def downgrade() -> None:
    """Revert migration: Drop all tables and enum types."""
    op.drop_table("document_audit_log")
    op.drop_table("received_documents")
    op.drop_table("registered_agent_consents")
    op.drop_table("registered_agent_addresses")
    op.drop_table("virtual_mailbox_configs")
    op.drop_table("business_entities")

    op.execute("DROP TYPE IF EXISTS audit_action")
    op.execute("DROP TYPE IF EXISTS document_status")
    op.execute("DROP TYPE IF EXISTS urgency_level")
    op.execute("DROP TYPE IF EXISTS document_category")
    op.execute("DROP TYPE IF EXISTS document_type")
    op.execute("DROP TYPE IF EXISTS consent_method")
