"""Tests for the regagent API application.

Tests cover:
- App factory (create_app)
- Namespace routers and health endpoints
- Request ID middleware
- Error handling middleware and domain error mapping
- Mailbox webhook and mailbox configuration
- Agent registry and consent endpoints
- Document endpoints
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from regagent.api import create_app
from regagent.api.middleware.errors import APIError, build_error_response
from regagent.api.middleware.request_id import REQUEST_ID_HEADER, get_request_id
from regagent.db.models import AuditAction, DocumentAuditLog, DocumentStatus, ReceivedDocument
from regagent.services.mailbox_client import MailboxProviderError
from tests.factories import (
    create_agent_address,
    create_audit_entry,
    create_consent,
    create_document,
    create_entity,
    create_result,
)


def added_audit_entries(session) -> list[DocumentAuditLog]:
    return [
        call.args[0]
        for call in session.add.call_args_list
        if isinstance(call.args[0], DocumentAuditLog)
    ]


class TestAppFactory:
    """Tests for the create_app factory function."""

    def test_create_app_returns_fastapi_instance(self):
        app = create_app()
        assert isinstance(app, FastAPI)

    def test_create_app_sets_title(self):
        app = create_app()
        assert app.title == "Registered Agent API"

    def test_create_app_sets_version(self, test_settings):
        assert create_app().version == "0.1.0"
        assert create_app(test_settings).version == test_settings.app_version

    def test_create_app_docs_urls(self):
        app = create_app()
        assert app.docs_url == "/api/docs"
        assert app.redoc_url == "/api/redoc"
        assert app.openapi_url == "/api/openapi.json"

    def test_create_app_stores_settings_in_state(self, test_settings):
        assert create_app().state.settings is None
        assert create_app(test_settings).state.settings is test_settings


class TestHealthEndpoints:
    @pytest.mark.asyncio
    async def test_root_health(self, api_client: AsyncClient):
        response = await api_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("namespace", ["mailbox", "agents", "documents"])
    async def test_namespace_health(self, api_client: AsyncClient, namespace):
        response = await api_client.get(f"/api/{namespace}/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "namespace": namespace}

    @pytest.mark.asyncio
    async def test_openapi_schema(self, api_client: AsyncClient):
        response = await api_client.get("/api/openapi.json")
        assert response.status_code == 200
        paths = response.json()["paths"]
        assert "/api/mailbox/webhook" in paths
        assert "/api/agents/consents" in paths
        assert "/api/documents/{document_id}/forward" in paths


class TestRequestIDMiddleware:
    @pytest.mark.asyncio
    async def test_generates_request_id(self, api_client: AsyncClient):
        response = await api_client.get("/health")
        request_id = response.headers[REQUEST_ID_HEADER]
        assert uuid.UUID(request_id)

    @pytest.mark.asyncio
    async def test_echoes_client_request_id(self, api_client: AsyncClient):
        response = await api_client.get("/health", headers={REQUEST_ID_HEADER: "trace-abc-123"})
        assert response.headers[REQUEST_ID_HEADER] == "trace-abc-123"

    @pytest.mark.asyncio
    async def test_replaces_oversized_request_id(self, api_client: AsyncClient):
        response = await api_client.get("/health", headers={REQUEST_ID_HEADER: "x" * 500})
        assert response.headers[REQUEST_ID_HEADER] != "x" * 500

    def test_no_request_id_outside_request(self):
        assert get_request_id() is None


class TestErrorHandling:
    def test_build_error_response(self):
        response = build_error_response("conflict", "Already done", 409, {"key": "value"})
        assert response.status_code == 409
        assert b'"error":"conflict"' in response.body
        assert b'"detail":{"key":"value"}' in response.body

    def test_api_error_attributes(self):
        error = APIError("bad_input", "Bad input", status_code=422)
        assert error.error == "bad_input"
        assert error.status_code == 422
        assert str(error) == "Bad input"

    @pytest.mark.asyncio
    async def test_not_found_carries_request_id(self, api_client: AsyncClient, mock_session):
        mock_session.get.return_value = None

        response = await api_client.get(
            f"/api/documents/{uuid.uuid4()}", headers={REQUEST_ID_HEADER: "req-42"}
        )

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "document_not_found"
        assert data["request_id"] == "req-42"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_500(self, api_client: AsyncClient, mock_session):
        mock_session.get.side_effect = RuntimeError("connection reset")

        response = await api_client.get(f"/api/documents/{uuid.uuid4()}")

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "internal_error"
        assert "connection reset" not in data["message"]

    @pytest.mark.asyncio
    async def test_invalid_uuid_is_422(self, api_client: AsyncClient):
        response = await api_client.get("/api/documents/not-a-uuid")
        assert response.status_code == 422


# =============================================================================
# Mailbox
# =============================================================================


class TestMailWebhook:
    @pytest.mark.asyncio
    async def test_known_recipient_is_processed(self, api_client: AsyncClient, mock_session):
        mock_session.execute.side_effect = [create_result(scalar=create_entity())]

        response = await api_client.post(
            "/api/mailbox/webhook",
            json={
                "mail_id": "mail_1",
                "recipient_address": "addr_123",
                "sender_name": "Delaware Division of Corporations",
                "mail_type": "letter",
            },
        )

        assert response.status_code == 202
        data = response.json()
        assert data["status"] == "processed"
        assert uuid.UUID(data["document_id"])
        mock_session.commit.assert_awaited_once()

        entries = added_audit_entries(mock_session)
        assert [e.action for e in entries] == [AuditAction.RECEIVED, AuditAction.MAIL_PROCESSED]
        assert entries[0].timestamp <= entries[1].timestamp

        (document,) = [
            call.args[0]
            for call in mock_session.add.call_args_list
            if isinstance(call.args[0], ReceivedDocument)
        ]
        assert document.is_simulated is True
        assert document.sender_name
        assert document.document_title
        assert document.urgency_level is not None

    @pytest.mark.asyncio
    async def test_unknown_recipient_is_dropped(self, api_client: AsyncClient, mock_session):
        mock_session.execute.side_effect = [
            create_result(scalar=None),
            create_result(scalars=[]),
        ]

        response = await api_client.post(
            "/api/mailbox/webhook",
            json={"mail_id": "mail_1", "recipient_address": "nowhere"},
        )

        assert response.status_code == 202
        assert response.json() == {"status": "dropped", "document_id": None}
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"mail_id": "mail_1"}, ["not", "an", "object"], "text"])
    async def test_malformed_payload_is_dropped(self, api_client: AsyncClient, mock_session, body):
        response = await api_client.post("/api/mailbox/webhook", json=body)

        assert response.status_code == 202
        assert response.json()["status"] == "dropped"
        mock_session.execute.assert_not_awaited()


class TestConfigureMailbox:
    @pytest.mark.asyncio
    async def test_configures_simulated_address(self, api_client: AsyncClient, mock_session):
        entity = create_entity()
        mock_session.get.return_value = entity

        response = await api_client.post(
            f"/api/mailbox/entities/{entity.entity_id}/configure", json={"state": "de"}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["business_entity_id"] == str(entity.entity_id)
        assert data["address_id"] == f"addr_{entity.entity_id}_Delaware"
        assert data["is_active"] is True
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unsupported_state(self, api_client: AsyncClient, mock_session):
        response = await api_client.post(
            f"/api/mailbox/entities/{uuid.uuid4()}/configure", json={"state": "Oregon"}
        )

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "unsupported_state"
        assert data["detail"] == {"state": "Oregon", "requested": "Oregon"}
        mock_session.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_entity(self, api_client: AsyncClient, mock_session):
        mock_session.get.return_value = None

        response = await api_client.post(
            f"/api/mailbox/entities/{uuid.uuid4()}/configure", json={"state": "Delaware"}
        )

        assert response.status_code == 404
        assert response.json()["error"] == "entity_not_found"

    @pytest.mark.asyncio
    async def test_provider_error_is_502(self, api_client: AsyncClient, test_app, mock_session):
        mock_session.get.return_value = create_entity()
        mailbox = MagicMock()
        mailbox.configure_address = AsyncMock(
            side_effect=MailboxProviderError("Mailbox provider returned 503", 503)
        )
        test_app.state.mailbox_client = mailbox

        response = await api_client.post(
            f"/api/mailbox/entities/{uuid.uuid4()}/configure", json={"state": "Delaware"}
        )

        assert response.status_code == 502
        data = response.json()
        assert data["error"] == "mailbox_provider_error"
        assert data["detail"] == {"provider_status": 503}
        mock_session.commit.assert_not_awaited()


# =============================================================================
# Agents
# =============================================================================


class TestAgentRegistryEndpoints:
    @pytest.mark.asyncio
    async def test_list_states(self, api_client: AsyncClient):
        response = await api_client.get("/api/agents/states")

        assert response.status_code == 200
        data = response.json()
        assert data["states"] == sorted(data["states"])
        assert "Delaware" in data["states"]
        assert data["abbreviations"]["DE"] == "Delaware"

    @pytest.mark.asyncio
    async def test_agent_info_for_abbreviation(self, api_client: AsyncClient):
        response = await api_client.get("/api/agents/ny")

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "New York"
        assert data["available"] is True
        assert data["address"]["city"] == "New York"
        assert data["pricing"] == {"annual_fee": 199, "setup_fee": 0}
        assert data["services"]

    @pytest.mark.asyncio
    async def test_agent_info_for_unsupported_state(self, api_client: AsyncClient):
        response = await api_client.get("/api/agents/Oregon")

        assert response.status_code == 200
        data = response.json()
        assert data["available"] is False
        assert data["address"] is None


class TestConsentEndpoints:
    @pytest.mark.asyncio
    async def test_create_consent(self, api_client: AsyncClient, mock_session):
        address = create_agent_address()
        mock_session.execute.side_effect = [
            create_result(scalar=address),
            create_result(rowcount=1),
        ]
        entity_id = uuid.uuid4()

        response = await api_client.post(
            "/api/agents/consents",
            json={"business_entity_id": str(entity_id), "state": "DE"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["business_entity_id"] == str(entity_id)
        assert data["agent_address_id"] == str(address.address_id)
        assert data["consent_method"] == "electronic"
        assert data["is_active"] is True
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_consent_inactive_address(self, api_client: AsyncClient, mock_session):
        mock_session.execute.side_effect = [
            create_result(scalar=create_agent_address(is_active=False)),
        ]

        response = await api_client.post(
            "/api/agents/consents",
            json={"business_entity_id": str(uuid.uuid4()), "state": "Delaware"},
        )

        assert response.status_code == 404
        assert response.json()["error"] == "agent_address_inactive"
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_consent_unsupported_state(self, api_client: AsyncClient, mock_session):
        mock_session.execute.side_effect = [create_result(scalar=None)]

        response = await api_client.post(
            "/api/agents/consents",
            json={"business_entity_id": str(uuid.uuid4()), "state": "Oregon"},
        )

        assert response.status_code == 404
        assert response.json()["error"] == "unsupported_state"

    @pytest.mark.asyncio
    async def test_create_consent_invalid_method(self, api_client: AsyncClient):
        response = await api_client.post(
            "/api/agents/consents",
            json={
                "business_entity_id": str(uuid.uuid4()),
                "state": "Delaware",
                "consent_method": "carrier_pigeon",
            },
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_get_consent_not_found(self, api_client: AsyncClient, mock_session):
        mock_session.get.return_value = None

        response = await api_client.get(f"/api/agents/consents/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"] == "consent_not_found"

    @pytest.mark.asyncio
    async def test_consent_document(self, api_client: AsyncClient, mock_session):
        entity = create_entity(name="Acme Holdings LLC")
        address = create_agent_address()
        consent = create_consent(entity.entity_id, address.address_id)
        mock_session.get.side_effect = [consent, entity, address]

        response = await api_client.get(f"/api/agents/consents/{consent.consent_id}/document")

        assert response.status_code == 200
        data = response.json()
        assert data["consent_id"] == str(consent.consent_id)
        assert "Acme Holdings LLC" in data["content"]
        assert "1013 Centre Road, Suite 403-B" in data["content"]

    @pytest.mark.asyncio
    async def test_list_entity_consents(self, api_client: AsyncClient, mock_session):
        entity_id = uuid.uuid4()
        active = create_consent(entity_id)
        superseded = create_consent(entity_id, is_active=False)
        mock_session.execute.side_effect = [create_result(scalars=[active, superseded])]

        response = await api_client.get(f"/api/agents/entities/{entity_id}/consents")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["active_consent_id"] == str(active.consent_id)


# =============================================================================
# Documents
# =============================================================================


class TestDocumentEndpoints:
    @pytest.mark.asyncio
    async def test_list_entity_documents(self, api_client: AsyncClient, mock_session):
        entity_id = uuid.uuid4()
        documents = [create_document(entity_id), create_document(entity_id)]
        mock_session.execute.side_effect = [create_result(scalars=documents)]

        response = await api_client.get(f"/api/documents/entities/{entity_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["documents"][0]["document_id"] == str(documents[0].document_id)
        assert data["documents"][0]["status"] == "received"

    @pytest.mark.asyncio
    async def test_get_document(self, api_client: AsyncClient, mock_session):
        document = create_document()
        mock_session.get.return_value = document

        response = await api_client.get(f"/api/documents/{document.document_id}")

        assert response.status_code == 200
        assert response.json()["document_title"] == "Annual Report Filing Notice"

    @pytest.mark.asyncio
    async def test_audit_trail(self, api_client: AsyncClient, mock_session):
        document = create_document()
        entries = [
            create_audit_entry(document.document_id, AuditAction.RECEIVED, entry_seq=1),
            create_audit_entry(document.document_id, AuditAction.MAIL_PROCESSED, entry_seq=2),
        ]
        mock_session.get.return_value = document
        mock_session.execute.side_effect = [create_result(scalars=entries)]

        response = await api_client.get(f"/api/documents/{document.document_id}/audit")

        assert response.status_code == 200
        actions = [e["action"] for e in response.json()["entries"]]
        assert actions == ["received", "mail_processed"]

    @pytest.mark.asyncio
    async def test_process_records_client_details(self, api_client: AsyncClient, mock_session):
        document = create_document()
        mock_session.get.return_value = document

        response = await api_client.post(
            f"/api/documents/{document.document_id}/process",
            json={"handled_by": "clerk@agent.example"},
            headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1", "User-Agent": "staff-portal"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "processed"
        mock_session.commit.assert_awaited_once()

        (entry,) = added_audit_entries(mock_session)
        assert entry.action == AuditAction.PROCESSED
        assert entry.ip_address == "203.0.113.9"
        assert entry.user_agent == "staff-portal"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("forwarded_for", ["unknown", "not-an-ip, 10.0.0.1", ""])
    async def test_process_ignores_invalid_forwarded_for(
        self, api_client: AsyncClient, mock_session, forwarded_for
    ):
        document = create_document()
        mock_session.get.return_value = document

        response = await api_client.post(
            f"/api/documents/{document.document_id}/process",
            json={"handled_by": "clerk"},
            headers={"X-Forwarded-For": forwarded_for},
        )

        assert response.status_code == 200
        (entry,) = added_audit_entries(mock_session)
        assert entry.ip_address == "127.0.0.1"

    @pytest.mark.asyncio
    async def test_process_twice_is_conflict(self, api_client: AsyncClient, mock_session):
        document = create_document(status=DocumentStatus.PROCESSED)
        mock_session.get.return_value = document

        response = await api_client.post(
            f"/api/documents/{document.document_id}/process", json={"handled_by": "clerk"}
        )

        assert response.status_code == 409
        data = response.json()
        assert data["error"] == "invalid_status_transition"
        assert data["detail"] == {"from_status": "processed", "to_status": "processed"}
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_forward(self, api_client: AsyncClient, mock_session):
        document = create_document(status=DocumentStatus.PROCESSED)
        mock_session.get.return_value = document

        response = await api_client.post(
            f"/api/documents/{document.document_id}/forward",
            json={"handled_by": "clerk", "digital_url": "https://vault.example/doc.pdf"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "forwarded"
        assert data["digital_document_url"] == "https://vault.example/doc.pdf"
        assert data["forwarded_date"] is not None

    @pytest.mark.asyncio
    async def test_forward_requires_handler(self, api_client: AsyncClient):
        response = await api_client.post(
            f"/api/documents/{uuid.uuid4()}/forward", json={"handled_by": ""}
        )
        assert response.status_code == 422
