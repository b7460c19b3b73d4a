"""Tests for received document lifecycle operations.

Tests cover:
- Status transition rules
- process_document and forward_document, including audit entries
- Not-found and invalid transition errors
- Entity document listing and audit trail lookups
"""

from uuid import uuid4

import pytest

from regagent.db.models import AuditAction, DocumentAuditLog, DocumentStatus
from regagent.services.documents import (
    FORWARDED_DETAILS,
    PROCESSED_DETAILS,
    DocumentLifecycleService,
    DocumentNotFoundError,
    InvalidStatusTransitionError,
    RequestContext,
)
from tests.factories import (
    create_audit_entry,
    create_document,
    create_mock_session,
    create_result,
)


def audit_entries(session) -> list[DocumentAuditLog]:
    return [
        call.args[0]
        for call in session.add.call_args_list
        if isinstance(call.args[0], DocumentAuditLog)
    ]


class TestValidTransitions:
    @pytest.mark.parametrize(
        ("from_status", "to_status", "valid"),
        [
            (DocumentStatus.RECEIVED, DocumentStatus.PROCESSED, True),
            (DocumentStatus.RECEIVED, DocumentStatus.FORWARDED, True),
            (DocumentStatus.PROCESSED, DocumentStatus.FORWARDED, True),
            (DocumentStatus.PROCESSED, DocumentStatus.RECEIVED, False),
            (DocumentStatus.PROCESSED, DocumentStatus.PROCESSED, False),
            (DocumentStatus.FORWARDED, DocumentStatus.PROCESSED, False),
            (DocumentStatus.FORWARDED, DocumentStatus.FORWARDED, False),
        ],
    )
    def test_transitions(self, from_status, to_status, valid):
        assert DocumentLifecycleService.is_valid_transition(from_status, to_status) is valid


class TestProcessDocument:
    @pytest.mark.asyncio
    async def test_marks_processed_and_audits(self):
        document = create_document()
        session = create_mock_session(get=document)
        context = RequestContext(ip_address="198.51.100.4", user_agent="staff-portal")

        result = await DocumentLifecycleService(session).process_document(
            document.document_id, "clerk@agent.example", context=context
        )

        assert result.status == DocumentStatus.PROCESSED
        assert result.handled_by == "clerk@agent.example"

        entries = audit_entries(session)
        assert len(entries) == 1
        assert entries[0].action == AuditAction.PROCESSED
        assert entries[0].details == PROCESSED_DETAILS
        assert entries[0].performed_by == "clerk@agent.example"
        assert entries[0].ip_address == "198.51.100.4"
        assert entries[0].user_agent == "staff-portal"

    @pytest.mark.asyncio
    async def test_locks_the_row(self):
        document = create_document()
        session = create_mock_session(get=document)

        await DocumentLifecycleService(session).process_document(document.document_id, "clerk")

        assert session.get.await_args.kwargs["with_for_update"] is True

    @pytest.mark.asyncio
    async def test_unknown_document_raises(self):
        session = create_mock_session(get=None)

        with pytest.raises(DocumentNotFoundError):
            await DocumentLifecycleService(session).process_document(uuid4(), "clerk")

        session.add.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [DocumentStatus.PROCESSED, DocumentStatus.FORWARDED])
    async def test_cannot_process_twice_or_after_forwarding(self, status):
        document = create_document(status=status)
        session = create_mock_session(get=document)

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            await DocumentLifecycleService(session).process_document(document.document_id, "clerk")

        assert exc_info.value.from_status == status
        assert document.status == status
        session.add.assert_not_called()


class TestForwardDocument:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [DocumentStatus.RECEIVED, DocumentStatus.PROCESSED])
    async def test_forwards_and_sets_dates(self, status):
        document = create_document(status=status)
        session = create_mock_session(get=document)

        result = await DocumentLifecycleService(session).forward_document(
            document.document_id, "clerk", "https://vault.example/doc.pdf"
        )

        assert result.status == DocumentStatus.FORWARDED
        assert result.forwarded_date is not None
        assert result.client_notified_date == result.forwarded_date
        assert result.digital_document_url == "https://vault.example/doc.pdf"

        entries = audit_entries(session)
        assert [e.action for e in entries] == [AuditAction.FORWARDED]
        assert entries[0].details == FORWARDED_DETAILS
        assert entries[0].ip_address is None

    @pytest.mark.asyncio
    async def test_keeps_scan_url_without_digital_url(self):
        document = create_document()
        original_url = document.digital_document_url
        session = create_mock_session(get=document)

        result = await DocumentLifecycleService(session).forward_document(
            document.document_id, "clerk"
        )

        assert result.digital_document_url == original_url

    @pytest.mark.asyncio
    async def test_cannot_forward_twice(self):
        document = create_document(status=DocumentStatus.FORWARDED)
        session = create_mock_session(get=document)

        with pytest.raises(InvalidStatusTransitionError):
            await DocumentLifecycleService(session).forward_document(document.document_id, "clerk")

    @pytest.mark.asyncio
    async def test_unknown_document_raises(self):
        session = create_mock_session(get=None)
        with pytest.raises(DocumentNotFoundError):
            await DocumentLifecycleService(session).forward_document(uuid4(), "clerk")


class TestQueries:
    @pytest.mark.asyncio
    async def test_documents_for_entity_newest_first(self):
        entity_id = uuid4()
        documents = [create_document(entity_id), create_document(entity_id)]
        session = create_mock_session(create_result(scalars=documents))

        result = await DocumentLifecycleService(session).get_documents_for_entity(entity_id)

        assert result == documents
        query = str(session.execute.await_args.args[0])
        assert "ORDER BY received_documents.received_date DESC" in query

    @pytest.mark.asyncio
    async def test_audit_trail(self):
        document = create_document()
        entries = [create_audit_entry(document.document_id)]
        session = create_mock_session(create_result(scalars=entries), get=document)

        result = await DocumentLifecycleService(session).get_document_audit_trail(
            document.document_id
        )

        assert result == entries

    @pytest.mark.asyncio
    async def test_audit_trail_for_unknown_document(self):
        session = create_mock_session(get=None)
        with pytest.raises(DocumentNotFoundError):
            await DocumentLifecycleService(session).get_document_audit_trail(uuid4())
