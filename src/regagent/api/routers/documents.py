"""Received documents API router.

Staff operations on documents received on behalf of business entities:
listing, audit trail, and the processed/forwarded status transitions.
Status changes record the caller's IP address and user agent in the
audit trail.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter

from regagent.api.dependencies import ClientContext, DbSession, DocumentService
from regagent.api.schemas.documents import (
    AuditEntryResponse,
    AuditTrailResponse,
    DocumentListResponse,
    DocumentResponse,
    ForwardDocumentRequest,
    ProcessDocumentRequest,
)
from regagent.api.schemas.errors import ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/documents",
    tags=["documents"],
    responses={
        404: {"description": "Document not found", "model": ErrorResponse},
    },
)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------


@router.get("/health")
async def documents_health() -> dict[str, str]:
    """Health check for documents namespace."""
    return {"status": "healthy", "namespace": "documents"}


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@router.get("/entities/{entity_id}", response_model=DocumentListResponse)
async def list_entity_documents(
    entity_id: UUID, documents: DocumentService
) -> DocumentListResponse:
    """List an entity's documents, most recently received first."""
    records = await documents.get_documents_for_entity(entity_id)
    return DocumentListResponse(
        business_entity_id=entity_id,
        documents=[DocumentResponse.model_validate(d) for d in records],
        total=len(records),
    )


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: UUID, documents: DocumentService) -> DocumentResponse:
    document = await documents.get_document(document_id)
    return DocumentResponse.model_validate(document)


@router.get("/{document_id}/audit", response_model=AuditTrailResponse)
async def get_document_audit(
    document_id: UUID, documents: DocumentService
) -> AuditTrailResponse:
    """Audit trail of a document, oldest entry first."""
    entries = await documents.get_document_audit_trail(document_id)
    return AuditTrailResponse(
        document_id=document_id,
        entries=[AuditEntryResponse.model_validate(e) for e in entries],
    )


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


@router.post(
    "/{document_id}/process",
    response_model=DocumentResponse,
    responses={409: {"description": "Invalid status transition", "model": ErrorResponse}},
)
async def process_document(
    document_id: UUID,
    request: ProcessDocumentRequest,
    documents: DocumentService,
    context: ClientContext,
    db: DbSession,
) -> DocumentResponse:
    """Mark a received document as processed."""
    document = await documents.process_document(
        document_id, request.handled_by, context=context
    )
    await db.commit()
    return DocumentResponse.model_validate(document)


@router.post(
    "/{document_id}/forward",
    response_model=DocumentResponse,
    responses={409: {"description": "Document already forwarded", "model": ErrorResponse}},
)
async def forward_document(
    document_id: UUID,
    request: ForwardDocumentRequest,
    documents: DocumentService,
    context: ClientContext,
    db: DbSession,
) -> DocumentResponse:
    """Forward a document to the client."""
    document = await documents.forward_document(
        document_id, request.handled_by, request.digital_url, context=context
    )
    await db.commit()
    return DocumentResponse.model_validate(document)
