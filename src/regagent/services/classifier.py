"""Document classification by legal urgency.

Rules are evaluated in order and the first match wins. Matching is a
case-insensitive substring test on the document title and sender name.
"""

from __future__ import annotations

from dataclasses import dataclass

from regagent.db.models.base import DocumentCategory, DocumentType, UrgencyLevel


@dataclass(frozen=True, slots=True)
class DocumentClassification:
    """Classifier output.

    Attributes:
        document_type: Broad document type.
        category: Finer category within the type.
        urgency_level: Handling urgency.
    """

    document_type: DocumentType
    category: DocumentCategory
    urgency_level: UrgencyLevel


@dataclass(frozen=True, slots=True)
class _Rule:
    title_terms: tuple[str, ...]
    sender_terms: tuple[str, ...]
    result: DocumentClassification

    def matches(self, title: str, sender: str) -> bool:
        return any(term in title for term in self.title_terms) or any(
            term in sender for term in self.sender_terms
        )


CLASSIFICATION_RULES: tuple[_Rule, ...] = (
    _Rule(
        title_terms=("subpoena", "summons", "lawsuit"),
        sender_terms=(),
        result=DocumentClassification(
            DocumentType.LEGAL_NOTICE, DocumentCategory.SUBPOENA, UrgencyLevel.URGENT
        ),
    ),
    _Rule(
        title_terms=("court",),
        sender_terms=("court",),
        result=DocumentClassification(
            DocumentType.COURT_DOCUMENT, DocumentCategory.LEGAL_PROCEEDING, UrgencyLevel.URGENT
        ),
    ),
    _Rule(
        title_terms=("tax",),
        sender_terms=("irs", "tax"),
        result=DocumentClassification(
            DocumentType.TAX_NOTICE, DocumentCategory.TAX_ASSESSMENT, UrgencyLevel.URGENT
        ),
    ),
    _Rule(
        title_terms=("annual report", "franchise tax"),
        sender_terms=(),
        result=DocumentClassification(
            DocumentType.ANNUAL_REPORT, DocumentCategory.COMPLIANCE_NOTICE, UrgencyLevel.NORMAL
        ),
    ),
    _Rule(
        title_terms=(),
        sender_terms=("secretary of state", "state of"),
        result=DocumentClassification(
            DocumentType.LEGAL_NOTICE, DocumentCategory.COMPLIANCE_NOTICE, UrgencyLevel.NORMAL
        ),
    ),
)

DEFAULT_CLASSIFICATION = DocumentClassification(
    DocumentType.OTHER, DocumentCategory.GENERAL_CORRESPONDENCE, UrgencyLevel.NORMAL
)


def categorize_document(document_title: str, sender_name: str) -> DocumentClassification:
    """Classify a document from its title and sender.

    Note that any title containing "tax" is caught by the tax rule, so
    "franchise tax" titles classify as tax notices.
    """
    title = document_title.lower()
    sender = sender_name.lower()
    for rule in CLASSIFICATION_RULES:
        if rule.matches(title, sender):
            return rule.result
    return DEFAULT_CLASSIFICATION
