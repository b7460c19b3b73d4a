"""Mail intake pipeline.

Turns a notification about physical mail received at a registered agent
address into a classified ReceivedDocument with an audit trail, and
notifies the client. For one mail item the stages run strictly in order:

    notified -> entity_resolved -> scanned -> extracted -> classified
             -> persisted -> notified_client

Only a missing business entity aborts intake. Scan and OCR provider
failures are absorbed by the provider clients, which return simulated
data; the resulting document is flagged with is_simulated. Client
notification is best-effort.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from regagent.core.config import DEFAULT_MAILBOX_HANDLER
from regagent.db.models.base import AuditAction, DocumentStatus, UrgencyLevel
from regagent.services.audit_trail import DocumentAuditTrail
from regagent.services.classifier import categorize_document
from regagent.services.entities import EntityResolver

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from regagent.db.models.documents import ReceivedDocument
    from regagent.db.models.entities import BusinessEntity
    from regagent.services.classifier import DocumentClassification
    from regagent.services.mailbox_client import MailScanResult, VirtualMailboxClient
    from regagent.services.notifications import ClientNotifier
    from regagent.services.ocr import ExtractedFields, OcrProvider

logger = logging.getLogger(__name__)

URGENT_MAIL_TYPES = frozenset({"certified", "legal"})
URGENT_SENDER_TERMS = ("court", "irs")
LEGAL_KEYWORDS = ("subpoena", "summons", "lawsuit", "court", "legal notice", "irs", "tax")


class IntakeStage(str, Enum):
    """Progress of one mail item through the intake pipeline."""

    NOTIFIED = "notified"
    ENTITY_RESOLVED = "entity_resolved"
    SCANNED = "scanned"
    EXTRACTED = "extracted"
    CLASSIFIED = "classified"
    PERSISTED = "persisted"
    NOTIFIED_CLIENT = "notified_client"


@dataclass(frozen=True, slots=True)
class MailNotification:
    """Notification that a physical mail item arrived.

    Attributes:
        mail_id: Provider identifier of the mail item.
        recipient_address: Address the item was sent to.
        received_date: When the item was received.
        sender_name: Sender as printed on the envelope, if known.
        tracking_number: Postal tracking number.
        mail_type: Postal class (letter, certified, legal, package...).
        urgency_level: Urgency declared by the sender of the notification.
    """

    mail_id: str
    recipient_address: str
    received_date: datetime
    sender_name: str | None = None
    tracking_number: str | None = None
    mail_type: str = "letter"
    urgency_level: UrgencyLevel | None = None


class MailWebhookPayload(BaseModel):
    """Mail notification webhook body sent by the mailbox provider."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    mail_id: str = Field(min_length=1)
    recipient_address: str = Field(min_length=1)
    sender_name: str | None = None
    received_date: datetime | None = None
    tracking_number: str | None = None
    mail_type: str = "letter"

    @field_validator("mail_type", mode="before")
    @classmethod
    def default_mail_type(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "letter"
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("received_date", mode="before")
    @classmethod
    def lenient_received_date(cls, v: Any) -> Any:
        """Accept ISO 8601 and RFC 2822 dates; anything else means "now"."""
        if v is None or isinstance(v, datetime):
            return v
        if isinstance(v, str):
            value = v.strip()
            if not value:
                return None
            try:
                return datetime.fromisoformat(value)
            except ValueError:
                pass
            try:
                return parsedate_to_datetime(value)
            except (TypeError, ValueError):
                pass
        logger.warning("Unparseable received_date %r on mail notification, using current time", v)
        return None


def _fit_column(name: str, value: str | None) -> str | None:
    """Truncate a provider-supplied value to its received_documents column size."""
    from regagent.db.models.documents import ReceivedDocument

    if value is None:
        return None
    length = getattr(ReceivedDocument.__table__.c[name].type, "length", None)
    if length is not None and len(value) > length:
        logger.warning("Truncating %s from %d to %d characters", name, len(value), length)
        return value[:length]
    return value


def classify_webhook_urgency(mail_type: str | None, sender_name: str | None) -> UrgencyLevel:
    """Urgency declared from the envelope: postal class and sender."""
    if mail_type in URGENT_MAIL_TYPES:
        return UrgencyLevel.URGENT
    sender = (sender_name or "").lower()
    if any(term in sender for term in URGENT_SENDER_TERMS):
        return UrgencyLevel.URGENT
    return UrgencyLevel.NORMAL


def determine_urgency(notification: MailNotification, ocr: ExtractedFields) -> UrgencyLevel:
    """Final urgency for a mail item.

    Certified and legal mail is always urgent. Otherwise legal keywords in
    the OCR title or summary make it urgent; failing that the urgency
    declared on the notification applies, defaulting to normal.
    """
    if notification.mail_type in URGENT_MAIL_TYPES:
        return UrgencyLevel.URGENT

    content = f"{ocr.document_title or ''} {ocr.document_summary or ''}".lower()
    if any(keyword in content for keyword in LEGAL_KEYWORDS):
        return UrgencyLevel.URGENT

    return notification.urgency_level or UrgencyLevel.NORMAL


def notification_from_webhook(webhook_data: Mapping[str, Any]) -> MailNotification:
    """Map a provider webhook body to a MailNotification.

    Raises:
        ValidationError: If required fields are missing or invalid.
    """
    payload = MailWebhookPayload.model_validate(webhook_data)
    received = payload.received_date or datetime.now(UTC)
    if received.tzinfo is None:
        received = received.replace(tzinfo=UTC)
    return MailNotification(
        mail_id=payload.mail_id,
        recipient_address=payload.recipient_address,
        received_date=received,
        sender_name=payload.sender_name,
        tracking_number=payload.tracking_number,
        mail_type=payload.mail_type,
        urgency_level=classify_webhook_urgency(payload.mail_type, payload.sender_name),
    )


class MailIntakeService:
    """Orchestrates intake of one mail item at a time.

    Example:
        async with VirtualMailboxClient(config) as mailbox:
            intake = MailIntakeService(
                session,
                mailbox_client=mailbox,
                ocr_provider=SimulatedOcrProvider(),
                notifier=LoggingClientNotifier(),
            )
            document = await intake.process_mail(notification)
            await session.commit()
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        mailbox_client: VirtualMailboxClient,
        ocr_provider: OcrProvider,
        notifier: ClientNotifier,
        handled_by: str = DEFAULT_MAILBOX_HANDLER,
    ) -> None:
        self._session = session
        self._mailbox = mailbox_client
        self._ocr = ocr_provider
        self._notifier = notifier
        self._handled_by = handled_by
        self._entities = EntityResolver(session)
        self._audit = DocumentAuditTrail(session)

    async def handle_mail_notification(
        self, webhook_data: Mapping[str, Any]
    ) -> ReceivedDocument | None:
        """Process a mail notification webhook.

        Malformed payloads are logged and dropped.

        Returns:
            The created document, or None if the payload was dropped or
            no entity owns the recipient address.
        """
        try:
            notification = notification_from_webhook(webhook_data)
        except ValidationError as e:
            logger.warning(
                "Dropping malformed mail notification: %s",
                "; ".join(
                    f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
                ),
            )
            return None

        return await self.process_mail(notification)

    async def process_mail(self, notification: MailNotification) -> ReceivedDocument | None:
        """Run a mail item through the intake pipeline.

        Args:
            notification: The received mail item.

        Returns:
            The persisted document, or None if no business entity owns the
            recipient address (nothing is written in that case).
        """
        self._log_stage(IntakeStage.NOTIFIED, notification)

        entity = await self._entities.find_by_recipient_address(notification.recipient_address)
        if entity is None:
            logger.warning(
                "No business entity found for address: %s (mail %s dropped)",
                notification.recipient_address,
                notification.mail_id,
            )
            return None
        self._log_stage(IntakeStage.ENTITY_RESOLVED, notification)

        scan = await self._mailbox.request_scan(notification.mail_id)
        if scan is None:
            logger.error("Failed to scan mail: %s", notification.mail_id)
            return None
        self._log_stage(IntakeStage.SCANNED, notification)

        ocr = await self._ocr.extract(scan.document_url)
        self._log_stage(IntakeStage.EXTRACTED, notification)

        classification = categorize_document(
            ocr.document_title or notification.sender_name or "Unknown Document",
            notification.sender_name or "Unknown Sender",
        )
        urgency = determine_urgency(notification, ocr)
        self._log_stage(IntakeStage.CLASSIFIED, notification)

        document = await self._persist(entity, notification, scan, ocr, classification, urgency)
        self._log_stage(IntakeStage.PERSISTED, notification)

        await self._notify_client(entity, document, scan)
        self._log_stage(IntakeStage.NOTIFIED_CLIENT, notification)

        await self._audit.record(
            document.document_id,
            AuditAction.MAIL_PROCESSED,
            performed_by=self._handled_by,
            details={
                "mailId": notification.mail_id,
                "scanId": scan.scan_id,
                "extractedData": scan.extracted_data,
                "ocrData": ocr.to_dict(),
                "simulated": document.is_simulated,
                "processingTimestamp": datetime.now(UTC).isoformat(),
            },
        )

        logger.info(
            "Mail processed",
            extra={
                "mail_id": notification.mail_id,
                "document_id": str(document.document_id),
                "business_entity_id": str(entity.entity_id),
                "urgency_level": urgency.value,
                "simulated": document.is_simulated,
            },
        )
        return document

    async def _persist(
        self,
        entity: BusinessEntity,
        notification: MailNotification,
        scan: MailScanResult,
        ocr: ExtractedFields,
        classification: DocumentClassification,
        urgency: UrgencyLevel,
    ) -> ReceivedDocument:
        from regagent.db.models.documents import ReceivedDocument

        now = datetime.now(UTC)
        sender_label = notification.sender_name or "Unknown Sender"
        document = ReceivedDocument(
            document_id=uuid.uuid4(),
            business_entity_id=entity.entity_id,
            document_type=classification.document_type,
            document_category=classification.category,
            urgency_level=urgency,
            sender_name=_fit_column(
                "sender_name", ocr.sender or notification.sender_name or "Unknown"
            ),
            sender_address=ocr.sender_address,
            document_title=_fit_column(
                "document_title", ocr.document_title or f"Mail from {sender_label}"
            ),
            document_description=ocr.document_summary,
            digital_document_url=scan.document_url,
            thumbnail_url=scan.thumbnail_url,
            mailbox_scan_id=_fit_column("mailbox_scan_id", scan.scan_id),
            ocr_confidence=ocr.confidence,
            extracted_text=scan.ocr_text,
            is_simulated=scan.simulated or ocr.simulated,
            tracking_number=_fit_column("tracking_number", notification.tracking_number),
            mail_type=_fit_column("mail_type", notification.mail_type),
            handled_by=self._handled_by,
            received_date=notification.received_date,
            status=DocumentStatus.RECEIVED,
            created_at=now,
            updated_at=now,
        )
        self._session.add(document)
        await self._session.flush()

        await self._audit.record(
            document.document_id,
            AuditAction.RECEIVED,
            performed_by=self._handled_by,
            details=f"Document received: {classification.document_type.value}",
        )
        return document

    async def _notify_client(
        self,
        entity: BusinessEntity,
        document: ReceivedDocument,
        scan: MailScanResult,
    ) -> None:
        try:
            result = await self._notifier.notify_document_received(entity, document, scan)
        except Exception:
            logger.exception(
                "Client notification raised for document %s, continuing intake",
                document.document_id,
            )
            return

        if not result.success:
            logger.warning(
                "Client notification failed for document %s: %s",
                document.document_id,
                result.error,
            )

    @staticmethod
    def _log_stage(stage: IntakeStage, notification: MailNotification) -> None:
        logger.debug(
            "Mail intake stage reached",
            extra={"mail_id": notification.mail_id, "stage": stage.value},
        )
