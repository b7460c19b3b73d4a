"""Client notification when new mail is received.

Notification is best-effort: notifiers report failures in the returned
NotificationResult and never raise, so intake is never aborted by a
notification problem.

Usage:
    notifier = build_client_notifier(settings)
    result = await notifier.notify_document_received(entity, document, scan)
    if not result.success:
        ...
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import smtplib
import ssl
from dataclasses import dataclass
from datetime import UTC, datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import TYPE_CHECKING, Protocol

from jinja2 import Environment, PackageLoader, select_autoescape

from regagent.db.models.base import UrgencyLevel

if TYPE_CHECKING:
    from regagent.core.config import Settings, SMTPSettings
    from regagent.db.models.documents import ReceivedDocument
    from regagent.db.models.entities import BusinessEntity
    from regagent.services.mailbox_client import MailScanResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NotificationResult:
    """Result of a notification attempt.

    Attributes:
        success: Whether the client was notified.
        channel: Channel used ("email" or "log").
        message_id: SMTP message ID when sent by email.
        error: Error message if the notification failed.
        sent_at: Timestamp when the notification was sent.
    """

    success: bool
    channel: str
    message_id: str | None = None
    error: str | None = None
    sent_at: datetime | None = None


class ClientNotifier(Protocol):
    """Channel used to tell a client that mail was received."""

    async def notify_document_received(
        self,
        entity: BusinessEntity,
        document: ReceivedDocument,
        scan: MailScanResult,
    ) -> NotificationResult: ...


class LoggingClientNotifier:
    """Notifier that only writes the notification to the log."""

    async def notify_document_received(
        self,
        entity: BusinessEntity,
        document: ReceivedDocument,
        scan: MailScanResult,
    ) -> NotificationResult:
        logger.info(
            "Notification for entity %s: new document received - %s",
            entity.name,
            document.document_title,
            extra={
                "business_entity_id": str(entity.entity_id),
                "scan_id": scan.scan_id,
            },
        )
        return NotificationResult(success=True, channel="log", sent_at=datetime.now(UTC))


class EmailClientNotifier:
    """Notifier that emails the entity's contact address over SMTP.

    SMTP calls are blocking and run in the default thread pool executor.
    """

    def __init__(self, smtp_settings: SMTPSettings, agent_name: str) -> None:
        self.smtp_settings = smtp_settings
        self.agent_name = agent_name
        self._env = Environment(
            loader=PackageLoader("regagent", "templates/email"),
            autoescape=select_autoescape(["html", "xml"]),
        )

    async def notify_document_received(
        self,
        entity: BusinessEntity,
        document: ReceivedDocument,
        scan: MailScanResult,
    ) -> NotificationResult:
        if not entity.contact_email:
            logger.warning(
                "Entity %s has no contact email, client not notified",
                entity.entity_id,
            )
            return NotificationResult(
                success=False, channel="email", error="Entity has no contact email"
            )

        try:
            subject, html_body, text_body = self._render(entity, document, scan)
            loop = asyncio.get_running_loop()
            message_id = await loop.run_in_executor(
                None,
                self._send_email,
                entity.contact_email,
                subject,
                html_body,
                text_body,
            )
        except Exception as e:
            logger.error(
                "Failed to send document notification",
                extra={
                    "business_entity_id": str(entity.entity_id),
                    "document_id": str(document.document_id),
                    "error": str(e),
                },
            )
            return NotificationResult(success=False, channel="email", error=str(e))

        logger.info(
            "Document notification sent",
            extra={
                "business_entity_id": str(entity.entity_id),
                "document_id": str(document.document_id),
                "message_id": message_id,
            },
        )
        return NotificationResult(
            success=True,
            channel="email",
            message_id=message_id,
            sent_at=datetime.now(UTC),
        )

    def _render(
        self,
        entity: BusinessEntity,
        document: ReceivedDocument,
        scan: MailScanResult,
    ) -> tuple[str, str, str]:
        """Render the notification.

        Returns:
            Tuple of (subject, html_body, text_body).
        """
        is_urgent = document.urgency_level == UrgencyLevel.URGENT
        context = {
            "agent_name": self.agent_name,
            "entity_name": entity.name,
            "document_title": document.document_title,
            "sender_name": document.sender_name,
            "received_date": document.received_date.strftime("%B %d, %Y"),
            "urgency_level": document.urgency_level.value,
            "is_urgent": is_urgent,
            "document_url": document.digital_document_url,
            "simulated": scan.simulated,
        }
        html_body = self._env.get_template("document_received.html").render(**context)
        text_body = self._env.get_template("document_received.txt").render(**context)

        prefix = "URGENT: " if is_urgent else ""
        subject = f"{prefix}New mail received for {entity.name}: {document.document_title}"
        return subject, html_body, text_body

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> str:
        """Send an email via SMTP.

        Returns:
            SMTP message ID.
        """
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.smtp_settings.from_name} <{self.smtp_settings.from_address}>"
        msg["To"] = to_email

        domain = self.smtp_settings.from_address.rpartition("@")[2] or "localhost"
        message_id = f"<{secrets.token_hex(16)}@{domain}>"
        msg["Message-ID"] = message_id

        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        if self.smtp_settings.use_ssl:
            server = smtplib.SMTP_SSL(
                self.smtp_settings.host,
                self.smtp_settings.port,
                timeout=self.smtp_settings.timeout,
                context=ssl.create_default_context(),
            )
        else:
            server = smtplib.SMTP(
                self.smtp_settings.host,
                self.smtp_settings.port,
                timeout=self.smtp_settings.timeout,
            )
            if self.smtp_settings.use_tls:
                server.starttls(context=ssl.create_default_context())

        with server:
            if self.smtp_settings.username and self.smtp_settings.password:
                server.login(
                    self.smtp_settings.username,
                    self.smtp_settings.password.get_secret_value(),
                )
            server.sendmail(self.smtp_settings.from_address, [to_email], msg.as_string())

        return message_id


def build_client_notifier(settings: Settings) -> ClientNotifier:
    """Pick the notifier for the configured environment."""
    if settings.smtp.enabled:
        return EmailClientNotifier(settings.smtp, settings.agent.name)
    return LoggingClientNotifier()
