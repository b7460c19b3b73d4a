"""OCR extraction of structured fields from scanned mail.

The intake pipeline depends only on the OcrProvider protocol. The Mindee
US mail provider is the production implementation; the simulated
provider is used when no Mindee key is configured.

Extraction never fails the caller: missing predictions, provider errors
and timeouts produce the simulated extraction flagged with simulated=True.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

import httpx

if TYPE_CHECKING:
    from regagent.core.config import OcrProviderSettings

logger = logging.getLogger(__name__)

MINDEE_US_MAIL_ENDPOINT = "https://api.mindee.net/v1/products/mindee/us_mail_ocr/v1/predict"

DEFAULT_TIMEOUT = 20.0

# Defaults applied to fields missing from a real prediction
UNKNOWN_SENDER = "Unknown Sender"
DEFAULT_TITLE = "Mail Document"
DEFAULT_CONFIDENCE = 0.8


@dataclass(frozen=True, slots=True)
class ExtractedFields:
    """Normalized OCR output for one mail item.

    Attributes:
        sender: Sender name.
        sender_address: Sender postal address.
        recipient: Recipient name.
        recipient_address: Recipient postal address.
        postal_date: Postmark date.
        document_title: Title or document type.
        document_summary: Short content summary.
        confidence: Extraction confidence between 0 and 1.
        simulated: True when this is placeholder data.
    """

    sender: str
    sender_address: str | None
    recipient: str | None
    recipient_address: str | None
    postal_date: datetime
    document_title: str
    document_summary: str | None
    confidence: float
    simulated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "sender": self.sender,
            "senderAddress": self.sender_address,
            "recipient": self.recipient,
            "recipientAddress": self.recipient_address,
            "postalDate": self.postal_date.isoformat(),
            "documentTitle": self.document_title,
            "documentSummary": self.document_summary,
            "confidence": self.confidence,
        }


class MalformedPredictionError(Exception):
    """Raised when an OCR response lacks a usable prediction."""


class OcrProvider(Protocol):
    """Capability to extract structured fields from a scanned document."""

    async def extract(self, document_url: str) -> ExtractedFields:
        """Extract fields from the document at document_url. Never raises."""
        ...


def simulate_extraction() -> ExtractedFields:
    """Build the placeholder extraction used when OCR is unavailable."""
    return ExtractedFields(
        sender="Delaware Division of Corporations",
        sender_address="401 Federal Street, Suite 4, Dover, DE 19901",
        recipient="Sample Business LLC",
        recipient_address="1013 Centre Road, Suite 403-B, Wilmington, DE 19805",
        postal_date=datetime.now(UTC),
        document_title="Annual Report Filing Notice",
        document_summary=(
            "Notice regarding annual report filing requirement for LLC registration compliance"
        ),
        confidence=0.89,
        simulated=True,
    )


class SimulatedOcrProvider:
    """OCR provider returning the placeholder extraction."""

    async def extract(self, document_url: str) -> ExtractedFields:
        logger.info("OCR provider in simulation mode, simulating extraction for %s", document_url)
        return simulate_extraction()


@dataclass(frozen=True)
class MindeeConfig:
    """Configuration for the Mindee OCR client."""

    api_key: str
    endpoint: str = MINDEE_US_MAIL_ENDPOINT
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_settings(cls, settings: OcrProviderSettings) -> MindeeConfig | None:
        """Create config from the MINDEE_* settings, None without an API key."""
        if settings.api_key is None or not settings.api_key.get_secret_value():
            return None
        return cls(
            api_key=settings.api_key.get_secret_value(),
            endpoint=settings.endpoint,
            timeout=settings.timeout,
        )


def _field_value(prediction: dict[str, Any], name: str) -> Any:
    """Return prediction[name].value, or None when absent."""
    field = prediction.get(name)
    if isinstance(field, dict):
        return field.get("value")
    return None


def _parse_postal_date(value: Any) -> datetime:
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            logger.debug("Unparseable postal date %r, using current time", value)
        else:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return datetime.now(UTC)


def _parse_confidence(value: Any) -> float:
    if isinstance(value, dict):
        value = value.get("value")
    if isinstance(value, int | float) and not isinstance(value, bool) and value > 0:
        return float(value)
    return DEFAULT_CONFIDENCE


def parse_mindee_prediction(payload: Any) -> ExtractedFields:
    """Normalize a Mindee US mail prediction.

    Args:
        payload: Decoded JSON response body.

    Returns:
        The extracted fields with defaults for missing values.

    Raises:
        MalformedPredictionError: If document.inference.prediction is missing.
    """
    try:
        prediction = payload["document"]["inference"]["prediction"]
    except (KeyError, TypeError) as e:
        msg = "response has no document.inference.prediction"
        raise MalformedPredictionError(msg) from e
    if not isinstance(prediction, dict) or not prediction:
        msg = "prediction is empty"
        raise MalformedPredictionError(msg)

    return ExtractedFields(
        sender=_field_value(prediction, "sender") or UNKNOWN_SENDER,
        sender_address=_field_value(prediction, "sender_address"),
        recipient=_field_value(prediction, "recipient"),
        recipient_address=_field_value(prediction, "recipient_address"),
        postal_date=_parse_postal_date(_field_value(prediction, "postal_date")),
        document_title=_field_value(prediction, "document_type") or DEFAULT_TITLE,
        document_summary=_field_value(prediction, "content_summary"),
        confidence=_parse_confidence(prediction.get("confidence")),
    )


class MindeeOcrProvider:
    """OCR provider backed by the Mindee US mail API.

    Example usage:
        async with MindeeOcrProvider(config) as ocr:
            fields = await ocr.extract(scan.document_url)
    """

    def __init__(self, config: MindeeConfig) -> None:
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> MindeeOcrProvider:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            timeout=self._config.timeout,
            headers={
                "Authorization": f"Token {self._config.api_key}",
                "Content-Type": "application/json",
            },
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get the HTTP client, raising if not in context."""
        if self._client is None:
            msg = "MindeeOcrProvider must be used as async context manager"
            raise RuntimeError(msg)
        return self._client

    async def extract(self, document_url: str) -> ExtractedFields:
        """Run OCR on a scanned document, falling back to simulated data."""
        client = self._get_client()

        try:
            response = await client.post(self._config.endpoint, json={"document": document_url})
            response.raise_for_status()
            return parse_mindee_prediction(response.json())
        except httpx.TimeoutException:
            logger.warning("OCR request timed out for %s, using simulated extraction", document_url)
        except httpx.HTTPStatusError as e:
            logger.warning(
                "OCR request failed for %s (HTTP %s), using simulated extraction",
                document_url,
                e.response.status_code,
            )
        except httpx.HTTPError as e:
            logger.warning(
                "OCR request error for %s: %s, using simulated extraction", document_url, e
            )
        except (MalformedPredictionError, ValueError) as e:
            logger.warning(
                "Malformed OCR response for %s: %s, using simulated extraction", document_url, e
            )

        return simulate_extraction()
