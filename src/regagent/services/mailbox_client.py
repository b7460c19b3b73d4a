"""Virtual mailbox provider client.

This module talks to the virtual mailbox (mail scanning) provider to:
- Request a high-quality scan of a received mail item
- Provision a registered agent mailbox address for an entity

Scan requests never fail the caller: when no API key is configured, or
the provider errors, times out or returns an unusable body, the client
returns a deterministic simulated scan flagged with simulated=True.
Address provisioning is an explicit operator action and raises
MailboxProviderError instead.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

if TYPE_CHECKING:
    from regagent.core.config import MailboxProviderSettings

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.virtualpostmail.com/v1"

# Default timeout for provider API requests (seconds)
DEFAULT_TIMEOUT = 15.0

SIMULATED_STORAGE_URL = "https://storage.parafort.com"
SIMULATED_PHYSICAL_ADDRESS = "1013 Centre Road, Suite 403-B, Wilmington, DE 19805"


@dataclass(frozen=True)
class MailboxClientConfig:
    """Configuration for the virtual mailbox client."""

    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT

    @property
    def simulation_mode(self) -> bool:
        return not self.api_key

    @classmethod
    def from_settings(cls, settings: MailboxProviderSettings) -> MailboxClientConfig:
        """Create config from the VIRTUAL_MAILBOX_* settings."""
        api_key = settings.api_key.get_secret_value() if settings.api_key else None
        return cls(
            api_key=api_key or None,
            base_url=settings.base_url,
            timeout=settings.timeout,
        )


@dataclass(frozen=True)
class MailScanResult:
    """Scan of a physical mail item.

    Attributes:
        scan_id: Provider scan identifier.
        document_url: URL of the scanned PDF.
        thumbnail_url: URL of the first-page thumbnail, if generated.
        extracted_data: Coarse metadata extracted by the provider.
        ocr_text: Full OCR text, if available.
        metadata: Scan metadata (pages, file size, resolution).
        simulated: True when this is placeholder data.
    """

    scan_id: str
    document_url: str
    thumbnail_url: str | None = None
    extracted_data: dict[str, Any] = field(default_factory=dict)
    ocr_text: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    simulated: bool = False


@dataclass(frozen=True)
class MailboxAddress:
    """Mailbox address provisioned by the provider."""

    address_id: str
    physical_address: str
    setup_complete: bool
    simulated: bool = False


class MailboxProviderError(Exception):
    """Raised when the mailbox provider rejects or fails an address request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def simulate_scan(mail_id: str) -> MailScanResult:
    """Build the placeholder scan used when the provider is unavailable."""
    timestamp_ms = int(time.time() * 1000)
    return MailScanResult(
        scan_id=f"scan_{mail_id}_{timestamp_ms}",
        document_url=f"{SIMULATED_STORAGE_URL}/scans/{mail_id}.pdf",
        thumbnail_url=f"{SIMULATED_STORAGE_URL}/thumbnails/{mail_id}_thumb.jpg",
        extracted_data={
            "sender": "Delaware Division of Corporations",
            "recipient": "Sample Business LLC",
            "postalDate": datetime.now(UTC).isoformat(),
            "documentType": "legal_notice",
            "confidence": 0.92,
        },
        ocr_text="NOTICE OF ANNUAL REPORT FILING REQUIREMENT...",
        metadata={
            "pages": 2,
            "fileSize": 1024000,
            "resolution": "300dpi",
        },
        simulated=True,
    )


class VirtualMailboxClient:
    """Client for the virtual mailbox provider REST API.

    Example usage:
        config = MailboxClientConfig.from_settings(settings.mailbox)
        async with VirtualMailboxClient(config) as client:
            scan = await client.request_scan("mail_123")
    """

    def __init__(self, config: MailboxClientConfig) -> None:
        """Initialize the client with configuration."""
        self._config = config
        self._client: httpx.AsyncClient | None = None

    @property
    def simulation_mode(self) -> bool:
        return self._config.simulation_mode

    async def __aenter__(self) -> VirtualMailboxClient:
        """Enter async context manager."""
        headers = {"Content-Type": "application/json"}
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.timeout,
            headers=headers,
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
            msg = "VirtualMailboxClient must be used as async context manager"
            raise RuntimeError(msg)
        return self._client

    async def request_scan(self, mail_id: str) -> MailScanResult | None:
        """Request a scan of a received mail item.

        Args:
            mail_id: Provider identifier of the mail item.

        Returns:
            The scan result. Falls back to simulated data on any provider
            failure. None is reserved for mail that cannot be scanned and
            is not returned today.
        """
        if self._config.simulation_mode:
            logger.info("Mailbox provider in simulation mode, simulating scan for %s", mail_id)
            return simulate_scan(mail_id)

        client = self._get_client()
        url = f"/mail/{quote(mail_id, safe='')}/scan"

        try:
            response = await client.post(
                url,
                json={
                    "scanQuality": "high",
                    "ocrEnabled": True,
                    "generateThumbnail": True,
                },
            )
            response.raise_for_status()
            return self._parse_scan(response.json())
        except httpx.TimeoutException:
            logger.warning("Mail scan request timed out for %s, using simulated scan", mail_id)
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Mail scan request failed for %s (HTTP %s), using simulated scan",
                mail_id,
                e.response.status_code,
            )
        except httpx.HTTPError as e:
            logger.warning("Mail scan request error for %s: %s, using simulated scan", mail_id, e)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(
                "Malformed mail scan response for %s: %s, using simulated scan", mail_id, e
            )

        return simulate_scan(mail_id)

    async def configure_address(self, entity_id: object, state: str) -> MailboxAddress:
        """Provision a registered agent mailbox address for an entity.

        Args:
            entity_id: Identifier of the business entity.
            state: State in which the address is provisioned.

        Returns:
            The provisioned address.

        Raises:
            MailboxProviderError: If the provider fails or rejects the request.
        """
        if self._config.simulation_mode:
            logger.info("Mailbox provider in simulation mode, simulating address for %s", entity_id)
            return MailboxAddress(
                address_id=f"addr_{entity_id}_{state}",
                physical_address=SIMULATED_PHYSICAL_ADDRESS,
                setup_complete=True,
                simulated=True,
            )

        client = self._get_client()

        try:
            response = await client.post(
                "/addresses",
                json={
                    "entityId": str(entity_id),
                    "state": state,
                    "addressType": "registered_agent",
                },
            )
            response.raise_for_status()
            data = response.json()
            return MailboxAddress(
                address_id=str(data["addressId"]),
                physical_address=str(data["physicalAddress"]),
                setup_complete=bool(data.get("setupComplete", True)),
            )
        except httpx.HTTPStatusError as e:
            raise MailboxProviderError(
                f"Mailbox address configuration failed: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise MailboxProviderError(f"Cannot reach mailbox provider: {e}") from e
        except (ValueError, KeyError, TypeError) as e:
            raise MailboxProviderError(f"Malformed mailbox provider response: {e}") from e

    @staticmethod
    def _parse_scan(data: dict[str, Any]) -> MailScanResult:
        """Convert the provider JSON body into a MailScanResult.

        Raises:
            KeyError: If scanId or documentUrl is missing.
            TypeError: If the body is not an object.
        """
        if not isinstance(data, dict):
            msg = f"expected JSON object, got {type(data).__name__}"
            raise TypeError(msg)
        return MailScanResult(
            scan_id=str(data["scanId"]),
            document_url=str(data["documentUrl"]),
            thumbnail_url=data.get("thumbnailUrl"),
            extracted_data=data.get("extractedData") or {},
            ocr_text=data.get("ocrText"),
            metadata=data.get("metadata") or {},
        )
