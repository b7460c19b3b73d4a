"""Tests for the virtual mailbox provider client.

Tests cover:
- Client configuration and simulation mode
- Scan requests (success, provider failures falling back to simulation)
- Mailbox address provisioning
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import httpx
import pytest

from regagent.core.config import MailboxProviderSettings
from regagent.services.mailbox_client import (
    DEFAULT_BASE_URL,
    SIMULATED_PHYSICAL_ADDRESS,
    MailboxClientConfig,
    MailboxProviderError,
    VirtualMailboxClient,
    simulate_scan,
)

LIVE_CONFIG = MailboxClientConfig(api_key="vpm_test", base_url="https://mailbox.test/v1")


def make_response(status_code: int, json_data=None, path: str = "/mail/mail_1/scan") -> httpx.Response:
    request = httpx.Request("POST", f"https://mailbox.test/v1{path}")
    if json_data is None:
        return httpx.Response(status_code, request=request, content=b"not json")
    return httpx.Response(status_code, request=request, json=json_data)


SCAN_BODY = {
    "scanId": "scan_987",
    "documentUrl": "https://cdn.mailbox.test/scan_987.pdf",
    "thumbnailUrl": "https://cdn.mailbox.test/scan_987.jpg",
    "extractedData": {"sender": "Superior Court"},
    "ocrText": "SUMMONS",
    "metadata": {"pages": 3},
}


class TestMailboxClientConfig:
    def test_defaults(self):
        config = MailboxClientConfig()
        assert config.base_url == DEFAULT_BASE_URL
        assert config.simulation_mode

    def test_from_settings(self):
        config = MailboxClientConfig.from_settings(
            MailboxProviderSettings(api_key="vpm_live", timeout=5.0)
        )
        assert config.api_key == "vpm_live"
        assert config.timeout == 5.0
        assert not config.simulation_mode

    def test_from_settings_empty_key_simulates(self):
        assert MailboxClientConfig.from_settings(MailboxProviderSettings(api_key="")).simulation_mode


class TestSimulateScan:
    def test_simulated_scan_is_derived_from_mail_id(self):
        scan = simulate_scan("mail_42")
        assert scan.simulated
        assert scan.scan_id.startswith("scan_mail_42_")
        assert scan.document_url.endswith("/scans/mail_42.pdf")
        assert scan.extracted_data["sender"] == "Delaware Division of Corporations"
        assert scan.extracted_data["confidence"] == 0.92


class TestRequestScan:
    @pytest.mark.asyncio
    async def test_simulation_mode_does_not_call_provider(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            async with VirtualMailboxClient(MailboxClientConfig()) as client:
                scan = await client.request_scan("mail_1")

        assert scan.simulated
        mock_post.assert_not_called()

    @pytest.mark.asyncio
    async def test_successful_scan(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = make_response(200, SCAN_BODY)
            async with VirtualMailboxClient(LIVE_CONFIG) as client:
                scan = await client.request_scan("mail_1")

        assert not scan.simulated
        assert scan.scan_id == "scan_987"
        assert scan.document_url == "https://cdn.mailbox.test/scan_987.pdf"
        assert scan.ocr_text == "SUMMONS"
        assert scan.metadata == {"pages": 3}

        url = mock_post.call_args.args[0]
        assert url == "/mail/mail_1/scan"
        assert mock_post.call_args.kwargs["json"] == {
            "scanQuality": "high",
            "ocrEnabled": True,
            "generateThumbnail": True,
        }

    @pytest.mark.asyncio
    async def test_mail_id_is_url_encoded(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = make_response(200, SCAN_BODY)
            async with VirtualMailboxClient(LIVE_CONFIG) as client:
                await client.request_scan("mail/1")

        assert mock_post.call_args.args[0] == "/mail/mail%2F1/scan"

    @pytest.mark.asyncio
    async def test_bearer_auth_header(self):
        async with VirtualMailboxClient(LIVE_CONFIG) as client:
            assert client._get_client().headers["Authorization"] == "Bearer vpm_test"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "failure",
        [
            httpx.ReadTimeout("timed out"),
            httpx.ConnectError("connection refused"),
        ],
    )
    async def test_transport_failure_falls_back_to_simulation(self, failure, caplog):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = failure
            async with VirtualMailboxClient(LIVE_CONFIG) as client:
                scan = await client.request_scan("mail_1")

        assert scan.simulated
        assert scan.document_url.endswith("/scans/mail_1.pdf")
        assert "simulated scan" in caplog.text

    @pytest.mark.asyncio
    async def test_http_error_falls_back_to_simulation(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = make_response(503, {"error": "maintenance"})
            async with VirtualMailboxClient(LIVE_CONFIG) as client:
                scan = await client.request_scan("mail_1")

        assert scan.simulated

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [None, {"scanId": "s1"}, ["not", "an", "object"]])
    async def test_unusable_body_falls_back_to_simulation(self, body):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = make_response(200, body)
            async with VirtualMailboxClient(LIVE_CONFIG) as client:
                scan = await client.request_scan("mail_1")

        assert scan.simulated

    @pytest.mark.asyncio
    async def test_live_client_requires_context_manager(self):
        client = VirtualMailboxClient(LIVE_CONFIG)
        with pytest.raises(RuntimeError, match="async context manager"):
            await client.request_scan("mail_1")


class TestConfigureAddress:
    @pytest.mark.asyncio
    async def test_simulation_mode(self):
        entity_id = uuid4()
        async with VirtualMailboxClient(MailboxClientConfig()) as client:
            address = await client.configure_address(entity_id, "Delaware")

        assert address.address_id == f"addr_{entity_id}_Delaware"
        assert address.physical_address == SIMULATED_PHYSICAL_ADDRESS
        assert address.setup_complete
        assert address.simulated

    @pytest.mark.asyncio
    async def test_provisions_address(self):
        entity_id = uuid4()
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = make_response(
                201,
                {"addressId": "addr_live_1", "physicalAddress": "28 Liberty Street, New York, NY"},
                path="/addresses",
            )
            async with VirtualMailboxClient(LIVE_CONFIG) as client:
                address = await client.configure_address(entity_id, "New York")

        assert address.address_id == "addr_live_1"
        assert not address.simulated
        assert mock_post.call_args.args[0] == "/addresses"
        assert mock_post.call_args.kwargs["json"] == {
            "entityId": str(entity_id),
            "state": "New York",
            "addressType": "registered_agent",
        }

    @pytest.mark.asyncio
    async def test_provider_rejection_raises(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = make_response(422, {"error": "bad state"}, path="/addresses")
            async with VirtualMailboxClient(LIVE_CONFIG) as client:
                with pytest.raises(MailboxProviderError) as exc_info:
                    await client.configure_address(uuid4(), "Delaware")

        assert exc_info.value.status_code == 422

    @pytest.mark.asyncio
    async def test_unreachable_provider_raises(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = httpx.ConnectError("refused")
            async with VirtualMailboxClient(LIVE_CONFIG) as client:
                with pytest.raises(MailboxProviderError, match="Cannot reach"):
                    await client.configure_address(uuid4(), "Delaware")

    @pytest.mark.asyncio
    async def test_malformed_response_raises(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = make_response(200, {"unexpected": True}, path="/addresses")
            async with VirtualMailboxClient(LIVE_CONFIG) as client:
                with pytest.raises(MailboxProviderError, match="Malformed"):
                    await client.configure_address(uuid4(), "Delaware")
