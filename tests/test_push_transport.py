"""Tests for push transports."""

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest
from pywebpush import WebPushException

from capacity_watch.models.types import DeliveryStatus
from capacity_watch.push_transport import (
    DryRunPushTransport,
    PushTransport,
    WebhookPushTransport,
    WebPushTransport,
)

PAYLOAD = {"title": "GPU Available!", "body": "H100-1X is now available on DigitalOcean"}
DESCRIPTOR = {
    "endpoint": "https://push.example.test/sub/abc",
    "keys": {"p256dh": "client-public-key", "auth": "secret"},
}


async def send_with(handler, descriptor=DESCRIPTOR):
    transport = WebhookPushTransport(transport=httpx.MockTransport(handler))
    try:
        return await transport.send(descriptor, PAYLOAD)
    finally:
        await transport.close()


@pytest.mark.asyncio
class TestWebhookPushTransport:
    """Tests for the webhook transport."""

    async def test_delivered(self):
        """Test a 201 is a positive acknowledgement and the payload is posted."""
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(201)

        result = await send_with(handler)

        assert result.status == DeliveryStatus.DELIVERED
        assert result.delivered
        assert result.status_code == 201
        request = seen["request"]
        assert request.method == "POST"
        assert str(request.url) == DESCRIPTOR["endpoint"]
        assert json.loads(request.content) == PAYLOAD

    @pytest.mark.parametrize("status_code", [404, 410])
    async def test_expired(self, status_code):
        """Test gone endpoints are classified as expired."""
        result = await send_with(lambda request: httpx.Response(status_code))

        assert result.status == DeliveryStatus.EXPIRED
        assert result.status_code == status_code
        assert not result.delivered

    @pytest.mark.parametrize("status_code", [400, 429, 500])
    async def test_other_errors_fail(self, status_code):
        """Test other non-2xx responses are failures."""
        result = await send_with(lambda request: httpx.Response(status_code))

        assert result.status == DeliveryStatus.FAILED
        assert result.reason == f"HTTP {status_code}"

    async def test_connection_error(self):
        """Test transport errors are returned, not raised."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = await send_with(handler)

        assert result.status == DeliveryStatus.FAILED
        assert result.reason == "connection refused"

    async def test_missing_endpoint(self):
        """Test descriptors without an endpoint fail without a request."""
        def handler(request):
            raise AssertionError("no request expected")

        result = await send_with(handler, descriptor={"keys": {}})

        assert result.status == DeliveryStatus.FAILED


@pytest.mark.asyncio
class TestWebPushTransport:
    """Tests for the VAPID-signed Web Push transport."""

    def make_transport(self):
        return WebPushTransport(vapid_private_key="private-key", vapid_subject="mailto:ops@example.test", timeout=5.0)

    async def test_delivered(self):
        """Test the payload is encrypted and signed for the subscription."""
        with patch("capacity_watch.push_transport.webpush") as mock_webpush:
            result = await self.make_transport().send(DESCRIPTOR, PAYLOAD)

        assert result.status == DeliveryStatus.DELIVERED
        kwargs = mock_webpush.call_args.kwargs
        assert kwargs["subscription_info"] == DESCRIPTOR
        assert json.loads(kwargs["data"]) == PAYLOAD
        assert kwargs["vapid_private_key"] == "private-key"
        assert kwargs["vapid_claims"] == {"sub": "mailto:ops@example.test"}
        assert kwargs["timeout"] == 5.0

    async def test_fresh_claims_per_send(self):
        """Test claims mutated by one send do not leak into the next."""
        def mutate_claims(**kwargs):
            kwargs["vapid_claims"]["exp"] = 123

        transport = self.make_transport()
        with patch("capacity_watch.push_transport.webpush", side_effect=mutate_claims) as mock_webpush:
            await transport.send(DESCRIPTOR, PAYLOAD)
            await transport.send(DESCRIPTOR, PAYLOAD)

        first, second = mock_webpush.call_args_list
        assert first.kwargs["vapid_claims"] is not second.kwargs["vapid_claims"]

    @pytest.mark.parametrize("status_code", [404, 410])
    async def test_expired(self, status_code):
        """Test gone subscriptions are classified as expired."""
        error = WebPushException("Push failed", response=MagicMock(status_code=status_code))
        with patch("capacity_watch.push_transport.webpush", side_effect=error):
            result = await self.make_transport().send(DESCRIPTOR, PAYLOAD)

        assert result.status == DeliveryStatus.EXPIRED
        assert result.status_code == status_code

    async def test_push_service_error_fails(self):
        """Test other push service rejections are failures."""
        error = WebPushException("Push failed: 413 Payload Too Large", response=MagicMock(status_code=413))
        with patch("capacity_watch.push_transport.webpush", side_effect=error):
            result = await self.make_transport().send(DESCRIPTOR, PAYLOAD)

        assert result.status == DeliveryStatus.FAILED
        assert result.status_code == 413

    async def test_error_without_response_fails(self):
        """Test exceptions without a response, or unrelated errors, are failures."""
        with patch("capacity_watch.push_transport.webpush", side_effect=WebPushException("no keys")):
            without_response = await self.make_transport().send(DESCRIPTOR, PAYLOAD)
        with patch("capacity_watch.push_transport.webpush", side_effect=ValueError("bad p256dh")):
            bad_keys = await self.make_transport().send(DESCRIPTOR, PAYLOAD)

        assert without_response.status == DeliveryStatus.FAILED
        assert without_response.status_code is None
        assert bad_keys.status == DeliveryStatus.FAILED
        assert bad_keys.reason == "bad p256dh"

    async def test_missing_endpoint(self):
        """Test descriptors without an endpoint are never sent."""
        with patch("capacity_watch.push_transport.webpush") as mock_webpush:
            result = await self.make_transport().send({"keys": {}}, PAYLOAD)

        assert result.status == DeliveryStatus.FAILED
        mock_webpush.assert_not_called()


@pytest.mark.asyncio
class TestDryRunPushTransport:
    """Tests for the dry-run transport."""

    async def test_records_and_acknowledges(self):
        """Test dry-run sends are acknowledged and recorded."""
        transport = DryRunPushTransport()

        result = await transport.send(DESCRIPTOR, PAYLOAD)

        assert result.delivered
        assert transport.sent == [(DESCRIPTOR, PAYLOAD)]


def test_transports_satisfy_protocol():
    """Test the transports implement the PushTransport protocol."""
    assert isinstance(DryRunPushTransport(), PushTransport)
    assert issubclass(WebhookPushTransport, PushTransport)
    assert issubclass(WebPushTransport, PushTransport)
