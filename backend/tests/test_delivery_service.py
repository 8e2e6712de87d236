"""
HelpFlow Backend: Delivery Service Unit Tests
==============================================

What:  DeliveryService against an httpx.MockTransport, so requests never
       leave the process.
"""

import json

import httpx
import pytest

from helpflow.exceptions import DeliveryFailedError
from helpflow.services.delivery_service import DeliveryService, build_delivery_payload
from helpflow.services.llm_base import GeneratedEmail

WEBHOOK_URL = "https://automation.example.com/webhook/send-email"

EMAIL = GeneratedEmail(
    subject="Welcome aboard",
    sender_name="Dana Reyes",
    sender_company="Northwind Support",
    html_content="<p>Hi</p>",
    plain_text_content="Hi",
)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_payload_shape():
    payload = build_delivery_payload("8f14e45f-ea4e-4c1b-9f2a-1c2b3d4e5f60", "bob@example.com", "Onboarding", EMAIL)

    assert set(payload) == {
        "message_id",
        "recipient_email",
        "message_topic",
        "subject",
        "sender_name",
        "sender_company",
        "html_content",
        "plain_text_content",
    }
    assert payload["message_topic"] == "Onboarding"


def test_enabled_only_with_url():
    assert DeliveryService(None, WEBHOOK_URL).is_enabled() is True
    assert DeliveryService(None, None).is_enabled() is False


class TestDeliver:

    def setup_method(self):
        self.payload = build_delivery_payload("msg-1", "bob@example.com", "Onboarding", EMAIL)

    @pytest.mark.asyncio
    async def test_posts_json_payload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})

        async with _client(handler) as client:
            await DeliveryService(client, WEBHOOK_URL).deliver(self.payload)

        assert seen["url"] == WEBHOOK_URL
        assert seen["body"] == self.payload

    @pytest.mark.asyncio
    async def test_non_2xx_fails(self):
        async with _client(lambda request: httpx.Response(500)) as client:
            with pytest.raises(DeliveryFailedError) as exc_info:
                await DeliveryService(client, WEBHOOK_URL).deliver(self.payload)

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_unreachable_endpoint_fails(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(DeliveryFailedError) as exc_info:
                await DeliveryService(client, WEBHOOK_URL).deliver(self.payload)

        assert exc_info.value.status_code is None
        assert exc_info.value.context["error_type"] == "ConnectError"
