"""
HelpFlow Backend: Stripe Gateway Unit Tests
============================================

What:  StripeBillingGateway against a MagicMock StripeClient; checks the
       request parameters and the plain values returned.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from helpflow.services.billing_gateway import StripeBillingGateway, metadata_value


@pytest.fixture
def client():
    return MagicMock()


class TestMetadataValue:

    def test_reads_dict_metadata(self):
        assert metadata_value({"metadata": {"clerk_user_id": "user_1"}}) == "user_1"

    def test_reads_object_metadata(self):
        assert metadata_value(SimpleNamespace(metadata={"clerk_user_id": "user_1"})) == "user_1"

    @pytest.mark.parametrize(
        "obj",
        [None, {}, {"metadata": None}, {"metadata": {}}, {"metadata": {"clerk_user_id": ""}}],
    )
    def test_missing_values_are_none(self, obj):
        assert metadata_value(obj) is None


class TestCustomers:

    @pytest.mark.asyncio
    async def test_find_returns_first_match(self, client):
        client.customers.list.return_value = SimpleNamespace(
            data=[SimpleNamespace(id="cus_1"), SimpleNamespace(id="cus_2")]
        )

        customer_id = await StripeBillingGateway(client).find_customer_id_by_email("ada@example.com")

        assert customer_id == "cus_1"
        client.customers.list.assert_called_once_with(params={"email": "ada@example.com", "limit": 1})

    @pytest.mark.asyncio
    async def test_find_without_match(self, client):
        client.customers.list.return_value = SimpleNamespace(data=[])
        assert await StripeBillingGateway(client).find_customer_id_by_email("x@example.com") is None

    @pytest.mark.asyncio
    async def test_create_tags_clerk_user(self, client):
        client.customers.create.return_value = SimpleNamespace(id="cus_new")

        customer_id = await StripeBillingGateway(client).create_customer("ada@example.com", "user_2abc")

        assert customer_id == "cus_new"
        params = client.customers.create.call_args.kwargs["params"]
        assert params["metadata"] == {"clerk_user_id": "user_2abc"}

    @pytest.mark.asyncio
    async def test_resolve_tagged_customer(self, client):
        client.customers.retrieve.return_value = SimpleNamespace(
            id="cus_1", deleted=False, metadata={"clerk_user_id": "user_2abc"}
        )
        assert await StripeBillingGateway(client).resolve_clerk_user_id("cus_1") == "user_2abc"

    @pytest.mark.asyncio
    async def test_resolve_deleted_customer(self, client):
        client.customers.retrieve.return_value = SimpleNamespace(id="cus_1", deleted=True)
        assert await StripeBillingGateway(client).resolve_clerk_user_id("cus_1") is None


class TestSessions:

    @pytest.mark.asyncio
    async def test_checkout_session_parameters(self, client):
        client.checkout.sessions.create.return_value = SimpleNamespace(url="https://checkout.stripe.com/x")

        url = await StripeBillingGateway(client).create_checkout_session(
            customer_id="cus_1",
            clerk_user_id="user_2abc",
            success_url="https://app/dashboard?success=true",
            cancel_url="https://app/dashboard?canceled=true",
            unit_amount=999,
            currency="usd",
            product_name="HelpFlow Demo Plan",
            product_description="Access to AI message generation features",
        )

        assert url == "https://checkout.stripe.com/x"
        params = client.checkout.sessions.create.call_args.kwargs["params"]
        assert params["mode"] == "subscription"
        assert params["customer"] == "cus_1"
        assert params["metadata"] == {"clerk_user_id": "user_2abc"}
        price = params["line_items"][0]["price_data"]
        assert price["unit_amount"] == 999
        assert price["recurring"] == {"interval": "month"}

    @pytest.mark.asyncio
    async def test_portal_session(self, client):
        client.billing_portal.sessions.create.return_value = SimpleNamespace(url="https://billing.stripe.com/y")

        url = await StripeBillingGateway(client).create_portal_session("cus_1", "https://app/dashboard")

        assert url == "https://billing.stripe.com/y"
        client.billing_portal.sessions.create.assert_called_once_with(
            params={"customer": "cus_1", "return_url": "https://app/dashboard"}
        )


def test_unconfigured_gateway():
    gateway = StripeBillingGateway(None)
    assert gateway.is_configured() is False
    with pytest.raises(RuntimeError):
        gateway.client
