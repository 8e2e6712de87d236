"""
HelpFlow Backend: Stripe Billing Gateway
=========================================

What:  The only module that calls the Stripe API.
How:   Wraps a `stripe.StripeClient` built once in the lifespan. The SDK is
       synchronous, so every call runs in Starlette's threadpool.
Who:   CheckoutService (customers, checkout, portal) and BillingWebhookService
       (subscription re-fetch, customer → identity resolution).

Methods return plain values (ids, URLs) rather than Stripe objects so callers
and their tests never depend on the SDK's object model. Stripe errors
(`stripe.StripeError`) propagate unchanged; each caller decides how to
translate or absorb them.
"""

import logging
from typing import Any, Optional

import stripe
from fastapi.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

# Metadata key linking Stripe customers and sessions back to the identity user
CLERK_USER_ID_KEY = "clerk_user_id"


def metadata_value(obj: Any, key: str = CLERK_USER_ID_KEY) -> Optional[str]:
    """
    Reads `obj.metadata[key]` from a Stripe object or a plain event dict.

    Returns None when the object has no metadata or the key is absent/blank.
    """
    if obj is None:
        return None
    metadata = obj.get("metadata") if isinstance(obj, dict) else getattr(obj, "metadata", None)
    if not metadata:
        return None
    try:
        value = metadata[key]
    except KeyError:
        return None
    return value or None


class StripeBillingGateway:
    """
    Thin async facade over the Stripe customers, checkout, portal and
    subscriptions APIs.

    Example:
        gateway = StripeBillingGateway(stripe.StripeClient(settings.stripe_secret_key))
        url = await gateway.create_portal_session("cus_123", "https://app/dashboard")
    """

    def __init__(self, client: Optional[stripe.StripeClient]):
        # None when STRIPE_SECRET_KEY is unset; callers check is_configured()
        self._client = client

    def is_configured(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> stripe.StripeClient:
        if self._client is None:
            raise RuntimeError("StripeBillingGateway used without a configured client")
        return self._client

    # ── Customers ─────────────────────────────────────────────────────────

    async def find_customer_id_by_email(self, email: str) -> Optional[str]:
        """First customer with this email, or None. Duplicates are not disambiguated."""
        # Why threadpool: the Stripe SDK is blocking; calling it inline would stall
        # every other request on the event loop
        customers = await run_in_threadpool(
            self.client.customers.list, params={"email": email, "limit": 1}
        )
        if customers.data:
            return customers.data[0].id
        return None

    async def create_customer(self, email: str, clerk_user_id: str) -> str:
        customer = await run_in_threadpool(
            self.client.customers.create,
            params={"email": email, "metadata": {CLERK_USER_ID_KEY: clerk_user_id}},
        )
        logger.info("Created Stripe customer %s", customer.id)
        return customer.id

    async def resolve_clerk_user_id(self, customer_id: str) -> Optional[str]:
        """
        Identity user id tagged on a customer.

        Returns None for deleted customers and customers without the tag.
        """
        customer = await run_in_threadpool(self.client.customers.retrieve, customer_id)
        if getattr(customer, "deleted", False):
            logger.info("Stripe customer %s is deleted", customer_id)
            return None
        return metadata_value(customer)

    # ── Sessions ──────────────────────────────────────────────────────────

    async def create_checkout_session(
        self,
        customer_id: str,
        clerk_user_id: str,
        success_url: str,
        cancel_url: str,
        unit_amount: int,
        currency: str,
        product_name: str,
        product_description: str,
    ) -> str:
        """Subscription-mode checkout for one seat of an inline monthly price; returns its URL."""
        session = await run_in_threadpool(
            self.client.checkout.sessions.create,
            params={
                "customer": customer_id,
                "mode": "subscription",
                "payment_method_types": ["card"],
                "line_items": [
                    {
                        "price_data": {
                            "currency": currency,
                            "product_data": {
                                "name": product_name,
                                "description": product_description,
                            },
                            "unit_amount": unit_amount,
                            "recurring": {"interval": "month"},
                        },
                        "quantity": 1,
                    }
                ],
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": {CLERK_USER_ID_KEY: clerk_user_id},
            },
        )
        return session.url

    async def create_portal_session(self, customer_id: str, return_url: str) -> str:
        session = await run_in_threadpool(
            self.client.billing_portal.sessions.create,
            params={"customer": customer_id, "return_url": return_url},
        )
        return session.url

    # ── Subscriptions ─────────────────────────────────────────────────────

    async def retrieve_subscription_id(self, subscription_id: str) -> str:
        """Re-fetches a subscription so only ids Stripe still knows are stored."""
        subscription = await run_in_threadpool(
            self.client.subscriptions.retrieve, subscription_id
        )
        return subscription.id
