"""
HelpFlow Backend: Checkout & Portal Service
============================================

What:  Issues hosted Stripe URLs: subscription checkout and billing portal.
How:   Validates input, talks to Stripe through StripeBillingGateway, and links
       the Stripe customer to the Profile once the checkout session exists.
Who:   Called by routes/billing.py.

Checkout flow (POST /api/stripe/create-checkout-session):
    ┌──────────┐   ┌──────────────────┐   ┌──────────────┐   ┌──────────────┐
    │ Validate │──▶│ Find/create      │──▶│ Create       │──▶│ Link customer│
    │ userId,  │   │ customer (email, │   │ checkout     │   │ to profile   │
    │ email    │   │ first match)     │   │ session      │   │ (set once)   │
    └──────────┘   └──────────────────┘   └──────────────┘   └──────────────┘

    A Stripe failure at any step raises CheckoutCreationFailedError and nothing
    is written. A database failure in the last step is only logged: the session
    already exists and the webhook correlates by session metadata.
"""

import logging
from typing import List

import stripe
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from helpflow.config import settings
from helpflow.exceptions import (
    CheckoutCreationFailedError,
    MissingFieldsError,
    PortalCreationFailedError,
    ServiceNotConfiguredError,
)
from helpflow.models.profile import Profile
from helpflow.services.billing_gateway import StripeBillingGateway

logger = logging.getLogger(__name__)


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class CheckoutService:
    """
    Stateless per request; holds only the shared gateway.

    Methods:
        create_checkout(): checkout URL for the demo plan
        create_portal():   billing portal URL for an existing customer
    """

    def __init__(self, gateway: StripeBillingGateway):
        self.gateway = gateway

    async def create_checkout(self, db: AsyncSession, user_id: str, email: str) -> str:
        """
        Create a subscription checkout session for `user_id`.

        Raises:
            MissingFieldsError: userId or email absent
            ServiceNotConfiguredError: no Stripe secret key
            CheckoutCreationFailedError: any Stripe API failure
        """
        missing: List[str] = []
        if _blank(user_id):
            missing.append("userId")
        if _blank(email):
            missing.append("email")
        if missing:
            raise MissingFieldsError(missing)

        if not self.gateway.is_configured():
            raise ServiceNotConfiguredError("stripe")

        try:
            customer_id = await self.gateway.find_customer_id_by_email(email)
            if customer_id:
                logger.info("Reusing Stripe customer %s for user %s", customer_id, user_id)
            else:
                customer_id = await self.gateway.create_customer(email, user_id)

            url = await self.gateway.create_checkout_session(
                customer_id=customer_id,
                clerk_user_id=user_id,
                success_url=f"{settings.dashboard_url}?success=true",
                cancel_url=f"{settings.dashboard_url}?canceled=true",
                unit_amount=settings.stripe_price_amount,
                currency=settings.stripe_price_currency,
                product_name=settings.stripe_product_name,
                product_description=settings.stripe_product_description,
            )
        except stripe.StripeError as e:
            logger.error("Stripe checkout failed for user %s: %s", user_id, str(e))
            raise CheckoutCreationFailedError(
                context={"user_id": user_id, "error_type": type(e).__name__},
            ) from e

        await self._link_customer(db, user_id, customer_id)

        logger.info("Checkout session created for user %s", user_id)
        return url

    async def _link_customer(self, db: AsyncSession, user_id: str, customer_id: str) -> None:
        """Stores the customer id on the profile unless one is already set."""
        try:
            result = await db.execute(select(Profile).where(Profile.clerk_user_id == user_id))
            profile = result.scalar_one_or_none()
            if profile is None:
                logger.warning("No profile for user %s; customer %s not linked", user_id, customer_id)
                return
            if profile.stripe_customer_id:
                return
            profile.stripe_customer_id = customer_id
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                "Failed to store Stripe customer %s for user %s: %s",
                customer_id,
                user_id,
                type(e).__name__,
            )

    async def create_portal(self, customer_id: str) -> str:
        """
        Create a billing portal session returning to the dashboard.

        Raises:
            MissingFieldsError: customerId absent
            ServiceNotConfiguredError: no Stripe secret key
            PortalCreationFailedError: Stripe API failure
        """
        if _blank(customer_id):
            raise MissingFieldsError(["customerId"])

        if not self.gateway.is_configured():
            raise ServiceNotConfiguredError("stripe")

        try:
            return await self.gateway.create_portal_session(customer_id, settings.dashboard_url)
        except stripe.StripeError as e:
            logger.error("Stripe portal session failed for %s: %s", customer_id, str(e))
            raise PortalCreationFailedError(
                context={"customer_id": customer_id, "error_type": type(e).__name__},
            ) from e
