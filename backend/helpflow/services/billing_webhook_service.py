"""
HelpFlow Backend: Stripe Webhook Service
=========================================

What:  Verifies Stripe webhook deliveries and applies subscription lifecycle
       events to profiles.
How:   stripe.WebhookSignature checks the Stripe-Signature header against the
       endpoint secret; the verified body is parsed as a plain dict and
       dispatched on its `type`.
Who:   Called by POST /api/webhooks/stripe.

Dispatch table:
    checkout.session.completed      (subscription mode) → active
    customer.subscription.updated   → map_billing_status(subscription.status)
    customer.subscription.deleted   → map_billing_status(subscription.status)
    invoice.payment_failed          → past_due
    anything else                   → acknowledged, ignored

Acknowledgement policy:
    Once the signature and envelope are valid the delivery is always
    acknowledged. Stripe API failures during identity resolution and database
    failures during the status write are logged and absorbed here, so Stripe
    does not retry events that would fail the same way again.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import stripe
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from helpflow.exceptions import (
    InvalidSignatureError,
    MalformedPayloadError,
    ServiceNotConfiguredError,
)
from helpflow.models.profile import Profile
from helpflow.models.status import SubscriptionStatus
from helpflow.services.billing_gateway import StripeBillingGateway, metadata_value
from helpflow.services.status_rules import map_billing_status, plan_for

logger = logging.getLogger(__name__)

# ── Outcomes (logged and returned for tests; never sent to Stripe) ────────
APPLIED = "applied"
IGNORED = "ignored"
DROPPED = "dropped"


def _id_of(value: Any) -> Optional[str]:
    """Stripe references arrive as an id string or, when expanded, an object."""
    if isinstance(value, dict):
        return value.get("id")
    return value or None


class BillingWebhookService:
    """Verification plus event handling for Stripe deliveries."""

    def __init__(self, gateway: StripeBillingGateway, webhook_secret: str):
        self.gateway = gateway
        self.webhook_secret = webhook_secret

    # ══════════════════════════════════════════════════════════════════════
    # Verification
    # ══════════════════════════════════════════════════════════════════════

    def verify(self, payload: bytes, signature_header: Optional[str]) -> Dict[str, Any]:
        """
        Verify the signature, then parse the body.

        Raises:
            ServiceNotConfiguredError: STRIPE_WEBHOOK_SECRET unset
            InvalidSignatureError: header missing or signature mismatch
            MalformedPayloadError: verified body is not a Stripe event envelope
        """
        if not self.webhook_secret:
            raise ServiceNotConfiguredError("stripe_webhook")
        if not signature_header:
            raise InvalidSignatureError("stripe", context={"reason": "missing header"})

        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedPayloadError("Webhook body is not valid UTF-8") from e

        try:
            stripe.WebhookSignature.verify_header(
                body,
                signature_header,
                self.webhook_secret,
                stripe.Webhook.DEFAULT_TOLERANCE,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("Stripe signature verification failed: %s", str(e))
            raise InvalidSignatureError("stripe") from e

        try:
            event = json.loads(body)
        except ValueError as e:
            raise MalformedPayloadError("Webhook body is not valid JSON") from e

        if (
            not isinstance(event, dict)
            or not isinstance(event.get("type"), str)
            or not isinstance(event.get("data"), dict)
            or not isinstance(event["data"].get("object"), dict)
        ):
            raise MalformedPayloadError("Webhook body is not a Stripe event")

        return event

    # ══════════════════════════════════════════════════════════════════════
    # Dispatch
    # ══════════════════════════════════════════════════════════════════════

    async def handle(self, db: AsyncSession, event: Dict[str, Any]) -> str:
        """Apply one verified event. Returns APPLIED, IGNORED or DROPPED."""
        event_type = event["type"]
        obj = event["data"]["object"]
        logger.info("Processing Stripe event %s (%s)", event_type, event.get("id", "?"))

        try:
            if event_type == "checkout.session.completed":
                outcome = await self._on_checkout_completed(db, obj)
            elif event_type in ("customer.subscription.updated", "customer.subscription.deleted"):
                outcome = await self._on_subscription_changed(db, obj)
            elif event_type == "invoice.payment_failed":
                outcome = await self._on_payment_failed(db, obj)
            else:
                logger.info("Unhandled Stripe event type %s", event_type)
                outcome = IGNORED
        except stripe.StripeError as e:
            logger.error("Stripe API error while handling %s: %s", event_type, str(e))
            outcome = DROPPED
        except Exception:
            # Why ack anyway: a non-2xx makes Stripe redeliver for days, and the
            # same event would fail the same way each time
            await db.rollback()
            logger.exception("Unexpected error while handling Stripe event %s", event_type)
            outcome = DROPPED

        logger.info("Stripe event %s: %s", event_type, outcome)
        return outcome

    async def _on_checkout_completed(self, db: AsyncSession, session: Dict[str, Any]) -> str:
        if session.get("mode") != "subscription":
            return IGNORED

        clerk_user_id = metadata_value(session)
        if not clerk_user_id:
            logger.warning("Checkout session %s has no clerk_user_id metadata", session.get("id"))
            return DROPPED

        subscription_ref = _id_of(session.get("subscription"))
        if not subscription_ref:
            logger.warning("Checkout session %s has no subscription", session.get("id"))
            return DROPPED

        subscription_id = await self.gateway.retrieve_subscription_id(subscription_ref)
        return await self._apply(db, clerk_user_id, subscription_id, SubscriptionStatus.ACTIVE)

    async def _on_subscription_changed(self, db: AsyncSession, subscription: Dict[str, Any]) -> str:
        status = map_billing_status(subscription.get("status"))
        clerk_user_id = await self._resolve_customer(subscription.get("customer"))
        if not clerk_user_id:
            return DROPPED
        return await self._apply(db, clerk_user_id, subscription.get("id"), status)

    async def _on_payment_failed(self, db: AsyncSession, invoice: Dict[str, Any]) -> str:
        subscription_id = _id_of(invoice.get("subscription"))
        if not subscription_id:
            # Newer API versions nest the reference under parent.subscription_details
            details = (invoice.get("parent") or {}).get("subscription_details") or {}
            subscription_id = _id_of(details.get("subscription"))
        if not subscription_id:
            return IGNORED

        clerk_user_id = await self._resolve_customer(invoice.get("customer"))
        if not clerk_user_id:
            return DROPPED
        return await self._apply(db, clerk_user_id, subscription_id, SubscriptionStatus.PAST_DUE)

    async def _resolve_customer(self, customer_ref: Any) -> Optional[str]:
        customer_id = _id_of(customer_ref)
        if not customer_id:
            return None
        clerk_user_id = await self.gateway.resolve_clerk_user_id(customer_id)
        if not clerk_user_id:
            logger.info("Customer %s is deleted or untagged; event dropped", customer_id)
        return clerk_user_id

    async def _apply(
        self,
        db: AsyncSession,
        clerk_user_id: str,
        subscription_id: Optional[str],
        status: SubscriptionStatus,
    ) -> str:
        if await self.update_subscription_status(db, clerk_user_id, subscription_id, status):
            return APPLIED
        return DROPPED

    # ══════════════════════════════════════════════════════════════════════
    # Status write
    # ══════════════════════════════════════════════════════════════════════

    async def update_subscription_status(
        self,
        db: AsyncSession,
        clerk_user_id: str,
        subscription_id: Optional[str],
        status: SubscriptionStatus,
    ) -> bool:
        """
        Writes status, derived plan, subscription id and updated_at together.

        Returns False (after logging) when no profile matches or the write
        fails; never raises for database errors.
        """
        try:
            result = await db.execute(
                select(Profile).where(Profile.clerk_user_id == clerk_user_id)
            )
            profile = result.scalar_one_or_none()
            if profile is None:
                logger.warning("No profile for clerk user %s; status %s not stored", clerk_user_id, status.value)
                return False

            profile.subscription_status = status.value
            profile.subscription_plan = plan_for(status).value
            profile.stripe_subscription_id = subscription_id
            profile.updated_at = datetime.now(timezone.utc)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                "Failed to update subscription for %s: %s",
                clerk_user_id,
                type(e).__name__,
            )
            return False

        logger.info("Subscription for %s is now %s", clerk_user_id, status.value)
        return True
