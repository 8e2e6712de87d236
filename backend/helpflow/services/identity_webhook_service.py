"""
HelpFlow Backend: Clerk Identity Webhook Service
=================================================

What:  Verifies Clerk (Svix-signed) webhook deliveries and mirrors user
       lifecycle events into the profiles table.
How:   svix.webhooks.Webhook checks the svix-id / svix-timestamp /
       svix-signature headers; the verified body is dispatched on `type`.
Who:   Called by POST /api/webhooks/clerk.

Event handling:
    user.created  → insert profile (inactive / free); replay of an existing
                    user is acknowledged without a write
    user.updated  → update email + updated_at; unknown user or unresolvable
                    email is acknowledged without a write
    user.deleted  → delete profile and its demo messages; unknown user is
                    acknowledged without a write
    other types   → acknowledged, ignored

Database failures raise PersistenceError (HTTP 500) so Svix redelivers.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from svix.webhooks import Webhook, WebhookVerificationError

from helpflow.exceptions import (
    InvalidSignatureError,
    MalformedPayloadError,
    MissingPrimaryEmailError,
    PersistenceError,
    ServiceNotConfiguredError,
)
from helpflow.models.profile import Profile
from helpflow.models.status import SubscriptionPlan, SubscriptionStatus
from helpflow.schemas.webhook import IdentityWebhookResponse

logger = logging.getLogger(__name__)

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


def resolve_primary_email(data: Dict[str, Any]) -> Optional[str]:
    """
    Address whose id equals `primary_email_address_id`, or None.

    Clerk sends every address of the user; only the primary one is mirrored.
    """
    primary_id = data.get("primary_email_address_id")
    if not primary_id:
        return None
    for entry in data.get("email_addresses") or []:
        if isinstance(entry, dict) and entry.get("id") == primary_id:
            return entry.get("email_address") or None
    return None


class IdentityWebhookService:
    """Verification plus profile mirroring for Clerk user events."""

    def __init__(self, webhook_secret: str):
        self.webhook_secret = webhook_secret

    # ══════════════════════════════════════════════════════════════════════
    # Verification
    # ══════════════════════════════════════════════════════════════════════

    def verify(self, payload: Union[bytes, str], headers: Mapping[str, str]) -> Dict[str, Any]:
        """
        Verify the Svix signature and return the `{type, data}` envelope.

        Raises:
            ServiceNotConfiguredError: CLERK_WEBHOOK_SECRET unset or unusable
            InvalidSignatureError: missing headers or signature mismatch
            MalformedPayloadError: verified body without a type/data envelope
        """
        if not self.webhook_secret:
            raise ServiceNotConfiguredError("clerk_webhook")

        svix_headers = {name: headers.get(name, "") for name in SVIX_HEADERS}
        missing = [name for name, value in svix_headers.items() if not value]
        if missing:
            raise InvalidSignatureError("clerk", context={"missing_headers": missing})

        try:
            verifier = Webhook(self.webhook_secret)
        except ValueError as e:
            logger.error("CLERK_WEBHOOK_SECRET is not a valid Svix secret")
            raise ServiceNotConfiguredError("clerk_webhook") from e

        # verify() only checks the signature; its return value differs across
        # svix releases, so the body is parsed here
        try:
            verifier.verify(payload, svix_headers)
        except WebhookVerificationError as e:
            logger.warning("Clerk signature verification failed: %s", str(e))
            raise InvalidSignatureError("clerk") from e
        except ValueError as e:
            # svix 1.x decodes the body itself after the signature matches
            raise MalformedPayloadError("Webhook body is not valid JSON") from e

        try:
            event = json.loads(payload)
        except ValueError as e:
            raise MalformedPayloadError("Webhook body is not valid JSON") from e

        if (
            not isinstance(event, dict)
            or not isinstance(event.get("type"), str)
            or not isinstance(event.get("data"), dict)
        ):
            raise MalformedPayloadError("Webhook body is not a {type, data} event")

        return event

    # ══════════════════════════════════════════════════════════════════════
    # Dispatch
    # ══════════════════════════════════════════════════════════════════════

    async def handle(self, db: AsyncSession, event: Dict[str, Any]) -> IdentityWebhookResponse:
        event_type = event["type"]
        data = event["data"]
        logger.info("Processing Clerk webhook: %s", event_type)

        if event_type == "user.created":
            return await self._on_user_created(db, data)
        if event_type == "user.updated":
            return await self._on_user_updated(db, data)
        if event_type == "user.deleted":
            return await self._on_user_deleted(db, data)

        logger.info("Unhandled Clerk webhook type: %s", event_type)
        return IdentityWebhookResponse(
            message=f"Webhook {event_type} received but not processed",
            applied=False,
        )

    async def _on_user_created(self, db: AsyncSession, data: Dict[str, Any]) -> IdentityWebhookResponse:
        clerk_user_id = self._require_user_id(data)
        email = resolve_primary_email(data)
        # Why before any query: a profile without an email is never written
        if not email:
            logger.error("No primary email found for user %s", clerk_user_id)
            raise MissingPrimaryEmailError(clerk_user_id)

        try:
            existing = await self._find_profile(db, clerk_user_id)
            if existing is not None:
                logger.info("Profile for %s already exists; creation replay ignored", clerk_user_id)
                return IdentityWebhookResponse(message="User profile already exists", applied=False)

            profile = Profile(
                clerk_user_id=clerk_user_id,
                email=email,
                subscription_status=SubscriptionStatus.INACTIVE.value,
                subscription_plan=SubscriptionPlan.FREE.value,
            )
            db.add(profile)
            await db.commit()
        except SQLAlchemyError as e:
            await self._fail(db, "create", clerk_user_id, e)

        logger.info("Created profile for user %s", clerk_user_id)
        return IdentityWebhookResponse(message="User profile created successfully", applied=True)

    async def _on_user_updated(self, db: AsyncSession, data: Dict[str, Any]) -> IdentityWebhookResponse:
        clerk_user_id = self._require_user_id(data)
        email = resolve_primary_email(data)
        if not email:
            logger.warning("user.updated for %s has no resolvable primary email; skipped", clerk_user_id)
            return IdentityWebhookResponse(message="No primary email found; profile unchanged", applied=False)

        try:
            profile = await self._find_profile(db, clerk_user_id)
            if profile is None:
                logger.warning("user.updated for unknown user %s; skipped", clerk_user_id)
                return IdentityWebhookResponse(message="No profile found for user", applied=False)

            profile.email = email
            profile.updated_at = datetime.now(timezone.utc)
            await db.commit()
        except SQLAlchemyError as e:
            await self._fail(db, "update", clerk_user_id, e)

        logger.info("Updated profile for user %s", clerk_user_id)
        return IdentityWebhookResponse(message="User profile updated successfully", applied=True)

    async def _on_user_deleted(self, db: AsyncSession, data: Dict[str, Any]) -> IdentityWebhookResponse:
        clerk_user_id = self._require_user_id(data)

        try:
            profile = await self._find_profile(db, clerk_user_id)
            if profile is None:
                logger.info("user.deleted for unknown user %s; nothing to delete", clerk_user_id)
                return IdentityWebhookResponse(message="No profile found for user", applied=False)

            await db.delete(profile)
            await db.commit()
        except SQLAlchemyError as e:
            await self._fail(db, "delete", clerk_user_id, e)

        logger.info("Deleted profile for user %s", clerk_user_id)
        return IdentityWebhookResponse(message="User profile deleted successfully", applied=True)

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    def _require_user_id(data: Dict[str, Any]) -> str:
        clerk_user_id = data.get("id")
        if not isinstance(clerk_user_id, str) or not clerk_user_id:
            raise MalformedPayloadError("Webhook data has no user id")
        return clerk_user_id

    @staticmethod
    async def _find_profile(db: AsyncSession, clerk_user_id: str) -> Optional[Profile]:
        result = await db.execute(select(Profile).where(Profile.clerk_user_id == clerk_user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def _fail(db: AsyncSession, operation: str, clerk_user_id: str, error: SQLAlchemyError) -> None:
        await db.rollback()
        logger.error("Profile %s failed for user %s: %s", operation, clerk_user_id, str(error))
        raise PersistenceError(
            message=f"Failed to {operation} user profile",
            context={"operation": operation, "error_type": type(error).__name__},
        ) from error
