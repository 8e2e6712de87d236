"""Acknowledgement bodies for the identity and billing webhooks."""

from pydantic import BaseModel, Field


class IdentityWebhookResponse(BaseModel):
    """
    Returned by POST /api/webhooks/clerk.

    `applied` is False for acknowledged no-ops (unknown user, unhandled type,
    replayed creation) so operators can tell them apart from real writes.
    """
    success: bool = True
    message: str
    applied: bool = Field(description="Whether the event changed a profile")


class BillingWebhookAck(BaseModel):
    """Returned by POST /api/webhooks/stripe for every verified delivery."""
    received: bool = True
