"""
HelpFlow Backend: Webhook Route Handlers
=========================================

What:  Receivers for Clerk (identity) and Stripe (billing) webhooks.
How:   Read the raw body (signatures cover exact bytes), verify, then apply.
Who:   Called by Svix on behalf of Clerk, and by Stripe.

Status codes:
    Clerk:  400 bad signature/payload, 500 database failure (Svix retries), 200 otherwise
    Stripe: 400 bad signature/payload, 200 for every verified delivery
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from helpflow.database import get_db_session
from helpflow.dependencies import get_billing_webhook_service, get_identity_webhook_service
from helpflow.schemas.common import ErrorResponse
from helpflow.schemas.webhook import BillingWebhookAck, IdentityWebhookResponse
from helpflow.services.billing_webhook_service import BillingWebhookService
from helpflow.services.identity_webhook_service import IdentityWebhookService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])


@router.post(
    "/clerk",
    response_model=IdentityWebhookResponse,
    responses={
        400: {"description": "Invalid signature or payload", "model": ErrorResponse},
        500: {"description": "Database failure; delivery will be retried", "model": ErrorResponse},
        503: {"description": "Webhook secret not configured", "model": ErrorResponse},
    },
    summary="Clerk user lifecycle webhook",
)
async def clerk_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
    service: IdentityWebhookService = Depends(get_identity_webhook_service),
) -> IdentityWebhookResponse:
    payload = await request.body()
    event = service.verify(payload, request.headers)
    return await service.handle(db, event)


@router.post(
    "/stripe",
    response_model=BillingWebhookAck,
    responses={
        400: {"description": "Invalid signature or payload", "model": ErrorResponse},
        503: {"description": "Webhook secret not configured", "model": ErrorResponse},
    },
    summary="Stripe subscription lifecycle webhook",
)
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
    service: BillingWebhookService = Depends(get_billing_webhook_service),
) -> BillingWebhookAck:
    payload = await request.body()
    event = service.verify(payload, request.headers.get("stripe-signature"))
    await service.handle(db, event)
    return BillingWebhookAck()
