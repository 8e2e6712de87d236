"""
HelpFlow Backend: Stripe Checkout & Portal Routes
==================================================

What:  POST /api/stripe/create-checkout-session and POST /api/stripe/customer-portal.
How:   Thin handlers; CheckoutService does the work and raises typed errors.
Who:   Called by the dashboard's upgrade and manage-billing buttons.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from helpflow.database import get_db_session
from helpflow.dependencies import get_checkout_service
from helpflow.schemas.billing import (
    CheckoutSessionRequest,
    CustomerPortalRequest,
    SessionUrlResponse,
)
from helpflow.schemas.common import ErrorResponse
from helpflow.services.checkout_service import CheckoutService

router = APIRouter(prefix="/api/stripe", tags=["Billing"])

_ERRORS = {
    400: {"description": "Missing required fields", "model": ErrorResponse},
    502: {"description": "Stripe request failed", "model": ErrorResponse},
    503: {"description": "Stripe not configured", "model": ErrorResponse},
}


@router.post(
    "/create-checkout-session",
    response_model=SessionUrlResponse,
    responses=_ERRORS,
    summary="Start a subscription checkout",
)
async def create_checkout_session(
    body: CheckoutSessionRequest,
    db: AsyncSession = Depends(get_db_session),
    service: CheckoutService = Depends(get_checkout_service),
) -> SessionUrlResponse:
    url = await service.create_checkout(db, body.user_id, body.email)
    return SessionUrlResponse(url=url)


@router.post(
    "/customer-portal",
    response_model=SessionUrlResponse,
    responses=_ERRORS,
    summary="Open the Stripe billing portal",
)
async def create_customer_portal(
    body: CustomerPortalRequest,
    service: CheckoutService = Depends(get_checkout_service),
) -> SessionUrlResponse:
    url = await service.create_portal(body.customer_id)
    return SessionUrlResponse(url=url)
