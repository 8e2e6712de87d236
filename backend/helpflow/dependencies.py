"""
HelpFlow Backend: FastAPI Dependency Providers
===============================================

What:  Hands the process-wide clients built in the lifespan to route handlers,
       and assembles the per-request service objects around them.
How:   Shared clients live on `app.state` (set in main.lifespan). Services are
       cheap, stateless wrappers built per request through Depends.
Who:   Every router except health.

Tests replace any provider through `app.dependency_overrides`; the ASGI test
transport does not run the lifespan, so route tests override the providers
that read `app.state`.
"""

import httpx
from fastapi import Depends, Request

from helpflow.config import settings
from helpflow.services.billing_gateway import StripeBillingGateway
from helpflow.services.billing_webhook_service import BillingWebhookService
from helpflow.services.checkout_service import CheckoutService
from helpflow.services.delivery_service import DeliveryService
from helpflow.services.identity_webhook_service import IdentityWebhookService
from helpflow.services.llm_base import LLMService
from helpflow.services.message_service import MessageService
from helpflow.services.profile_service import ProfileService


# ── Shared clients (app.state) ────────────────────────────────────────────

def get_llm_service(request: Request) -> LLMService:
    return request.app.state.llm_service


def get_billing_gateway(request: Request) -> StripeBillingGateway:
    return request.app.state.billing_gateway


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


# ── Per-request services ──────────────────────────────────────────────────

def get_delivery_service(http_client: httpx.AsyncClient = Depends(get_http_client)) -> DeliveryService:
    return DeliveryService(http_client, settings.delivery_webhook_url)


def get_message_service(
    llm: LLMService = Depends(get_llm_service),
    delivery: DeliveryService = Depends(get_delivery_service),
) -> MessageService:
    return MessageService(llm, delivery)


def get_checkout_service(gateway: StripeBillingGateway = Depends(get_billing_gateway)) -> CheckoutService:
    return CheckoutService(gateway)


def get_billing_webhook_service(
    gateway: StripeBillingGateway = Depends(get_billing_gateway),
) -> BillingWebhookService:
    return BillingWebhookService(gateway, settings.stripe_webhook_secret)


def get_identity_webhook_service() -> IdentityWebhookService:
    return IdentityWebhookService(settings.clerk_webhook_secret)


def get_profile_service() -> ProfileService:
    return ProfileService()
