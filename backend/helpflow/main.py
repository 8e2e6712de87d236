"""
HelpFlow Backend: FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (uvicorn helpflow.main:app).
When:  Once at server startup.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Logging → GZip → CORS         │
    │                                                          │
    │  Routes:                                                 │
    │   /api/webhooks/{clerk,stripe}   /api/ai/generate-message│
    │   /api/stripe/...                /api/profiles/...       │
    │   /health                                                │
    │                                                          │
    │  app.state (built in lifespan, read-only afterwards):    │
    │   llm_service │ billing_gateway │ http_client            │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config check → Stripe client → HTTP client → LLM service
    Shutdown: close HTTP client → dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
import stripe
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from helpflow import __version__
from helpflow.config import settings
from helpflow.database import dispose_engine
from helpflow.exceptions import (
    BillingServiceError,
    GenerationFailedError,
    HelpFlowError,
    IllegalStatusTransitionError,
    InvalidSignatureError,
    NotFoundError,
    PersistenceError,
    ServiceNotConfiguredError,
    ValidationError,
)
from helpflow.middleware.logging import RequestLoggingMiddleware
from helpflow.middleware.request_id import (
    RequestIDLogFilter,
    RequestIDMiddleware,
    request_id_var,
)
from helpflow.routes import billing, health, messages, profiles, webhooks
from helpflow.services.billing_gateway import StripeBillingGateway
from helpflow.services.gemini_service import GeminiService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s

    The request id comes from RequestIDLogFilter, attached to the handler so it
    also covers records from third-party loggers.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "stripe"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Build the shared clients into app.state; release them at shutdown.

    Missing secrets are logged, not fatal: the affected endpoints answer 503
    (ServiceNotConfiguredError) and /health reports "degraded".
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("HelpFlow Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    stripe_client = stripe.StripeClient(settings.stripe_secret_key) if settings.stripe_secret_key else None
    app.state.billing_gateway = StripeBillingGateway(stripe_client)

    app.state.http_client = httpx.AsyncClient()

    app.state.llm_service = GeminiService(
        api_key=settings.gemini_api_key,
        model_name=settings.gemini_model,
        max_output_tokens=settings.llm_max_output_tokens,
        temperature=settings.llm_temperature,
    )

    if settings.delivery_webhook_url:
        logger.info("Delivery webhook enabled")
    else:
        logger.info("Delivery webhook not set; generated messages are marked sent")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("HelpFlow Backend shutting down...")
    await app.state.http_client.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error(status_code: int, error: str, message: str, details: dict = None) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the HelpFlowError hierarchy onto HTTP responses.

    Handler hierarchy:
        ValidationError              → 400 (message + details)
        InvalidSignatureError        → 400
        NotFoundError                → 404
        PersistenceError             → 500 (generic message)
        IllegalStatusTransitionError → 500 (generic message)
        BillingServiceError          → 502
        GenerationFailedError        → 503
        ServiceNotConfiguredError    → 503
        HelpFlowError (base)         → 500
        Exception (fallback)         → 500

    Contexts are logged; only ValidationError returns its context, since it
    names the fields the client has to fix.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error: %s", exc.message)
        return _error(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(InvalidSignatureError)
    async def handle_invalid_signature(request: Request, exc: InvalidSignatureError):
        logger.warning("Rejected %s webhook: %s", exc.source, exc.context)
        return _error(400, "invalid_signature", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error(404, "not_found", exc.message)

    @app.exception_handler(PersistenceError)
    async def handle_persistence_error(request: Request, exc: PersistenceError):
        logger.error("Persistence error: %s | Context: %s", exc.message, exc.context)
        return _error(500, "server_error", exc.message)

    @app.exception_handler(IllegalStatusTransitionError)
    async def handle_illegal_transition(request: Request, exc: IllegalStatusTransitionError):
        logger.error("Illegal status transition: %s | Context: %s", exc.message, exc.context)
        return _error(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(BillingServiceError)
    async def handle_billing_error(request: Request, exc: BillingServiceError):
        logger.error("Billing error: %s | Context: %s", exc.message, exc.context)
        return _error(502, "billing_error", exc.message)

    @app.exception_handler(GenerationFailedError)
    async def handle_generation_failed(request: Request, exc: GenerationFailedError):
        logger.error("Generation failed: %s | Context: %s", exc.message, exc.context)
        return _error(503, "generation_failed", exc.message)

    @app.exception_handler(ServiceNotConfiguredError)
    async def handle_not_configured(request: Request, exc: ServiceNotConfiguredError):
        logger.error("Integration not configured: %s", exc.service)
        return _error(503, "service_not_configured", exc.message)

    @app.exception_handler(HelpFlowError)
    async def handle_helpflow_error(request: Request, exc: HelpFlowError):
        logger.error("Unhandled application error %s: %s", type(exc).__name__, exc.message)
        return _error(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return _error(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Assemble middleware, exception handlers and routers."""
    app = FastAPI(
        title="HelpFlow API",
        description=(
            "SaaS starter backend: Clerk identity sync, Stripe subscriptions "
            "and AI-generated demo emails."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(webhooks.router)
    app.include_router(billing.router)
    app.include_router(messages.router)
    app.include_router(profiles.router)
    app.include_router(health.router)

    return app


app = create_app()
