"""
HelpFlow Backend: Health Check Route
=====================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   SELECT 1 against the database, plus a configuration check (no network
       calls) for each external integration.
Who:   Docker health checks, load balancers, uptime monitors.

Status levels:
    - healthy:   database reachable, all required integrations configured (200)
    - degraded:  database reachable, a required integration unconfigured (200)
    - unhealthy: database unreachable (503)

The delivery webhook is optional; it is reported but never degrades status.
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from helpflow import __version__
from helpflow.config import settings
from helpflow.database import engine
from helpflow.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def check_database() -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Health check: database unreachable: %s", str(e))
        return False
    return True


def integration_report() -> dict:
    def state(ok: bool) -> str:
        return "configured" if ok else "not_configured"

    return {
        "gemini": state(bool(settings.gemini_api_key)),
        "stripe": state(bool(settings.stripe_secret_key and settings.stripe_webhook_secret)),
        "clerk": state(bool(settings.clerk_webhook_secret)),
        "delivery": "configured" if settings.delivery_webhook_url else "disabled",
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_ok = await check_database()
    integrations = integration_report()

    if not db_ok:
        overall = "unhealthy"
        response.status_code = 503
    elif any(v == "not_configured" for v in integrations.values()):
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        version=__version__,
        database="connected" if db_ok else "disconnected",
        integrations=integrations,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
