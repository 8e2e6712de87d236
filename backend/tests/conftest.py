"""
HelpFlow Backend: Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment variables are set before any helpflow import so the
       `settings` singleton picks up test values.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: AsyncMock session (no real DB needed)
    ├── make_profile / make_message: ORM instances with realistic values
    ├── sign_clerk_payload: real Svix headers for a body
    ├── sign_stripe_payload: real Stripe-Signature header for a body
    └── test_client: HTTPX AsyncClient bound to the FastAPI app
"""

import hashlib
import hmac
import os
import time
import uuid
from datetime import datetime, timezone

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup (before helpflow is imported anywhere)
# ══════════════════════════════════════════════════════════════════════════

CLERK_TEST_SECRET = "whsec_MfKQ9r8GKYqrTwjUPD8ILPZIo2LaLaSw"
STRIPE_TEST_WEBHOOK_SECRET = "whsec_stripe_test_secret"

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_not_real"
os.environ["STRIPE_WEBHOOK_SECRET"] = STRIPE_TEST_WEBHOOK_SECRET
os.environ["CLERK_WEBHOOK_SECRET"] = CLERK_TEST_SECRET
os.environ["DELIVERY_WEBHOOK_URL"] = ""
os.environ["APP_URL"] = "http://localhost:3000"

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from svix.webhooks import Webhook  # noqa: E402

from helpflow.models import DemoMessage, Profile  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    `execute` resolves to a plain MagicMock result, so tests configure:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = profile
    """
    session = AsyncMock()
    session.execute = AsyncMock(return_value=MagicMock())
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def make_profile():
    def _make(**overrides) -> Profile:
        now = datetime.now(timezone.utc)
        fields = {
            "id": uuid.uuid4(),
            "clerk_user_id": "user_2abc",
            "email": "ada@example.com",
            "subscription_status": "inactive",
            "subscription_plan": "free",
            "stripe_customer_id": None,
            "stripe_subscription_id": None,
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        return Profile(**fields)
    return _make


@pytest.fixture
def make_message():
    def _make(**overrides) -> DemoMessage:
        fields = {
            "id": uuid.uuid4(),
            "user_id": uuid.uuid4(),
            "recipient_email": "bob@example.com",
            "message_topic": "Quarterly product update",
            "status": "pending",
            "created_at": datetime.now(timezone.utc),
        }
        fields.update(overrides)
        return DemoMessage(**fields)
    return _make


# ══════════════════════════════════════════════════════════════════════════
# Webhook signing
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def sign_clerk_payload():
    """Returns svix-* headers for `body`, signed with the test Clerk secret."""
    def _sign(body: str, secret: str = CLERK_TEST_SECRET) -> dict:
        msg_id = f"msg_{uuid.uuid4().hex}"
        now = datetime.now(timezone.utc)
        return {
            "svix-id": msg_id,
            "svix-timestamp": str(int(now.timestamp())),
            "svix-signature": Webhook(secret).sign(msg_id, now, body),
        }
    return _sign


@pytest.fixture
def sign_stripe_payload():
    """Returns a Stripe-Signature header value for `body` (scheme v1, HMAC-SHA256)."""
    def _sign(body: str, secret: str = STRIPE_TEST_WEBHOOK_SECRET) -> str:
        timestamp = int(time.time())
        signature = hmac.new(
            secret.encode("utf-8"),
            f"{timestamp}.{body}".encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        return f"t={timestamp},v1={signature}"
    return _sign


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(mock_db_session):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    The transport does not run the lifespan, so the database dependency is
    replaced with `mock_db_session`; tests override service providers they use.
    """
    from helpflow.database import get_db_session
    from helpflow.main import app

    app.dependency_overrides[get_db_session] = lambda: mock_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
