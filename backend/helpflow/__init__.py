"""
HelpFlow Backend: Application Package
=====================================

What: SaaS starter backend wiring Clerk identity, PostgreSQL, Stripe billing
      and Gemini text generation behind a FastAPI application.
Who:  Imported by uvicorn (`helpflow.main:app`), Alembic and pytest.

Layering:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  HTTP only: parse, delegate, respond
    ├─────────────────────────────────────┤
    │      Services (Status Lifecycle)    │  webhooks, checkout, generation
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  Async SQLAlchemy sessions
    └─────────────────────────────────────┘

External clients (Stripe, httpx, Gemini) are built once in the lifespan and
handed to services through FastAPI dependencies; services never construct them.
"""

__version__ = "1.0.0"
