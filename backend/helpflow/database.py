"""
HelpFlow Backend: Database Session Management
==============================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       FastAPI session dependency.
How:   One pooled async engine per process; one session per request that
       commits on success and rolls back on error.
When:  Engine is created at module import; sessions are created per-request.

Commit policy:
    Most handlers rely on the dependency's commit at the end of the request.
    The message generation service commits after every status change instead,
    because a `failed` row must survive even when the request ends in an error
    (the dependency would otherwise roll it back).

Pool sizing:
    pool_size=20 and max_overflow=10 cap the process at 30 connections, under
    PostgreSQL's default max_connections=100. pool_recycle=3600 drops
    connections older than an hour.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from helpflow.config import settings


_engine_options = {
    "pool_pre_ping": settings.db_pool_pre_ping,
    "echo": settings.log_level == "DEBUG",
}
# SQLite (tests) gets the dialect's own pool, which rejects sizing arguments
if not settings.database_url.startswith("sqlite"):
    _engine_options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=3600,
    )

engine = create_async_engine(settings.database_url, **_engine_options)

# expire_on_commit=False: rows stay readable after the per-step commits made by
# the generation service.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic autogenerate."""
    pass


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back, then re-raises for the global handlers
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/profiles/{clerk_user_id}")
        async def get_profile(clerk_user_id: str, db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine() -> None:
    """Closes all pooled connections. Called from the lifespan at shutdown."""
    await engine.dispose()
