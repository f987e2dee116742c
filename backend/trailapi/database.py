"""
Trail API Backend — Database Session Management
================================================

What:  Async SQLAlchemy engine, session factory, and schema bootstrap.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling and a session factory;
       the store layer decides when to commit.
Who:   Used by the SQL entity store through FastAPI's dependency injection.
When:  Engine is created at module import; sessions are created per-request.

Note on commits:
    The SQL entity store commits after every single write (document-store
    semantics) unless it is inside `transaction()`. Sessions are opened per
    request by `trailapi.dependencies.get_entity_store`.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from trailapi.config import settings


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=settings.db_pool_pre_ping,
    pool_recycle=3600,
    echo=settings.log_level == "DEBUG",
)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: the store keeps reading records after each
# per-operation commit; expiring them would trigger lazy reloads
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models (shares one metadata object)."""
    pass


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def init_models() -> None:
    """
    Create the entities table if it does not exist yet.

    When:  Application startup, SQL backend only.
    Why:   The schema is a single generic document table; there is nothing to
           migrate between releases, only to create once.
    """
    # Importing registers EntityRecord on Base.metadata
    from trailapi.models.entity import EntityRecord  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Gracefully closes all pooled connections (application shutdown)."""
    await engine.dispose()
