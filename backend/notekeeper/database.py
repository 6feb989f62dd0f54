"""
NoteKeeper Backend: Database Session Management
================================================

What:  Async SQLAlchemy engine, session factory, declarative Base and the
       per-request session dependency.
How:   One engine (and connection pool) per process; one AsyncSession per
       request that commits on success and rolls back on error.
Who:   Routes receive sessions via FastAPI's Depends(get_db_session);
       tests use `async_session_factory` directly.

Connection Pooling:
    PostgreSQL (asyncpg): pool_size + max_overflow from settings,
    pool_pre_ping, hourly recycle.
    SQLite (aiosqlite):   StaticPool with check_same_thread disabled so an
                          in-memory database survives across sessions.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from notekeeper.config import settings


def _engine_options() -> Dict[str, Any]:
    """Pool options for the configured backend."""
    if settings.is_sqlite:
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": 3600,
    }


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(
    settings.database_url,
    echo=settings.log_level == "DEBUG",
    **_engine_options(),
)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: response serialization reads attributes after the
# request session has committed
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object, which Alembic reads for --autogenerate and
    `create_all_tables()` uses for development/test schemas.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler (services flush their changes)
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the global error handler
        5. Always: closes the session (returns connection to pool)

    FastAPI caches dependencies per request, so get_current_user and the
    route handler share this same session.
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


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_all_tables() -> None:
    """
    What:  Creates every mapped table that does not exist yet.
    When:  Startup with AUTO_CREATE_TABLES=true, and in the test suite.
           Production schemas are managed by Alembic.
    """
    # Model modules register their tables on Base.metadata when imported
    from notekeeper.models import note, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
