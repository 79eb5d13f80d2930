"""
Wayfarer Backend — Database Session Management
================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at module import; sessions are created per-request.

The engine is the single long-lived shared resource of the process. Handlers
borrow a session per request; the database provides its own concurrency
control, so no locking happens here.

Identifier parsing also lives here: a malformed identifier is a storage-level
cast failure (CastError), translated into a client fault by the error layer.
"""

import uuid
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


def _engine_options(url: str) -> Dict[str, Any]:
    """Pool options for server databases; SQLite manages its own pool."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# expire_on_commit=False: attributes stay readable after commit for serialization
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for migrations.
    """
    pass


# ── Storage-level cast failures ───────────────────────────────────────────
class CastError(ValueError):
    """
    A value could not be cast to the type a field requires.

    Raised for malformed identifiers and for query filter values that do not
    match the column type. Not an application error by itself: the error
    translation layer maps it to a 400 "Invalid <path>: <value>." response.
    """

    def __init__(self, path: str, value: Any):
        self.path = path
        self.value = value
        super().__init__(f"Cast to {path} failed for value '{value}'")


def parse_identifier(value: str, path: str = "_id") -> uuid.UUID:
    """Parse a document identifier, raising CastError when malformed."""
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise CastError(path, value) from None


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the error translation layer
        5. Always: closes the session (returns connection to pool)
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
async def check_connection() -> None:
    """
    What:  Round-trips a trivial query to prove the database is reachable.
    When:  Application startup and the health probe.
    Raises: Whatever the driver raises when the database is unreachable.
    """
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def dispose_engine() -> None:
    """Gracefully closes all connections in the pool (application shutdown)."""
    await engine.dispose()
