"""
Async database engine and session factory.

Uses SQLAlchemy 2.x async engine: asyncpg for PostgreSQL in production,
aiosqlite for local development and tests. The URL comes from Settings and
is passed in explicitly; this module never reads the environment.

CHANGELOG:
- 2026-10-04: Initial creation (STORY-005)
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from plug_monitor.db.models import Base


def create_engine(database_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine for ``database_url``.

    In-memory SQLite URLs get a StaticPool so every session shares the one
    connection (and therefore the one database).

    Args:
        database_url: SQLAlchemy async URL, e.g.
            ``postgresql+asyncpg://user:pw@host/db`` or
            ``sqlite+aiosqlite:///./telemetry.db``.

    Returns:
        AsyncEngine: Configured async engine.
    """
    if database_url.startswith("sqlite") and (
        ":memory:" in database_url or database_url.rstrip("/").endswith("aiosqlite:")
    ):
        return create_async_engine(
            database_url,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(database_url, echo=False)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to ``engine``.

    Args:
        engine: The async engine to bind sessions to.

    Returns:
        async_sessionmaker: Factory for creating AsyncSession instances.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_schema(engine: AsyncEngine) -> None:
    """Create missing tables. Safe to call on every startup."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
