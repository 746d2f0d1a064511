"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access. The engine is built once by
create_app() from Settings and parked on app.state; nothing connects until
the first query.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from dianji.config import Settings
from dianji.db.models import Base


def build_engine(settings: Settings) -> AsyncEngine:
    """Connection pool: min 5, max 20 connections on PostgreSQL.

    echo=True in debug to see SQL queries.
    """
    kwargs = {}
    if settings.database_url.startswith("postgresql"):
        kwargs = {"pool_size": 5, "max_overflow": 15}
    return create_async_engine(settings.database_url, echo=settings.debug, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory — each request gets its own session."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create missing tables (dev bootstrap; production runs alembic)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
