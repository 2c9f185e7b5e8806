"""Async database engine and session factory construction.

Engines and session factories are built explicitly and handed to whoever needs
them (the FastAPI app keeps its factory on ``app.state``); nothing here opens a
connection at import time.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.models import Base


def create_engine_for_url(database_url: str) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    Args:
        database_url: SQLAlchemy async URL (e.g., "sqlite+aiosqlite:///./utilities.db")

    Returns:
        AsyncEngine (SQLite uses StaticPool so in-memory databases survive
        across sessions)
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(database_url, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables (development and tests)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def apply_statement_timeout(session: AsyncSession, timeout_seconds: int) -> None:
    """Bound the current transaction's statements on PostgreSQL.

    Other dialects have no per-transaction statement timeout; the call is a
    no-op there.
    """
    bind = session.get_bind()
    if bind.dialect.name != "postgresql":
        return
    await session.execute(text(f"SET LOCAL statement_timeout = {int(timeout_seconds) * 1000}"))


__all__ = [
    "apply_statement_timeout",
    "create_engine_for_url",
    "create_schema",
    "create_session_factory",
]
