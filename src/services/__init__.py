"""Async database engine and session factory for the billing services.

Engines are built on first use from the loaded configuration, so a
DATABASE_URL given only in .env is honoured.
"""

from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.services.config import load_config


def to_async_url(database_url: str) -> str:
    """Map a sync SQLAlchemy URL onto its async driver (sqlite -> aiosqlite)."""
    if database_url.startswith("sqlite:///"):
        return database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return database_url


def create_billing_engine(database_url: str) -> AsyncEngine:
    """Build the async engine for a configured database URL.

    SQLite shares one connection (StaticPool) so in-memory databases survive
    across sessions; other backends get a pinging pool.
    """
    url = to_async_url(database_url)
    if url.startswith("sqlite"):
        return create_async_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(url, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Generated bills stay readable after commit for the API response
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@lru_cache
def get_session_factory(database_url: str) -> async_sessionmaker[AsyncSession]:
    """Session factory for ``database_url``; one engine per URL per process."""
    return create_session_factory(create_billing_engine(database_url))


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    session_factory = get_session_factory(load_config().database_url)
    async with session_factory() as session:
        yield session


__all__ = [
    "create_billing_engine",
    "create_session_factory",
    "get_async_session",
    "get_session_factory",
    "to_async_url",
]
