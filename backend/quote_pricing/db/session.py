"""Async engines for the pricing tables, one per database URL."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from quote_pricing.core.config import get_settings

_factories: dict[str, tuple[AsyncEngine, async_sessionmaker[AsyncSession]]] = {}


def _database_url(override: str | None) -> str:
    return override or get_settings().database_url


def get_sessionmaker(database_url: str | None = None) -> async_sessionmaker[AsyncSession]:
    """Sessionmaker bound to ``database_url``, defaulting to ``DATABASE_URL``."""

    url = _database_url(database_url)
    entry = _factories.get(url)
    if entry is None:
        engine = create_async_engine(url)
        entry = (engine, async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession))
        _factories[url] = entry
    return entry[1]


@asynccontextmanager
async def session_scope(database_url: str | None = None) -> AsyncIterator[AsyncSession]:
    """Open a session; work left uncommitted when the block raises is rolled back."""

    async with get_sessionmaker(database_url)() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def dispose_engine(database_url: str | None = None) -> None:
    entry = _factories.pop(_database_url(database_url), None)
    if entry is not None:
        await entry[0].dispose()
