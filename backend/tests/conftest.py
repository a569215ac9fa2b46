"""Test fixtures for the quote pricing engine."""
from __future__ import annotations

import os
import uuid
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("RATE_CARD_CACHE_BACKEND", "memory")

from quote_pricing.core.config import get_settings
from quote_pricing.db.base import Base
from quote_pricing.db.session import dispose_engine, get_sessionmaker
from quote_pricing.models import Organization
from quote_pricing.services.currency_service import seed_currencies
from quote_pricing.services.rate_card_cache import reset_rate_card_cache


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()
    reset_rate_card_cache()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest_asyncio.fixture()
async def session(reset_database: None, db_url: str) -> AsyncIterator[AsyncSession]:
    """Yield a session bound to the freshly created schema."""
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as db_session:
        yield db_session


@pytest_asyncio.fixture()
async def organization(session: AsyncSession) -> Organization:
    """Seed the currency table and a pricing tenant."""
    await seed_currencies(session)
    org = Organization(name="Acme Consulting", slug=f"acme-{uuid.uuid4().hex[:8]}")
    session.add(org)
    await session.commit()
    return org
