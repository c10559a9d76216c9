"""
Async SQLAlchemy engine and booking session factory.

The booking store is PostgreSQL through ``asyncpg``.  Each repository call
opens its own short session, so the pool only needs to cover concurrent
API requests plus one live-location writer per tracked journey.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from src.config import settings

engine: AsyncEngine = create_async_engine(
    settings.database_url,
    pool_size=10,
    max_overflow=5,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def create_tables(bind: AsyncEngine = engine) -> None:
    """Create any missing tables (local runs without alembic)."""
    # models must be imported for their tables to be registered
    from . import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
