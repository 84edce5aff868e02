"""
Database connection using SQLAlchemy + asyncpg.

Supabase is PostgreSQL underneath, so we talk to it directly instead of going
through the Supabase client. Realtime consumers still get notified: the store
emits pg_notify on every write (see services/debate/store.py).

The engine is created lazily so that importing the package (tests, tooling)
does not require DATABASE_URL to be set.
"""

from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from debate_arena.config import get_settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


@lru_cache
def get_engine() -> AsyncEngine:
    """Connection pool to Supabase PostgreSQL."""
    settings = get_settings()
    return create_async_engine(settings.database_url, echo=settings.sql_echo)


@lru_cache
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """
    Factory that creates database sessions.

    expire_on_commit=False keeps objects usable after commit (needed for async,
    and for records handed back to the orchestrator after insert).
    """
    return async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)
