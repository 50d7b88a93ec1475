"""
Database connection for PostgreSQL (Railway) or local SQLite.

Env vars (set in Railway Variables or .env):
    DATABASE_URL  -- full postgres:// connection string
                     Railway auto-sets this when you add a Postgres plugin.
    DATABASE_URL_FALLBACK -- optional sqlite+aiosqlite:///./local.db for local dev
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

import config_env


def normalize_database_url(raw_url: str) -> str:
    """Railway gives postgres:// but asyncpg needs postgresql+asyncpg://"""
    if raw_url.startswith("postgres://"):
        return raw_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return raw_url


if config_env.DATABASE_URL:
    DATABASE_URL = normalize_database_url(config_env.DATABASE_URL)
else:
    # Local fallback: async sqlite via aiosqlite
    DATABASE_URL = config_env.DATABASE_URL_FALLBACK

engine = create_async_engine(DATABASE_URL, echo=False)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def init_db(bind: AsyncEngine | None = None):
    """Create all tables (safe to call multiple times)."""
    # Model classes must be imported so they are attached to Base.metadata
    from backend import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncSession:
    async with async_session() as session:
        yield session
