"""Async database engine, session factory, and lifespan management.

PostgreSQL (asyncpg) in production. A `sqlite+aiosqlite://` URL is accepted
for local runs; pool sizing only applies to server databases.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.config import settings


def build_engine(url: str) -> AsyncEngine:
    """Create the async engine for `url` with the configured pool."""
    options: dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if make_url(url).get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.db.pool_size,
            max_overflow=settings.db.max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
    return create_async_engine(url, **options)


engine: AsyncEngine = build_engine(settings.db.database_url)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, committed on success."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ── Lifespan helpers ─────────────────────────────────────────────────


async def init_db() -> None:
    """Check connectivity; outside production also create missing tables.

    Production schemas come from `alembic/versions`.
    """
    from src.models import Base

    async with engine.begin() as conn:
        if not settings.is_production:
            await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()


@contextlib.asynccontextmanager
async def db_lifespan() -> AsyncGenerator[None, None]:
    """Open the database for the app lifetime and dispose the pool afterwards."""
    await init_db()
    try:
        yield
    finally:
        await close_db()
