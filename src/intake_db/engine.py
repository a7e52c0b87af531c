"""Async SQLAlchemy engine and session factory.

The engine is created lazily on first use and shared by everything in the
process (HTTP handlers, the background retrier, the retry CLI).  Call
``dispose_engine()`` on shutdown.
"""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from intake_db.config import MAX_OVERFLOW, POOL_SIZE, get_async_url, redact_url

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return (and lazily create) the singleton async engine."""
    global _engine
    if _engine is None:
        url = get_async_url()
        _engine = create_async_engine(
            url,
            echo=False,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            # Clinic deployments sit idle for long stretches
            pool_pre_ping=True,
        )
        logger.info("Database engine created for %s", redact_url(url))
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return (and lazily create) the async session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


async def check_connection() -> None:
    """Run ``SELECT 1``; raises the driver error when the database is down."""
    async with get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
