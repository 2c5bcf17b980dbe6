"""
Database engine and session management.

One lazily created async engine per process. PostgreSQL goes through
asyncpg with a small pre-pinged pool; SQLite (local runs) uses the
driver defaults.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, AsyncEngine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

POOL_SIZE: int = 5
POOL_MAX_OVERFLOW: int = 10

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _async_url(url: str) -> str:
    """Plain ``postgresql://`` URLs are switched to the asyncpg driver."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        url: str = _async_url(settings.DATABASE_URL)
        if url.startswith("sqlite"):
            _engine = create_async_engine(url, echo=False)
        else:
            _engine = create_async_engine(
                url,
                echo=False,
                pool_size=POOL_SIZE,
                max_overflow=POOL_MAX_OVERFLOW,
                pool_pre_ping=True,
            )
        logger.info("Database engine created (%s)", type(_engine.pool).__name__)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,  # sync code flushes explicitly
        )
    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an async database session.

    Uncommitted changes are rolled back if the block raises.
    """
    session: AsyncSession = get_session_factory()()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with get_session() as session:
        yield session


async def close_db() -> None:
    """Dispose of the engine on application shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database engine disposed")


def get_pool_status() -> dict[str, Any]:
    """Connection pool counters for the health endpoint."""
    if _engine is None:
        return {"pool_type": "not_initialized", "checked_in": 0, "checked_out": 0}

    pool = _engine.pool
    if not hasattr(pool, "checkedout"):
        return {"pool_type": type(pool).__name__, "checked_in": 0, "checked_out": 0}
    return {
        "pool_type": type(pool).__name__,
        "checked_in": pool.checkedin(),
        "checked_out": pool.checkedout(),
    }
