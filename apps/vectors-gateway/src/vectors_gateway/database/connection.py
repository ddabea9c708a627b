"""Async engine for the vectorization metadata database."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from vectors_gateway.config import get_settings

logger = logging.getLogger(__name__)

# Sync drivers people tend to put in DATABASE_URL, mapped to their async counterparts
_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
    "postgresql+psycopg2": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}

_engine: Optional[AsyncEngine] = None


def to_async_url(url: str) -> URL:
    """Parse a database URL and swap a sync driver for its async one."""
    parsed = make_url(url)
    driver = _ASYNC_DRIVERS.get(parsed.drivername)
    return parsed.set(drivername=driver) if driver else parsed


def create_engine(url: Optional[str] = None) -> AsyncEngine:
    """
    Build the engine from DATABASE_* settings.

    Pool tuning applies to server databases only; SQLite gets the
    dialect defaults.
    """
    settings = get_settings().database
    db_url = to_async_url(url or settings.url)

    options: Dict[str, Any] = {"echo": settings.echo}
    if db_url.get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_timeout=settings.pool_timeout,
            pool_recycle=settings.pool_recycle,
            pool_pre_ping=True,
        )

    engine = create_async_engine(db_url, **options)
    logger.info(
        f"Metadata database engine created: backend={db_url.get_backend_name()}, "
        f"host={db_url.host or 'local'}, database={db_url.database}"
    )
    return engine


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_engine()
    return _engine


async def close_engine() -> None:
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        logger.info("Metadata database engine disposed")


async def check_connection(engine: Optional[AsyncEngine] = None) -> bool:
    """Round-trip a trivial query; False on any failure."""
    try:
        async with (engine or get_engine()).connect() as conn:
            return (await conn.scalar(text("SELECT 1"))) == 1
    except Exception as e:
        logger.warning(f"Metadata database unreachable: {e}")
        return False
