"""Session factory and schema bootstrap for the metadata database."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vectors_gateway.database.connection import check_connection, close_engine, get_engine
from vectors_gateway.database.models import Base

logger = logging.getLogger(__name__)

_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Shared session factory bound to the global engine.

    Objects stay usable after commit (`expire_on_commit=False`) because the
    metadata store snapshots rows after its session has closed.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def init_db() -> None:
    """
    Create the `document_vector_metadata` table when missing.

    Raises:
        ConnectionError: If the database cannot be reached
    """
    engine = get_engine()
    if not await check_connection(engine):
        raise ConnectionError("Metadata database is not reachable")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Metadata database ready")


async def close_db() -> None:
    global _session_factory
    _session_factory = None
    await close_engine()
