"""Relational storage for per-document vectorization metadata."""

from vectors_gateway.database.connection import (
    check_connection,
    close_engine,
    create_engine,
    get_engine,
    to_async_url,
)
from vectors_gateway.database.models import Base, DocumentVectorMetadata
from vectors_gateway.database.session import close_db, get_session_factory, init_db

__all__ = [
    "Base",
    "DocumentVectorMetadata",
    "check_connection",
    "close_engine",
    "create_engine",
    "get_engine",
    "to_async_url",
    "close_db",
    "get_session_factory",
    "init_db",
]
