"""Repository layer for data access operations."""

from vectors_gateway.repositories.base import BaseRepository
from vectors_gateway.repositories.vector_metadata_repository import VectorMetadataRepository

__all__ = [
    "BaseRepository",
    "VectorMetadataRepository",
]
