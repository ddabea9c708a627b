"""Vectorization bookkeeping backed by the relational database."""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vectors_gateway.database.session import get_session_factory
from vectors_gateway.models.vector_metadata import VectorMetadataRecord
from vectors_gateway.repositories.vector_metadata_repository import VectorMetadataRepository
from vectors_gateway.utils.errors import MetadataStoreError
from vectors_gateway.utils.logging import get_logger

logger = get_logger("metadata_store")


class MetadataStore(ABC):
    """Per-document vectorization state keyed by (document_id, knowledge_base_id)."""

    @abstractmethod
    async def upsert_pending(
        self, document_id: int, knowledge_base_id: int, user_id: int
    ) -> VectorMetadataRecord:
        """Create or reset the row to is_vectorized=False, vector_count=0.

        Raises OwnershipConflictError when the row belongs to another user.
        """

    @abstractmethod
    async def mark_vectorized(
        self, document_id: int, knowledge_base_id: int, vector_count: int
    ) -> Optional[VectorMetadataRecord]:
        """Set is_vectorized=True with the final vector count."""

    @abstractmethod
    async def mark_not_vectorized(
        self, document_id: int, knowledge_base_id: int
    ) -> Optional[VectorMetadataRecord]:
        """Set is_vectorized=False, keeping the row."""

    @abstractmethod
    async def delete(
        self, document_id: int, knowledge_base_id: int, user_id: Optional[int] = None
    ) -> int:
        """Delete the row (only if owned by user_id when given); returns rows removed."""

    @abstractmethod
    async def delete_knowledge_base(
        self, knowledge_base_id: int, user_id: Optional[int] = None
    ) -> int:
        """Delete every row of a knowledge base, optionally only those of one user."""

    @abstractmethod
    async def get(self, document_id: int, knowledge_base_id: int) -> Optional[VectorMetadataRecord]:
        """Fetch a row."""

    @abstractmethod
    async def list_vectorized_for_knowledge_base(
        self, knowledge_base_id: int
    ) -> List[VectorMetadataRecord]:
        """Vectorized documents of a knowledge base."""

    @abstractmethod
    async def list_vectorized_for_user(self, user_id: int) -> List[VectorMetadataRecord]:
        """Vectorized documents of a user, across knowledge bases."""

    @abstractmethod
    async def list_all(self, knowledge_base_id: Optional[int] = None) -> List[VectorMetadataRecord]:
        """Every row, optionally restricted to one knowledge base."""


class SqlAlchemyMetadataStore(MetadataStore):
    """
    MetadataStore over SQLAlchemy async sessions.

    Every call runs in its own session and commits on success, so each
    pipeline step is an independent commit point.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _repository(self) -> AsyncIterator[VectorMetadataRepository]:
        factory = self._session_factory or get_session_factory()
        async with factory() as session:
            try:
                yield VectorMetadataRepository(session)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Metadata store session error: {e}")
                raise MetadataStoreError("Metadata store transaction failed") from e
            except Exception:
                await session.rollback()
                raise

    @staticmethod
    def _snapshot(row) -> Optional[VectorMetadataRecord]:
        return VectorMetadataRecord.model_validate(row) if row is not None else None

    async def upsert_pending(
        self, document_id: int, knowledge_base_id: int, user_id: int
    ) -> VectorMetadataRecord:
        async with self._repository() as repo:
            row = await repo.upsert_pending(document_id, knowledge_base_id, user_id)
            return self._snapshot(row)

    async def mark_vectorized(
        self, document_id: int, knowledge_base_id: int, vector_count: int
    ) -> Optional[VectorMetadataRecord]:
        async with self._repository() as repo:
            row = await repo.set_vectorized(
                document_id, knowledge_base_id, is_vectorized=True, vector_count=vector_count
            )
            if row is None:
                raise MetadataStoreError(
                    "No vector metadata row to mark as vectorized",
                    details={"document_id": document_id, "knowledge_base_id": knowledge_base_id},
                )
            return self._snapshot(row)

    async def mark_not_vectorized(
        self, document_id: int, knowledge_base_id: int
    ) -> Optional[VectorMetadataRecord]:
        async with self._repository() as repo:
            row = await repo.set_vectorized(document_id, knowledge_base_id, is_vectorized=False)
            return self._snapshot(row)

    async def delete(
        self, document_id: int, knowledge_base_id: int, user_id: Optional[int] = None
    ) -> int:
        filters = {"document_id": document_id, "knowledge_base_id": knowledge_base_id}
        if user_id is not None:
            filters["user_id"] = user_id
        async with self._repository() as repo:
            return await repo.delete_where(**filters)

    async def delete_knowledge_base(
        self, knowledge_base_id: int, user_id: Optional[int] = None
    ) -> int:
        filters = {"knowledge_base_id": knowledge_base_id}
        if user_id is not None:
            filters["user_id"] = user_id
        async with self._repository() as repo:
            return await repo.delete_where(**filters)

    async def get(self, document_id: int, knowledge_base_id: int) -> Optional[VectorMetadataRecord]:
        async with self._repository() as repo:
            return self._snapshot(await repo.get(document_id, knowledge_base_id))

    async def list_vectorized_for_knowledge_base(
        self, knowledge_base_id: int
    ) -> List[VectorMetadataRecord]:
        async with self._repository() as repo:
            rows = await repo.list_vectorized(knowledge_base_id=knowledge_base_id)
            return [self._snapshot(r) for r in rows]

    async def list_vectorized_for_user(self, user_id: int) -> List[VectorMetadataRecord]:
        async with self._repository() as repo:
            rows = await repo.list_vectorized(user_id=user_id)
            return [self._snapshot(r) for r in rows]

    async def list_all(self, knowledge_base_id: Optional[int] = None) -> List[VectorMetadataRecord]:
        filters = {"knowledge_base_id": knowledge_base_id} if knowledge_base_id is not None else None
        async with self._repository() as repo:
            rows = await repo.get_all(filters)
            return [self._snapshot(r) for r in rows]
