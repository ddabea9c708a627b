"""Repository for document vectorization metadata."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vectors_gateway.database.models import DocumentVectorMetadata
from vectors_gateway.repositories.base import BaseRepository
from vectors_gateway.utils.errors import MetadataStoreError, OwnershipConflictError

logger = logging.getLogger(__name__)


class VectorMetadataRepository(BaseRepository[DocumentVectorMetadata]):
    """Data access for `document_vector_metadata` rows keyed by (document_id, knowledge_base_id)."""

    def __init__(self, session: AsyncSession):
        """Initialize vector metadata repository."""
        super().__init__(DocumentVectorMetadata, session)

    async def get(
        self, document_id: int, knowledge_base_id: int
    ) -> Optional[DocumentVectorMetadata]:
        """Get the metadata row for a document, or None."""
        return await self.find_one(document_id=document_id, knowledge_base_id=knowledge_base_id)

    async def upsert_pending(
        self, document_id: int, knowledge_base_id: int, user_id: int
    ) -> DocumentVectorMetadata:
        """
        Create or reset the row to the not-yet-vectorized state.

        Args:
            document_id: Document ID
            knowledge_base_id: Knowledge base ID
            user_id: Owning user ID

        Returns:
            The created or reset DocumentVectorMetadata

        Raises:
            OwnershipConflictError: If the row belongs to a different user
        """
        existing = await self.get(document_id, knowledge_base_id)
        if existing is None:
            return await self.create(
                document_id=document_id,
                knowledge_base_id=knowledge_base_id,
                user_id=user_id,
                vector_count=0,
                is_vectorized=False,
                vectorized_at=None,
            )

        if existing.user_id != user_id:
            raise OwnershipConflictError(
                document_id, knowledge_base_id, details={"user_id": user_id}
            )

        try:
            existing.vector_count = 0
            existing.is_vectorized = False
            existing.vectorized_at = None
            await self.session.flush()
            await self.session.refresh(existing)
            return existing
        except SQLAlchemyError as e:
            logger.error(f"Error resetting metadata for document {document_id}: {e}")
            await self.session.rollback()
            raise MetadataStoreError(
                "Failed to reset vector metadata",
                details={"document_id": document_id, "knowledge_base_id": knowledge_base_id},
            ) from e

    async def set_vectorized(
        self,
        document_id: int,
        knowledge_base_id: int,
        is_vectorized: bool,
        vector_count: Optional[int] = None,
    ) -> Optional[DocumentVectorMetadata]:
        """
        Flip the vectorized flag on an existing row.

        Returns:
            Updated row or None when no row exists for the key
        """
        instance = await self.get(document_id, knowledge_base_id)
        if instance is None:
            return None

        try:
            instance.is_vectorized = is_vectorized
            if is_vectorized:
                instance.vector_count = vector_count or 0
                instance.vectorized_at = datetime.now(timezone.utc)
            else:
                instance.vectorized_at = None
            await self.session.flush()
            await self.session.refresh(instance)
            return instance
        except SQLAlchemyError as e:
            logger.error(f"Error updating vectorized flag for document {document_id}: {e}")
            await self.session.rollback()
            raise MetadataStoreError(
                "Failed to update vector metadata",
                details={"document_id": document_id, "knowledge_base_id": knowledge_base_id},
            ) from e

    async def list_vectorized(
        self,
        knowledge_base_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> List[DocumentVectorMetadata]:
        """List rows with is_vectorized=True, optionally scoped to a knowledge base and/or user."""
        try:
            query = select(DocumentVectorMetadata).where(
                DocumentVectorMetadata.is_vectorized.is_(True)
            )
            if knowledge_base_id is not None:
                query = query.where(DocumentVectorMetadata.knowledge_base_id == knowledge_base_id)
            if user_id is not None:
                query = query.where(DocumentVectorMetadata.user_id == user_id)
            query = query.order_by(DocumentVectorMetadata.document_id)

            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing vectorized documents: {e}")
            raise MetadataStoreError("Failed to list vectorized documents") from e
