"""Similarity search over a user's knowledge base."""

from typing import Any, Dict, List, Optional

from vectors_gateway.models.results import SearchMatch
from vectors_gateway.services.embedding_service import EmbeddingGateway
from vectors_gateway.services.qdrant_service import VectorStore
from vectors_gateway.utils.errors import EmbeddingServiceError, ValidationError
from vectors_gateway.utils.logging import get_logger

logger = get_logger("retrieval_service")


class RetrievalService:
    """Embed a query and search the vector store within a user's knowledge base."""

    def __init__(self, embedding_gateway: EmbeddingGateway, vector_store: VectorStore) -> None:
        self._gateway = embedding_gateway
        self._vector_store = vector_store

    async def search(
        self,
        query: str,
        user_id: int,
        knowledge_base_id: int,
        document_id: Optional[int] = None,
        limit: int = 10,
        score_threshold: Optional[float] = 0.5,
    ) -> List[SearchMatch]:
        """
        Return the chunks most similar to `query`.

        Results are always restricted to `user_id` and `knowledge_base_id`,
        and to `document_id` when given, in the order the store ranks them.
        """
        if not query or not query.strip():
            raise ValidationError('"query" is required')

        vectors = await self._gateway.get_embeddings([query])
        if len(vectors) != 1 or not vectors[0]:
            raise EmbeddingServiceError(
                "Embedding provider returned no vector for the query",
                details={"vectors": len(vectors)},
            )

        filters: Dict[str, Any] = {"user_id": user_id, "knowledge_base_id": knowledge_base_id}
        if document_id is not None:
            filters["document_id"] = document_id

        matches = await self._vector_store.search(
            vectors[0], filters, limit=limit, score_threshold=score_threshold
        )
        logger.info(
            f"Search returned {len(matches)} matches",
            extra={"knowledge_base_id": knowledge_base_id, "limit": limit},
        )
        return matches
