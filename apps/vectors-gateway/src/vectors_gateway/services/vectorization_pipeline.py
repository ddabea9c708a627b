"""Document vectorization pipeline: chunk, embed and store, keeping both stores consistent."""

import math
from datetime import datetime, timezone
from enum import Enum
from numbers import Real
from typing import Any, Dict, List, Optional, Sequence, Tuple

from vectors_gateway.config import Settings, get_settings
from vectors_gateway.models.chunk import ChunkMetadata, TextChunk, VectorPoint
from vectors_gateway.models.results import (
    DeleteResult,
    ErrorInfo,
    IngestResult,
    OperationStatus,
)
from vectors_gateway.services.embedding_service import EmbeddingGateway
from vectors_gateway.services.metadata_store import MetadataStore
from vectors_gateway.services.qdrant_service import VectorStore, make_point_id
from vectors_gateway.services.semantic_chunking import SemanticChunkingService
from vectors_gateway.utils.errors import DocumentVectorizationError, EmbeddingMismatchError
from vectors_gateway.utils.locks import KeyedLock
from vectors_gateway.utils.logging import document_context, get_logger, log_error

logger = get_logger("vectorization_pipeline")


class IngestStep(str, Enum):
    """Ordered steps of an ingest; each one is its own commit point."""

    RESET_METADATA = "reset_metadata"
    PURGE_VECTORS = "purge_vectors"
    CHUNK = "chunk"
    BUILD_CHUNKS = "build_chunks"
    EMBED = "embed"
    VALIDATE_EMBEDDINGS = "validate_embeddings"
    STORE_VECTORS = "store_vectors"
    MARK_VECTORIZED = "mark_vectorized"


class DocumentVectorizationPipeline:
    """
    Ingest and delete documents across the vector store and the metadata store.

    Operations on the same (document_id, knowledge_base_id) are serialized
    by an in-process keyed lock; different documents proceed concurrently.
    Neither ingest nor delete raises for collaborator failures: both return
    a structured result naming what happened.
    """

    def __init__(
        self,
        embedding_gateway: EmbeddingGateway,
        vector_store: VectorStore,
        metadata_store: MetadataStore,
        chunking_service: Optional[SemanticChunkingService] = None,
        settings: Optional[Settings] = None,
        locks: Optional[KeyedLock] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._gateway = embedding_gateway
        self._vector_store = vector_store
        self._metadata = metadata_store
        self._chunker = chunking_service or SemanticChunkingService(
            embedding_gateway, settings=self._settings
        )
        self.locks = locks or KeyedLock()

    @property
    def vector_store(self) -> VectorStore:
        return self._vector_store

    @property
    def metadata_store(self) -> MetadataStore:
        return self._metadata

    @staticmethod
    def document_key(document_id: int, knowledge_base_id: int) -> Tuple[int, int]:
        return (document_id, knowledge_base_id)

    async def ingest(
        self, content: str, document_id: int, knowledge_base_id: int, user_id: int
    ) -> IngestResult:
        """
        Vectorize a document, replacing whatever was stored for it before.

        Args:
            content: Document text
            document_id: Document ID
            knowledge_base_id: Knowledge base ID
            user_id: Owning user ID

        Returns:
            IngestResult with status success, partial (vectors stored but not
            marked) or failed (with the failing step)
        """
        async with self.locks.acquire(self.document_key(document_id, knowledge_base_id)):
            with document_context(document_id, knowledge_base_id, user_id):
                return await self._ingest(content, document_id, knowledge_base_id, user_id)

    async def _ingest(
        self, content: str, document_id: int, knowledge_base_id: int, user_id: int
    ) -> IngestResult:
        identity = {
            "document_id": document_id,
            "knowledge_base_id": knowledge_base_id,
            "user_id": user_id,
        }
        logger.info(f"Starting ingest for document {document_id}")

        step = IngestStep.RESET_METADATA
        try:
            await self._metadata.upsert_pending(document_id, knowledge_base_id, user_id)

            step = IngestStep.PURGE_VECTORS
            await self._vector_store.delete(identity)

            step = IngestStep.CHUNK
            chunking = await self._chunker.chunk(content)

            step = IngestStep.BUILD_CHUNKS
            chunks = self.build_chunks(
                chunking.chunks, content, document_id, knowledge_base_id, user_id
            )

            step = IngestStep.EMBED
            self._warn_oversized(chunks, document_id)
            embeddings = await self._gateway.get_embeddings([c.content for c in chunks])

            step = IngestStep.VALIDATE_EMBEDDINGS
            self.validate_embeddings(chunks, embeddings)

            step = IngestStep.STORE_VECTORS
            dimension = self._settings.embedding.dimension or len(embeddings[0])
            await self._vector_store.ensure_collection(dimension)
            await self._vector_store.upsert(self.build_points(chunks, embeddings))
        except Exception as e:
            error = DocumentVectorizationError(
                step=step.value,
                document_id=document_id,
                knowledge_base_id=knowledge_base_id,
                user_id=user_id,
                cause=e,
            )
            log_error(error, context={"step": step.value})
            return IngestResult.failed(error, user_id=user_id)

        vector_count = len(chunks)
        try:
            await self._metadata.mark_vectorized(document_id, knowledge_base_id, vector_count)
        except Exception as e:
            logger.warning(f"Vectors stored but metadata not marked for document {document_id}: {e}")
            return IngestResult(
                status=OperationStatus.PARTIAL,
                vector_count=vector_count,
                chunking_strategy=chunking.strategy,
                error=ErrorInfo.from_exception(e, step=IngestStep.MARK_VECTORIZED.value),
                **identity,
            )

        logger.info(
            f"Document {document_id} vectorized: vectors={vector_count}, "
            f"strategy={chunking.strategy.value}"
        )
        return IngestResult(
            status=OperationStatus.SUCCESS,
            vector_count=vector_count,
            chunking_strategy=chunking.strategy,
            **identity,
        )

    @staticmethod
    def build_chunks(
        texts: Sequence[str],
        original_content: str,
        document_id: int,
        knowledge_base_id: int,
        user_id: int,
    ) -> List[TextChunk]:
        """Attach ids and full metadata to chunk texts."""
        total = len(texts)
        return [
            TextChunk(
                id=make_point_id(knowledge_base_id, document_id, index),
                content=text,
                metadata=ChunkMetadata(
                    document_id=document_id,
                    knowledge_base_id=knowledge_base_id,
                    user_id=user_id,
                    chunk_index=index,
                    total_chunks=total,
                    original_content=original_content,
                ),
            )
            for index, text in enumerate(texts)
        ]

    def _warn_oversized(self, chunks: Sequence[TextChunk], document_id: int) -> None:
        limit = self._settings.chunking.max_embedding_chars
        for chunk in chunks:
            if len(chunk.content) > limit:
                logger.warning(
                    f"Chunk {chunk.metadata.chunk_index} of document {document_id} is "
                    f"{len(chunk.content)} characters, over the {limit} character embedding limit",
                )

    def validate_embeddings(
        self, chunks: Sequence[TextChunk], embeddings: Sequence[Sequence[float]]
    ) -> None:
        """Raise EmbeddingMismatchError unless there is one valid vector per chunk."""
        if len(embeddings) != len(chunks):
            raise EmbeddingMismatchError(
                f"Embedding mismatch: expected {len(chunks)} embeddings, got {len(embeddings)}",
                expected=len(chunks),
                actual=len(embeddings),
            )

        dimension = self._settings.embedding.dimension
        for index, vector in enumerate(embeddings):
            if not isinstance(vector, (list, tuple)) or len(vector) == 0:
                raise EmbeddingMismatchError(
                    f"Invalid embedding at index {index}: expected a non-empty array",
                    details={"index": index},
                )
            if not all(
                isinstance(v, Real) and not isinstance(v, bool) and math.isfinite(v) for v in vector
            ):
                raise EmbeddingMismatchError(
                    f"Invalid embedding at index {index}: non-numeric values",
                    details={"index": index},
                )
            if dimension is not None and len(vector) != dimension:
                raise EmbeddingMismatchError(
                    f"Invalid embedding at index {index}: expected dimension {dimension}, "
                    f"got {len(vector)}",
                    expected=dimension,
                    actual=len(vector),
                    details={"index": index},
                )

    @staticmethod
    def build_points(
        chunks: Sequence[TextChunk], embeddings: Sequence[Sequence[float]]
    ) -> List[VectorPoint]:
        created_at = datetime.now(timezone.utc).isoformat()
        points: List[VectorPoint] = []
        for chunk, vector in zip(chunks, embeddings):
            payload: Dict[str, Any] = chunk.metadata.model_dump()
            payload["content"] = chunk.content
            payload["created_at"] = created_at
            points.append(VectorPoint(id=chunk.id, vector=[float(v) for v in vector], payload=payload))
        return points

    async def delete_document(
        self, document_id: int, knowledge_base_id: int, user_id: Optional[int] = None
    ) -> DeleteResult:
        """
        Remove a document's vectors, then its metadata row.

        Returns:
            DeleteResult; truthy only when both stores were cleaned
        """
        async with self.locks.acquire(self.document_key(document_id, knowledge_base_id)):
            filters: Dict[str, Any] = {
                "document_id": document_id,
                "knowledge_base_id": knowledge_base_id,
            }
            if user_id is not None:
                filters["user_id"] = user_id
            with document_context(document_id, knowledge_base_id, user_id):
                return await self._delete(filters, document_id, knowledge_base_id, user_id)

    async def delete_knowledge_base(self, knowledge_base_id: int, user_id: int) -> DeleteResult:
        """Remove every vector and metadata row of a user's knowledge base."""
        filters = {"knowledge_base_id": knowledge_base_id, "user_id": user_id}
        with document_context(None, knowledge_base_id, user_id):
            return await self._delete(filters, None, knowledge_base_id, user_id)

    async def _delete(
        self,
        filters: Dict[str, Any],
        document_id: Optional[int],
        knowledge_base_id: int,
        user_id: Optional[int],
    ) -> DeleteResult:
        target = (
            f"document {document_id}" if document_id is not None
            else f"knowledge base {knowledge_base_id}"
        )

        try:
            await self._vector_store.delete(filters)
        except Exception as e:
            log_error(e, context={**filters, "step": "delete_vectors"})
            return DeleteResult(
                status=OperationStatus.FAILED,
                document_id=document_id,
                knowledge_base_id=knowledge_base_id,
                error=ErrorInfo.from_exception(e, step="delete_vectors"),
            )

        try:
            if document_id is not None:
                rows = await self._metadata.delete(document_id, knowledge_base_id, user_id)
            else:
                rows = await self._metadata.delete_knowledge_base(knowledge_base_id, user_id)
        except Exception as e:
            log_error(e, context={**filters, "step": "delete_metadata"})
            return DeleteResult(
                status=OperationStatus.PARTIAL,
                document_id=document_id,
                knowledge_base_id=knowledge_base_id,
                vectors_deleted=True,
                error=ErrorInfo.from_exception(e, step="delete_metadata"),
            )

        logger.info(f"Deleted vectors and metadata for {target}", extra={"metadata_rows": rows})
        return DeleteResult(
            status=OperationStatus.SUCCESS,
            document_id=document_id,
            knowledge_base_id=knowledge_base_id,
            vectors_deleted=True,
            metadata_rows_deleted=rows,
        )
