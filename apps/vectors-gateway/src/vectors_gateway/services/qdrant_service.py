"""Qdrant integration for storing and searching chunk vectors."""

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    VectorParams,
)

from vectors_gateway.config import Settings, get_settings
from vectors_gateway.models.chunk import VectorPoint
from vectors_gateway.models.results import SearchMatch
from vectors_gateway.utils.errors import VectorStoreError
from vectors_gateway.utils.logging import get_logger

logger = get_logger("qdrant_service")

# Deterministic namespace for point IDs derived from (knowledge_base_id, document_id, chunk_index)
_POINT_ID_NAMESPACE = uuid.UUID("6b9c7d68-4b93-4c9c-9d83-0b6c68dbb4d9")

_INDEXED_PAYLOAD_FIELDS = ("user_id", "knowledge_base_id", "document_id")

_SCROLL_PAGE_SIZE = 256


def make_point_id(knowledge_base_id: int, document_id: int, chunk_index: int) -> str:
    """Stable UUID point id for a chunk; unique per (knowledge base, document, chunk)."""
    return str(
        uuid.uuid5(_POINT_ID_NAMESPACE, f"{knowledge_base_id}:{document_id}:{chunk_index}")
    )


def build_filter(filters: Dict[str, Any]) -> Filter:
    """All conditions must match (logical AND of exact payload matches)."""
    return Filter(
        must=[
            FieldCondition(key=key, match=MatchValue(value=value))
            for key, value in filters.items()
            if value is not None
        ]
    )


class VectorStore(ABC):
    """Storage of chunk vectors with payload filtering."""

    @abstractmethod
    async def collection_exists(self) -> bool:
        """Whether the collection has been created; raises if the store is unreachable."""

    @abstractmethod
    async def ensure_collection(self, dimension: int) -> None:
        """Create the collection on first use; fail if it exists with another dimension."""

    @abstractmethod
    async def upsert(self, points: Sequence[VectorPoint]) -> int:
        """Write points, replacing any with the same ids. Returns the number written."""

    @abstractmethod
    async def search(
        self,
        vector: Sequence[float],
        filters: Dict[str, Any],
        limit: int = 10,
        score_threshold: Optional[float] = None,
    ) -> List[SearchMatch]:
        """Similarity search restricted to points whose payload matches all filters."""

    @abstractmethod
    async def delete(self, filters: Dict[str, Any]) -> None:
        """Delete every point matching all filters. A missing collection is a no-op."""

    @abstractmethod
    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """Exact count of points matching the filters."""

    @abstractmethod
    async def scroll_payloads(
        self,
        filters: Optional[Dict[str, Any]] = None,
        fields: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Payloads of every point matching the filters, limited to `fields` when given."""


class QdrantVectorStore(VectorStore):
    """
    Store chunk vectors in a single Qdrant collection.

    Strategy:
    - One collection per embedding model: `{QDRANT_COLLECTION_NAME}_{model}`
    - Cosine distance, vector size fixed at creation
    - Tenant isolation through payload filters on user_id / knowledge_base_id

    The client is synchronous; every call runs in a worker thread.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[QdrantClient] = None,
        collection_name: Optional[str] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self.collection_name = collection_name or self._settings.collection_name

    def _get_client(self) -> QdrantClient:
        if self._client is not None:
            return self._client

        self._client = QdrantClient(
            url=self._settings.qdrant.url,
            api_key=self._settings.qdrant.api_key,
            timeout=self._settings.qdrant.timeout,
        )
        return self._client

    async def _run(self, operation: str, fn, **context: Any):
        try:
            return await asyncio.to_thread(fn)
        except VectorStoreError:
            raise
        except Exception as e:
            raise VectorStoreError(
                f"Qdrant {operation} failed",
                details={"collection": self.collection_name, "error": str(e), **context},
            ) from e

    async def collection_exists(self) -> bool:
        return await self._run(
            "collection check", lambda: self._get_client().collection_exists(self.collection_name)
        )

    async def ensure_collection(self, dimension: int) -> None:
        """Ensure the Qdrant collection exists with the right vector size."""

        def _ensure() -> bool:
            client = self._get_client()
            if client.collection_exists(self.collection_name):
                info = client.get_collection(self.collection_name)
                current_size = getattr(info.config.params.vectors, "size", None)
                if current_size is not None and int(current_size) != int(dimension):
                    raise VectorStoreError(
                        "Qdrant collection vector size mismatch",
                        details={
                            "collection": self.collection_name,
                            "expected": dimension,
                            "actual": int(current_size),
                        },
                    )
                return False

            client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=dimension, distance=Distance.COSINE),
            )
            for field in _INDEXED_PAYLOAD_FIELDS:
                client.create_payload_index(
                    collection_name=self.collection_name,
                    field_name=field,
                    field_schema=PayloadSchemaType.INTEGER,
                )
            return True

        created = await self._run("ensure collection", _ensure, dimension=dimension)
        if created:
            logger.info(
                f"Qdrant collection created: {self.collection_name} (vector_size={dimension})"
            )

    async def upsert(self, points: Sequence[VectorPoint]) -> int:
        """Upsert points and wait for the write to be applied."""
        if not points:
            return 0

        structs = [PointStruct(id=p.id, vector=list(p.vector), payload=p.payload) for p in points]

        def _upsert() -> None:
            self._get_client().upsert(
                collection_name=self.collection_name, points=structs, wait=True
            )

        await self._run("upsert", _upsert, points=len(structs))
        logger.info(
            f"Qdrant upsert complete: collection={self.collection_name}, points={len(structs)}"
        )
        return len(structs)

    async def search(
        self,
        vector: Sequence[float],
        filters: Dict[str, Any],
        limit: int = 10,
        score_threshold: Optional[float] = None,
    ) -> List[SearchMatch]:
        def _search():
            return self._get_client().query_points(
                collection_name=self.collection_name,
                query=list(vector),
                query_filter=build_filter(filters),
                limit=limit,
                score_threshold=score_threshold,
                with_payload=True,
            ).points

        hits = await self._run("search", _search, filters=filters)
        return [
            SearchMatch(id=str(hit.id), score=float(hit.score), payload=hit.payload or {})
            for hit in hits
        ]

    async def delete(self, filters: Dict[str, Any]) -> None:
        if not filters:
            raise VectorStoreError("Refusing to delete without filters")

        def _delete() -> bool:
            client = self._get_client()
            if not client.collection_exists(self.collection_name):
                return False
            client.delete(
                collection_name=self.collection_name,
                points_selector=FilterSelector(filter=build_filter(filters)),
                wait=True,
            )
            return True

        deleted = await self._run("delete", _delete, filters=filters)
        if deleted:
            logger.info(f"Qdrant delete complete: collection={self.collection_name}, filters={filters}")
        else:
            logger.debug(f"Qdrant collection {self.collection_name} does not exist; nothing to delete")

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        def _count() -> int:
            client = self._get_client()
            if not client.collection_exists(self.collection_name):
                return 0
            result = client.count(
                collection_name=self.collection_name,
                count_filter=build_filter(filters) if filters else None,
                exact=True,
            )
            return int(result.count)

        return await self._run("count", _count, filters=filters or {})

    async def scroll_payloads(
        self,
        filters: Optional[Dict[str, Any]] = None,
        fields: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        with_payload = list(fields) if fields else True

        def _scroll() -> List[Dict[str, Any]]:
            client = self._get_client()
            if not client.collection_exists(self.collection_name):
                return []
            payloads: List[Dict[str, Any]] = []
            offset = None
            while True:
                records, offset = client.scroll(
                    collection_name=self.collection_name,
                    scroll_filter=build_filter(filters) if filters else None,
                    limit=_SCROLL_PAGE_SIZE,
                    offset=offset,
                    with_payload=with_payload,
                    with_vectors=False,
                )
                payloads.extend(r.payload or {} for r in records)
                if offset is None:
                    return payloads

        return await self._run("scroll", _scroll, filters=filters or {})

    async def close(self) -> None:
        if self._client is not None:
            await asyncio.to_thread(self._client.close)
            self._client = None
