"""Pytest configuration and fixtures."""

import asyncio
import hashlib
from typing import List, Sequence

import pytest
from qdrant_client import QdrantClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from vectors_gateway.config import (
    ChunkingSettings,
    DatabaseSettings,
    EmbeddingSettings,
    QdrantSettings,
    Settings,
)
from vectors_gateway.database.models import Base
from vectors_gateway.services.embedding_service import EmbeddingGateway
from vectors_gateway.services.metadata_store import SqlAlchemyMetadataStore
from vectors_gateway.services.qdrant_service import QdrantVectorStore
from vectors_gateway.services.vectorization_pipeline import DocumentVectorizationPipeline

# Test database URL (in-memory SQLite for unit tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_DIMENSION = 8


def hash_vector(text: str, dimension: int = TEST_DIMENSION) -> List[float]:
    """Deterministic, never-zero vector for a text."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [(b + 1) / 256 for b in digest[:dimension]]


class HashEmbeddingGateway(EmbeddingGateway):
    """Embeds each text as a hash-derived vector and records every call."""

    def __init__(self, dimension: int = TEST_DIMENSION, delay: float = 0.0):
        self.dimension = dimension
        self.delay = delay
        self.calls: List[List[str]] = []
        self.active = 0
        self.max_active = 0

    async def get_embeddings(self, texts: Sequence[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return [hash_vector(t, self.dimension) for t in texts]
        finally:
            self.active -= 1


class FailingEmbeddingGateway(EmbeddingGateway):
    """Always raises the given exception."""

    def __init__(self, exc: Exception):
        self.exc = exc

    async def get_embeddings(self, texts: Sequence[str]) -> List[List[float]]:
        raise self.exc


@pytest.fixture
def settings():
    """Settings with a small embedding dimension and no external services."""
    return Settings(
        api_key="test-api-key",
        embedding=EmbeddingSettings(
            api_key="test-embedding-key",
            base_url="http://embeddings.test/v1",
            dimension=TEST_DIMENSION,
            max_concurrency=4,
            max_retries=1,
        ),
        qdrant=QdrantSettings(collection_name="test_documents"),
        database=DatabaseSettings(url=TEST_DATABASE_URL),
        chunking=ChunkingSettings(),
    )


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def metadata_store(session_factory):
    return SqlAlchemyMetadataStore(session_factory)


@pytest.fixture
def qdrant_client():
    client = QdrantClient(":memory:")
    yield client
    client.close()


@pytest.fixture
def vector_store(settings, qdrant_client):
    return QdrantVectorStore(settings, client=qdrant_client)


@pytest.fixture
def embedding_gateway():
    return HashEmbeddingGateway()


@pytest.fixture
def pipeline(settings, embedding_gateway, vector_store, metadata_store):
    return DocumentVectorizationPipeline(
        embedding_gateway=embedding_gateway,
        vector_store=vector_store,
        metadata_store=metadata_store,
        settings=settings,
    )
