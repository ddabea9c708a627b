"""Tests for the Qdrant vector store against an in-memory client."""

import pytest

from vectors_gateway.models.chunk import VectorPoint
from vectors_gateway.services.qdrant_service import QdrantVectorStore, make_point_id
from vectors_gateway.utils.errors import VectorStoreError

from conftest import TEST_DIMENSION, hash_vector


def _point(document_id, knowledge_base_id, user_id, chunk_index, text="text"):
    return VectorPoint(
        id=make_point_id(knowledge_base_id, document_id, chunk_index),
        vector=hash_vector(f"{text}-{document_id}-{chunk_index}"),
        payload={
            "document_id": document_id,
            "knowledge_base_id": knowledge_base_id,
            "user_id": user_id,
            "chunk_index": chunk_index,
            "total_chunks": 2,
            "content": f"{text}-{chunk_index}",
        },
    )


def test_point_ids_are_deterministic_and_distinct():
    assert make_point_id(1, 2, 3) == make_point_id(1, 2, 3)
    assert make_point_id(1, 2, 3) != make_point_id(1, 2, 4)
    assert make_point_id(1, 2, 3) != make_point_id(2, 1, 3)
    assert make_point_id(1, 2, 1000) != make_point_id(1, 3, 0)


def test_collection_name_includes_sanitized_model(settings):
    store = QdrantVectorStore(settings, client=object())
    assert store.collection_name == "test_documents_openai_bge-m3_latest"


@pytest.mark.asyncio
async def test_ensure_collection_creates_once(vector_store, qdrant_client):
    assert not await vector_store.collection_exists()

    await vector_store.ensure_collection(TEST_DIMENSION)
    await vector_store.ensure_collection(TEST_DIMENSION)

    assert qdrant_client.collection_exists(vector_store.collection_name)


@pytest.mark.asyncio
async def test_ensure_collection_rejects_dimension_mismatch(vector_store):
    await vector_store.ensure_collection(TEST_DIMENSION)

    with pytest.raises(VectorStoreError) as exc_info:
        await vector_store.ensure_collection(TEST_DIMENSION * 2)

    assert exc_info.value.details["expected"] == TEST_DIMENSION * 2
    assert exc_info.value.details["actual"] == TEST_DIMENSION


@pytest.mark.asyncio
async def test_operations_on_missing_collection_are_empty(vector_store):
    await vector_store.delete({"document_id": 1, "knowledge_base_id": 1})
    assert await vector_store.count() == 0
    assert await vector_store.scroll_payloads() == []


@pytest.mark.asyncio
async def test_delete_requires_filters(vector_store):
    with pytest.raises(VectorStoreError):
        await vector_store.delete({})


@pytest.mark.asyncio
async def test_upsert_count_and_filtered_delete(vector_store):
    await vector_store.ensure_collection(TEST_DIMENSION)
    points = [_point(1, 10, 100, 0), _point(1, 10, 100, 1), _point(2, 10, 100, 0)]

    assert await vector_store.upsert(points) == 3
    # Same ids overwrite instead of duplicating
    await vector_store.upsert(points[:1])

    assert await vector_store.count() == 3
    assert await vector_store.count({"document_id": 1, "knowledge_base_id": 10}) == 2

    await vector_store.delete({"document_id": 1, "knowledge_base_id": 10})

    assert await vector_store.count() == 1
    payloads = await vector_store.scroll_payloads()
    assert [p["document_id"] for p in payloads] == [2]


@pytest.mark.asyncio
async def test_search_is_restricted_by_filters(vector_store):
    await vector_store.ensure_collection(TEST_DIMENSION)
    mine = _point(1, 10, 100, 0, text="shared")
    theirs = _point(1, 20, 200, 0, text="shared")
    await vector_store.upsert([mine, theirs])

    matches = await vector_store.search(
        mine.vector, {"user_id": 100, "knowledge_base_id": 10}, limit=10, score_threshold=0.0
    )

    assert [m.id for m in matches] == [mine.id]
    assert matches[0].payload["user_id"] == 100
    assert matches[0].score == pytest.approx(1.0, abs=1e-5)


@pytest.mark.asyncio
async def test_search_honours_score_threshold_and_limit(vector_store):
    await vector_store.ensure_collection(TEST_DIMENSION)
    points = [_point(1, 10, 100, i) for i in range(2)] + [_point(2, 10, 100, i) for i in range(2)]
    await vector_store.upsert(points)

    limited = await vector_store.search(
        points[0].vector, {"user_id": 100, "knowledge_base_id": 10}, limit=2, score_threshold=0.0
    )
    assert len(limited) == 2
    assert limited[0].id == points[0].id

    exact_only = await vector_store.search(
        points[0].vector, {"user_id": 100, "knowledge_base_id": 10}, limit=10, score_threshold=0.9999
    )
    assert [m.id for m in exact_only] == [points[0].id]


@pytest.mark.asyncio
async def test_search_isolates_users_within_one_knowledge_base(vector_store):
    await vector_store.ensure_collection(TEST_DIMENSION)
    mine = _point(1, 10, 100, 0, text="shared")
    theirs = _point(2, 10, 200, 0, text="shared")
    await vector_store.upsert([mine, theirs])

    for user_id, expected in [(100, mine), (200, theirs)]:
        matches = await vector_store.search(
            expected.vector, {"user_id": user_id, "knowledge_base_id": 10}, limit=10
        )
        assert [m.id for m in matches] == [expected.id]
        assert matches[0].payload["user_id"] == user_id


@pytest.mark.asyncio
async def test_scroll_payloads_returns_only_requested_fields(vector_store):
    await vector_store.ensure_collection(TEST_DIMENSION)
    await vector_store.upsert([_point(1, 10, 100, 0), _point(1, 10, 100, 1)])

    payloads = await vector_store.scroll_payloads(
        {"document_id": 1}, fields=["chunk_index", "total_chunks"]
    )

    assert sorted(p["chunk_index"] for p in payloads) == [0, 1]
    for payload in payloads:
        assert set(payload) == {"chunk_index", "total_chunks"}
