"""Tests for reconciliation between metadata rows and stored vectors."""

from unittest.mock import AsyncMock

import pytest

from vectors_gateway.services.reconciliation_service import ReconciliationService
from vectors_gateway.utils.errors import VectorStoreError

from conftest import TEST_DIMENSION, hash_vector


async def _store_chunks(pipeline, document_id, kb_id, user_id, indices, total):
    """Write chunk vectors directly, bypassing ingest."""
    texts = [f"chunk {i} of {document_id}" for i in range(total)]
    chunks = pipeline.build_chunks(texts, " ".join(texts), document_id, kb_id, user_id)
    chunks = [c for c in chunks if c.metadata.chunk_index in indices]
    points = pipeline.build_points(chunks, [hash_vector(c.content) for c in chunks])
    await pipeline.vector_store.ensure_collection(TEST_DIMENSION)
    await pipeline.vector_store.upsert(points)


@pytest.fixture
def reconciliation(pipeline):
    return ReconciliationService(pipeline)


@pytest.mark.asyncio
async def test_consistent_documents_are_left_alone(pipeline, reconciliation, metadata_store):
    await pipeline.ingest("First one. Second one.", 1, 10, 100)
    await metadata_store.upsert_pending(2, 10, 100)

    report = await reconciliation.reconcile()

    assert report.documents_checked == 2
    assert report.consistent == 2
    assert report.actions_taken == 0
    assert report.errors == []


@pytest.mark.asyncio
async def test_vectorized_with_missing_vectors_is_marked_not_vectorized(
    pipeline, reconciliation, metadata_store
):
    await metadata_store.upsert_pending(1, 10, 100)
    await metadata_store.mark_vectorized(1, 10, 3)
    await _store_chunks(pipeline, 1, 10, 100, indices={0, 1}, total=3)

    report = await reconciliation.reconcile()

    assert report.marked_not_vectorized == 1
    record = await metadata_store.get(1, 10)
    assert record.is_vectorized is False
    # Vectors stay until the next pass
    assert await pipeline.vector_store.count() == 2


@pytest.mark.asyncio
async def test_complete_vectors_are_marked_vectorized(pipeline, reconciliation, metadata_store):
    await metadata_store.upsert_pending(1, 10, 100)
    await _store_chunks(pipeline, 1, 10, 100, indices={0, 1, 2}, total=3)

    report = await reconciliation.reconcile()

    assert report.marked_vectorized == 1
    record = await metadata_store.get(1, 10)
    assert record.is_vectorized is True
    assert record.vector_count == 3


@pytest.mark.asyncio
async def test_incomplete_vectors_are_deleted(pipeline, reconciliation, metadata_store):
    await metadata_store.upsert_pending(1, 10, 100)
    await _store_chunks(pipeline, 1, 10, 100, indices={0, 2}, total=3)

    report = await reconciliation.reconcile()

    assert report.incomplete_vectors_deleted == 1
    assert await pipeline.vector_store.count() == 0
    assert (await metadata_store.get(1, 10)).is_vectorized is False


@pytest.mark.asyncio
async def test_orphan_vectors_are_deleted(pipeline, reconciliation, metadata_store):
    await _store_chunks(pipeline, 5, 10, 100, indices={0, 1}, total=2)

    report = await reconciliation.reconcile()

    assert report.orphan_vectors_deleted == 1
    assert await pipeline.vector_store.count() == 0
    assert await metadata_store.get(5, 10) is None


@pytest.mark.asyncio
async def test_reconcile_can_be_scoped_to_a_knowledge_base(pipeline, reconciliation):
    await _store_chunks(pipeline, 1, 10, 100, indices={0}, total=1)
    await _store_chunks(pipeline, 1, 20, 100, indices={0}, total=1)

    report = await reconciliation.reconcile(knowledge_base_id=10)

    assert report.knowledge_base_id == 10
    assert report.documents_checked == 1
    assert report.orphan_vectors_deleted == 1
    assert await pipeline.vector_store.count({"knowledge_base_id": 20}) == 1


@pytest.mark.asyncio
async def test_second_pass_finds_nothing_to_do(pipeline, reconciliation, metadata_store):
    await metadata_store.upsert_pending(1, 10, 100)
    await _store_chunks(pipeline, 1, 10, 100, indices={0, 1}, total=2)
    await _store_chunks(pipeline, 2, 10, 100, indices={0}, total=1)

    first = await reconciliation.reconcile()
    second = await reconciliation.reconcile()

    assert first.actions_taken == 2
    assert second.actions_taken == 0


@pytest.mark.asyncio
async def test_per_document_errors_are_collected(pipeline, metadata_store):
    await metadata_store.upsert_pending(1, 10, 100)
    await metadata_store.upsert_pending(2, 10, 100)

    vector_store = AsyncMock()
    vector_store.scroll_payloads.side_effect = [
        [],
        VectorStoreError("scroll failed"),
        [],
    ]
    pipeline._vector_store = vector_store
    reconciliation = ReconciliationService(pipeline)

    report = await reconciliation.reconcile()

    assert report.documents_checked == 2
    assert report.consistent == 1
    assert len(report.errors) == 1
    assert report.errors[0].code == "VECTOR_STORE_ERROR"
    assert report.errors[0].details == {"document_id": 1, "knowledge_base_id": 10}


@pytest.mark.asyncio
async def test_scans_read_only_bookkeeping_fields(pipeline, metadata_store):
    await metadata_store.upsert_pending(1, 10, 100)

    vector_store = AsyncMock()
    vector_store.scroll_payloads.return_value = []
    pipeline._vector_store = vector_store

    await ReconciliationService(pipeline).reconcile()

    assert vector_store.scroll_payloads.await_count == 2
    for call in vector_store.scroll_payloads.await_args_list:
        assert set(call.kwargs["fields"]) == {
            "document_id",
            "knowledge_base_id",
            "chunk_index",
            "total_chunks",
        }
