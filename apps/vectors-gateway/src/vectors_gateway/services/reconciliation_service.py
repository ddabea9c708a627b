"""
Repair drift between the metadata store and the vector store.

An ingest or delete that fails halfway leaves the two stores disagreeing
(vectors without a vectorized flag, a flag without vectors, vectors with no
row at all). Reconciliation compares both sides per document and moves each
document back to a consistent state.
"""

from typing import Dict, List, Optional, Set, Tuple

from vectors_gateway.models.results import ErrorInfo, ReconciliationReport
from vectors_gateway.services.vectorization_pipeline import DocumentVectorizationPipeline
from vectors_gateway.utils.logging import document_context, get_logger

logger = get_logger("reconciliation_service")

DocumentKey = Tuple[int, int]

# Payload keys needed to compare a document with its metadata row
_SCAN_FIELDS = ("document_id", "knowledge_base_id", "chunk_index", "total_chunks")


class ReconciliationService:
    """Compare metadata rows with stored vectors and repair each document."""

    def __init__(self, pipeline: DocumentVectorizationPipeline) -> None:
        self._pipeline = pipeline
        self._vector_store = pipeline.vector_store
        self._metadata = pipeline.metadata_store

    async def reconcile(self, knowledge_base_id: Optional[int] = None) -> ReconciliationReport:
        """
        Run one reconciliation pass.

        Each document gets at most one action per pass:
        - vectorized but vector count differs: mark not vectorized
        - not vectorized, vectors complete: mark vectorized with the count
        - not vectorized, vectors incomplete: delete the vectors
        - vectors without a metadata row: delete the vectors

        Args:
            knowledge_base_id: Restrict the pass to one knowledge base

        Returns:
            ReconciliationReport with per-action counts and per-document errors
        """
        report = ReconciliationReport(knowledge_base_id=knowledge_base_id)

        rows = await self._metadata.list_all(knowledge_base_id)
        scope = {"knowledge_base_id": knowledge_base_id} if knowledge_base_id is not None else None
        payloads = await self._vector_store.scroll_payloads(scope, fields=_SCAN_FIELDS)

        keys: Set[DocumentKey] = {(r.document_id, r.knowledge_base_id) for r in rows}
        for payload in payloads:
            key = self._payload_key(payload)
            if key is not None:
                keys.add(key)

        for document_id, kb_id in sorted(keys):
            report.documents_checked += 1
            try:
                async with self._pipeline.locks.acquire(
                    self._pipeline.document_key(document_id, kb_id)
                ):
                    with document_context(document_id, kb_id):
                        await self._reconcile_document(document_id, kb_id, report)
            except Exception as e:
                logger.error(f"Reconciliation failed for document {document_id}: {e}")
                report.errors.append(
                    ErrorInfo.from_exception(e, step="reconcile").model_copy(
                        update={"details": {"document_id": document_id, "knowledge_base_id": kb_id}}
                    )
                )

        logger.info(
            f"Reconciliation completed: checked={report.documents_checked}, "
            f"actions={report.actions_taken}, errors={len(report.errors)}",
            extra={"knowledge_base_id": knowledge_base_id},
        )
        return report

    @staticmethod
    def _payload_key(payload: Dict) -> Optional[DocumentKey]:
        try:
            return int(payload["document_id"]), int(payload["knowledge_base_id"])
        except (KeyError, TypeError, ValueError):
            return None

    async def _reconcile_document(
        self, document_id: int, knowledge_base_id: int, report: ReconciliationReport
    ) -> None:
        # State is re-read under the lock; the pre-scan may be stale
        filters = {"document_id": document_id, "knowledge_base_id": knowledge_base_id}
        row = await self._metadata.get(document_id, knowledge_base_id)
        payloads = await self._vector_store.scroll_payloads(filters, fields=_SCAN_FIELDS)
        vector_count = len(payloads)

        if row is None:
            if vector_count:
                await self._vector_store.delete(filters)
                report.orphan_vectors_deleted += 1
                logger.info(f"Deleted {vector_count} orphan vectors of document {document_id}")
            else:
                report.consistent += 1
            return

        if row.is_vectorized:
            if vector_count != row.vector_count:
                await self._metadata.mark_not_vectorized(document_id, knowledge_base_id)
                report.marked_not_vectorized += 1
                logger.info(
                    f"Document {document_id} marked not vectorized: "
                    f"expected {row.vector_count} vectors, found {vector_count}"
                )
            else:
                report.consistent += 1
            return

        if vector_count == 0:
            report.consistent += 1
            return

        if self._is_complete(payloads):
            await self._metadata.mark_vectorized(document_id, knowledge_base_id, vector_count)
            report.marked_vectorized += 1
            logger.info(f"Document {document_id} marked vectorized with {vector_count} vectors")
        else:
            await self._vector_store.delete(filters)
            report.incomplete_vectors_deleted += 1
            logger.info(f"Deleted {vector_count} incomplete vectors of document {document_id}")

    @staticmethod
    def _is_complete(payloads: List[Dict]) -> bool:
        """All points agree on total_chunks and every chunk index 0..total-1 is present."""
        totals = {p.get("total_chunks") for p in payloads}
        if len(totals) != 1:
            return False
        total = totals.pop()
        if not isinstance(total, int) or total != len(payloads):
            return False
        return {p.get("chunk_index") for p in payloads} == set(range(total))
