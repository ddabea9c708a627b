"""Admin endpoints for store maintenance."""

from typing import Optional

from fastapi import APIRouter, Body, Depends, status

from vectors_gateway.dependencies import get_reconciliation_service
from vectors_gateway.models.api import ReconcileRequest, ReconcileResponse
from vectors_gateway.services.reconciliation_service import ReconciliationService
from vectors_gateway.utils.logging import get_logger

logger = get_logger("admin")

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post(
    "/reconcile",
    response_model=ReconcileResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
)
async def reconcile(
    body: Optional[ReconcileRequest] = Body(default=None),
    reconciliation: ReconciliationService = Depends(get_reconciliation_service),
):
    """
    Compare vectorization metadata with stored vectors and repair drift.

    Scoped to one knowledge base when knowledgeBaseId is given, otherwise
    runs over everything.
    """
    knowledge_base_id = body.knowledge_base_id if body else None
    logger.info(f"Reconciliation requested (knowledge_base_id={knowledge_base_id})")

    report = await reconciliation.reconcile(knowledge_base_id)
    return ReconcileResponse(
        knowledge_base_id=report.knowledge_base_id,
        documents_checked=report.documents_checked,
        consistent=report.consistent,
        marked_not_vectorized=report.marked_not_vectorized,
        marked_vectorized=report.marked_vectorized,
        incomplete_vectors_deleted=report.incomplete_vectors_deleted,
        orphan_vectors_deleted=report.orphan_vectors_deleted,
        errors=[e.model_dump() for e in report.errors],
    )
