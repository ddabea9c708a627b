"""Document ingestion and removal endpoints."""

from fastapi import APIRouter, Depends, Path, Response, status

from vectors_gateway.dependencies import get_pipeline
from vectors_gateway.models.api import (
    DeleteDocumentRequest,
    DeleteKnowledgeBaseRequest,
    DeleteResponse,
    IngestDocumentRequest,
    IngestDocumentResponse,
)
from vectors_gateway.models.results import OperationStatus
from vectors_gateway.services.vectorization_pipeline import DocumentVectorizationPipeline
from vectors_gateway.utils.errors import VectorizationException
from vectors_gateway.utils.logging import get_logger

logger = get_logger("documents")

router = APIRouter(tags=["documents"])


@router.post(
    "/documents",
    response_model=IngestDocumentResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def ingest_document(
    body: IngestDocumentRequest,
    response: Response,
    pipeline: DocumentVectorizationPipeline = Depends(get_pipeline),
):
    """
    Chunk, embed and store a document.

    Re-ingesting the same documentId/knowledgeBaseId replaces the previous
    vectors. Returns 201 on success and 202 when vectors were stored but the
    document could not be marked as vectorized (reconciliation repairs it).
    """
    result = await pipeline.ingest(
        body.content, body.document_id, body.knowledge_base_id, body.user_id
    )
    result.raise_for_status()

    if result.status == OperationStatus.PARTIAL:
        response.status_code = status.HTTP_202_ACCEPTED
        message = "Document vectors stored; metadata update pending"
    else:
        message = "Document successfully processed and stored"

    return IngestDocumentResponse(
        message=message,
        status=result.status,
        document_id=result.document_id,
        knowledge_base_id=result.knowledge_base_id,
        user_id=result.user_id,
        vector_count=result.vector_count,
        chunking_strategy=result.chunking_strategy,
        error=result.error,
    )


@router.delete(
    "/documents/{document_id}",
    response_model=DeleteResponse,
    response_model_by_alias=True,
)
async def delete_document(
    body: DeleteDocumentRequest,
    document_id: int = Path(..., gt=0),
    pipeline: DocumentVectorizationPipeline = Depends(get_pipeline),
):
    """Remove a document's vectors and its vectorization metadata."""
    result = await pipeline.delete_document(document_id, body.knowledge_base_id, body.user_id)
    if not result:
        raise VectorizationException(
            "Failed to delete document vectors",
            status_code=500,
            code="DELETE_FAILED",
            details=result.model_dump(mode="json"),
        )

    return DeleteResponse(
        message="Document successfully removed",
        status=result.status,
        document_id=document_id,
        knowledge_base_id=body.knowledge_base_id,
        user_id=body.user_id,
        metadata_rows_deleted=result.metadata_rows_deleted,
    )


@router.delete(
    "/knowledge-bases/{knowledge_base_id}",
    response_model=DeleteResponse,
    response_model_by_alias=True,
)
async def delete_knowledge_base(
    body: DeleteKnowledgeBaseRequest,
    knowledge_base_id: int = Path(..., gt=0),
    pipeline: DocumentVectorizationPipeline = Depends(get_pipeline),
):
    """Remove every vector and metadata row of a user's knowledge base."""
    result = await pipeline.delete_knowledge_base(knowledge_base_id, body.user_id)
    if not result:
        raise VectorizationException(
            "Failed to delete knowledge base vectors",
            status_code=500,
            code="DELETE_FAILED",
            details=result.model_dump(mode="json"),
        )

    return DeleteResponse(
        message="Knowledge base successfully removed",
        status=result.status,
        knowledge_base_id=knowledge_base_id,
        user_id=body.user_id,
        metadata_rows_deleted=result.metadata_rows_deleted,
    )
