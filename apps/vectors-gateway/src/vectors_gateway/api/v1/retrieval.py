"""Semantic search endpoint."""

from fastapi import APIRouter, Depends

from vectors_gateway.dependencies import get_retrieval_service
from vectors_gateway.models.api import SearchRequest, SearchResponse
from vectors_gateway.services.retrieval_service import RetrievalService

router = APIRouter(prefix="/retrieval", tags=["retrieval"])


@router.post("/search", response_model=SearchResponse)
async def search(
    body: SearchRequest,
    retrieval: RetrievalService = Depends(get_retrieval_service),
):
    """Return the chunks of a knowledge base most similar to the query."""
    matches = await retrieval.search(
        body.query,
        user_id=body.user_id,
        knowledge_base_id=body.knowledge_base_id,
        document_id=body.document_id,
        limit=body.limit,
        score_threshold=body.score_threshold,
    )
    return SearchResponse(query=body.query, matches=matches)
