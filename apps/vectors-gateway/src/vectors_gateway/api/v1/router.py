"""API v1 router aggregation."""

from fastapi import APIRouter, Depends

from vectors_gateway.api.v1 import admin, documents, health, retrieval
from vectors_gateway.auth import require_api_key

# Create v1 API router with version prefix
router = APIRouter(
    prefix="/api/v1",
    tags=["v1"],
    responses={
        401: {"description": "Missing or invalid API key"},
        404: {"description": "Not found"},
        422: {"description": "Validation error"},
        500: {"description": "Internal server error"},
    },
)

# Health endpoints are public; everything else needs the API key
router.include_router(health.router)
router.include_router(documents.router, dependencies=[Depends(require_api_key)])
router.include_router(retrieval.router, dependencies=[Depends(require_api_key)])
router.include_router(admin.router, dependencies=[Depends(require_api_key)])


@router.get(
    "/",
    summary="API Information",
    description="Get API version and status information",
    tags=["v1"],
)
async def api_info():
    """Get API v1 information. Public."""
    return {
        "version": "v1",
        "status": "active",
        "service": "vectors-gateway",
        "endpoints": {
            "health": "/api/v1/health",
            "ready": "/api/v1/ready",
            "documents": "POST /api/v1/documents, DELETE /api/v1/documents/{documentId}",
            "knowledge_bases": "DELETE /api/v1/knowledge-bases/{knowledgeBaseId}",
            "retrieval": "POST /api/v1/retrieval/search",
            "admin": {"reconcile": "POST /api/v1/admin/reconcile"},
        },
    }
