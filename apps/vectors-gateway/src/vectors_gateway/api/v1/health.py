"""Health check endpoints."""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from vectors_gateway.database.connection import check_connection
from vectors_gateway.utils.logging import get_logger

logger = get_logger("health")

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns basic service health status. This endpoint does not check
    external dependencies and will always return healthy if the service is running.
    """
    settings = request.app.state.settings
    logger.debug("Health check requested")
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "environment": settings.environment.value,
    }


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check(request: Request):
    """
    Readiness check endpoint.

    Checks:
    - Database (vectorization metadata)
    - Qdrant (vector storage); the collection itself may not exist before the first ingest
    - Embeddings configuration

    Returns 503 if any dependency is unavailable.
    """
    settings = request.app.state.settings
    logger.debug("Readiness check requested")

    checks = {
        "database": False,
        "qdrant": False,
        "embeddings": settings.embedding.is_configured,
    }

    checks["database"] = await check_connection()

    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is not None:
        try:
            await pipeline.vector_store.collection_exists()
            checks["qdrant"] = True
        except Exception as e:
            logger.warning(f"Qdrant connection check failed: {e}")

    body = {
        "status": "ready" if all(checks.values()) else "not_ready",
        "app_name": settings.app_name,
        "environment": settings.environment.value,
        "checks": checks,
    }
    if not all(checks.values()):
        logger.warning(f"Readiness check failed: {checks}")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)

    return body
