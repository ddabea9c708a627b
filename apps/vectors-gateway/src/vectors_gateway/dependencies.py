"""FastAPI dependencies resolving the services built at startup."""

from fastapi import Request

from vectors_gateway.services.reconciliation_service import ReconciliationService
from vectors_gateway.services.retrieval_service import RetrievalService
from vectors_gateway.services.vectorization_pipeline import DocumentVectorizationPipeline
from vectors_gateway.utils.errors import VectorizationException


def _from_state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise VectorizationException(
            f"Service '{name}' is not initialized",
            status_code=503,
            code="SERVICE_UNAVAILABLE",
        )
    return service


def get_pipeline(request: Request) -> DocumentVectorizationPipeline:
    return _from_state(request, "pipeline")


def get_retrieval_service(request: Request) -> RetrievalService:
    return _from_state(request, "retrieval_service")


def get_reconciliation_service(request: Request) -> ReconciliationService:
    return _from_state(request, "reconciliation_service")
