"""Custom exception classes for the Vectors Gateway service."""

from typing import Any, Dict, Optional


class VectorizationException(Exception):
    """Base exception for all Vectors Gateway errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "status_code": self.status_code,
                "details": self.details,
            }
        }


class ValidationError(VectorizationException):
    """Exception raised for validation errors."""

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if errors:
            error_details["validation_errors"] = errors
        super().__init__(
            message=message,
            status_code=422,
            code="VALIDATION_ERROR",
            details=error_details,
        )


class ChunkingError(VectorizationException):
    """Exception raised for text chunking errors."""

    def __init__(
        self,
        message: str = "Text chunking failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=500,
            code="CHUNKING_ERROR",
            details=details,
        )


class EmbeddingServiceError(VectorizationException):
    """Exception raised when the embedding provider fails."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        model: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if model:
            error_details["model"] = model
        super().__init__(
            message=message,
            status_code=502,
            code="EMBEDDING_ERROR",
            details=error_details,
        )


class EmbeddingMismatchError(VectorizationException):
    """Exception raised when embeddings do not line up with their chunks."""

    def __init__(
        self,
        message: str = "Embedding count or shape mismatch",
        expected: Optional[int] = None,
        actual: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if expected is not None:
            error_details["expected"] = expected
        if actual is not None:
            error_details["actual"] = actual
        super().__init__(
            message=message,
            status_code=502,
            code="EMBEDDING_MISMATCH",
            details=error_details,
        )


class VectorStoreError(VectorizationException):
    """Exception raised for Qdrant operation errors."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=502,
            code="VECTOR_STORE_ERROR",
            details=details,
        )


class MetadataStoreError(VectorizationException):
    """Exception raised for vectorization metadata persistence errors."""

    def __init__(
        self,
        message: str = "Metadata store operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=500,
            code="METADATA_STORE_ERROR",
            details=details,
        )


class DocumentVectorizationError(VectorizationException):
    """Wraps any failure of a document ingest with the step and document identity."""

    def __init__(
        self,
        step: str,
        document_id: int,
        knowledge_base_id: int,
        user_id: Optional[int] = None,
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        reason = getattr(cause, "message", None) or (str(cause) if cause else "unknown error")
        error_details: Dict[str, Any] = {
            "step": step,
            "document_id": document_id,
            "knowledge_base_id": knowledge_base_id,
        }
        if user_id is not None:
            error_details["user_id"] = user_id
        if cause is not None:
            error_details["cause"] = getattr(cause, "code", type(cause).__name__)
            error_details.update(getattr(cause, "details", None) or {})
        if details:
            error_details.update(details)
        super().__init__(
            message=(
                f"Failed to process document {document_id} "
                f"(knowledge base {knowledge_base_id}) at step '{step}': {reason}"
            ),
            status_code=getattr(cause, "status_code", 500),
            code="DOCUMENT_VECTORIZATION_ERROR",
            details=error_details,
        )
        self.step = step
        self.cause = cause


class OwnershipConflictError(VectorizationException):
    """Exception raised when a document key is already owned by another user."""

    def __init__(
        self,
        document_id: int,
        knowledge_base_id: int,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        error_details.update({"document_id": document_id, "knowledge_base_id": knowledge_base_id})
        super().__init__(
            message=(
                f"Document {document_id} in knowledge base {knowledge_base_id} "
                "belongs to another user"
            ),
            status_code=409,
            code="OWNERSHIP_CONFLICT",
            details=error_details,
        )
