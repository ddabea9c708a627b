"""Structured results returned by pipeline operations."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, PrivateAttr

from vectors_gateway.models.chunk import ChunkingStrategy
from vectors_gateway.utils.errors import DocumentVectorizationError, VectorizationException


class OperationStatus(str, Enum):
    """Outcome of a multi-step operation."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class ErrorInfo(BaseModel):
    """Serializable description of a failure."""

    message: str
    code: str
    step: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: BaseException, step: Optional[str] = None) -> "ErrorInfo":
        if isinstance(exc, VectorizationException):
            return cls(
                message=exc.message,
                code=exc.code,
                step=step or getattr(exc, "step", None),
                details=dict(exc.details),
            )
        return cls(message=str(exc) or type(exc).__name__, code=type(exc).__name__, step=step)


class IngestResult(BaseModel):
    """Result of ingesting one document."""

    status: OperationStatus
    document_id: int
    knowledge_base_id: int
    user_id: int
    vector_count: int = 0
    chunking_strategy: Optional[ChunkingStrategy] = None
    error: Optional[ErrorInfo] = None

    _exception: Optional[DocumentVectorizationError] = PrivateAttr(default=None)

    @property
    def succeeded(self) -> bool:
        return self.status == OperationStatus.SUCCESS

    def raise_for_status(self) -> "IngestResult":
        """Raise DocumentVectorizationError if the ingest failed; return self otherwise.

        A partial result (vectors written, bookkeeping not updated) does not
        raise; it is repaired by reconciliation or a re-ingest.
        """
        if self.status != OperationStatus.FAILED:
            return self
        if self._exception is not None:
            raise self._exception
        raise DocumentVectorizationError(
            step=self.error.step if self.error else "unknown",
            document_id=self.document_id,
            knowledge_base_id=self.knowledge_base_id,
            user_id=self.user_id,
            details=self.error.details if self.error else None,
        )

    @classmethod
    def failed(
        cls, exc: DocumentVectorizationError, user_id: int
    ) -> "IngestResult":
        result = cls(
            status=OperationStatus.FAILED,
            document_id=exc.details["document_id"],
            knowledge_base_id=exc.details["knowledge_base_id"],
            user_id=user_id,
            error=ErrorInfo.from_exception(exc, step=exc.step),
        )
        result._exception = exc
        return result


class DeleteResult(BaseModel):
    """Result of deleting a document's (or a knowledge base's) vectors and metadata."""

    status: OperationStatus
    knowledge_base_id: int
    document_id: Optional[int] = None
    vectors_deleted: bool = False
    metadata_rows_deleted: int = 0
    error: Optional[ErrorInfo] = None

    def __bool__(self) -> bool:
        return self.status == OperationStatus.SUCCESS


class ReconciliationReport(BaseModel):
    """Counts of repair actions taken by one reconciliation run."""

    knowledge_base_id: Optional[int] = None
    documents_checked: int = 0
    consistent: int = 0
    marked_not_vectorized: int = 0
    marked_vectorized: int = 0
    incomplete_vectors_deleted: int = 0
    orphan_vectors_deleted: int = 0
    errors: List[ErrorInfo] = Field(default_factory=list)

    @property
    def actions_taken(self) -> int:
        return (
            self.marked_not_vectorized
            + self.marked_vectorized
            + self.incomplete_vectors_deleted
            + self.orphan_vectors_deleted
        )


class SearchMatch(BaseModel):
    """A single similarity search hit."""

    id: str
    score: float
    payload: Dict[str, Any] = Field(default_factory=dict)
