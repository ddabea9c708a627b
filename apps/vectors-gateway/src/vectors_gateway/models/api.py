"""Request and response schemas for the HTTP API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from vectors_gateway.models.chunk import ChunkingStrategy
from vectors_gateway.models.results import ErrorInfo, OperationStatus, SearchMatch


class CamelModel(BaseModel):
    """Accepts and emits camelCase field names; snake_case is accepted too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IngestDocumentRequest(CamelModel):
    content: str = Field(..., min_length=1, description="Document text")
    user_id: int = Field(..., gt=0)
    knowledge_base_id: int = Field(..., gt=0)
    document_id: int = Field(..., gt=0)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("content must contain non-whitespace text")
        return v


class IngestDocumentResponse(CamelModel):
    message: str
    status: OperationStatus
    document_id: int
    knowledge_base_id: int
    user_id: int
    vector_count: int
    chunking_strategy: Optional[ChunkingStrategy] = None
    error: Optional[ErrorInfo] = None


class DeleteDocumentRequest(CamelModel):
    user_id: int = Field(..., gt=0)
    knowledge_base_id: int = Field(..., gt=0)


class DeleteKnowledgeBaseRequest(CamelModel):
    user_id: int = Field(..., gt=0)


class DeleteResponse(CamelModel):
    message: str
    status: OperationStatus
    knowledge_base_id: int
    document_id: Optional[int] = None
    user_id: int
    metadata_rows_deleted: int = 0


class SearchRequest(CamelModel):
    query: str = Field(..., min_length=1)
    user_id: int = Field(..., gt=0)
    knowledge_base_id: int = Field(..., gt=0)
    document_id: Optional[int] = Field(default=None, gt=0)
    limit: int = Field(default=10, gt=0, le=100)
    # Kept snake_case on the wire for compatibility with existing clients
    score_threshold: float = Field(default=0.5, ge=0.0, le=1.0, alias="score_threshold")


class SearchResponse(BaseModel):
    query: str
    matches: List[SearchMatch]


class ReconcileRequest(CamelModel):
    knowledge_base_id: Optional[int] = Field(default=None, gt=0)


class ReconcileResponse(CamelModel):
    knowledge_base_id: Optional[int] = None
    documents_checked: int
    consistent: int
    marked_not_vectorized: int
    marked_vectorized: int
    incomplete_vectors_deleted: int
    orphan_vectors_deleted: int
    errors: List[Dict[str, Any]] = Field(default_factory=list)
