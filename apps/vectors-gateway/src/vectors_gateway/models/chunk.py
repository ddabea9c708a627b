"""Chunk models for document vectorization."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ChunkingStrategy(str, Enum):
    """Which chunker produced a chunk list."""

    SEMANTIC = "semantic"
    FALLBACK = "fallback"


class ChunkMetadata(BaseModel):
    """Metadata carried by every chunk and stored in its vector payload."""

    document_id: int = Field(..., description="Source document ID")
    knowledge_base_id: int = Field(..., description="Owning knowledge base ID")
    user_id: int = Field(..., description="Owning user ID")
    chunk_index: int = Field(..., ge=0, description="0-based index of this chunk within the document")
    total_chunks: int = Field(..., ge=1, description="Number of chunks produced for the document")
    original_content: str = Field(..., description="Full original document text")


class TextChunk(BaseModel):
    """A chunk of text ready to be embedded."""

    id: str = Field(..., description="Deterministic vector point ID")
    content: str = Field(..., description="Chunk text content")
    metadata: ChunkMetadata


class ChunkingResult(BaseModel):
    """Outcome of a chunking run, tagged with the strategy that produced it."""

    strategy: ChunkingStrategy
    chunks: List[str] = Field(default_factory=list)
    sentence_count: int = Field(default=0, ge=0)
    boundary_count: int = Field(default=0, ge=0)
    failure_reason: Optional[str] = Field(
        default=None, description="Why semantic chunking was abandoned (fallback only)"
    )


class VectorPoint(BaseModel):
    """A vector plus its payload, as written to the vector store."""

    id: str
    vector: List[float]
    payload: Dict[str, Any] = Field(default_factory=dict)
