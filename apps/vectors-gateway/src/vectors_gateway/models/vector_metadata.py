"""Detached view of a document's vectorization metadata."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class VectorMetadataRecord(BaseModel):
    """Snapshot of a `document_vector_metadata` row, safe to use after its session closes."""

    model_config = ConfigDict(from_attributes=True)

    document_id: int
    knowledge_base_id: int
    user_id: int
    vector_count: int
    is_vectorized: bool
    vectorized_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
