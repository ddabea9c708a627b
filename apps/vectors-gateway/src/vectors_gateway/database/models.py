"""SQLAlchemy database models."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class DocumentVectorMetadata(Base):
    """Vectorization bookkeeping for one document within one knowledge base."""

    __tablename__ = "document_vector_metadata"
    __table_args__ = (
        UniqueConstraint(
            "document_id", "knowledge_base_id", name="uq_document_vector_metadata_document_kb"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    document_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    knowledge_base_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)

    vector_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_vectorized: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    vectorized_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<DocumentVectorMetadata(document_id={self.document_id}, "
            f"knowledge_base_id={self.knowledge_base_id}, is_vectorized={self.is_vectorized}, "
            f"vector_count={self.vector_count})>"
        )
