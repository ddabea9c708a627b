"""Semantic chunking: split on topic shifts between embedded sentence windows."""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from vectors_gateway.config import Settings, get_settings
from vectors_gateway.models.chunk import ChunkingResult, ChunkingStrategy
from vectors_gateway.services.embedding_service import EmbeddingGateway
from vectors_gateway.services.sentence_splitter import split_sentences
from vectors_gateway.utils.errors import ChunkingError, EmbeddingMismatchError
from vectors_gateway.utils.logging import get_logger

logger = get_logger("semantic_chunking")

# Below this many sentences there are too few transitions for a percentile
MIN_SENTENCES_FOR_SEMANTIC = 3

_FALLBACK_SENTENCE_END = re.compile(r"[.!?]+")


@dataclass
class SentenceWindow:
    """A sentence with its neighbours, used only while detecting boundaries."""

    sentence: str
    index: int
    combined_text: str
    embedding: Optional[List[float]] = None
    distance_to_next: Optional[float] = None


def build_context_windows(sentences: Sequence[str], buffer_size: int = 1) -> List[SentenceWindow]:
    """
    Pair each sentence with up to `buffer_size` neighbours on each side.

    The combined text joins the window's sentences with single spaces, in
    order, clipped at the document edges.
    """
    windows: List[SentenceWindow] = []
    for i, sentence in enumerate(sentences):
        start = max(0, i - buffer_size)
        end = min(len(sentences), i + buffer_size + 1)
        windows.append(
            SentenceWindow(
                sentence=sentence,
                index=i,
                combined_text=" ".join(sentences[start:end]).strip(),
            )
        )
    return windows


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0.0 when either vector has zero norm."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


def breakpoint_threshold(distances: Sequence[float], percentile: float = 90.0) -> float:
    """
    Distance at `percentile`, linearly interpolated between order statistics.

    [0.1, 0.2, 0.3, 0.4, 0.5] at 90 gives 0.46.
    """
    if len(distances) == 0:
        raise ChunkingError("Cannot compute a breakpoint threshold without distances")
    return float(np.percentile(np.asarray(distances, dtype=np.float64), percentile, method="linear"))


def detect_boundaries(
    windows: List[SentenceWindow], percentile: float = 90.0
) -> List[int]:
    """
    Fill in `distance_to_next` and return the indices i where i -> i+1 is a boundary.

    A transition is a boundary only when its distance strictly exceeds the
    percentile threshold, so uniform distances produce no boundaries.
    """
    distances: List[float] = []
    for current, following in zip(windows, windows[1:]):
        if current.embedding is None or following.embedding is None:
            raise ChunkingError(
                "Sentence window is missing an embedding", details={"index": current.index}
            )
        distance = 1.0 - cosine_similarity(current.embedding, following.embedding)
        current.distance_to_next = distance
        distances.append(distance)

    threshold = breakpoint_threshold(distances, percentile)
    return [i for i, distance in enumerate(distances) if distance > threshold]


def group_sentences(sentences: Sequence[str], boundary_indices: Sequence[int]) -> List[str]:
    """
    Partition sentences at the boundaries and join each run with single spaces.

    Boundary index i closes a run after sentence i; the last run always
    extends to the final sentence.
    """
    if not sentences:
        return []

    chunks: List[str] = []
    start = 0
    for end in list(boundary_indices) + [len(sentences) - 1]:
        group = sentences[start : end + 1]
        if group:
            chunks.append(" ".join(group))
        start = end + 1
    return chunks


def fallback_chunks(content: str, max_chars: int = 2000) -> List[str]:
    """
    Greedy sentence packing used when semantic chunking is unavailable.

    Splits the raw input on runs of `.`, `!` or `?` and accumulates trimmed
    sentences until adding the next would exceed `max_chars`. A single
    sentence longer than the cap becomes its own chunk.
    """
    chunks: List[str] = []
    current = ""

    for piece in _FALLBACK_SENTENCE_END.split(content):
        sentence = piece.strip()
        if not sentence:
            continue
        candidate = f"{current} {sentence}" if current else sentence
        if len(candidate) > max_chars and current:
            chunks.append(current.strip())
            current = sentence
        else:
            current = candidate

    if current.strip():
        chunks.append(current.strip())

    if not chunks and content.strip():
        chunks.append(content.strip())
    return chunks


class SemanticChunkingService:
    """Chunk documents by semantic similarity, falling back to greedy packing on any failure."""

    def __init__(
        self,
        embedding_gateway: EmbeddingGateway,
        settings: Optional[Settings] = None,
    ) -> None:
        self._gateway = embedding_gateway
        self._settings = settings or get_settings()

    async def chunk(
        self,
        content: str,
        buffer_size: Optional[int] = None,
        percentile: Optional[float] = None,
    ) -> ChunkingResult:
        """
        Split content into semantically coherent chunks.

        Args:
            content: Raw document text
            buffer_size: Neighbour sentences per side (defaults to CHUNKING_BUFFER_SIZE)
            percentile: Breakpoint percentile (defaults to CHUNKING_BREAKPOINT_PERCENTILE)

        Returns:
            ChunkingResult tagged `semantic` or `fallback`

        Raises:
            ChunkingError: content is empty or whitespace only
        """
        if not content or not content.strip():
            raise ChunkingError("Content is empty or invalid")

        chunking = self._settings.chunking
        buffer_size = chunking.buffer_size if buffer_size is None else buffer_size
        percentile = chunking.breakpoint_percentile if percentile is None else percentile

        try:
            return await self._semantic_chunk(content, buffer_size, percentile)
        except Exception as e:
            logger.warning(
                f"Semantic chunking failed, falling back to simple chunking: {e}",
                extra={"error_type": type(e).__name__},
            )
            chunks = fallback_chunks(content, chunking.fallback_max_chars)
            logger.info(f"Fallback created {len(chunks)} simple chunks")
            return ChunkingResult(
                strategy=ChunkingStrategy.FALLBACK,
                chunks=chunks,
                failure_reason=f"{type(e).__name__}: {e}",
            )

    async def _semantic_chunk(
        self, content: str, buffer_size: int, percentile: float
    ) -> ChunkingResult:
        sentences = split_sentences(content)
        logger.debug(f"Split into {len(sentences)} sentences")

        if not sentences:
            raise ChunkingError("No valid sentences found in content")

        if len(sentences) < MIN_SENTENCES_FOR_SEMANTIC:
            return ChunkingResult(
                strategy=ChunkingStrategy.SEMANTIC,
                chunks=list(sentences),
                sentence_count=len(sentences),
            )

        windows = build_context_windows(sentences, buffer_size)
        embeddings = await self._gateway.get_embeddings([w.combined_text for w in windows])
        if len(embeddings) != len(windows):
            raise EmbeddingMismatchError(
                f"Embedding mismatch: expected {len(windows)} embeddings, got {len(embeddings)}",
                expected=len(windows),
                actual=len(embeddings),
            )
        for window, embedding in zip(windows, embeddings):
            window.embedding = embedding

        boundaries = detect_boundaries(windows, percentile)
        chunks = group_sentences(sentences, boundaries)
        logger.info(
            f"Semantic chunking complete: sentences={len(sentences)}, "
            f"boundaries={len(boundaries)}, chunks={len(chunks)}"
        )
        return ChunkingResult(
            strategy=ChunkingStrategy.SEMANTIC,
            chunks=chunks,
            sentence_count=len(sentences),
            boundary_count=len(boundaries),
        )
