"""Embedding generation against an OpenAI-compatible endpoint (e.g. a LiteLLM proxy)."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from openai import AsyncOpenAI
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from vectors_gateway.config import Settings, get_settings
from vectors_gateway.utils.concurrency import throttled_gather
from vectors_gateway.utils.errors import EmbeddingServiceError
from vectors_gateway.utils.logging import get_logger

logger = get_logger("embedding_service")


class EmbeddingGateway(ABC):
    """Turns texts into vectors, one vector per text, in input order."""

    @abstractmethod
    async def get_embeddings(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed `texts`; raise EmbeddingServiceError on provider failure."""


class OpenAIEmbeddingGateway(EmbeddingGateway):
    """
    Generate embeddings through the OpenAI SDK pointed at a compatible base URL.

    One request is sent per text. Requests run concurrently under a semaphore
    sized by EMBEDDING_MAX_CONCURRENCY and each is retried with exponential
    backoff. Results are index-aligned with the input regardless of the
    order in which requests complete.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[AsyncOpenAI] = None,
        user: Optional[str] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._model_name = self._settings.embedding.model
        self._client = client
        self._user = user
        self._semaphore = asyncio.Semaphore(self._settings.embedding.max_concurrency)

    @property
    def model_name(self) -> str:
        return self._model_name

    def _get_client(self) -> AsyncOpenAI:
        """Create the OpenAI client lazily."""
        if self._client is not None:
            return self._client

        embedding = self._settings.embedding
        if not embedding.is_configured:
            raise EmbeddingServiceError(
                "Embeddings are not configured. Set EMBEDDING_BASE_URL and EMBEDDING_API_KEY.",
                model=self._model_name,
            )
        self._client = AsyncOpenAI(
            api_key=embedding.api_key,
            base_url=embedding.base_url,
            timeout=embedding.timeout,
            # Retries are handled by tenacity below
            max_retries=0,
        )
        return self._client

    async def _embed_one(self, text: str) -> List[float]:
        """Embed a single text."""
        client = self._get_client()
        try:
            kwargs = {"model": self._model_name, "input": text}
            if self._user:
                kwargs["user"] = self._user
            resp = await client.embeddings.create(**kwargs)
        except Exception as e:
            raise EmbeddingServiceError(
                f"Embedding request failed: {e}", model=self._model_name
            ) from e

        if not resp.data:
            raise EmbeddingServiceError(
                "Embedding response contained no data", model=self._model_name
            )
        return list(resp.data[0].embedding)

    async def _embed_one_with_retry(self, text: str) -> List[float]:
        """Embed a text with retry logic (rate limits, transient failures)."""
        async for attempt in AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self._settings.embedding.max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=30),
            retry=retry_if_exception_type(EmbeddingServiceError),
        ):
            with attempt:
                return await self._embed_one(text)
        # unreachable due to reraise=True, but keeps type checkers happy
        raise EmbeddingServiceError("Embedding retries exhausted", model=self._model_name)

    async def get_embeddings(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Generate embeddings for a list of texts.

        Args:
            texts: Texts to embed

        Returns:
            One vector per text, aligned with the input order
        """
        if not texts:
            return []

        # Fail before fanning out when credentials are missing
        self._get_client()

        logger.info(
            f"Generating embeddings: model={self._model_name}, texts={len(texts)}, "
            f"max_concurrency={self._settings.embedding.max_concurrency}"
        )

        vectors = await throttled_gather(
            [self._embed_one_with_retry(t) for t in texts],
            semaphore=self._semaphore,
        )

        if vectors:
            logger.info(
                f"Embeddings generated successfully: count={len(vectors)}, dimension={len(vectors[0])}"
            )
        return vectors

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
