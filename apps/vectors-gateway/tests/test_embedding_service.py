"""Tests for the OpenAI-compatible embedding gateway."""

import asyncio
from types import SimpleNamespace

import pytest

from vectors_gateway.config import EmbeddingSettings
from vectors_gateway.services.embedding_service import OpenAIEmbeddingGateway
from vectors_gateway.utils.errors import EmbeddingServiceError


class FakeEmbeddingsResource:
    """Stands in for `client.embeddings`; later inputs finish first."""

    def __init__(self, fail_times: int = 0):
        self.fail_times = fail_times
        self.requests = []
        self.active = 0
        self.max_active = 0

    async def create(self, model, input, **kwargs):
        self.requests.append({"model": model, "input": input, **kwargs})
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RuntimeError("rate limited")

        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            # Reverse completion order relative to submission
            await asyncio.sleep(0.001 * (50 - len(self.requests) % 50))
            return SimpleNamespace(
                data=[SimpleNamespace(embedding=[float(len(input)), float(ord(input[0]))])]
            )
        finally:
            self.active -= 1


def _gateway(settings, resource, **kwargs):
    client = SimpleNamespace(embeddings=resource)
    return OpenAIEmbeddingGateway(settings, client=client, **kwargs)


@pytest.mark.asyncio
async def test_results_align_with_inputs_under_concurrency(settings):
    resource = FakeEmbeddingsResource()
    gateway = _gateway(settings, resource)
    texts = [chr(ord("a") + i) * (i + 1) for i in range(12)]

    vectors = await gateway.get_embeddings(texts)

    assert vectors == [[float(len(t)), float(ord(t[0]))] for t in texts]
    assert len(resource.requests) == len(texts)
    assert resource.max_active <= settings.embedding.max_concurrency
    assert resource.max_active > 1


@pytest.mark.asyncio
async def test_sends_one_request_per_text_with_configured_model(settings):
    resource = FakeEmbeddingsResource()
    gateway = _gateway(settings, resource, user="42")

    await gateway.get_embeddings(["alpha", "beta"])

    assert sorted(r["input"] for r in resource.requests) == ["alpha", "beta"]
    assert all(r["model"] == settings.embedding.model for r in resource.requests)
    assert all(r["user"] == "42" for r in resource.requests)


@pytest.mark.asyncio
async def test_empty_input_makes_no_requests(settings):
    resource = FakeEmbeddingsResource()
    gateway = _gateway(settings, resource)

    assert await gateway.get_embeddings([]) == []
    assert resource.requests == []


@pytest.mark.asyncio
async def test_provider_failure_raises_embedding_error(settings):
    resource = FakeEmbeddingsResource(fail_times=10)
    gateway = _gateway(settings, resource)

    with pytest.raises(EmbeddingServiceError) as exc_info:
        await gateway.get_embeddings(["text"])

    assert "rate limited" in exc_info.value.message
    assert exc_info.value.details["model"] == settings.embedding.model


@pytest.mark.asyncio
async def test_transient_failure_is_retried(settings):
    settings.embedding = EmbeddingSettings(
        api_key="k", base_url="http://embeddings.test/v1", max_retries=2
    )
    resource = FakeEmbeddingsResource(fail_times=1)
    gateway = _gateway(settings, resource)

    vectors = await gateway.get_embeddings(["hello"])

    assert vectors == [[5.0, float(ord("h"))]]
    assert len(resource.requests) == 2


@pytest.mark.asyncio
async def test_missing_configuration_raises(settings):
    settings.embedding = EmbeddingSettings(api_key=None, base_url=None)
    gateway = OpenAIEmbeddingGateway(settings)

    with pytest.raises(EmbeddingServiceError) as exc_info:
        await gateway.get_embeddings(["text"])

    assert "not configured" in exc_info.value.message
