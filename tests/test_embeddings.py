"""
Embedding providers and the cosine similarity helper.
"""

import asyncio
import json

import httpx
import pytest

from transmem.core.errors import EmbeddingServiceError, InvalidInputError
from transmem.vector.embeddings import (
    IEmbeddingProvider,
    DeterministicHashEmbedding,
    OllamaEmbedding,
    cosine_similarity,
)


def ollama_with(handler, dimension=4):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OllamaEmbedding("http://ollama:11434", "nomic-embed-text", dimension=dimension, client=client)


def test_embedding_interface():
    """Test that the embedding providers implement the interface."""
    embedder = DeterministicHashEmbedding(dimension=384)
    assert isinstance(embedder, IEmbeddingProvider)
    assert embedder.get_dimension() == 384

    ollama = OllamaEmbedding()
    assert isinstance(ollama, IEmbeddingProvider)
    assert ollama.get_dimension() == 768
    asyncio.run(ollama.aclose())


def test_deterministic_embedding():
    """Test that the same input always produces the same output."""
    embedder = DeterministicHashEmbedding(dimension=384)

    vector1 = asyncio.run(embedder.generate_embedding("Hello, world!"))
    vector2 = asyncio.run(embedder.generate_embedding("Hello, world!"))

    assert vector1 == vector2
    assert len(vector1) == 384
    assert vector1 != embedder.embed_text("Goodbye, world!")


def test_embedding_with_different_dimensions():
    assert len(DeterministicHashEmbedding(dimension=64).embed_text("test")) == 64
    assert len(DeterministicHashEmbedding(dimension=500).embed_text("test")) == 500


@pytest.mark.parametrize("text", ["", "   ", None, 42])
def test_blank_text_is_rejected(text):
    embedder = DeterministicHashEmbedding(dimension=16)
    with pytest.raises(InvalidInputError):
        asyncio.run(embedder.generate_embedding(text))


def test_ollama_posts_model_and_trimmed_prompt():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"embedding": [0.1, 0.2, 0.3, 0.4]})

    embedder = ollama_with(handler)
    vector = asyncio.run(embedder.generate_embedding("  机器学习  "))

    assert vector == [0.1, 0.2, 0.3, 0.4]
    assert seen["url"] == "http://ollama:11434/api/embeddings"
    assert seen["body"] == {"model": "nomic-embed-text", "prompt": "机器学习"}


def test_ollama_blank_text_makes_no_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"embedding": [1.0]})

    embedder = ollama_with(handler)
    with pytest.raises(InvalidInputError):
        asyncio.run(embedder.generate_embedding("   "))
    assert calls == []


@pytest.mark.parametrize("response", [
    httpx.Response(500, text="model not loaded"),
    httpx.Response(200, text="not json"),
    httpx.Response(200, json={"something": "else"}),
    httpx.Response(200, json={"embedding": []}),
    httpx.Response(200, json={"embedding": "0.1,0.2"}),
    httpx.Response(200, json={"embedding": [0.1, "x"]}),
])
def test_ollama_bad_responses_raise_embedding_error(response):
    embedder = ollama_with(lambda request: response)
    with pytest.raises(EmbeddingServiceError):
        asyncio.run(embedder.generate_embedding("hello"))


def test_ollama_status_code_is_kept():
    embedder = ollama_with(lambda request: httpx.Response(503, text="busy"))
    with pytest.raises(EmbeddingServiceError) as exc_info:
        asyncio.run(embedder.generate_embedding("hello"))
    assert exc_info.value.status_code == 503


def test_ollama_transport_failure_raises_embedding_error():
    def handler(request):
        raise httpx.ConnectError("Connection refused", request=request)

    embedder = ollama_with(handler)
    with pytest.raises(EmbeddingServiceError):
        asyncio.run(embedder.generate_embedding("hello"))


def test_cosine_similarity_self_and_symmetry():
    embedder = DeterministicHashEmbedding(dimension=64)
    a = embedder.embed_text("机器学习是人工智能的一个分支")
    b = embedder.embed_text("今天天气真好")

    assert cosine_similarity(a, a) == pytest.approx(1.0, abs=1e-6)
    assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a), abs=1e-12)


def test_cosine_similarity_edge_cases():
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)
    with pytest.raises(InvalidInputError):
        cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])
