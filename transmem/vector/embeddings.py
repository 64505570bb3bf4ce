"""
Embedding providers. Turn a source string into a fixed-length vector.
Non-canonical, advisory layer over the canonical entry table.
"""

import asyncio
from abc import ABC, abstractmethod
import hashlib
from typing import List, Optional, Sequence

import httpx
import numpy as np

from ..core.errors import EmbeddingServiceError, InvalidInputError
from util.logging import logger


def _require_text(text) -> str:
    if not isinstance(text, str) or not text.strip():
        raise InvalidInputError("text to embed must be a non-empty string")
    return text.strip()


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors. 0.0 when either is a zero vector."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise InvalidInputError(f"vector length mismatch: {va.shape[0]} != {vb.shape[0]}")

    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return float(np.dot(va, vb) / norm)


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    async def generate_embedding(self, text: str) -> List[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
        return None


class OllamaEmbedding(IEmbeddingProvider):
    """Embeddings from an Ollama server's /api/embeddings endpoint.

    No retries here; callers decide whether a failed embedding is worth
    another attempt.
    """

    def __init__(self, base_url: str = "http://localhost:11434", model_name: str = "nomic-embed-text",
                 dimension: int = 768, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.model_name = model_name
        self.dimension = dimension
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/api/embeddings"

    async def generate_embedding(self, text: str) -> List[float]:
        prompt = _require_text(text)

        try:
            response = await self._client.post(self.endpoint, json={"model": self.model_name, "prompt": prompt})
        except httpx.HTTPError as e:
            logger.log_embedding(self.model_name, prompt, "failed", {"error": type(e).__name__})
            raise EmbeddingServiceError(f"embedding request failed: {type(e).__name__}: {e}") from e

        if not response.is_success:
            logger.log_embedding(self.model_name, prompt, "failed", {"status_code": response.status_code})
            raise EmbeddingServiceError(
                f"embedding service returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise EmbeddingServiceError("embedding service returned malformed JSON") from e

        embedding = data.get("embedding") if isinstance(data, dict) else None
        if not isinstance(embedding, list) or not embedding:
            raise EmbeddingServiceError("embedding response is missing the 'embedding' array")
        if not all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in embedding):
            raise EmbeddingServiceError("embedding array contains non-numeric values")

        logger.log_embedding(self.model_name, prompt, details={"dimension": len(embedding)})
        return [float(x) for x in embedding]

    def get_dimension(self) -> int:
        return self.dimension

    async def aclose(self) -> None:
        await self._client.aclose()


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for testing purposes.

    Same text always maps to the same vector, with no model or network.
    Similarity between different texts carries no meaning.
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    def embed_text(self, text: str) -> List[float]:
        """Synchronous variant used by scripts and tests."""
        vector = []
        counter = 0
        # Stretch the digest with a counter until the vector is full
        while len(vector) < self.dimension:
            digest = hashlib.sha256(f"{counter}:{text}".encode("utf-8")).digest()
            for i in range(0, len(digest), 4):
                value = int.from_bytes(digest[i:i + 4], "big")
                vector.append((value / 2**32) * 2 - 1)
            counter += 1
        return vector[:self.dimension]

    async def generate_embedding(self, text: str) -> List[float]:
        return self.embed_text(_require_text(text))

    def get_dimension(self) -> int:
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Encoding runs in a worker thread so the event loop stays responsive.
    """

    def __init__(self, model_name: str = "paraphrase-multilingual-mpnet-base-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            self._model = SentenceTransformer(self.model_name)
        return self._model

    async def generate_embedding(self, text: str) -> List[float]:
        prompt = _require_text(text)
        try:
            embedding = await asyncio.to_thread(self.model.encode, prompt, convert_to_tensor=False)
        except Exception as e:
            raise EmbeddingServiceError(f"local embedding failed: {type(e).__name__}: {e}") from e
        return embedding.tolist()

    def get_dimension(self) -> int:
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension
