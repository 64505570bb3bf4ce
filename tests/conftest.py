"""
Shared fakes: an in-process Qdrant over httpx.MockTransport and a small
embedding provider with hand-picked vectors.
"""

import json

import httpx
import numpy as np
import pytest

from transmem.vector.embeddings import DeterministicHashEmbedding, IEmbeddingProvider
from transmem.vector.types import CollectionSchema

TEST_DIM = 8


class FakeQdrant:
    """Just enough of the Qdrant REST API for the vector store client."""

    def __init__(self):
        self.collections = {}
        self.calls = []
        self.refuse_connections = False
        self.fail_status = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))
        if self.refuse_connections:
            raise httpx.ConnectError("[Errno 111] Connection refused", request=request)
        if self.fail_status:
            return httpx.Response(self.fail_status, json={"status": {"error": "boom"}})

        parts = [p for p in request.url.path.split("/") if p]
        body = json.loads(request.content) if request.content else {}

        if parts == ["collections"] and request.method == "GET":
            names = [{"name": name} for name in self.collections]
            return httpx.Response(200, json={"result": {"collections": names}, "status": "ok"})

        name = parts[1]
        collection = self.collections.get(name)

        if len(parts) == 2:
            if request.method == "PUT":
                self.collections[name] = {"vectors": body["vectors"], "points": {}}
                return httpx.Response(200, json={"result": True, "status": "ok"})
            if collection is None:
                return httpx.Response(404, json={"status": {"error": f"Collection `{name}` doesn't exist!"}})
            if request.method == "DELETE":
                del self.collections[name]
                return httpx.Response(200, json={"result": True, "status": "ok"})
            return httpx.Response(200, json={"result": {
                "points_count": len(collection["points"]),
                "config": {"params": {"vectors": collection["vectors"]}}
            }, "status": "ok"})

        if collection is None:
            return httpx.Response(404, json={"status": {"error": f"Collection `{name}` doesn't exist!"}})

        action = parts[3] if len(parts) > 3 else None
        if request.method == "PUT" and action is None:
            for point in body["points"]:
                collection["points"][point["id"]] = point
            return httpx.Response(200, json={"result": {"status": "completed"}, "status": "ok"})

        if action == "search":
            field = body["vector"]["name"]
            query = np.asarray(body["vector"]["vector"], dtype=float)
            hits = []
            for point_id, point in collection["points"].items():
                if field not in point["vector"]:
                    continue
                stored = np.asarray(point["vector"][field], dtype=float)
                score = float(np.dot(query, stored) / (np.linalg.norm(query) * np.linalg.norm(stored)))
                hit = {"id": point_id, "score": score}
                if body.get("with_payload"):
                    hit["payload"] = point["payload"]
                hits.append(hit)
            hits.sort(key=lambda h: h["score"], reverse=True)
            return httpx.Response(200, json={"result": hits[:body["limit"]], "status": "ok"})

        if action == "delete":
            for point_id in body["points"]:
                collection["points"].pop(point_id, None)
            return httpx.Response(200, json={"result": {"status": "completed"}, "status": "ok"})

        return httpx.Response(400, json={"status": {"error": "unsupported"}})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def count(self, method: str, path: str) -> int:
        return sum(1 for call in self.calls if call == (method, path))


class MappedEmbedding(IEmbeddingProvider):
    """Returns preset vectors for known texts and hash vectors for the rest."""

    def __init__(self, vectors=None, dimension: int = TEST_DIM):
        self.vectors = dict(vectors or {})
        self.dimension = dimension
        self.calls = []
        self._fallback = DeterministicHashEmbedding(dimension)

    async def generate_embedding(self, text):
        self.calls.append(text)
        if text in self.vectors:
            return list(self.vectors[text])
        return await self._fallback.generate_embedding(text)

    def get_dimension(self):
        return self.dimension


@pytest.fixture
def schema():
    return CollectionSchema(name="translation_embeddings", fields={"vector_cn": TEST_DIM, "vector_en": TEST_DIM})


@pytest.fixture
def fake_qdrant():
    return FakeQdrant()


@pytest.fixture
def unit_vector():
    """Unit vector along one axis of the test dimension."""
    def _make(axis: int, dimension: int = TEST_DIM):
        vector = [0.0] * dimension
        vector[axis] = 1.0
        return vector
    return _make


@pytest.fixture
def mapped_embedding():
    return MappedEmbedding
