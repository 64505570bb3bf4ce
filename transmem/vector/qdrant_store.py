"""
Qdrant-backed vector store speaking the REST API over one shared httpx client.

The collection holds one named vector per source-language family and a
payload of every language's text. The vector service is optional, so apart
from argument validation nothing here raises: failures are logged and come
back as an empty list, False or None.
"""

from typing import Any, Dict, List, Optional
import uuid

import httpx

from ..core.errors import InvalidInputError
from ..core.retry import describe_connection_error, with_retry
from .index import IVectorStore, validate_record
from .types import CollectionSchema, QueryResult, VectorRecord, detect_schema_drift
from util.logging import logger

# Raised by response parsing when the service answers with an unexpected shape
_MALFORMED = (ValueError, KeyError, TypeError)


class QdrantVectorStore(IVectorStore):
    """IVectorStore over a Qdrant collection with named vectors."""

    def __init__(self, base_url: str, schema: CollectionSchema, primary_key: str = "Chinese",
                 timeout: float = 10.0, max_retries: int = 2, initial_delay: float = 1.0,
                 backoff_multiplier: float = 2.0, client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            base_url: Qdrant REST endpoint, e.g. http://localhost:6333
            schema: Collection descriptor the application expects
            primary_key: Payload field that must be non-empty on every record
            timeout: Per-request timeout in seconds
            max_retries: Retries for collection initialisation on connection failures
            initial_delay: First backoff delay in seconds
            backoff_multiplier: Backoff growth factor
            client: Optional preconfigured client (tests inject a mock transport)
        """
        self.base_url = base_url.rstrip("/")
        self.schema = schema
        self.primary_key = primary_key
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.backoff_multiplier = backoff_multiplier
        self.recreate_count = 0
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def collection(self) -> str:
        return self.schema.name

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        response = await self._client.request(method, f"{self.base_url}{path}", **kwargs)
        response.raise_for_status()
        return response.json()

    # ------------------------------------------------------------------
    # Collection lifecycle
    # ------------------------------------------------------------------

    async def list_collections(self) -> List[str]:
        data = await self._request("GET", "/collections")
        return [c["name"] for c in data["result"]["collections"]]

    async def live_fields(self) -> Dict[str, int]:
        """Named vector fields and dimensions of the live collection."""
        data = await self._request("GET", f"/collections/{self.collection}")
        vectors = data["result"]["config"]["params"]["vectors"]

        # A collection created without named vectors reports a single {size, distance}
        if isinstance(vectors.get("size"), int):
            return {"": vectors["size"]}
        return {name: int(params["size"]) for name, params in vectors.items()}

    async def _create_collection(self) -> None:
        body = {
            "vectors": {
                name: {"size": size, "distance": self.schema.distance}
                for name, size in self.schema.fields.items()
            }
        }
        await self._request("PUT", f"/collections/{self.collection}", json=body)
        logger.log_vector_operation("create_collection", details={
            "collection": self.collection,
            "fields": self.schema.fields
        })

    async def _delete_collection(self) -> None:
        await self._request("DELETE", f"/collections/{self.collection}")
        logger.log_vector_operation("delete_collection", details={"collection": self.collection})

    async def _ensure_collection_once(self) -> bool:
        if self.collection not in await self.list_collections():
            await self._create_collection()
            return True

        reason = detect_schema_drift(self.schema, await self.live_fields())
        if reason:
            # Dropping the collection loses its vectors; rebuild_index.py repopulates it
            logger.log_schema_drift(self.collection, reason)
            await self._delete_collection()
            await self._create_collection()
            self.recreate_count += 1
        else:
            logger.log_vector_operation("ensure_collection", details={
                "collection": self.collection,
                "state": "exists"
            })
        return True

    async def ensure_collection(self, schema: Optional[CollectionSchema] = None) -> bool:
        """
        Make sure the collection exists with the expected named vectors.

        Returns:
            True when the collection is ready, False once retries are exhausted
            or the service answered with an error.
        """
        if schema is not None:
            self.schema = schema

        try:
            await with_retry(
                self._ensure_collection_once,
                max_retries=self.max_retries,
                initial_delay=self.initial_delay,
                backoff_multiplier=self.backoff_multiplier,
                label="vector.ensure_collection"
            )
        except httpx.TransportError as e:
            self.last_failure = describe_connection_error(e)
            logger.log_vector_operation("ensure_collection", details={
                "collection": self.collection,
                "cause": describe_connection_error(e),
                "attempts": self.max_retries + 1
            }, status="failed")
            return False
        except httpx.HTTPStatusError as e:
            self.last_failure = f"collection unavailable: {describe_connection_error(e)}"
            logger.log_vector_operation("ensure_collection", details={
                "collection": self.collection,
                "cause": describe_connection_error(e),
                "body": e.response.text[:200]
            }, status="failed")
            return False
        except _MALFORMED as e:
            self.last_failure = "collection unavailable: malformed response"
            logger.log_vector_operation("ensure_collection", details={
                "collection": self.collection,
                "cause": f"malformed response: {type(e).__name__}"
            }, status="failed")
            return False

        self.last_failure = None
        return True

    # ------------------------------------------------------------------
    # Points
    # ------------------------------------------------------------------

    async def upsert(self, record: VectorRecord) -> Optional[str]:
        validate_record(record, self.schema, self.primary_key)
        record_id = record.id or str(uuid.uuid4())

        body = {
            "points": [{
                "id": record_id,
                "vector": {name: list(vector) for name, vector in record.vectors.items()},
                "payload": dict(record.payload)
            }]
        }

        try:
            await self._request("PUT", f"/collections/{self.collection}/points",
                                params={"wait": "true"}, json=body)
        except httpx.HTTPError as e:
            self._note_failure(e)
            logger.log_vector_operation("upsert", record_id, {"cause": describe_connection_error(e)}, status="failed")
            return None
        except _MALFORMED as e:
            logger.log_vector_operation("upsert", record_id, {"cause": f"malformed response: {type(e).__name__}"},
                                        status="failed")
            return None

        self.last_failure = None
        logger.log_vector_operation("upsert", record_id, {"fields": sorted(record.vectors)})
        return record_id

    def _note_failure(self, error: Exception) -> None:
        # Only a lost connection makes the service unusable; other errors are per request
        if isinstance(error, httpx.TransportError):
            self.last_failure = describe_connection_error(error)

    async def _search_once(self, body: Dict[str, Any]) -> List[QueryResult]:
        data = await self._request("POST", f"/collections/{self.collection}/points/search", json=body)
        return [
            QueryResult(id=str(hit["id"]), score=float(hit["score"]), payload=hit.get("payload") or {})
            for hit in data["result"]
        ]

    async def search(self, field: str, query_vector: List[float], limit: int = 5,
                     with_payload: bool = True) -> List[QueryResult]:
        if field not in self.schema.fields:
            raise InvalidInputError(f"unknown vector field '{field}' for collection '{self.collection}'")
        if limit < 1:
            raise InvalidInputError(f"limit must be >= 1: {limit}")
        if len(query_vector) != self.schema.fields[field]:
            logger.log_vector_operation("search", details={
                "field": field,
                "cause": f"query dimension {len(query_vector)} != {self.schema.fields[field]}"
            }, status="failed")
            return []

        body = {
            "vector": {"name": field, "vector": list(query_vector)},
            "limit": limit,
            "with_payload": with_payload
        }

        try:
            results = await self._search_once(body)
            self.last_failure = None
            return results
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 404:
                logger.log_vector_operation("search", details={
                    "field": field,
                    "cause": describe_connection_error(e)
                }, status="failed")
                return []
        except httpx.HTTPError as e:
            self._note_failure(e)
            logger.log_vector_operation("search", details={
                "field": field,
                "cause": describe_connection_error(e)
            }, status="failed")
            return []
        except _MALFORMED as e:
            logger.log_vector_operation("search", details={
                "field": field,
                "cause": f"malformed response: {type(e).__name__}"
            }, status="failed")
            return []

        # Collection not found: create it once, then search again
        logger.log_vector_operation("search", details={
            "field": field,
            "cause": "collection not found, creating"
        }, status="retrying")
        if not await self.ensure_collection():
            return []

        try:
            return await self._search_once(body)
        except (httpx.HTTPError, *_MALFORMED) as e:
            self.last_failure = f"collection unavailable after lazy create: {describe_connection_error(e)}"
            logger.log_vector_operation("search", details={
                "field": field,
                "cause": f"after lazy create: {describe_connection_error(e)}"
            }, status="failed")
            return []

    async def delete_record(self, record_id: str) -> bool:
        try:
            await self._request("POST", f"/collections/{self.collection}/points/delete",
                                params={"wait": "true"}, json={"points": [record_id]})
        except (httpx.HTTPError, *_MALFORMED) as e:
            self._note_failure(e)
            logger.log_vector_operation("delete", record_id, {"cause": describe_connection_error(e)}, status="failed")
            return False

        self.last_failure = None
        logger.log_vector_operation("delete", record_id)
        return True

    async def count(self) -> Optional[int]:
        """Number of points in the collection, or None when unknown."""
        try:
            data = await self._request("GET", f"/collections/{self.collection}")
            return int(data["result"].get("points_count") or 0)
        except (httpx.HTTPError, *_MALFORMED):
            return None

    async def aclose(self) -> None:
        await self._client.aclose()
