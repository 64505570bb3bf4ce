"""
Vector store interface and an in-memory implementation.
Vector memory overlay - non-canonical, advisory layer over the entry table.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
import uuid

import numpy as np

from ..core.errors import InvalidInputError
from .types import CollectionSchema, QueryResult, VectorRecord, detect_schema_drift
from util.logging import logger


def validate_record(record: VectorRecord, schema: CollectionSchema, primary_key: str) -> None:
    """Reject records that can never be stored. Raises InvalidInputError."""
    if not record.vectors:
        raise InvalidInputError("vector record needs at least one named vector")

    for name, vector in record.vectors.items():
        if name not in schema.fields:
            raise InvalidInputError(f"unknown vector field '{name}' for collection '{schema.name}'")
        if len(vector) != schema.fields[name]:
            raise InvalidInputError(
                f"vector '{name}' has dimension {len(vector)}, expected {schema.fields[name]}"
            )

    primary_text = record.payload.get(primary_key)
    if not isinstance(primary_text, str) or not primary_text.strip():
        raise InvalidInputError(f"payload field '{primary_key}' must be non-empty")


class IVectorStore(ABC):
    """Abstract interface for a collection with named vector fields.

    Implementations degrade instead of raising: failures come back as an
    empty list, False or None so callers never block on the vector layer.
    Only malformed arguments raise.
    """

    schema: CollectionSchema

    # Set when the store lost its backend (connection refused, collection gone);
    # cleared by the next call that reaches it
    last_failure: Optional[str] = None

    @abstractmethod
    async def ensure_collection(self, schema: Optional[CollectionSchema] = None) -> bool:
        """Create the collection, or recreate it when its schema drifted."""
        pass

    @abstractmethod
    async def upsert(self, record: VectorRecord) -> Optional[str]:
        """Write a record and return its id, or None when the write failed."""
        pass

    @abstractmethod
    async def search(self, field: str, query_vector: List[float], limit: int = 5,
                     with_payload: bool = True) -> List[QueryResult]:
        """Nearest neighbours on one named vector field, best match first."""
        pass

    @abstractmethod
    async def delete_record(self, record_id: str) -> bool:
        """Delete a vector record by ID."""
        pass

    @abstractmethod
    async def count(self) -> Optional[int]:
        """Number of stored records, or None when the store cannot tell."""
        pass

    async def aclose(self) -> None:
        """Release network resources held by the store."""
        return None


class InMemoryVectorStore(IVectorStore):
    """In-memory implementation of IVectorStore using cosine similarity."""

    def __init__(self, schema: CollectionSchema, primary_key: str = "Chinese"):
        self.schema = schema
        self.primary_key = primary_key
        self.recreate_count = 0
        self._live_fields: Optional[Dict[str, int]] = None
        self._payloads: Dict[str, Dict[str, str]] = {}  # record_id -> payload
        self._index: Dict[str, Dict[str, np.ndarray]] = {}  # field -> record_id -> normalized vector

    async def ensure_collection(self, schema: Optional[CollectionSchema] = None) -> bool:
        if schema is not None:
            self.schema = schema

        if self._live_fields is None:
            self._create()
            return True

        reason = detect_schema_drift(self.schema, self._live_fields)
        if reason:
            logger.log_schema_drift(self.schema.name, reason)
            self._create()
            self.recreate_count += 1
        return True

    def _create(self) -> None:
        self._live_fields = dict(self.schema.fields)
        self._payloads.clear()
        self._index = {name: {} for name in self.schema.fields}

    async def upsert(self, record: VectorRecord) -> Optional[str]:
        validate_record(record, self.schema, self.primary_key)
        if self._live_fields is None:
            self._create()

        record_id = record.id or str(uuid.uuid4())

        # Replace every field so a stale vector from an earlier write cannot linger
        for vectors in self._index.values():
            vectors.pop(record_id, None)

        for name, vector in record.vectors.items():
            array = np.asarray(vector, dtype=np.float64)
            norm = np.linalg.norm(array)
            self._index[name][record_id] = array / norm if norm > 0 else array

        self._payloads[record_id] = dict(record.payload)
        logger.log_vector_operation("upsert", record_id, {"fields": sorted(record.vectors)})
        return record_id

    async def search(self, field: str, query_vector: List[float], limit: int = 5,
                     with_payload: bool = True) -> List[QueryResult]:
        vectors = self._index.get(field)
        if not vectors:
            return []

        # Normalize the query vector
        query = np.asarray(query_vector, dtype=np.float64)
        norm = np.linalg.norm(query)
        if norm == 0 or query.shape[0] != self.schema.fields.get(field):
            return []
        query = query / norm

        similarities = {record_id: float(np.dot(query, stored)) for record_id, stored in vectors.items()}
        ranked = sorted(similarities.items(), key=lambda x: x[1], reverse=True)

        return [
            QueryResult(
                id=record_id,
                score=score,
                payload=dict(self._payloads.get(record_id, {})) if with_payload else {}
            )
            for record_id, score in ranked[:limit]
        ]

    async def delete_record(self, record_id: str) -> bool:
        for vectors in self._index.values():
            vectors.pop(record_id, None)
        self._payloads.pop(record_id, None)
        return True

    async def count(self) -> Optional[int]:
        return len(self._payloads)
