"""
Vector memory facade: one object offering embedding, upsert, search, delete
and collection setup, plus entry-level helpers that turn a translation entry
into a named-vector record.
"""

from typing import Dict, List, Mapping, Optional

from ..core.config import (
    PRIMARY_LANGUAGE,
    PRIMARY_VECTOR_FIELD,
    SECONDARY_LANGUAGE,
    SECONDARY_VECTOR_FIELD,
    SUPPORTED_LANGUAGES,
)
from ..core.errors import EmbeddingServiceError, InvalidInputError
from .embeddings import IEmbeddingProvider
from .index import IVectorStore
from .types import CollectionSchema, QueryResult, VectorRecord
from util.logging import logger

# Search types accepted by search_similar, mapped to the language they embed
SEARCH_TYPES = {"chinese": PRIMARY_LANGUAGE, "english": SECONDARY_LANGUAGE}


def build_payload(entry: Mapping[str, Optional[str]]) -> Dict[str, str]:
    """Payload with every supported language, '' where the entry has none."""
    return {language: (entry.get(language) or "").strip() for language in SUPPORTED_LANGUAGES}


class VectorMemoryService:
    """Embedding provider and vector store behind one interface."""

    def __init__(self, embedder: IEmbeddingProvider, store: IVectorStore,
                 primary_language: str = PRIMARY_LANGUAGE):
        self.embedder = embedder
        self.store = store
        self.primary_language = primary_language

    @property
    def failure(self) -> Optional[str]:
        """Reason the store lost its backend on the last call, if it did."""
        return getattr(self.store, "last_failure", None)

    def field_for_language(self, language: str) -> str:
        """Named vector field holding embeddings of text in `language`."""
        return PRIMARY_VECTOR_FIELD if language == self.primary_language else SECONDARY_VECTOR_FIELD

    async def generate_embedding(self, text: str) -> List[float]:
        return await self.embedder.generate_embedding(text)

    async def ensure_collection(self, schema: Optional[CollectionSchema] = None) -> bool:
        return await self.store.ensure_collection(schema)

    async def upsert(self, record: VectorRecord) -> Optional[str]:
        return await self.store.upsert(record)

    async def search(self, field: str, query_vector: List[float], limit: int = 5,
                     with_payload: bool = True) -> List[QueryResult]:
        return await self.store.search(field, query_vector, limit, with_payload)

    async def delete(self, record_id: str) -> bool:
        return await self.store.delete_record(record_id)

    async def build_record(self, entry: Mapping[str, Optional[str]],
                           record_id: Optional[str] = None) -> VectorRecord:
        """
        Embed an entry's primary and secondary text into a record.

        Raises:
            InvalidInputError: the entry has no primary-language text
            EmbeddingServiceError: the embedding call failed
        """
        payload = build_payload(entry)
        if not payload.get(self.primary_language):
            raise InvalidInputError(f"entry needs a non-empty '{self.primary_language}' value")

        vectors = {PRIMARY_VECTOR_FIELD: await self.embedder.generate_embedding(payload[self.primary_language])}
        if payload.get(SECONDARY_LANGUAGE):
            vectors[SECONDARY_VECTOR_FIELD] = await self.embedder.generate_embedding(payload[SECONDARY_LANGUAGE])

        return VectorRecord(id=record_id, vectors=vectors, payload=payload)

    async def store_entry_vectors(self, entry: Mapping[str, Optional[str]]) -> Optional[str]:
        """Embed and store a new entry. Returns the record id, or None on failure."""
        return await self.update_entry_vectors(None, entry)

    async def update_entry_vectors(self, record_id: Optional[str],
                                   entry: Mapping[str, Optional[str]]) -> Optional[str]:
        """Re-embed an entry under an existing record id (a new one when None)."""
        try:
            record = await self.build_record(entry, record_id)
        except EmbeddingServiceError as e:
            logger.log_vector_operation("store_entry", record_id, {"cause": str(e)}, status="failed")
            return None

        # Records the store rejects, e.g. after an embedding model swap changed the dimension
        try:
            return await self.store.upsert(record)
        except InvalidInputError as e:
            logger.log_vector_operation("store_entry", record_id, {"cause": str(e)}, status="failed")
            return None

    async def search_similar(self, text: str, type: str = "chinese", limit: int = 5) -> List[QueryResult]:
        """
        Nearest entries to `text` on the field of the given search type.

        Args:
            text: Query text
            type: 'chinese' searches the primary field, 'english' the secondary one
            limit: Maximum number of hits

        Returns:
            Hits best first; [] when the embedding or the search failed
        """
        language = SEARCH_TYPES.get((type or "").lower())
        if language is None:
            raise InvalidInputError(f"search type must be one of {sorted(SEARCH_TYPES)}: {type!r}")
        if not isinstance(text, str) or not text.strip():
            raise InvalidInputError("query text must be a non-empty string")

        try:
            embedding = await self.embedder.generate_embedding(text)
        except EmbeddingServiceError as e:
            logger.log_vector_operation("search_similar", details={"type": type, "cause": str(e)}, status="failed")
            return []

        results = await self.store.search(self.field_for_language(language), embedding, limit)
        logger.log_vector_operation("search_similar", details={"type": type, "results": len(results)})
        return results

    async def aclose(self) -> None:
        await self.embedder.aclose()
        await self.store.aclose()
