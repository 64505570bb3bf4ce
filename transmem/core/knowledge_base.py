"""
Knowledge base: keeps the canonical entry table and the vector index in step.

Rows always win. A vector write that fails is logged and the row is written
anyway; vector_id stays empty until scripts/rebuild_index.py fills it in.
"""

from typing import Any, Dict, List, Optional

from .config import PRIMARY_LANGUAGE, SUPPORTED_LANGUAGES
from .dao import EntryDAO
from .errors import (
    DuplicateEntryError,
    EntryNotFoundError,
    InvalidInputError,
    TranslationMemoryError,
    VectorServiceUnavailable,
)
from .schema import TranslationEntry
from .state import VectorServiceState
from ..vector.types import QueryResult
from util.logging import logger


def _clean_texts(data: Dict[str, Any]) -> Dict[str, str]:
    """Keep supported language columns only, stripped."""
    return {
        language: str(value).strip()
        for language, value in data.items()
        if language in SUPPORTED_LANGUAGES and value is not None
    }


class KnowledgeBaseService:
    """Entry CRUD and search, with best-effort vector sync."""

    def __init__(self, dao: EntryDAO, memory=None, state: Optional[VectorServiceState] = None):
        self.dao = dao
        self.memory = memory
        self.state = state or VectorServiceState()

    @property
    def vector_available(self) -> bool:
        return self.memory is not None and self.state.available

    def _note_vector_failure(self) -> Optional[str]:
        """Turn the vector service off when the store lost its backend."""
        failure = self.memory.failure if self.memory is not None else None
        if failure and self.state.available:
            self.state.mark_unavailable(f"vector service failure: {failure}")
        return failure

    async def add_entry(self, data: Dict[str, Any]) -> TranslationEntry:
        """
        Add a new entry, storing its vectors first when the service is up.

        Raises:
            InvalidInputError: no primary-language text
            DuplicateEntryError: an entry with the same key exists
        """
        texts = _clean_texts(data)
        key = texts.get(PRIMARY_LANGUAGE, "")
        if not key:
            raise InvalidInputError(f"'{PRIMARY_LANGUAGE}' is required")
        if self.dao.get_entry(key) is not None:
            raise DuplicateEntryError(f"entry already exists: {key}")

        entry = TranslationEntry(texts=texts)
        if self.vector_available:
            entry.vector_id = await self.memory.store_entry_vectors(texts)
            if entry.vector_id is None:
                logger.warning(f"Storing vectors failed for entry: {key[:50]}")
                self._note_vector_failure()

        if not self.dao.insert_entry(entry):
            # Lost a race with a concurrent insert; drop the orphaned vector
            if entry.vector_id:
                await self.memory.delete(entry.vector_id)
            raise DuplicateEntryError(f"entry already exists: {key}")

        logger.log_operation("kb.add_entry", "success", {"key": key[:50], "vector_id": entry.vector_id})
        return self.dao.get_entry(key) or entry

    async def update_entry(self, key: str, changes: Dict[str, Any]) -> TranslationEntry:
        """
        Merge `changes` into an entry and re-embed it under its existing vector id.

        Raises:
            InvalidInputError: no updatable language column in `changes`
            EntryNotFoundError: no entry with that key
        """
        texts = _clean_texts(changes)
        texts.pop(PRIMARY_LANGUAGE, None)
        if not texts:
            raise InvalidInputError("no fields to update")

        current = self.dao.get_entry(key)
        if current is None:
            raise EntryNotFoundError(f"entry not found: {key}")

        vector_id = None
        if self.vector_available:
            merged = {**current.texts, **texts}
            vector_id = await self.memory.update_entry_vectors(current.vector_id, merged)
            if vector_id is None:
                logger.warning(f"Updating vectors failed for entry: {key[:50]}")
                self._note_vector_failure()

        self.dao.update_entry(key, texts, vector_id=vector_id)
        logger.log_operation("kb.update_entry", "success", {"key": key[:50], "fields": sorted(texts)})
        return self.dao.get_entry(key)

    async def delete_entry(self, key: str) -> Dict[str, Any]:
        """
        Delete an entry row, then its vector (best effort).

        Raises:
            EntryNotFoundError: no entry with that key
        """
        current = self.dao.get_entry(key)
        if current is None or not self.dao.delete_entry(key):
            raise EntryNotFoundError(f"entry not found: {key}")

        result: Dict[str, Any] = {"success": True, "key": current.key, "vector_id": current.vector_id}
        if current.vector_id and self.vector_available:
            result["vector_deleted"] = await self.memory.delete(current.vector_id)
            if not result["vector_deleted"]:
                logger.warning(f"Vector {current.vector_id} left behind for deleted entry: {key[:50]}")
                self._note_vector_failure()

        logger.log_operation("kb.delete_entry", "success", result)
        return result

    async def search_entries(self, search: Optional[str] = None, limit: int = 100,
                             offset: int = 0) -> List[TranslationEntry]:
        """Vector search mapped back to rows in ranking order; LIKE search otherwise."""
        if search and search.strip() and self.vector_available:
            try:
                hits = await self.memory.search_similar(search, "chinese", max(1, int(limit)))
            except TranslationMemoryError as e:
                logger.warning(f"Vector search failed, falling back to LIKE search: {e}")
                hits = []

            if not hits:
                self._note_vector_failure()

            keys = [str(hit.payload.get(PRIMARY_LANGUAGE) or "") for hit in hits]
            keys = [key for key in keys if key]
            if keys:
                rows = self.dao.get_entries(keys)
                return [rows[key] for key in keys if key in rows]

            logger.debug("Vector search returned no rows, falling back to LIKE search")

        return self.dao.search_entries(search, limit, offset)

    def _require_vector_service(self) -> None:
        if not self.vector_available:
            raise VectorServiceUnavailable(self.state.reason or "vector service unavailable")

    async def _search_or_raise(self, text: str, type: str, limit: int) -> List[QueryResult]:
        hits = await self.memory.search_similar(text, type, limit)
        if not hits:
            failure = self._note_vector_failure()
            if failure:
                raise VectorServiceUnavailable(f"vector service failure: {failure}")
        return hits

    async def vector_search(self, text: str, type: str = "chinese", limit: int = 5) -> List[QueryResult]:
        """Raw hits. Raises VectorServiceUnavailable when the service is down."""
        self._require_vector_service()
        return await self._search_or_raise(text, type, limit)

    async def advanced_vector_search(self, text: str, type: str = "chinese",
                                     limit: int = 5) -> List[Dict[str, Any]]:
        """Hits enriched with their canonical entry rows."""
        self._require_vector_service()
        hits = await self._search_or_raise(text, type, limit)
        if not hits:
            return []

        keys = [str(hit.payload.get(PRIMARY_LANGUAGE) or "") for hit in hits]
        rows = self.dao.get_entries([key for key in keys if key])

        return [
            {
                "id": hit.id,
                "score": hit.score,
                "payload": hit.payload,
                "entry": rows[key].to_dict() if key in rows else None
            }
            for hit, key in zip(hits, keys)
        ]
