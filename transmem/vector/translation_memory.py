"""
Translation-memory retrieval: find earlier (source, target) pairs close to a
new source string, to pass to the translation API as context.

Memory is strictly additive. Every downstream failure ends in an empty list
and a log line; only arguments of the wrong shape raise.
"""

from typing import List, Optional

from ..core.config import PRIMARY_LANGUAGE, SECONDARY_LANGUAGE, SUPPORTED_LANGUAGES
from ..core.errors import EmbeddingServiceError, InvalidInputError, VectorServiceUnavailable
from .thresholds import classify_similarity
from .types import TranslationMemoryCandidate
from util.logging import logger


class TranslationMemoryRetriever:
    """Looks up translation-memory candidates through a VectorMemoryService."""

    def __init__(self, memory, state=None, primary_language: str = PRIMARY_LANGUAGE):
        """
        Args:
            memory: VectorMemoryService used for embedding and search
            state: Optional VectorServiceState; when it reports unavailable no call is made
            primary_language: Language whose text lives in the primary vector field
        """
        self.memory = memory
        self.state = state
        self.primary_language = primary_language

    def _embedded_language(self, source_language: str) -> str:
        return self.primary_language if source_language == self.primary_language else SECONDARY_LANGUAGE

    async def get_translation_memory(self, text: str, source_language: str, target_language: str,
                                     max_results: int = 3,
                                     min_score: Optional[float] = None) -> List[TranslationMemoryCandidate]:
        """
        Candidates for `text`, best match first.

        Args:
            text: Source string about to be translated
            source_language: Payload name of the source language, e.g. "Chinese"
            target_language: Payload name of the target language, e.g. "English"
            max_results: Number of index hits to request
            min_score: Optional cutoff, e.g. recommended_threshold(use_case="translation")

        Returns:
            Candidates with both sides populated; [] when there is no memory
        """
        if not isinstance(text, str):
            raise InvalidInputError(f"text must be a string, got {type(text).__name__}")
        if isinstance(max_results, bool) or not isinstance(max_results, int) or max_results < 1:
            raise InvalidInputError(f"max_results must be a positive integer: {max_results!r}")
        for language in (source_language, target_language):
            if language not in SUPPORTED_LANGUAGES:
                raise InvalidInputError(f"unsupported language: {language!r}")

        query = text.strip()
        if not query:
            return []

        if self.memory is None or (self.state is not None and not self.state.available):
            logger.log_translation_memory(query, source_language, target_language, 0, 0, status="skipped",
                                          error="vector service unavailable")
            return []

        field = self.memory.field_for_language(source_language)
        try:
            embedding = await self.memory.generate_embedding(query)
            hits = await self.memory.search(field, embedding, limit=max_results, with_payload=True)
        except (EmbeddingServiceError, VectorServiceUnavailable) as e:
            logger.log_translation_memory(query, source_language, target_language, 0, 0, status="failed",
                                          error=str(e))
            return []

        failure = self.memory.failure if not hits else None
        if failure:
            if self.state is not None:
                self.state.mark_unavailable(f"vector search failed: {failure}")
            logger.log_translation_memory(query, source_language, target_language, 0, 0, status="degraded",
                                          error=failure)
            return []

        cross_language = source_language != self._embedded_language(source_language)
        candidates = []
        for hit in hits:
            source = str(hit.payload.get(source_language) or "").strip()
            target = str(hit.payload.get(target_language) or "").strip()

            # A pair is only useful with both sides filled in
            if not source or not target:
                continue
            if min_score is not None and hit.score < min_score:
                continue

            candidates.append(TranslationMemoryCandidate(
                source=source,
                target=target,
                score=hit.score,
                label=classify_similarity(hit.score, cross_language=cross_language, language=source_language),
                record_id=hit.id
            ))

        logger.log_translation_memory(query, source_language, target_language, len(hits), len(candidates))
        return candidates
