"""
Batch translation against an OpenAI-compatible chat endpoint with
translation_options (qwen-mt style).

Each batch shares one target language. Its texts go out as one message, one
text per line, together with any translation memory the retriever finds for
them; the reply is split back into lines in the same order.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import httpx

from ..core.config import TRANSLATION_API_URL, TRANSLATION_MODEL, TRANSLATION_TIMEOUT_SEC, TM_MAX_RESULTS
from ..core.errors import InvalidInputError, TranslationServiceError
from util.logging import logger, sanitize_payload

# Upper bound on tm_list pairs sent with one batch
MAX_TM_PAIRS = 10


@dataclass
class TranslationTask:
    """One cell to translate."""

    row_index: int
    text: Optional[str]
    target_language: str
    translation: Optional[str] = None


@dataclass
class TranslationBatch:
    """Tasks translated in a single API call. All share one target language."""

    batch_id: int
    tasks: List[TranslationTask] = field(default_factory=list)
    success: bool = False
    completed: int = 0


@dataclass
class BatchProgress:
    completed_batches: int
    total_batches: int
    current_batch_id: int
    completed_tasks_in_current_batch: int
    total_tasks_in_current_batch: int


class BatchTranslator:
    """Sends batches to the translation API, one at a time."""

    def __init__(self, api_key: str, retriever=None, endpoint: str = TRANSLATION_API_URL,
                 model: str = TRANSLATION_MODEL, tm_max_results: int = TM_MAX_RESULTS,
                 timeout: float = TRANSLATION_TIMEOUT_SEC, client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            api_key: Bearer token for the translation API
            retriever: Optional TranslationMemoryRetriever; without one no tm_list is sent
            endpoint: Chat completions URL
            model: Translation model name
            tm_max_results: Memory hits requested per task
            timeout: Request timeout in seconds
            client: Optional preconfigured client (tests inject a mock transport)
        """
        if not isinstance(api_key, str) or not api_key.strip():
            raise InvalidInputError("translation API key is not set")

        self.api_key = api_key.strip()
        self.retriever = retriever
        self.endpoint = endpoint
        self.model = model
        self.tm_max_results = tm_max_results
        self.should_stop = False
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def stop(self) -> None:
        """Stop before the next batch. The batch in flight completes."""
        self.should_stop = True

    def reset_stop(self) -> None:
        self.should_stop = False

    async def collect_translation_memory(self, texts: List[str], source_language: str,
                                         target_language: str) -> List[Dict[str, str]]:
        """tm_list pairs for a batch, deduplicated by source and capped."""
        if self.retriever is None:
            return []

        results = await asyncio.gather(*[
            self.retriever.get_translation_memory(text, source_language, target_language,
                                                  max_results=self.tm_max_results)
            for text in texts
        ])

        pairs = []
        seen = set()
        for candidates in results:
            for candidate in candidates:
                if candidate.source in seen:
                    continue
                seen.add(candidate.source)
                pairs.append(candidate.as_tm_pair())
        return pairs[:MAX_TM_PAIRS]

    async def _request_translation(self, texts: List[str], source_language: str, target_language: str,
                                   tm_list: List[Dict[str, str]]) -> str:
        translation_options = {"source_lang": source_language, "target_lang": target_language}
        if tm_list:
            translation_options["tm_list"] = tm_list

        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": "\n".join(texts)}],
            "translation_options": translation_options
        }

        try:
            response = await self._client.post(self.endpoint, json=body, headers={
                "Authorization": f"Bearer {self.api_key}",
                "Accept": "application/json"
            })
        except httpx.HTTPError as e:
            raise TranslationServiceError(f"translation request failed: {type(e).__name__}: {e}") from e

        if not response.is_success:
            raise TranslationServiceError(
                f"translation API returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.debug(f"Unexpected translation reply: {sanitize_payload(response.text)}")
            raise TranslationServiceError("translation reply has no message content") from e

        if not isinstance(content, str) or not content.strip():
            raise TranslationServiceError("translation reply is empty")
        return content

    async def translate_batch(self, batch: TranslationBatch, source_language: str) -> bool:
        """
        Translate every non-blank task of a batch in one request.

        Returns:
            True when the reply was received and assigned; the batch's
            `success` flag is set to match.
        """
        valid_tasks = [
            task for task in batch.tasks
            if task.text is not None and str(task.text).strip()
        ]
        if not valid_tasks:
            logger.log_translation_batch(batch.batch_id, source_language, "", 0, status="skipped",
                                         details={"reason": "no translatable text"})
            batch.success = False
            return False

        if self.should_stop:
            logger.log_translation_batch(batch.batch_id, source_language, valid_tasks[0].target_language,
                                         len(valid_tasks), status="stopped")
            batch.success = False
            return False

        target_language = valid_tasks[0].target_language
        texts = [str(task.text).strip() for task in valid_tasks]
        logger.log_translation_batch(batch.batch_id, source_language, target_language, len(texts))

        try:
            tm_list = await self.collect_translation_memory(texts, source_language, target_language)
            content = await self._request_translation(texts, source_language, target_language, tm_list)
        except TranslationServiceError as e:
            logger.log_translation_batch(batch.batch_id, source_language, target_language, len(texts),
                                         status="failed", details={"error": str(e)})
            batch.success = False
            return False

        lines = content.strip().split("\n")
        for task, line in zip(valid_tasks, lines):
            task.translation = line.strip()

        details = {"tm_pairs": len(tm_list), "lines": len(lines)}
        if len(lines) < len(valid_tasks):
            details["missing"] = len(valid_tasks) - len(lines)
            logger.warning(f"Batch {batch.batch_id}: {details['missing']} task(s) received no translation")

        batch.completed = min(len(lines), len(valid_tasks))
        batch.success = True
        logger.log_translation_batch(batch.batch_id, source_language, target_language, len(texts),
                                     status="success", details=details)
        return True

    async def process_batches(self, batches: List[TranslationBatch], source_language: str,
                              on_progress: Optional[Callable[[BatchProgress], None]] = None,
                              on_batch_done: Optional[Callable[[TranslationBatch], None]] = None) -> int:
        """
        Translate batches in order, checking the stop flag between them.

        Returns:
            Number of batches processed
        """
        total = len(batches)
        completed = 0

        for index, batch in enumerate(batches, start=1):
            if self.should_stop:
                logger.info(f"Translation stopped after {completed}/{total} batches")
                break

            if on_progress:
                on_progress(BatchProgress(completed, total, index, 0, len(batch.tasks)))

            success = await self.translate_batch(batch, source_language)
            completed += 1

            if on_progress:
                on_progress(BatchProgress(completed, total, 0, len(batch.tasks), len(batch.tasks)))
            if success and on_batch_done:
                on_batch_done(batch)

        logger.log_operation("translation.process_batches",
                             "success" if completed == total else "partial",
                             {"completed": completed, "total": total})
        return completed

    async def aclose(self) -> None:
        await self._client.aclose()
