"""
Batch translation orchestrator against a mocked chat completions endpoint.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from transmem.core.errors import InvalidInputError
from transmem.translate.batch import BatchTranslator, TranslationBatch, TranslationTask
from transmem.vector.types import SimilarityLabel, TranslationMemoryCandidate

ENDPOINT = "https://translate.example/v1/chat/completions"


class FakeTranslationAPI:
    def __init__(self, reply="Hello\nWorld", status=200):
        self.reply = reply
        self.status = status
        self.requests = []

    def handler(self, request):
        self.requests.append(request)
        if self.status != 200:
            return httpx.Response(self.status, text="quota exceeded")
        return httpx.Response(200, json={"choices": [{"message": {"content": self.reply}}]})

    def client(self):
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def body(self, index=0):
        return json.loads(self.requests[index].content)


def make_batch(batch_id=1, texts=("你好", "世界"), target="English"):
    return TranslationBatch(batch_id=batch_id, tasks=[
        TranslationTask(row_index=i, text=text, target_language=target) for i, text in enumerate(texts)
    ])


def make_translator(api, retriever=None):
    return BatchTranslator("sk-test", retriever=retriever, endpoint=ENDPOINT, model="qwen-mt-turbo",
                           client=api.client())


def candidate(source, target, score=0.95):
    return TranslationMemoryCandidate(source=source, target=target, score=score, label=SimilarityLabel.STRONG)


def test_missing_api_key_is_rejected():
    with pytest.raises(InvalidInputError):
        BatchTranslator("  ")


def test_translate_batch_assigns_lines_in_order():
    api = FakeTranslationAPI()
    translator = make_translator(api)
    batch = make_batch()

    assert asyncio.run(translator.translate_batch(batch, "Chinese")) is True
    assert batch.success is True
    assert [task.translation for task in batch.tasks] == ["Hello", "World"]

    body = api.body()
    assert body["model"] == "qwen-mt-turbo"
    assert body["messages"] == [{"role": "user", "content": "你好\n世界"}]
    assert body["translation_options"] == {"source_lang": "Chinese", "target_lang": "English"}
    assert api.requests[0].headers["Authorization"] == "Bearer sk-test"


def test_translation_memory_is_sent_as_tm_list():
    api = FakeTranslationAPI()
    retriever = MagicMock()
    retriever.get_translation_memory = AsyncMock(side_effect=[
        [candidate("你好啊", "Hello there"), candidate("世界和平", "World peace")],
        [candidate("你好啊", "Hello there")],
    ])
    translator = make_translator(api, retriever)

    asyncio.run(translator.translate_batch(make_batch(), "Chinese"))

    assert api.body()["translation_options"]["tm_list"] == [
        {"source": "你好啊", "target": "Hello there"},
        {"source": "世界和平", "target": "World peace"},
    ]
    assert retriever.get_translation_memory.await_count == 2


def test_no_memory_means_no_tm_list():
    api = FakeTranslationAPI()
    retriever = MagicMock()
    retriever.get_translation_memory = AsyncMock(return_value=[])
    translator = make_translator(api, retriever)

    asyncio.run(translator.translate_batch(make_batch(), "Chinese"))
    assert "tm_list" not in api.body()["translation_options"]


def test_blank_tasks_are_skipped():
    api = FakeTranslationAPI(reply="World")
    translator = make_translator(api)
    batch = make_batch(texts=("  ", "世界"))
    batch.tasks.append(TranslationTask(row_index=5, text=None, target_language="English"))

    assert asyncio.run(translator.translate_batch(batch, "Chinese")) is True
    assert api.body()["messages"][0]["content"] == "世界"
    assert batch.tasks[1].translation == "World"
    assert batch.tasks[0].translation is None


def test_all_blank_batch_makes_no_request():
    api = FakeTranslationAPI()
    translator = make_translator(api)

    assert asyncio.run(translator.translate_batch(make_batch(texts=("", " ")), "Chinese")) is False
    assert api.requests == []


def test_short_reply_leaves_missing_tasks_untranslated():
    api = FakeTranslationAPI(reply="Hello")
    translator = make_translator(api)
    batch = make_batch()

    assert asyncio.run(translator.translate_batch(batch, "Chinese")) is True
    assert batch.tasks[0].translation == "Hello"
    assert batch.tasks[1].translation is None
    assert batch.completed == 1


@pytest.mark.parametrize("api", [FakeTranslationAPI(status=429), FakeTranslationAPI(reply="   ")])
def test_api_failure_marks_batch_failed(api):
    translator = make_translator(api)
    batch = make_batch()

    assert asyncio.run(translator.translate_batch(batch, "Chinese")) is False
    assert batch.success is False


def test_stop_flag_is_checked_between_batches():
    api = FakeTranslationAPI()
    translator = make_translator(api)
    batches = [make_batch(1), make_batch(2), make_batch(3)]

    def on_batch_done(batch):
        if batch.batch_id == 1:
            translator.stop()

    done = asyncio.run(translator.process_batches(batches, "Chinese", on_batch_done=on_batch_done))

    assert done == 1
    assert len(api.requests) == 1
    assert batches[1].success is False

    translator.reset_stop()
    assert asyncio.run(translator.process_batches(batches[1:], "Chinese")) == 2


def test_progress_is_reported_before_and_after_each_batch():
    api = FakeTranslationAPI()
    translator = make_translator(api)
    progress = []

    asyncio.run(translator.process_batches([make_batch(1), make_batch(2)], "Chinese", on_progress=progress.append))

    assert [(p.completed_batches, p.current_batch_id) for p in progress] == [(0, 1), (1, 0), (1, 2), (2, 0)]
    assert all(p.total_batches == 2 for p in progress)
