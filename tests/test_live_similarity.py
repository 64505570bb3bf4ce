"""
End-to-end similarity checks against a real Ollama embedding model.
Set RUN_LIVE_EMBEDDING_TESTS=true (and OLLAMA_URL) to run them.
"""

import asyncio
import os

import pytest

from transmem.vector.embeddings import OllamaEmbedding, cosine_similarity
from transmem.vector.thresholds import SAME_LANGUAGE, unrelated_floor

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_LIVE_EMBEDDING_TESTS", "false").lower() != "true",
    reason="live embedding tests disabled"
)

SOURCE = "机器学习是人工智能的一个分支，它使用数据和算法来模仿人类学习的方式。"
PARAPHRASE = "人工智能的一个分支是机器学习，它通过数据和算法来模拟人类的学习过程。"
UNRELATED = "今天天气真好，我想去公园散步。"


def embed_all(*texts):
    async def _run():
        embedder = OllamaEmbedding(
            base_url=os.getenv("OLLAMA_URL", "http://localhost:11434"),
            model_name=os.getenv("EMBED_MODEL_NAME", "nomic-embed-text")
        )
        try:
            return [await embedder.generate_embedding(text) for text in texts]
        finally:
            await embedder.aclose()

    return asyncio.run(_run())


def test_near_duplicates_clear_medium_threshold():
    source, paraphrase = embed_all(SOURCE, PARAPHRASE)
    assert cosine_similarity(source, paraphrase) > SAME_LANGUAGE["medium"]


def test_unrelated_sentence_falls_below_chinese_floor():
    source, unrelated = embed_all(SOURCE, UNRELATED)
    assert cosine_similarity(source, unrelated) < unrelated_floor("Chinese")
