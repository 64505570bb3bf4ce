"""
Vector memory overlay - non-canonical, advisory layer over the canonical
translation entry table.
"""

# Package initialization for vector module
from .index import IVectorStore, InMemoryVectorStore
from .qdrant_store import QdrantVectorStore
from .types import (
    CollectionSchema,
    QueryResult,
    SimilarityLabel,
    TranslationMemoryCandidate,
    VectorRecord,
)
from .embeddings import (
    IEmbeddingProvider,
    OllamaEmbedding,
    DeterministicHashEmbedding,
    SentenceTransformerEmbedding,
    cosine_similarity,
)
from .thresholds import SimilarityThresholds, classify_similarity, recommended_threshold, unrelated_floor
from .service import VectorMemoryService
from .translation_memory import TranslationMemoryRetriever

__all__ = [
    'IVectorStore',
    'InMemoryVectorStore',
    'QdrantVectorStore',
    'CollectionSchema',
    'QueryResult',
    'SimilarityLabel',
    'TranslationMemoryCandidate',
    'VectorRecord',
    'IEmbeddingProvider',
    'OllamaEmbedding',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'cosine_similarity',
    'SimilarityThresholds',
    'classify_similarity',
    'recommended_threshold',
    'unrelated_floor',
    'VectorMemoryService',
    'TranslationMemoryRetriever'
]
