"""
Environment-driven configuration for the translation-memory service.
Vector features are an optional overlay on the canonical entry table and
default to disabled.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/translate_kb.db")

# Debug flag
DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Vector system configuration (default disabled)
VECTOR_ENABLED = os.getenv("VECTOR_ENABLED", "false").lower() == "true"
VECTOR_PROVIDER = os.getenv("VECTOR_PROVIDER", "qdrant")  # qdrant|memory
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "ollama")  # ollama|sentence-transformers|hash

# Remote services
OLLAMA_URL = os.getenv("OLLAMA_URL", "http://localhost:11434")
QDRANT_URL = os.getenv("QDRANT_URL", "http://localhost:6333")
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "nomic-embed-text")
EMBED_DIM = int(os.getenv("EMBED_DIM", "768"))
EMBED_TIMEOUT_SEC = float(os.getenv("EMBED_TIMEOUT_SEC", "30"))
VECTOR_COLLECTION = os.getenv("VECTOR_COLLECTION", "translation_embeddings")
VECTOR_TIMEOUT_SEC = float(os.getenv("VECTOR_TIMEOUT_SEC", "10"))

# Collection initialisation retry policy
VECTOR_INIT_MAX_RETRIES = int(os.getenv("VECTOR_INIT_MAX_RETRIES", "2"))
VECTOR_INIT_RETRY_DELAY_SEC = float(os.getenv("VECTOR_INIT_RETRY_DELAY_SEC", "1.0"))
VECTOR_INIT_BACKOFF_MULTIPLIER = float(os.getenv("VECTOR_INIT_BACKOFF_MULTIPLIER", "2.0"))

# Languages. Payload keys use these exact names.
PRIMARY_LANGUAGE = os.getenv("PRIMARY_LANGUAGE", "Chinese")
SUPPORTED_LANGUAGES = [
    "Chinese", "English", "Japanese", "Korean", "Spanish", "French", "German",
    "Russian", "Thai", "Italian", "Indonesian", "Portuguese", "Vietnamese"
]
LANGUAGE_CODES = {
    "zh": "Chinese",
    "en": "English",
    "ja": "Japanese",
    "ko": "Korean",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "ru": "Russian",
    "th": "Thai",
    "it": "Italian",
    "id": "Indonesian",
    "pt": "Portuguese",
    "vi": "Vietnamese"
}

# Named vector fields, one per source-language family
PRIMARY_VECTOR_FIELD = "vector_cn"
SECONDARY_VECTOR_FIELD = "vector_en"
SECONDARY_LANGUAGE = "English"

# Translation API (OpenAI-compatible chat endpoint with translation_options)
TRANSLATION_API_URL = os.getenv(
    "TRANSLATION_API_URL",
    "https://dashscope.aliyuncs.com/compatible-mode/v1/chat/completions"
)
TRANSLATION_API_KEY = os.getenv("TRANSLATION_API_KEY") or os.getenv("DEEPSEEK_API_KEY", "")
TRANSLATION_MODEL = os.getenv("TRANSLATION_MODEL", "qwen-mt-turbo")
TRANSLATION_TIMEOUT_SEC = float(os.getenv("TRANSLATION_TIMEOUT_SEC", "120"))
TM_MAX_RESULTS = int(os.getenv("TM_MAX_RESULTS", "3"))

# Version string
VERSION = "1.0.0"


def are_vector_features_enabled():
    """Check if vector features are enabled."""
    return os.getenv("VECTOR_ENABLED", "false").lower() == "true"


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def normalize_language(name: str) -> str:
    """Map a short code or any-case language name onto its payload key."""
    if not name:
        return name
    value = name.strip()
    if value.lower() in LANGUAGE_CODES:
        return LANGUAGE_CODES[value.lower()]
    for language in SUPPORTED_LANGUAGES:
        if language.lower() == value.lower():
            return language
    return value


def get_collection_schema():
    """Collection descriptor the application currently expects."""
    from ..vector.types import CollectionSchema
    return CollectionSchema(
        name=VECTOR_COLLECTION,
        fields={PRIMARY_VECTOR_FIELD: EMBED_DIM, SECONDARY_VECTOR_FIELD: EMBED_DIM}
    )


def get_vector_store():
    """Get configured vector store implementation. Returns None if vector features disabled."""
    if not are_vector_features_enabled():
        return None

    if VECTOR_PROVIDER == "memory":
        from ..vector.index import InMemoryVectorStore
        return InMemoryVectorStore(get_collection_schema())

    from ..vector.qdrant_store import QdrantVectorStore
    return QdrantVectorStore(
        base_url=QDRANT_URL,
        schema=get_collection_schema(),
        timeout=VECTOR_TIMEOUT_SEC,
        max_retries=VECTOR_INIT_MAX_RETRIES,
        initial_delay=VECTOR_INIT_RETRY_DELAY_SEC,
        backoff_multiplier=VECTOR_INIT_BACKOFF_MULTIPLIER
    )


def get_embedding_provider():
    """Get configured embedding provider implementation. Returns None if vector features disabled."""
    if not are_vector_features_enabled():
        return None

    if EMBED_PROVIDER == "hash":
        from ..vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(dimension=EMBED_DIM)
    elif EMBED_PROVIDER == "sentence-transformers":
        from ..vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(EMBED_MODEL_NAME)

    from ..vector.embeddings import OllamaEmbedding
    return OllamaEmbedding(base_url=OLLAMA_URL, model_name=EMBED_MODEL_NAME, dimension=EMBED_DIM,
                           timeout=EMBED_TIMEOUT_SEC)


def validate_vector_config():
    """Validate vector configuration and return any issues."""
    issues = []

    if VECTOR_PROVIDER not in ["qdrant", "memory"]:
        issues.append(f"Invalid VECTOR_PROVIDER: {VECTOR_PROVIDER}")

    if EMBED_PROVIDER not in ["ollama", "sentence-transformers", "hash"]:
        issues.append(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")

    if EMBED_DIM < 1:
        issues.append("EMBED_DIM must be >= 1")

    if VECTOR_INIT_MAX_RETRIES < 0:
        issues.append("VECTOR_INIT_MAX_RETRIES must be >= 0")

    if PRIMARY_LANGUAGE not in SUPPORTED_LANGUAGES:
        issues.append(f"Unsupported PRIMARY_LANGUAGE: {PRIMARY_LANGUAGE}")

    return issues
