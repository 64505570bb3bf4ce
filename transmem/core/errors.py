"""
Error taxonomy for the translation-memory service.

Only InvalidInputError is meant to reach callers of the retrieval path.
Embedding and vector failures are caught by the retriever and turned into an
empty result, so translation never blocks on the optional vector layer.
"""


class TranslationMemoryError(Exception):
    """Base class for all service errors."""


class InvalidInputError(TranslationMemoryError, ValueError):
    """Caller passed empty text or an argument of the wrong shape."""


class EmbeddingServiceError(TranslationMemoryError):
    """Remote embedding call failed or returned malformed data."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class VectorServiceUnavailable(TranslationMemoryError):
    """Vector index is unreachable, or was marked unavailable at startup."""


class TranslationServiceError(TranslationMemoryError):
    """Remote translation API failed or returned an unusable reply."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class DuplicateEntryError(TranslationMemoryError):
    """An entry with the same primary-language text already exists."""


class EntryNotFoundError(TranslationMemoryError):
    """No entry has the given primary-language text."""
