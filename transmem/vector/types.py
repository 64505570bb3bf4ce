"""
Vector memory overlay types - non-canonical, advisory layer over the
canonical translation entry table.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


@dataclass
class VectorRecord:
    """Represents a stored translation entry with its named vectors."""

    id: Optional[str]
    """Unique identifier for the vector record (assigned on upsert when None)"""

    vectors: Dict[str, List[float]]
    """Named vector fields, e.g. {"vector_cn": [...], "vector_en": [...]}"""

    payload: Dict[str, str] = field(default_factory=dict)
    """Language name -> translated text"""


@dataclass
class QueryResult:
    """Represents a search result from vector store."""

    id: str
    """Identifier for the matching record"""

    score: float
    """Cosine similarity of the match"""

    payload: Dict[str, object] = field(default_factory=dict)
    """Payload of the matched record (empty when not requested)"""


@dataclass
class CollectionSchema:
    """Expected shape of a vector collection."""

    name: str
    fields: Dict[str, int]
    """Named vector field -> dimension"""

    distance: str = "Cosine"


class SimilarityLabel(str, Enum):
    """How strongly a candidate matches the query."""

    STRONG = "strong"
    RELATED = "related"
    BROAD = "broad"
    UNRELATED = "unrelated"


@dataclass
class TranslationMemoryCandidate:
    """A prior (source, target) pair offered as context for a new translation."""

    source: str
    target: str
    score: float
    label: SimilarityLabel
    record_id: Optional[str] = None

    def as_tm_pair(self) -> Dict[str, str]:
        """Shape expected by the translation API's tm_list."""
        return {"source": self.source, "target": self.target}


def detect_schema_drift(expected: CollectionSchema, live_fields: Dict[str, int]) -> Optional[str]:
    """
    Compare the expected named vector fields with the live collection.

    Returns:
        None when the schemas match, otherwise a human readable reason
    """
    if set(expected.fields) != set(live_fields):
        return (
            f"named vector fields differ: expected {sorted(expected.fields)}, "
            f"found {sorted(live_fields)}"
        )

    for name, size in expected.fields.items():
        if live_fields[name] != size:
            return f"dimension of '{name}' changed: expected {size}, found {live_fields[name]}"

    return None
