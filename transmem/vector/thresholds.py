"""
Similarity threshold policy for cosine scores.

Cross-language cosine scores run much lower than same-language ones for the
same meaning, so each family has its own tiers. Chinese text scores high even
between unrelated sentences and gets a stricter unrelated floor.
"""

from typing import Any, Dict

from ..core.errors import InvalidInputError
from .types import SimilarityLabel

SAME_LANGUAGE = {"high": 0.90, "medium": 0.80, "low": 0.70}
CROSS_LANGUAGE = {"high": 0.45, "medium": 0.40, "low": 0.35}

# Score a same-language pair must exceed before it can be related at all
LANGUAGE_UNRELATED_FLOOR = {"Chinese": 0.65, "English": 0.40}
DEFAULT_FLOOR_LANGUAGE = "English"

USE_CASES = {"translation": 0.85, "recommendation": 0.75, "search": 0.60}
BASELINE = 0.70


class SimilarityThresholds:
    """Read-only view of the threshold table."""

    SAME_LANGUAGE = SAME_LANGUAGE
    CROSS_LANGUAGE = CROSS_LANGUAGE
    LANGUAGE_UNRELATED_FLOOR = LANGUAGE_UNRELATED_FLOOR
    USE_CASES = USE_CASES
    BASELINE = BASELINE

    @staticmethod
    def as_dict() -> Dict[str, Any]:
        return {
            "same_language": dict(SAME_LANGUAGE),
            "cross_language": dict(CROSS_LANGUAGE),
            "language_unrelated_floor": dict(LANGUAGE_UNRELATED_FLOOR),
            "use_cases": dict(USE_CASES),
            "baseline": BASELINE
        }


def recommended_threshold(cross_language: bool = False, similarity_level: str = "medium",
                          use_case: str = "search") -> float:
    """
    Cutoff score for a search.

    The level picks a tier from the same- or cross-language family (unknown
    levels use the baseline). A translation use case then raises the cutoff to
    at least its own value; recommendation and search cap it at theirs.

    Examples:
        recommended_threshold(similarity_level="high", use_case="translation") -> 0.90
        recommended_threshold(cross_language=True, use_case="translation") -> 0.85
    """
    family = CROSS_LANGUAGE if cross_language else SAME_LANGUAGE
    threshold = family.get((similarity_level or "").lower(), BASELINE)

    use_case = (use_case or "").lower()
    if use_case == "translation":
        threshold = max(threshold, USE_CASES["translation"])
    elif use_case in ("recommendation", "search"):
        threshold = min(threshold, USE_CASES[use_case])

    return threshold


def unrelated_floor(language: str) -> float:
    """Unrelated floor for a language; languages without one use English's."""
    return LANGUAGE_UNRELATED_FLOOR.get(language, LANGUAGE_UNRELATED_FLOOR[DEFAULT_FLOOR_LANGUAGE])


def classify_similarity(score: float, cross_language: bool = False, language: str = "Chinese") -> SimilarityLabel:
    """Label a cosine score. Cross-language pairs never rate STRONG."""
    if not isinstance(score, (int, float)) or isinstance(score, bool):
        raise InvalidInputError(f"score must be a number: {score!r}")

    if cross_language:
        if score >= CROSS_LANGUAGE["medium"]:
            return SimilarityLabel.RELATED
        if score >= CROSS_LANGUAGE["low"]:
            return SimilarityLabel.BROAD
        return SimilarityLabel.UNRELATED

    if score >= SAME_LANGUAGE["high"]:
        return SimilarityLabel.STRONG
    if score >= SAME_LANGUAGE["medium"]:
        return SimilarityLabel.RELATED
    if score >= unrelated_floor(language):
        return SimilarityLabel.BROAD
    return SimilarityLabel.UNRELATED
