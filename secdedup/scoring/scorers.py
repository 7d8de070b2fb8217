"""Per-dimension similarity scorers."""

from abc import ABC, abstractmethod
from typing import Dict, Hashable, Iterable, Optional, Set

from ..models import ArticleData, EntityType


def jaccard(a: Iterable[Hashable], b: Iterable[Hashable]) -> float:
    """
    Jaccard similarity of two sets.

    Returns 0.0 when both sets are empty; two articles with no CVEs are not
    similar on the CVE dimension.
    """
    set_a, set_b = set(a), set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def trigrams(text: Optional[str]) -> Set[str]:
    """Set of 3-character substrings of the lower-cased, stripped text."""
    normalized = (text or "").lower().strip()
    return {normalized[i : i + 3] for i in range(len(normalized) - 2)}


def text_similarity(a: Optional[str], b: Optional[str]) -> float:
    """Trigram Jaccard similarity of two texts."""
    return jaccard(trigrams(a), trigrams(b))


class BaseScorer(ABC):
    """Base class for similarity dimensions."""

    @abstractmethod
    def score(self, target: ArticleData, candidate: ArticleData) -> float:
        """
        Score the similarity of two articles from 0.0 to 1.0.

        Args:
            target: Article being evaluated
            candidate: Earlier article from the lookback window

        Returns:
            Score between 0.0 and 1.0
        """
        pass


class CveScorer(BaseScorer):
    """Jaccard similarity of CVE id sets."""

    def score(self, target: ArticleData, candidate: ArticleData) -> float:
        return jaccard(target.cve_ids(), candidate.cve_ids())


class EntityScorer(BaseScorer):
    """Jaccard similarity of entity names of one type."""

    def __init__(self, entity_type: EntityType) -> None:
        self.entity_type = entity_type

    def score(self, target: ArticleData, candidate: ArticleData) -> float:
        return jaccard(
            target.entity_names(self.entity_type),
            candidate.entity_names(self.entity_type),
        )


class TextScorer(BaseScorer):
    """Trigram Jaccard similarity of the full report (summary fallback)."""

    def __init__(self) -> None:
        # Trigram sets per article id; the target is compared against many candidates
        self._cache: Dict[str, Set[str]] = {}

    def _trigrams_for(self, article: ArticleData) -> Set[str]:
        cached = self._cache.get(article.article_id)
        if cached is None:
            cached = trigrams(article.comparison_text)
            self._cache[article.article_id] = cached
        return cached

    def clear(self) -> None:
        self._cache.clear()

    def score(self, target: ArticleData, candidate: ArticleData) -> float:
        return jaccard(self._trigrams_for(target), self._trigrams_for(candidate))
