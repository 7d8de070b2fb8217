"""Similarity scoring and classification."""

from .classifier import Classification, classify
from .scorers import (
    BaseScorer,
    CveScorer,
    EntityScorer,
    TextScorer,
    jaccard,
    text_similarity,
    trigrams,
)
from .similarity import Dimension, DimensionScore, SimilarityResult, SimilarityScorer

__all__ = [
    "BaseScorer",
    "Classification",
    "CveScorer",
    "Dimension",
    "DimensionScore",
    "EntityScorer",
    "SimilarityResult",
    "SimilarityScorer",
    "TextScorer",
    "classify",
    "jaccard",
    "text_similarity",
    "trigrams",
]
