"""Six-dimension weighted Jaccard similarity."""

from datetime import date
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..config import SimilarityWeights
from ..models import ArticleData, EntityType
from .scorers import BaseScorer, CveScorer, EntityScorer, TextScorer


class Dimension(str, Enum):
    """Similarity dimensions, keyed like ``SimilarityWeights.as_dict()``."""

    CVE = "cve"
    TEXT = "text"
    THREAT_ACTOR = "threat_actor"
    MALWARE = "malware"
    PRODUCT = "product"
    COMPANY = "company"


class DimensionScore(BaseModel):
    """Score of one dimension with its weight."""

    dimension: Dimension
    score: float = Field(..., ge=0.0, le=1.0)
    weight: float = Field(..., ge=0.0, le=1.0)

    @property
    def weighted(self) -> float:
        return self.score * self.weight


class SimilarityResult(BaseModel):
    """Similarity of a target article to one candidate."""

    target_id: str = Field(..., description="Article being evaluated")
    candidate_id: str = Field(..., description="Earlier article compared against")
    candidate_pub_date: Optional[date] = Field(None, description="Candidate publication date")
    candidate_slug: Optional[str] = Field(None, description="Candidate slug")
    total: float = Field(..., description="Weighted total", ge=0.0, le=1.0)
    dimensions: List[DimensionScore] = Field(default_factory=list)

    def get(self, dimension: Dimension) -> float:
        for item in self.dimensions:
            if item.dimension == dimension:
                return item.score
        return 0.0

    def breakdown(self) -> Dict[str, float]:
        """Raw per-dimension scores keyed by dimension name."""
        return {item.dimension.value: item.score for item in self.dimensions}


class SimilarityScorer:
    """Combine the per-dimension scorers into one weighted score."""

    def __init__(self, weights: Optional[SimilarityWeights] = None) -> None:
        """
        Initialize similarity scorer.

        Args:
            weights: Dimension weights (validated to sum to 1.0)
        """
        self.weights = weights or SimilarityWeights()
        self.text_scorer = TextScorer()
        self.scorers: Dict[Dimension, BaseScorer] = {
            Dimension.CVE: CveScorer(),
            Dimension.TEXT: self.text_scorer,
            Dimension.THREAT_ACTOR: EntityScorer(EntityType.THREAT_ACTOR),
            Dimension.MALWARE: EntityScorer(EntityType.MALWARE),
            Dimension.PRODUCT: EntityScorer(EntityType.PRODUCT),
            Dimension.COMPANY: EntityScorer(EntityType.COMPANY),
        }

    def weighted_total(self, scores: Dict[Dimension, float]) -> float:
        """Weighted sum of dimension scores, clamped to [0, 1]."""
        weights = self.weights.as_dict()
        total = sum(score * weights[dimension.value] for dimension, score in scores.items())
        return max(0.0, min(1.0, total))

    def score(self, target: ArticleData, candidate: ArticleData) -> SimilarityResult:
        """Score one candidate against the target across all dimensions."""
        weights = self.weights.as_dict()
        scores = {
            dimension: scorer.score(target, candidate)
            for dimension, scorer in self.scorers.items()
        }

        return SimilarityResult(
            target_id=target.article_id,
            candidate_id=candidate.article_id,
            candidate_pub_date=candidate.pub_date,
            candidate_slug=candidate.slug,
            total=self.weighted_total(scores),
            dimensions=[
                DimensionScore(dimension=dimension, score=score, weight=weights[dimension.value])
                for dimension, score in scores.items()
            ],
        )

    def reset(self) -> None:
        """Drop cached text fingerprints."""
        self.text_scorer.clear()
