"""Duplicate checker: candidate filter, similarity scorer and classifier."""

from datetime import date
from typing import List, Optional

from psycopg import Connection
from pydantic import BaseModel, Field
from rich.console import Console

from ..config import DetectionConfig, SimilarityWeights
from ..db import ArticleIndexRepository, Database
from ..models import ArticleData, Selection, SelectionMode
from ..scoring import Classification, SimilarityResult, SimilarityScorer, classify
from .candidates import CandidateFilter

console = Console()


class ScoredCandidate(BaseModel):
    """A candidate article with its similarity and band."""

    candidate: ArticleData
    similarity: SimilarityResult
    classification: Classification

    @property
    def score(self) -> float:
        return self.similarity.total


class CheckResult(BaseModel):
    """Duplicate check of one target article."""

    target_id: str
    target_pub_date: date
    target_slug: str
    short_circuit: bool = Field(False, description="No candidates; scoring was not run")
    candidates: List[ScoredCandidate] = Field(default_factory=list, description="Sorted by score, highest first")

    @property
    def best(self) -> Optional[ScoredCandidate]:
        return self.candidates[0] if self.candidates else None

    @property
    def best_score(self) -> float:
        return self.best.score if self.best else 0.0

    def with_classification(self, classification: Classification) -> List[ScoredCandidate]:
        return [c for c in self.candidates if c.classification == classification]

    @property
    def overall(self) -> Classification:
        """Band of the whole check: UPDATE wins over BORDERLINE over NEW."""
        if self.with_classification(Classification.UPDATE):
            return Classification.UPDATE
        if self.with_classification(Classification.BORDERLINE):
            return Classification.BORDERLINE
        return Classification.NEW


class DuplicateChecker:
    """Score a target article against its candidates and classify each one."""

    def __init__(
        self,
        db: Database,
        weights: Optional[SimilarityWeights] = None,
        detection: Optional[DetectionConfig] = None,
        index_repo: Optional[ArticleIndexRepository] = None,
        candidate_filter: Optional[CandidateFilter] = None,
    ) -> None:
        """
        Initialize duplicate checker.

        Args:
            db: Store handle
            weights: Similarity weights
            detection: Thresholds and lookback window
            index_repo: Index repository (shared with the candidate filter)
            candidate_filter: Candidate filter override
        """
        self.db = db
        self.detection = detection or DetectionConfig()
        self.index_repo = index_repo or ArticleIndexRepository()
        self.candidate_filter = candidate_filter or CandidateFilter(self.index_repo)
        self.scorer = SimilarityScorer(weights)

    def check_article(self, conn: Connection, target: ArticleData) -> CheckResult:
        """Run the duplicate check for one indexed article."""
        result = CheckResult(
            target_id=target.article_id,
            target_pub_date=target.pub_date,
            target_slug=target.slug,
        )

        candidates = self.candidate_filter.find(conn, target, self.detection.lookback_days)
        if not candidates:
            result.short_circuit = True
            return result

        scored = []
        for candidate in candidates:
            similarity = self.scorer.score(target, candidate)
            scored.append(
                ScoredCandidate(
                    candidate=candidate,
                    similarity=similarity,
                    classification=classify(
                        similarity.total,
                        threshold=self.detection.threshold,
                        borderline_floor=self.detection.borderline_floor,
                    ),
                )
            )
        self.scorer.reset()

        scored.sort(key=lambda c: (-c.score, c.candidate.article_id))
        result.candidates = scored
        return result

    def list_targets(self, conn: Connection, selection: Selection) -> List[str]:
        """Resolve a selection to indexed article ids."""
        if selection.mode == SelectionMode.ARTICLE:
            if self.index_repo.is_indexed(conn, selection.article_id):
                return [selection.article_id]
            return []
        start, end = selection.date_bounds
        return self.index_repo.list_article_ids(conn, start, end)

    def check(self, selection: Selection) -> List[CheckResult]:
        """Run duplicate checks for every selected article (read-only)."""
        results: List[CheckResult] = []
        with self.db.connection() as conn:
            article_ids = self.list_targets(conn, selection)
            if not article_ids:
                console.print(f"[yellow]No indexed articles found for {selection.describe()}[/yellow]")
                return results

            for target in self.index_repo.get_articles(conn, article_ids):
                results.append(self.check_article(conn, target))
        return results
