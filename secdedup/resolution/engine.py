"""Resolution engine: turn duplicate checks into persisted decisions."""

from typing import Dict, List, Optional, Tuple

import psycopg
from pydantic import BaseModel, Field
from rich.console import Console

from ..db import ArticleIndexRepository, Database, ResolutionStore
from ..detection import CheckResult, DuplicateChecker, ScoredCandidate
from ..models import (
    ArticleData,
    Confidence,
    Decision,
    Outcome,
    OutcomeStatus,
    Resolution,
    ResolutionMethod,
    Selection,
    SelectionMode,
)
from ..scoring import Classification
from .arbiter import ArbitrationError, ComparisonProvider, ComparisonVerdict

console = Console()


class ResolutionReport(BaseModel):
    """Counters for one resolution batch."""

    articles: int = 0
    resolved: int = 0
    already_resolved: int = 0
    pending: int = 0
    failed: int = 0
    deleted: int = 0
    decisions: Dict[str, int] = Field(default_factory=lambda: {d.value: 0 for d in Decision})
    methods: Dict[str, int] = Field(default_factory=lambda: {m.value: 0 for m in ResolutionMethod})
    aborted: bool = Field(False, description="A storage error stopped the batch")
    outcomes: List[Outcome] = Field(default_factory=list)

    def record(self, outcome: Outcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status == OutcomeStatus.DONE:
            self.resolved += 1
            for decision in outcome.detail.get("decisions", []):
                self.decisions[decision] = self.decisions.get(decision, 0) + 1
            for method in outcome.detail.get("methods", []):
                self.methods[method] = self.methods.get(method, 0) + 1
        elif outcome.status == OutcomeStatus.SKIPPED:
            self.already_resolved += 1
        elif outcome.status == OutcomeStatus.PENDING:
            self.pending += 1
        elif outcome.status == OutcomeStatus.FAILED:
            self.failed += 1
            self.aborted = True


class ResolutionEngine:
    """Decide NEW / UPDATE / SKIP for target articles and persist the decisions."""

    def __init__(
        self,
        db: Database,
        checker: DuplicateChecker,
        provider: ComparisonProvider,
        store: Optional[ResolutionStore] = None,
        index_repo: Optional[ArticleIndexRepository] = None,
    ) -> None:
        """
        Initialize resolution engine.

        Args:
            db: Store handle
            checker: Duplicate checker (candidate filter, scorer, classifier)
            provider: Comparison provider for BORDERLINE pairs
            store: Resolution store
            index_repo: Index repository
        """
        self.db = db
        self.checker = checker
        self.provider = provider
        self.store = store or ResolutionStore()
        self.index_repo = index_repo or checker.index_repo

    @property
    def detection(self):
        return self.checker.detection

    def _automatic(
        self,
        target: ArticleData,
        decision: Decision,
        score: float,
        reasoning: str,
        original: Optional[ScoredCandidate] = None,
    ) -> Resolution:
        original_id = original.candidate.article_id if original else None
        return Resolution(
            article_id=target.article_id,
            pub_date=target.pub_date,
            decision=decision,
            confidence=Confidence.HIGH,
            similarity_score=score,
            original_article_id=original_id,
            original_pub_date=original.candidate.pub_date if original else None,
            original_slug=original.candidate.slug if original else None,
            canonical_article_id=Resolution.canonical_for(decision, target.article_id, original_id),
            reasoning=reasoning,
            resolution_method=ResolutionMethod.AUTOMATIC,
        )

    def _from_verdict(
        self,
        target: ArticleData,
        scored: ScoredCandidate,
        verdict: ComparisonVerdict,
    ) -> Resolution:
        original_id = scored.candidate.article_id
        return Resolution(
            article_id=target.article_id,
            pub_date=target.pub_date,
            decision=verdict.decision,
            confidence=verdict.confidence,
            similarity_score=scored.score,
            original_article_id=original_id,
            original_pub_date=scored.candidate.pub_date,
            original_slug=scored.candidate.slug,
            canonical_article_id=Resolution.canonical_for(verdict.decision, target.article_id, original_id),
            reasoning=verdict.reasoning,
            new_information=verdict.new_information,
            overlap_summary=verdict.overlap_summary,
            resolution_method=ResolutionMethod.LLM,
        )

    def decide(self, target: ArticleData, check: CheckResult) -> Tuple[List[Resolution], List[str]]:
        """
        Turn a duplicate check into resolutions.

        Returns:
            Tuple of (resolutions, ids of candidates whose arbitration failed).
            When the second element is non-empty the resolutions must not be saved.
        """
        if check.short_circuit or not check.candidates:
            return [
                self._automatic(
                    target,
                    Decision.NEW,
                    0.0,
                    "No candidates found in lookback window",
                )
            ], []

        updates = check.with_classification(Classification.UPDATE)
        if updates:
            best = updates[0]
            return [
                self._automatic(
                    target,
                    Decision.UPDATE,
                    best.score,
                    f"Automatic UPDATE: similarity {best.score:.3f} "
                    f"at or above threshold {self.detection.threshold:.2f}",
                    original=best,
                )
            ], []

        borderline = check.with_classification(Classification.BORDERLINE)
        if not borderline:
            return [
                self._automatic(
                    target,
                    Decision.NEW,
                    check.best_score,
                    f"Highest similarity: {check.best_score:.3f} "
                    f"(below {self.detection.borderline_floor:.2f} threshold)",
                )
            ], []

        resolutions: List[Resolution] = []
        failures: List[str] = []
        for scored in borderline:
            try:
                verdict = self.provider.compare(target, scored.candidate, scored.score)
            except ArbitrationError as e:
                console.print(
                    f"[red]Arbitration failed for article {target.article_id} "
                    f"vs candidate {scored.candidate.article_id}: {e}[/red]"
                )
                failures.append(scored.candidate.article_id)
                continue
            resolutions.append(self._from_verdict(target, scored, verdict))

        return resolutions, failures

    def resolve_article(self, target: ArticleData) -> Outcome:
        """Check, decide and persist one article."""
        try:
            with self.db.connection() as conn:
                check = self.checker.check_article(conn, target)
        except psycopg.Error as e:
            console.print(f"[red]Storage error checking article {target.article_id}: {e}[/red]")
            return Outcome.failed(target.article_id, str(e))

        resolutions, failures = self.decide(target, check)
        if failures:
            return Outcome.pending(
                target.article_id,
                f"arbitration failed for {len(failures)} candidate(s): {', '.join(failures)}",
            )

        try:
            with self.db.transaction() as conn:
                for resolution in resolutions:
                    self.store.save(conn, resolution)
        except psycopg.Error as e:
            console.print(f"[red]Storage error saving resolutions for {target.article_id}: {e}[/red]")
            return Outcome.failed(target.article_id, str(e))

        return Outcome.done(
            target.article_id,
            decisions=[r.decision.value for r in resolutions],
            methods=[r.resolution_method.value for r in resolutions],
            best_score=check.best_score,
            candidates=len(check.candidates),
        )

    def _delete_existing(self, selection: Selection) -> int:
        with self.db.transaction() as conn:
            if selection.mode == SelectionMode.ARTICLE:
                return self.store.delete_by_article(conn, selection.article_id)
            return self.store.delete_by_date(conn, selection.day)

    def resolve(self, selection: Selection, force: bool = False) -> ResolutionReport:
        """
        Resolve every indexed article of a date, or a single article.

        Without ``force`` articles that already have resolutions are skipped.
        With ``force`` the existing resolutions are deleted first.

        Raises:
            ValueError: If the selection is not a date or an article
        """
        if selection.mode not in (SelectionMode.DATE, SelectionMode.ARTICLE):
            raise ValueError("Resolution works on one date or one article")

        report = ResolutionReport()

        try:
            if force:
                report.deleted = self._delete_existing(selection)
                console.print(f"[dim]Deleted {report.deleted} existing resolution(s)[/dim]")

            with self.db.connection() as conn:
                article_ids = self.checker.list_targets(conn, selection)
                targets = self.index_repo.get_articles(conn, article_ids)
                already = {
                    article_id for article_id in article_ids
                    if self.store.has_resolution(conn, article_id)
                }
        except psycopg.Error as e:
            console.print(f"[red]Storage error preparing {selection.describe()}: {e}[/red]")
            report.record(Outcome.failed(None, str(e)))
            return report

        if not targets:
            console.print(f"[yellow]No indexed articles found for {selection.describe()}[/yellow]")
            return report

        for target in targets:
            report.articles += 1
            if target.article_id in already:
                report.record(Outcome.skipped(target.article_id, "already resolved"))
                continue

            outcome = self.resolve_article(target)
            report.record(outcome)
            if outcome.fatal:
                console.print("[red]Resolution aborted after a storage error[/red]")
                break

        return report
