"""Entity/CVE indexer: fingerprint upstream articles into the index."""

from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Union

import psycopg
from pydantic import BaseModel, Field, ValidationError
from rich.console import Console

from ..db import ArticleIndexRepository, Database, PublicationRepository
from ..models import (
    Article,
    ArticleIndexRecord,
    IndexedCVE,
    IndexedEntity,
    Outcome,
    OutcomeStatus,
    Publication,
    Selection,
    SelectionMode,
    normalize_entity_type,
)

console = Console()


class IndexReport(BaseModel):
    """Counters for one indexing batch."""

    publications: int = 0
    indexed: int = 0
    skipped: int = 0
    invalid: int = 0
    failed: int = 0
    cves: int = 0
    entities: int = 0
    aborted: bool = Field(False, description="A storage error stopped the batch")
    outcomes: List[Outcome] = Field(default_factory=list)

    def record(self, outcome: Outcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status == OutcomeStatus.DONE:
            self.indexed += 1
            self.cves += outcome.detail.get("cves", 0)
            self.entities += outcome.detail.get("entities", 0)
        elif outcome.status == OutcomeStatus.SKIPPED:
            self.skipped += 1
        elif outcome.status == OutcomeStatus.INVALID:
            self.invalid += 1
        elif outcome.status == OutcomeStatus.FAILED:
            self.failed += 1
            self.aborted = True


def build_index_rows(
    article: Article,
    pub_id: str,
    pub_date: date,
) -> Tuple[ArticleIndexRecord, List[IndexedCVE], List[IndexedEntity]]:
    """
    Turn an upstream article into index rows.

    Rows are filed under the publication date; an article-level date (the
    source story's own date) is ignored.

    CVEs are deduplicated by id (first occurrence wins). Entities are filtered
    through the type policy and deduplicated by (type, case-folded name).

    Args:
        article: Validated upstream article
        pub_id: Publication the article belongs to
        pub_date: Date of the publication that carries the article

    Returns:
        Tuple of (record, cves, entities)
    """
    record = ArticleIndexRecord(
        article_id=article.id,
        pub_id=pub_id,
        pub_date_only=pub_date,
        slug=article.slug,
        summary=article.summary,
        full_report=article.full_report,
    )

    cves: Dict[str, IndexedCVE] = {}
    for cve in article.cves:
        if cve.id in cves:
            continue
        cves[cve.id] = IndexedCVE(
            article_id=article.id,
            cve_id=cve.id,
            cvss_score=cve.cvss_score,
            severity=cve.severity,
            kev=cve.kev,
        )

    entities: Dict[Tuple[str, str], IndexedEntity] = {}
    for entity in article.entities:
        entity_type = normalize_entity_type(entity.type)
        if entity_type is None:
            continue
        key = (entity_type.value, entity.name.lower())
        if key in entities:
            continue
        entities[key] = IndexedEntity(
            article_id=article.id,
            entity_name=entity.name,
            entity_type=entity_type,
        )

    return record, list(cves.values()), list(entities.values())


class ArticleIndexer:
    """Populate articles_meta, article_cves and article_entities."""

    def __init__(
        self,
        db: Database,
        index_repo: Optional[ArticleIndexRepository] = None,
        publication_repo: Optional[PublicationRepository] = None,
    ) -> None:
        self.db = db
        self.index_repo = index_repo or ArticleIndexRepository()
        self.publication_repo = publication_repo or PublicationRepository()

    def index_article(
        self,
        article: Article,
        pub_id: str,
        pub_date: date,
        force: bool = False,
    ) -> Outcome:
        """
        Index one article in a single transaction.

        Already indexed articles are skipped unless ``force`` is set, in which
        case the existing rows are deleted and re-inserted.
        """
        record, cves, entities = build_index_rows(article, pub_id, pub_date)

        try:
            with self.db.transaction() as conn:
                if self.index_repo.is_indexed(conn, article.id):
                    if not force:
                        return Outcome.skipped(article.id, "already indexed")
                    self.index_repo.delete_article(conn, article.id)

                self.index_repo.insert_meta(conn, record)
                cve_count = self.index_repo.insert_cves(conn, cves)
                entity_count = self.index_repo.insert_entities(conn, entities)
        except psycopg.Error as e:
            console.print(f"[red]Storage error indexing article {article.id}: {e}[/red]")
            return Outcome.failed(article.id, str(e))

        return Outcome.done(article.id, cves=cve_count, entities=entity_count)

    def index_publication(self, publication: Publication, force: bool = False) -> List[Outcome]:
        """
        Index every article of a publication.

        Invalid article records are reported and skipped. The loop stops at the
        first storage failure.
        """
        outcomes: List[Outcome] = []
        for position, raw in enumerate(publication.articles):
            article = self._validate_article(raw, publication.pub_id, position)
            if isinstance(article, Outcome):
                outcomes.append(article)
                continue

            outcome = self.index_article(
                article,
                pub_id=publication.pub_id,
                pub_date=publication.pub_date_only,
                force=force,
            )
            outcomes.append(outcome)
            if outcome.fatal:
                break
        return outcomes

    def _validate_article(self, raw: Any, pub_id: str, position: int) -> Union[Article, Outcome]:
        try:
            return Article.model_validate(raw)
        except ValidationError as e:
            subject = str(raw["id"]) if isinstance(raw, dict) and raw.get("id") else None
            label = subject or f"{pub_id}[{position}]"
            console.print(
                f"[yellow]Warning: skipping invalid article {label}: "
                f"{e.error_count()} validation error(s)[/yellow]"
            )
            return Outcome.invalid(subject, f"invalid article record in {pub_id}: {e}")

    def index(self, selection: Selection, force: bool = False) -> IndexReport:
        """
        Index publications for all dates, one date or a date range.

        Raises:
            ValueError: If the selection targets a single article
        """
        if selection.mode == SelectionMode.ARTICLE:
            raise ValueError("Indexing works on publications; select a date, a range or all")

        start, end = selection.date_bounds
        with self.db.connection() as conn:
            publications = self.publication_repo.list_publications(conn, start, end)

        report = IndexReport()
        if not publications:
            console.print(f"[yellow]No publications found for {selection.describe()}[/yellow]")
            return report

        for publication in publications:
            report.publications += 1
            console.print(
                f"[dim]Indexing {publication.pub_date_only} "
                f"({len(publication.articles)} articles, {publication.pub_id})[/dim]"
            )
            for outcome in self.index_publication(publication, force=force):
                report.record(outcome)
            if report.aborted:
                console.print("[red]Indexing aborted after a storage error[/red]")
                break

        return report
