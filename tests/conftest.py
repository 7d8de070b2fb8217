"""Shared fixtures: in-memory stand-ins for the Postgres-backed repositories."""

from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import psycopg
import pytest

from secdedup.db import ArticleIndexRepository, PublicationRepository, ResolutionStore
from secdedup.models import (
    ArticleData,
    ArticleIndexRecord,
    EntityType,
    IndexedCVE,
    IndexedEntity,
    IndexStats,
    Publication,
    Resolution,
    ResolutionStats,
)


class FakeDatabase:
    """Store handle whose connections are opaque tokens."""

    def __init__(self) -> None:
        self.transactions = 0
        self.fail_transactions = False

    @contextmanager
    def connection(self):
        yield object()

    @contextmanager
    def transaction(self):
        if self.fail_transactions:
            raise psycopg.OperationalError("simulated storage failure")
        self.transactions += 1
        yield object()


class InMemoryIndexRepository(ArticleIndexRepository):
    """ArticleIndexRepository backed by dicts."""

    def __init__(self) -> None:
        self.metas: Dict[str, ArticleIndexRecord] = {}
        self.cves: Dict[str, List[IndexedCVE]] = {}
        self.entities: Dict[str, List[IndexedEntity]] = {}
        self.overlap_queries = 0

    def add(self, article: ArticleData) -> None:
        self.insert_meta(None, article.meta)
        self.insert_cves(None, article.cves)
        self.insert_entities(None, article.entities)

    def is_indexed(self, conn, article_id: str) -> bool:
        return article_id in self.metas

    def insert_meta(self, conn, record: ArticleIndexRecord) -> bool:
        if record.article_id in self.metas:
            return False
        self.metas[record.article_id] = record
        return True

    def insert_cves(self, conn, cves: List[IndexedCVE]) -> int:
        for cve in cves:
            rows = self.cves.setdefault(cve.article_id, [])
            if all(row.cve_id != cve.cve_id for row in rows):
                rows.append(cve)
        return len(cves)

    def insert_entities(self, conn, entities: List[IndexedEntity]) -> int:
        for entity in entities:
            rows = self.entities.setdefault(entity.article_id, [])
            key = (entity.entity_type, entity.entity_name)
            if all((row.entity_type, row.entity_name) != key for row in rows):
                rows.append(entity)
        return len(entities)

    def delete_article(self, conn, article_id: str) -> bool:
        self.cves.pop(article_id, None)
        self.entities.pop(article_id, None)
        return self.metas.pop(article_id, None) is not None

    def get_articles(self, conn, article_ids: Iterable[str]) -> List[ArticleData]:
        return [
            ArticleData(
                meta=self.metas[article_id],
                cves=list(self.cves.get(article_id, [])),
                entities=list(self.entities.get(article_id, [])),
            )
            for article_id in dict.fromkeys(article_ids)
            if article_id in self.metas
        ]

    def list_article_ids(self, conn, start: Optional[date] = None, end: Optional[date] = None) -> List[str]:
        return [
            record.article_id
            for record in sorted(self.metas.values(), key=lambda r: (r.pub_date_only, r.article_id))
            if (start is None or record.pub_date_only >= start)
            and (end is None or record.pub_date_only <= end)
        ]

    def find_overlapping_ids(self, conn, article_id, start, end, cve_ids, entity_names) -> List[str]:
        self.overlap_queries += 1
        cve_set = set(cve_ids)
        name_set = {name.lower() for name in entity_names}
        matches = []
        for record in self.metas.values():
            if record.article_id == article_id:
                continue
            if not (start <= record.pub_date_only < end):
                continue
            cves = {c.cve_id for c in self.cves.get(record.article_id, [])}
            names = {e.entity_name.lower() for e in self.entities.get(record.article_id, [])}
            if cves & cve_set or names & name_set:
                matches.append(record)
        matches.sort(key=lambda r: (r.pub_date_only, r.article_id), reverse=True)
        return [r.article_id for r in matches]

    def get_stats(self, conn) -> IndexStats:
        dates = [r.pub_date_only for r in self.metas.values()]
        return IndexStats(
            total_articles=len(self.metas),
            total_publications=len({r.pub_id for r in self.metas.values()}),
            oldest_date=min(dates) if dates else None,
            newest_date=max(dates) if dates else None,
        )


class InMemoryPublicationRepository(PublicationRepository):
    """PublicationRepository backed by a dict."""

    def __init__(self, publications: Sequence[Publication] = ()) -> None:
        self.publications: Dict[str, Publication] = {p.pub_id: p for p in publications}

    def save_publication(self, conn, publication: Publication) -> bool:
        created = publication.pub_id not in self.publications
        self.publications[publication.pub_id] = publication
        return created

    def list_publications(self, conn, start=None, end=None) -> List[Publication]:
        return [
            p
            for p in sorted(self.publications.values(), key=lambda p: p.pub_date)
            if (start is None or p.pub_date_only >= start) and (end is None or p.pub_date_only <= end)
        ]


class InMemoryResolutionStore(ResolutionStore):
    """ResolutionStore backed by a list."""

    def __init__(self) -> None:
        self.rows: List[Resolution] = []

    def save(self, conn, resolution: Resolution) -> bool:
        key = (resolution.article_id, resolution.original_article_id or "")
        if any((r.article_id, r.original_article_id or "") == key for r in self.rows):
            return False
        resolution.id = len(self.rows) + 1
        self.rows.append(resolution)
        return True

    def get_by_article(self, conn, article_id: str) -> List[Resolution]:
        return [r for r in self.rows if r.article_id == article_id]

    def get_by_date(self, conn, pub_date: date) -> List[Resolution]:
        return [r for r in self.rows if r.pub_date == pub_date]

    def get_updates_for(self, conn, original_article_id: str) -> List[Resolution]:
        return sorted(
            (r for r in self.rows if r.original_article_id == original_article_id and r.decision.value == "UPDATE"),
            key=lambda r: r.pub_date,
            reverse=True,
        )

    def has_resolution(self, conn, article_id: str) -> bool:
        return any(r.article_id == article_id for r in self.rows)

    def delete_by_date(self, conn, pub_date: date) -> int:
        before = len(self.rows)
        self.rows = [r for r in self.rows if r.pub_date != pub_date]
        return before - len(self.rows)

    def delete_by_article(self, conn, article_id: str) -> int:
        before = len(self.rows)
        self.rows = [r for r in self.rows if r.article_id != article_id]
        return before - len(self.rows)

    def get_stats(self, conn, start=None, end=None) -> ResolutionStats:
        return ResolutionStats(total=len(self.rows))


def make_article(
    article_id: str,
    pub_date: date,
    cves: Sequence[str] = (),
    entities: Sequence[Tuple[str, EntityType]] = (),
    text: Optional[str] = None,
    summary: str = "summary",
) -> ArticleData:
    """Build an indexed article for tests."""
    return ArticleData(
        meta=ArticleIndexRecord(
            article_id=article_id,
            pub_id=f"pub-{pub_date}",
            pub_date_only=pub_date,
            slug=f"slug-{article_id}",
            summary=summary,
            full_report=text,
        ),
        cves=[IndexedCVE(article_id=article_id, cve_id=cve) for cve in cves],
        entities=[
            IndexedEntity(article_id=article_id, entity_name=name, entity_type=entity_type)
            for name, entity_type in entities
        ],
    )


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def index_repo():
    return InMemoryIndexRepository()


@pytest.fixture
def resolution_store():
    return InMemoryResolutionStore()
