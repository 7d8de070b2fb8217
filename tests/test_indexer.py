"""Unit tests for the entity/CVE indexer."""

from datetime import date

import pytest

from conftest import InMemoryPublicationRepository
from secdedup.indexing import ArticleIndexer, build_index_rows
from secdedup.models import Article, EntityType, OutcomeStatus, Publication, Selection


def _raw_article(article_id="a1", **kwargs):
    base = {
        "id": article_id,
        "slug": f"slug-{article_id}",
        "summary": "Attackers exploit a Citrix flaw.",
        "full_report": "Attackers exploit CVE-2023-4966 in Citrix NetScaler.",
        "cves": [{"id": "cve-2023-4966", "cvss_score": 9.4, "severity": "Critical", "kev": True}],
        "entities": [
            {"name": "LockBit", "type": "threat_actor"},
            {"name": "Citrix", "type": "vendor"},
            {"name": "John Doe", "type": "person"},
            {"name": "Mandiant", "type": "security_organization"},
        ],
    }
    base.update(kwargs)
    return base


@pytest.fixture
def publication():
    return Publication(
        pub_id="pub-1",
        pub_date="2025-10-07T06:00:00Z",
        articles=[_raw_article("a1"), _raw_article("a2")],
    )


@pytest.fixture
def indexer(fake_db, index_repo, publication):
    return ArticleIndexer(
        fake_db,
        index_repo=index_repo,
        publication_repo=InMemoryPublicationRepository([publication]),
    )


class TestBuildIndexRows:
    def test_filters_and_normalizes_entities(self):
        article = Article.model_validate(_raw_article())
        record, cves, entities = build_index_rows(article, "pub-1", date(2025, 10, 7))

        assert record.pub_date_only == date(2025, 10, 7)
        assert [c.cve_id for c in cves] == ["CVE-2023-4966"]
        assert cves[0].kev is True
        assert {(e.entity_name, e.entity_type) for e in entities} == {
            ("LockBit", EntityType.THREAT_ACTOR),
            ("Citrix", EntityType.COMPANY),
        }

    def test_deduplicates_within_article(self):
        article = Article.model_validate(
            _raw_article(
                cves=[{"id": "CVE-2025-1"}, {"id": "cve-2025-1"}],
                entities=[
                    {"name": "Cisco", "type": "vendor"},
                    {"name": "cisco", "type": "company"},
                ],
            )
        )
        _, cves, entities = build_index_rows(article, "pub-1", date(2025, 10, 7))

        assert len(cves) == 1
        assert len(entities) == 1

    def test_article_level_date_is_ignored(self):
        article = Article.model_validate(_raw_article(pub_date="2025-10-06T12:00:00"))
        record, _, _ = build_index_rows(article, "pub-1", date(2025, 10, 7))
        assert record.pub_date_only == date(2025, 10, 7)


class TestArticleIndexer:
    def test_indexes_publication(self, indexer, index_repo):
        report = indexer.index(Selection.for_date(date(2025, 10, 7)))

        assert report.indexed == 2
        assert report.cves == 2
        assert report.entities == 4
        assert set(index_repo.metas) == {"a1", "a2"}

    def test_reindex_without_force_is_skipped(self, indexer, index_repo):
        indexer.index(Selection.all())
        before = (dict(index_repo.metas), {k: list(v) for k, v in index_repo.entities.items()})

        report = indexer.index(Selection.all())

        assert report.indexed == 0
        assert report.skipped == 2
        assert all(o.status == OutcomeStatus.SKIPPED for o in report.outcomes)
        assert (index_repo.metas, index_repo.entities) == before

    def test_force_replaces_rows(self, indexer, index_repo):
        indexer.index(Selection.all())
        index_repo.entities["a1"] = []

        report = indexer.index(Selection.all(), force=True)

        assert report.indexed == 2
        assert len(index_repo.entities["a1"]) == 2

    def test_invalid_article_is_recoverable(self, fake_db, index_repo):
        publication = Publication(
            pub_id="pub-2",
            pub_date="2025-10-08",
            articles=[{"id": "broken"}, _raw_article("ok")],
        )
        indexer = ArticleIndexer(
            fake_db,
            index_repo=index_repo,
            publication_repo=InMemoryPublicationRepository([publication]),
        )

        report = indexer.index(Selection.all())

        assert report.invalid == 1
        assert report.indexed == 1
        assert not report.aborted
        assert report.outcomes[0].recoverable

    def test_non_mapping_entry_is_invalid(self, fake_db, index_repo):
        publication = Publication(
            pub_id="pub-3",
            pub_date="2025-10-08",
            articles=[None, _raw_article("ok")],
        )
        indexer = ArticleIndexer(
            fake_db,
            index_repo=index_repo,
            publication_repo=InMemoryPublicationRepository([publication]),
        )

        report = indexer.index(Selection.all())

        assert report.invalid == 1
        assert report.indexed == 1
        assert not report.aborted
        assert report.outcomes[0].subject_id is None
        assert "pub-3" in report.outcomes[0].message

    def test_storage_failure_aborts_batch(self, indexer, fake_db):
        fake_db.fail_transactions = True

        report = indexer.index(Selection.all())

        assert report.aborted
        assert report.failed == 1
        assert report.outcomes[-1].fatal
        assert len(report.outcomes) == 1

    def test_range_outside_publications_is_empty(self, indexer):
        report = indexer.index(Selection.for_range(date(2024, 1, 1), date(2024, 1, 31)))
        assert report.publications == 0

    def test_article_selection_is_rejected(self, indexer):
        with pytest.raises(ValueError):
            indexer.index(Selection.for_article("a1"))
