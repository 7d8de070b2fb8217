"""Unit tests for models: entity type policy, input contract and resolution invariants."""

from datetime import date

import pytest
from pydantic import ValidationError

from secdedup.config import DetectionConfig
from secdedup.models import (
    CVE,
    Article,
    Confidence,
    Decision,
    EntityType,
    Outcome,
    Publication,
    Resolution,
    ResolutionMethod,
    normalize_entity_type,
)


class TestEntityTypePolicy:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("threat_actor", EntityType.THREAT_ACTOR),
            ("Threat Actor", EntityType.THREAT_ACTOR),
            ("malware", EntityType.MALWARE),
            ("product", EntityType.PRODUCT),
            ("company", EntityType.COMPANY),
            ("vendor", EntityType.COMPANY),
            ("government-agency", EntityType.GOVERNMENT_AGENCY),
        ],
    )
    def test_indexed_types(self, raw, expected):
        assert normalize_entity_type(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["person", "technology", "security_organization", "other", "spaceship", "", None],
    )
    def test_dropped_types(self, raw):
        assert normalize_entity_type(raw) is None


class TestInputContract:
    def test_cve_id_is_normalized(self):
        assert CVE(id=" cve-2025-1234 ").id == "CVE-2025-1234"

    def test_cve_rejects_out_of_range_cvss(self):
        with pytest.raises(ValidationError):
            CVE(id="CVE-2025-1", cvss_score=11.0)

    def test_null_lists_become_empty(self):
        article = Article(id="a1", slug="s", summary="x", cves=None, entities=None)
        assert article.cves == []
        assert article.entities == []

    def test_article_ignores_extra_fields(self):
        article = Article(id="a1", slug="s", summary="x", headline="ignored", tags=["x"])
        assert article.id == "a1"

    def test_publication_parses_date_string(self):
        publication = Publication(pub_id="p1", pub_date="2025-10-07T06:00:00Z")
        assert publication.pub_date_only == date(2025, 10, 7)
        assert publication.pub_type == "daily"


class TestResolutionInvariants:
    def _resolution(self, **kwargs):
        base = dict(
            article_id="new",
            pub_date=date(2025, 10, 8),
            confidence=Confidence.HIGH,
            similarity_score=0.5,
            resolution_method=ResolutionMethod.LLM,
        )
        base.update(kwargs)
        return Resolution(**base)

    def test_new_is_canonical_to_itself(self):
        resolution = self._resolution(decision=Decision.NEW, canonical_article_id="new")
        assert resolution.canonical_article_id == "new"

    def test_new_with_other_canonical_is_rejected(self):
        with pytest.raises(ValidationError):
            self._resolution(decision=Decision.NEW, canonical_article_id="old")

    def test_update_is_canonical_to_original(self):
        resolution = self._resolution(
            decision=Decision.UPDATE,
            original_article_id="old",
            canonical_article_id="old",
        )
        assert resolution.canonical_article_id == resolution.original_article_id

    def test_update_requires_different_original(self):
        with pytest.raises(ValidationError):
            self._resolution(decision=Decision.UPDATE, original_article_id="new", canonical_article_id="new")

    def test_skip_has_no_canonical(self):
        with pytest.raises(ValidationError):
            self._resolution(decision=Decision.SKIP, original_article_id="old", canonical_article_id="old")

    def test_similarity_score_is_bounded(self):
        with pytest.raises(ValidationError):
            self._resolution(decision=Decision.NEW, canonical_article_id="new", similarity_score=1.2)

    @pytest.mark.parametrize(
        "decision,expected",
        [(Decision.NEW, "new"), (Decision.UPDATE, "old"), (Decision.SKIP, None)],
    )
    def test_canonical_for(self, decision, expected):
        assert Resolution.canonical_for(decision, "new", "old") == expected


class TestDetectionConfig:
    def test_defaults(self):
        config = DetectionConfig()
        assert (config.threshold, config.borderline_floor, config.lookback_days) == (0.70, 0.35, 30)

    @pytest.mark.parametrize(
        "kwargs",
        [{"threshold": 1.2}, {"threshold": -0.1}, {"lookback_days": 0}, {"threshold": 0.2}],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValidationError):
            DetectionConfig(**kwargs)

    def test_long_lookback_accepted(self):
        assert DetectionConfig(lookback_days=400).lookback_days == 400


class TestOutcome:
    def test_recoverable_and_fatal_are_distinct(self):
        assert Outcome.invalid("a", "bad").recoverable
        assert Outcome.pending("a", "retry").recoverable
        assert not Outcome.pending("a", "retry").fatal
        assert Outcome.failed("a", "db down").fatal
        assert not Outcome.failed("a", "db down").recoverable

    def test_done_carries_detail(self):
        outcome = Outcome.done("a", cves=2)
        assert outcome.ok
        assert outcome.detail == {"cves": 2}
