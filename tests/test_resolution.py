"""Unit tests for the resolution engine and LLM arbitration."""

from datetime import date
from types import SimpleNamespace

import httpx
import openai
import pytest

from conftest import make_article
from secdedup.config import DetectionConfig
from secdedup.detection import DuplicateChecker
from secdedup.models import Confidence, Decision, EntityType, OutcomeStatus, ResolutionMethod, Selection
from secdedup.resolution import (
    ArbitrationError,
    ComparisonVerdict,
    MockComparisonProvider,
    OpenAIComparisonProvider,
    ResolutionEngine,
    build_comparison_prompt,
    create_comparison_provider,
    parse_verdict,
)

OLD_DAY = date(2025, 10, 1)
NEW_DAY = date(2025, 10, 8)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def _borderline_pair(target_text="aaaa", original_text="bbbb", original_id="orig", original_day=OLD_DAY):
    """Target/candidate pair scoring 0.6325 (BORDERLINE) with the default texts."""
    original = make_article(
        original_id,
        original_day,
        ["CVE-2025-1"],
        [
            ("a", EntityType.THREAT_ACTOR),
            ("b", EntityType.THREAT_ACTOR),
            ("c", EntityType.THREAT_ACTOR),
            ("m2", EntityType.MALWARE),
            ("p", EntityType.PRODUCT),
            ("x", EntityType.COMPANY),
        ],
        text=original_text,
    )
    target = make_article(
        "target",
        NEW_DAY,
        ["CVE-2025-1"],
        [
            ("a", EntityType.THREAT_ACTOR),
            ("b", EntityType.THREAT_ACTOR),
            ("c", EntityType.THREAT_ACTOR),
            ("d", EntityType.THREAT_ACTOR),
            ("m1", EntityType.MALWARE),
            ("p", EntityType.PRODUCT),
            ("x", EntityType.COMPANY),
            ("y", EntityType.COMPANY),
        ],
        text=target_text,
    )
    return target, original


def _verdict(decision, **kwargs):
    base = dict(decision=decision, confidence=Confidence.MEDIUM, reasoning="Compared full texts.")
    base.update(kwargs)
    return ComparisonVerdict(**base)


@pytest.fixture
def provider():
    return MockComparisonProvider()


@pytest.fixture
def engine(fake_db, index_repo, resolution_store, provider):
    checker = DuplicateChecker(fake_db, detection=DetectionConfig(), index_repo=index_repo)
    return ResolutionEngine(fake_db, checker, provider, store=resolution_store)


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------

class TestResolutionEngine:
    def test_no_candidates_is_automatic_new(self, engine, index_repo, resolution_store, provider):
        index_repo.add(make_article("target", NEW_DAY, ["CVE-2025-9"]))

        report = engine.resolve(Selection.for_date(NEW_DAY))

        assert report.resolved == 1
        [row] = resolution_store.rows
        assert row.decision == Decision.NEW
        assert row.similarity_score == 0.0
        assert row.canonical_article_id == "target"
        assert row.confidence == Confidence.HIGH
        assert row.resolution_method == ResolutionMethod.AUTOMATIC
        assert provider.calls == []

    def test_identical_article_is_automatic_update(self, engine, index_repo, resolution_store, provider):
        entities = [("LockBit", EntityType.THREAT_ACTOR), ("Citrix", EntityType.COMPANY)]
        index_repo.add(make_article("orig", OLD_DAY, ["CVE-2023-4966"], entities, "same text"))
        index_repo.add(make_article("target", NEW_DAY, ["CVE-2023-4966"], entities, "same text"))

        engine.resolve(Selection.for_date(NEW_DAY))

        [row] = resolution_store.rows
        assert row.decision == Decision.UPDATE
        assert row.canonical_article_id == "orig"
        assert row.original_article_id == "orig"
        assert row.original_pub_date == OLD_DAY
        assert row.original_slug == "slug-orig"
        assert row.similarity_score == pytest.approx(0.82)
        assert provider.calls == []

    def test_low_scores_are_new_with_best_score(self, engine, index_repo, resolution_store, provider):
        index_repo.add(make_article("orig", OLD_DAY, ["CVE-2025-1"], text="aaaa"))
        index_repo.add(
            make_article("target", NEW_DAY, ["CVE-2025-1", "CVE-2025-2", "CVE-2025-3", "CVE-2025-4"], text="bbbb")
        )

        engine.resolve(Selection.for_date(NEW_DAY))

        [row] = resolution_store.rows
        assert row.decision == Decision.NEW
        assert row.canonical_article_id == "target"
        assert row.similarity_score == pytest.approx(0.1125)
        assert row.reasoning.startswith("Highest similarity: 0.11")
        assert "below 0.35" in row.reasoning
        assert provider.calls == []

    def test_borderline_calls_provider(self, engine, index_repo, resolution_store, provider):
        target, original = _borderline_pair()
        index_repo.add(original)
        index_repo.add(target)
        provider.verdicts["orig"] = _verdict(
            Decision.UPDATE,
            new_information=["Patch released"],
            overlap_summary="Same CVE and actor",
        )

        engine.resolve(Selection.for_date(NEW_DAY))

        assert len(provider.calls) == 1
        assert provider.calls[0][2] == pytest.approx(0.6325)
        [row] = resolution_store.rows
        assert row.decision == Decision.UPDATE
        assert row.canonical_article_id == "orig"
        assert row.resolution_method == ResolutionMethod.LLM
        assert row.new_information == ["Patch released"]
        assert row.overlap_summary == "Same CVE and actor"

    def test_partial_overlap_pair_reaches_provider(self, engine, index_repo, resolution_store, provider):
        # cve 1.0, text 0.2, actor 0.75, malware 0, product 1.0, company 0.5
        target, original = _borderline_pair(target_text="bcdefg", original_text="abcd")
        index_repo.add(original)
        index_repo.add(target)

        engine.resolve(Selection.for_date(NEW_DAY))

        [(target_id, original_id, score)] = provider.calls
        assert (target_id, original_id) == ("target", "orig")
        assert score == pytest.approx(0.6725)
        [row] = resolution_store.rows
        assert row.resolution_method == ResolutionMethod.LLM
        assert row.decision == Decision.UPDATE

    def test_every_borderline_candidate_is_compared_after_a_failure(
        self, engine, index_repo, resolution_store, provider
    ):
        target, closer = _borderline_pair(target_text="bcdefg", original_text="abcd", original_id="orig-a")
        _, farther = _borderline_pair(original_text="zzzz", original_id="orig-b", original_day=date(2025, 10, 2))
        index_repo.add(closer)
        index_repo.add(farther)
        index_repo.add(target)
        provider.verdicts["orig-a"] = ArbitrationError("timeout")
        provider.verdicts["orig-b"] = _verdict(Decision.UPDATE)

        report = engine.resolve(Selection.for_date(NEW_DAY))

        assert [call[1] for call in provider.calls] == ["orig-a", "orig-b"]
        assert report.pending == 1
        assert report.resolved == 0
        assert resolution_store.rows == []

    def test_skip_verdict_has_null_canonical(self, engine, index_repo, resolution_store, provider):
        target, original = _borderline_pair()
        index_repo.add(original)
        index_repo.add(target)
        provider.verdicts["orig"] = _verdict(Decision.SKIP)

        engine.resolve(Selection.for_date(NEW_DAY))

        [row] = resolution_store.rows
        assert row.decision == Decision.SKIP
        assert row.canonical_article_id is None
        assert row.original_article_id == "orig"

    def test_new_verdict_keeps_original_reference(self, engine, index_repo, resolution_store, provider):
        target, original = _borderline_pair()
        index_repo.add(original)
        index_repo.add(target)
        provider.verdicts["orig"] = _verdict(Decision.NEW)

        engine.resolve(Selection.for_date(NEW_DAY))

        [row] = resolution_store.rows
        assert row.canonical_article_id == "target"
        assert row.original_article_id == "orig"

    def test_arbitration_failure_leaves_article_unresolved(self, engine, index_repo, resolution_store, provider):
        target, original = _borderline_pair()
        index_repo.add(original)
        index_repo.add(target)
        provider.verdicts["orig"] = ArbitrationError("timeout")

        report = engine.resolve(Selection.for_date(NEW_DAY))

        assert report.pending == 1
        assert not report.aborted
        assert report.outcomes[0].status == OutcomeStatus.PENDING
        assert resolution_store.rows == []

        provider.verdicts["orig"] = _verdict(Decision.SKIP)
        retry = engine.resolve(Selection.for_date(NEW_DAY))

        assert retry.resolved == 1
        assert [r.decision for r in resolution_store.rows] == [Decision.SKIP]

    def test_already_resolved_articles_are_skipped(self, engine, index_repo, resolution_store):
        index_repo.add(make_article("target", NEW_DAY, ["CVE-2025-9"]))
        engine.resolve(Selection.for_date(NEW_DAY))

        report = engine.resolve(Selection.for_date(NEW_DAY))

        assert report.already_resolved == 1
        assert len(resolution_store.rows) == 1

    def test_force_recomputes(self, engine, index_repo, resolution_store):
        index_repo.add(make_article("target", NEW_DAY, ["CVE-2025-9"]))
        engine.resolve(Selection.for_date(NEW_DAY))
        index_repo.add(make_article("orig", OLD_DAY, ["CVE-2025-9"]))

        report = engine.resolve(Selection.for_date(NEW_DAY), force=True)

        assert report.deleted == 1
        assert report.resolved == 1
        [row] = resolution_store.rows
        assert row.decision == Decision.UPDATE

    def test_single_article_selection(self, engine, index_repo, resolution_store):
        index_repo.add(make_article("a", NEW_DAY, ["CVE-2025-1"]))
        index_repo.add(make_article("b", NEW_DAY, ["CVE-2025-2"]))

        engine.resolve(Selection.for_article("b"))

        assert [r.article_id for r in resolution_store.rows] == ["b"]

    def test_storage_failure_aborts(self, engine, index_repo, fake_db):
        index_repo.add(make_article("a", NEW_DAY, ["CVE-2025-1"]))
        index_repo.add(make_article("b", NEW_DAY, ["CVE-2025-2"]))
        fake_db.fail_transactions = True

        report = engine.resolve(Selection.for_date(NEW_DAY))

        assert report.aborted
        assert len(report.outcomes) == 1

    def test_range_selection_rejected(self, engine):
        with pytest.raises(ValueError):
            engine.resolve(Selection.all())


# ---------------------------------------------------------------------------
# Arbitration
# ---------------------------------------------------------------------------

class TestParseVerdict:
    def test_plain_json(self):
        verdict = parse_verdict('{"decision": "update", "confidence": "High", "reasoning": "Same campaign."}')
        assert verdict.decision == Decision.UPDATE
        assert verdict.confidence == Confidence.HIGH
        assert verdict.new_information == []

    def test_fenced_json(self):
        content = '```json\n{"decision": "SKIP", "confidence": "low", "reasoning": "Rephrased.", "new_information": null}\n```'
        assert parse_verdict(content).decision == Decision.SKIP

    @pytest.mark.parametrize(
        "content",
        [
            "",
            None,
            "not json",
            "[1, 2]",
            '{"decision": "MAYBE", "confidence": "low", "reasoning": "x"}',
            '{"decision": "NEW", "confidence": "low"}',
        ],
    )
    def test_unusable_output_raises(self, content):
        with pytest.raises(ArbitrationError):
            parse_verdict(content)


class TestComparisonPrompt:
    def test_prompt_includes_both_articles(self):
        target, original = _borderline_pair()
        prompt = build_comparison_prompt(target, original, 0.6325)

        assert "0.632" in prompt or "0.633" in prompt
        assert "ID: orig" in prompt
        assert "ID: target" in prompt
        assert "CVE-2025-1" in prompt
        assert "Choose SKIP if" in prompt

    def test_long_reports_are_truncated(self):
        original = make_article("orig", OLD_DAY, text="x" * 5000)
        target = make_article("target", NEW_DAY, text="y" * 5000)

        prompt = build_comparison_prompt(target, original, 0.5, max_chars=1000)

        assert "x" * 1001 not in prompt
        assert "x" * 1000 + "..." in prompt


class TestProviders:
    def test_mock_provider_defaults_by_score(self):
        target, original = _borderline_pair()
        provider = MockComparisonProvider()

        assert provider.compare(target, original, 0.65).decision == Decision.UPDATE
        assert provider.compare(target, original, 0.40).decision == Decision.NEW
        assert provider.get_usage_stats()["api_calls"] == 2

    def test_factory_selects_mock(self):
        provider = create_comparison_provider({"provider": "mock"})
        assert isinstance(provider, MockComparisonProvider)

    def test_factory_requires_openai_key(self):
        with pytest.raises(ValueError, match="API key"):
            create_comparison_provider({"provider": "openai", "api_key": None, "api_key_env": "OPENAI_API_KEY"})

    def test_factory_rejects_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown"):
            create_comparison_provider({"provider": "carrier-pigeon"})

    def _openai_provider(self, create):
        provider = OpenAIComparisonProvider(api_key="sk-test")
        provider.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
        return provider

    def test_openai_provider_parses_response_and_tracks_usage(self):
        def create(**kwargs):
            assert kwargs["response_format"] == {"type": "json_object"}
            return SimpleNamespace(
                usage=SimpleNamespace(prompt_tokens=1000, completion_tokens=100),
                choices=[SimpleNamespace(message=SimpleNamespace(
                    content='{"decision": "NEW", "confidence": "medium", "reasoning": "Different victims."}'
                ))],
            )

        provider = self._openai_provider(create)
        target, original = _borderline_pair()

        verdict = provider.compare(target, original, 0.5)

        assert verdict.decision == Decision.NEW
        stats = provider.get_usage_stats()
        assert stats["api_calls"] == 1
        assert stats["total_tokens"] == 1100
        assert stats["estimated_cost"] > 0

    def test_openai_transport_error_becomes_arbitration_error(self):
        def create(**kwargs):
            raise openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))

        provider = self._openai_provider(create)
        target, original = _borderline_pair()

        with pytest.raises(ArbitrationError):
            provider.compare(target, original, 0.5)
