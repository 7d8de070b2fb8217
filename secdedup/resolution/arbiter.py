"""LLM arbitration for BORDERLINE article pairs."""

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

import httpx
import openai
from openai import OpenAI
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..config import DetectionConfig
from ..models import ArticleData, Confidence, Decision

FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class ArbitrationError(Exception):
    """The comparison provider failed or returned an unusable verdict."""


class ComparisonVerdict(BaseModel):
    """Editorial decision for one article pair."""

    decision: Decision = Field(..., description="NEW, UPDATE or SKIP")
    confidence: Confidence = Field(..., description="high, medium or low")
    reasoning: str = Field(..., description="Explanation of the decision", min_length=1)
    new_information: List[str] = Field(default_factory=list, description="New facts in the candidate")
    overlap_summary: Optional[str] = Field(None, description="What both articles share")

    @field_validator("decision", mode="before")
    @classmethod
    def normalize_decision(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("confidence", mode="before")
    @classmethod
    def normalize_confidence(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("new_information", mode="before")
    @classmethod
    def none_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _describe_article(article: ArticleData, max_chars: int) -> str:
    cves = ", ".join(sorted(article.cve_ids())) or "None"
    entities = ", ".join(
        f"{e.entity_name} ({e.entity_type.value})" for e in article.entities
    ) or "None"
    return f"""Slug: {article.slug}
ID: {article.article_id}

Summary:
{article.meta.summary}

Full Report:
{_truncate(article.comparison_text, max_chars)}

CVEs: {cves}
Entities: {entities}"""


def build_comparison_prompt(
    target: ArticleData,
    original: ArticleData,
    similarity_score: float,
    threshold: float = 0.70,
    borderline_floor: float = 0.35,
    max_chars: int = 12000,
) -> str:
    """
    Build the editorial comparison prompt for one article pair.

    Args:
        target: Article being evaluated
        original: Earlier article it may duplicate
        similarity_score: Weighted similarity of the pair
        threshold: UPDATE threshold, shown as the top of the BORDERLINE range
        borderline_floor: Bottom of the BORDERLINE range
        max_chars: Per-article cap on the full report text

    Returns:
        Prompt text
    """
    return f"""You are a cybersecurity news editor evaluating whether a new article should be published separately, added as an update to an existing article, or skipped entirely.

CONTEXT:
- Similarity score: {similarity_score:.3f} ({borderline_floor:.2f}-{threshold:.2f} BORDERLINE range)
- This score is based on CVE overlap, text similarity, and shared entities
- You need to make the final editorial decision by comparing the full article texts

ORIGINAL ARTICLE (Published {original.pub_date}):
{_describe_article(original, max_chars)}

---

CANDIDATE ARTICLE (Being evaluated, published {target.pub_date}):
{_describe_article(target, max_chars)}

---

DECISION CRITERIA:

Choose NEW if:
- The candidate article covers a substantially different angle or story
- It discusses different victims, campaigns, or attack vectors
- The overlap is coincidental (same CVE but different contexts)
- Readers would benefit from seeing both articles

Choose UPDATE if:
- The candidate article provides new developments on the same story
- It adds new technical details, patches, or mitigation steps
- It updates victim count, attribution, or impact assessment
- The same campaign or incident is being tracked over time

Choose SKIP if:
- The candidate article provides no meaningful new information
- It merely rephrases what is already covered in the original
- Publishing it would create redundancy without value

Respond with a single JSON object:
{{
  "decision": "NEW" | "UPDATE" | "SKIP",
  "confidence": "high" | "medium" | "low",
  "reasoning": "2-4 sentences citing CVEs, entities or technical details",
  "new_information": ["specific new facts in the candidate; empty for SKIP"],
  "overlap_summary": "1-2 sentences on what both articles share"
}}"""


def parse_verdict(content: Optional[str]) -> ComparisonVerdict:
    """
    Parse a provider response into a verdict.

    Accepts bare JSON or JSON wrapped in a markdown code fence.

    Raises:
        ArbitrationError: If the response is empty, not JSON, or not a valid verdict
    """
    if not content or not content.strip():
        raise ArbitrationError("Empty response from comparison provider")

    text = content.strip()
    match = FENCE_PATTERN.match(text)
    if match:
        text = match.group(1)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ArbitrationError(f"Malformed verdict JSON: {e}") from e

    if not isinstance(data, dict):
        raise ArbitrationError("Verdict must be a JSON object")

    try:
        return ComparisonVerdict.model_validate(data)
    except ValidationError as e:
        raise ArbitrationError(f"Invalid verdict: {e.error_count()} validation error(s)") from e


class ComparisonProvider(ABC):
    """Abstract base class for comparison providers."""

    @abstractmethod
    def compare(
        self,
        target: ArticleData,
        original: ArticleData,
        similarity_score: float,
    ) -> ComparisonVerdict:
        """
        Decide whether ``target`` is NEW, an UPDATE of ``original``, or a SKIP.

        Raises:
            ArbitrationError: On timeout, transport failure or malformed output
        """
        pass

    @abstractmethod
    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""
        pass


class OpenAIComparisonProvider(ComparisonProvider):
    """OpenAI chat completions implementation of the comparison provider."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout_seconds: float = 60.0,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        max_report_chars: int = 12000,
        detection: Optional[DetectionConfig] = None,
    ) -> None:
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Model name to use
            base_url: Custom base URL (for testing)
            timeout_seconds: Per-request timeout
            temperature: Sampling temperature
            max_tokens: Response token cap
            max_report_chars: Per-article text cap in prompts
            detection: Thresholds quoted in the prompt
        """
        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            max_retries=2,
        )
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.max_report_chars = max_report_chars
        self.detection = detection or DetectionConfig()
        self.prompt_tokens = 0
        self.completion_tokens = 0
        self.api_calls = 0

        # Token cost estimates (per 1K tokens)
        self.cost_per_1k_tokens = {
            "gpt-4o": {"input": 0.0025, "output": 0.01},
            "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
            "gpt-4.1": {"input": 0.002, "output": 0.008},
            "gpt-4.1-mini": {"input": 0.0004, "output": 0.0016},
        }

    def compare(
        self,
        target: ArticleData,
        original: ArticleData,
        similarity_score: float,
    ) -> ComparisonVerdict:
        prompt = build_comparison_prompt(
            target,
            original,
            similarity_score,
            threshold=self.detection.threshold,
            borderline_floor=self.detection.borderline_floor,
            max_chars=self.max_report_chars,
        )

        try:
            self.api_calls += 1
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You are a careful cybersecurity news editor. Reply with JSON only."},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as e:
            raise ArbitrationError(f"{type(e).__name__}: {e}") from e

        if response.usage:
            self.prompt_tokens += response.usage.prompt_tokens
            self.completion_tokens += response.usage.completion_tokens

        if not response.choices:
            raise ArbitrationError("Comparison provider returned no choices")
        return parse_verdict(response.choices[0].message.content)

    def get_usage_stats(self) -> Dict:
        estimated_cost = 0.0
        rates = self.cost_per_1k_tokens.get(self.model)
        if rates:
            estimated_cost = (
                (self.prompt_tokens / 1000) * rates["input"]
                + (self.completion_tokens / 1000) * rates["output"]
            )

        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.prompt_tokens + self.completion_tokens,
            "api_calls": self.api_calls,
            "estimated_cost": estimated_cost,
            "model": self.model,
        }


class MockComparisonProvider(ComparisonProvider):
    """
    Deterministic provider for tests and dry runs.

    Scripted verdicts (or exceptions to raise) are keyed by the original
    article id. Unscripted pairs get UPDATE in the upper half of the
    BORDERLINE range and NEW in the lower half.
    """

    def __init__(
        self,
        verdicts: Optional[Dict[str, Union[ComparisonVerdict, Exception]]] = None,
        detection: Optional[DetectionConfig] = None,
    ) -> None:
        self.verdicts = verdicts or {}
        self.detection = detection or DetectionConfig()
        self.calls: List[tuple] = []

    def compare(
        self,
        target: ArticleData,
        original: ArticleData,
        similarity_score: float,
    ) -> ComparisonVerdict:
        self.calls.append((target.article_id, original.article_id, similarity_score))

        scripted = self.verdicts.get(original.article_id)
        if isinstance(scripted, Exception):
            raise scripted
        if scripted is not None:
            return scripted

        midpoint = (self.detection.borderline_floor + self.detection.threshold) / 2
        if similarity_score >= midpoint:
            return ComparisonVerdict(
                decision=Decision.UPDATE,
                confidence=Confidence.LOW,
                reasoning=f"Mock verdict: score {similarity_score:.3f} in upper BORDERLINE half",
                overlap_summary=f"Shares signals with {original.slug}",
            )
        return ComparisonVerdict(
            decision=Decision.NEW,
            confidence=Confidence.LOW,
            reasoning=f"Mock verdict: score {similarity_score:.3f} in lower BORDERLINE half",
        )

    def get_usage_stats(self) -> Dict:
        return {
            "prompt_tokens": 0,
            "completion_tokens": 0,
            "total_tokens": 0,
            "api_calls": len(self.calls),
            "estimated_cost": 0.0,
            "model": "mock",
        }


def create_comparison_provider(
    llm_config: Dict[str, Any],
    detection: Optional[DetectionConfig] = None,
) -> ComparisonProvider:
    """
    Build the configured comparison provider.

    Raises:
        ValueError: If the provider is unknown or the OpenAI API key is missing
    """
    provider = llm_config.get("provider", "openai")
    if provider == "mock":
        return MockComparisonProvider(detection=detection)

    if provider == "openai":
        api_key = llm_config.get("api_key")
        if not api_key:
            raise ValueError(
                f"No OpenAI API key found; set {llm_config.get('api_key_env') or 'llm.api_key'}"
            )
        return OpenAIComparisonProvider(
            api_key=api_key,
            model=llm_config.get("model", "gpt-4o-mini"),
            base_url=llm_config.get("base_url"),
            timeout_seconds=llm_config.get("timeout_seconds", 60.0),
            temperature=llm_config.get("temperature", 0.3),
            max_tokens=llm_config.get("max_tokens", 2048),
            max_report_chars=llm_config.get("max_report_chars", 12000),
            detection=detection,
        )

    raise ValueError(f"Unknown LLM provider: {provider}")
