"""Duplicate resolution and LLM arbitration."""

from .arbiter import (
    ArbitrationError,
    ComparisonProvider,
    ComparisonVerdict,
    MockComparisonProvider,
    OpenAIComparisonProvider,
    build_comparison_prompt,
    create_comparison_provider,
    parse_verdict,
)
from .engine import ResolutionEngine, ResolutionReport

__all__ = [
    "ArbitrationError",
    "ComparisonProvider",
    "ComparisonVerdict",
    "MockComparisonProvider",
    "OpenAIComparisonProvider",
    "ResolutionEngine",
    "ResolutionReport",
    "build_comparison_prompt",
    "create_comparison_provider",
    "parse_verdict",
]
