"""Candidate filtering and duplicate checks."""

from .candidates import CandidateFilter, lookback_window, shares_signal
from .checker import CheckResult, DuplicateChecker, ScoredCandidate

__all__ = [
    "CandidateFilter",
    "CheckResult",
    "DuplicateChecker",
    "ScoredCandidate",
    "lookback_window",
    "shares_signal",
]
