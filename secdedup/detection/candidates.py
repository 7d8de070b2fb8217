"""Candidate filtering: narrow the comparison set before scoring."""

from datetime import date
from typing import List, Optional, Tuple

import pendulum
from psycopg import Connection

from ..db import ArticleIndexRepository
from ..models import ArticleData

DEFAULT_LOOKBACK_DAYS = 30


def lookback_window(target_date: date, lookback_days: int = DEFAULT_LOOKBACK_DAYS) -> Tuple[date, date]:
    """
    Candidate window for a target date.

    Returns:
        (start, end) where start is inclusive and end (the target date) is exclusive
    """
    if lookback_days < 1:
        raise ValueError(f"lookback_days must be at least 1, got {lookback_days}")
    end = pendulum.date(target_date.year, target_date.month, target_date.day)
    return end.subtract(days=lookback_days), end


def shares_signal(target: ArticleData, candidate: ArticleData) -> bool:
    """Whether two articles share at least one CVE or entity name."""
    if target.cve_ids() & candidate.cve_ids():
        return True
    return bool(target.entity_names() & candidate.entity_names())


class CandidateFilter:
    """Find earlier articles worth scoring against a target."""

    def __init__(self, index_repo: Optional[ArticleIndexRepository] = None) -> None:
        self.index_repo = index_repo or ArticleIndexRepository()

    def find(
        self,
        conn: Connection,
        target: ArticleData,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    ) -> List[ArticleData]:
        """
        Get candidates for a target article.

        Candidates are published in ``[target_date - lookback_days, target_date)``,
        are never the target itself, and share at least one CVE or entity name
        with it.
        """
        start, end = lookback_window(target.pub_date, lookback_days)
        candidate_ids = self.index_repo.find_overlapping_ids(
            conn,
            article_id=target.article_id,
            start=start,
            end=end,
            cve_ids=target.cve_ids(),
            entity_names=target.entity_names(),
        )
        if not candidate_ids:
            return []

        candidates = self.index_repo.get_articles(conn, candidate_ids)
        return [
            candidate
            for candidate in candidates
            if candidate.article_id != target.article_id and shares_signal(target, candidate)
        ]
