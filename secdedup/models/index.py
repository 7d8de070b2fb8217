"""Index models for fingerprinting articles."""

from datetime import date
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field

from .entities import EntityType


class ArticleIndexRecord(BaseModel):
    """Minimal article metadata stored in the index."""

    article_id: str = Field(..., description="Article UUID (primary key)")
    pub_id: str = Field(..., description="Publication the article belongs to")
    pub_date_only: date = Field(..., description="Date-only projection for window queries")
    slug: str = Field(..., description="URL slug")
    summary: str = Field(..., description="Summary text")
    full_report: Optional[str] = Field(None, description="Full article text")


class IndexedCVE(BaseModel):
    """CVE row attached to an indexed article."""

    article_id: str = Field(..., description="Foreign key to articles_meta")
    cve_id: str = Field(..., description="CVE identifier")
    cvss_score: Optional[float] = Field(None, description="CVSS score")
    severity: Optional[str] = Field(None, description="Severity tier")
    kev: bool = Field(False, description="Known exploited flag")


class IndexedEntity(BaseModel):
    """Entity row attached to an indexed article."""

    article_id: str = Field(..., description="Foreign key to articles_meta")
    entity_name: str = Field(..., description="Entity name")
    entity_type: EntityType = Field(..., description="Normalized entity type")


class ArticleData(BaseModel):
    """An indexed article with its structured signals."""

    meta: ArticleIndexRecord
    cves: List[IndexedCVE] = Field(default_factory=list)
    entities: List[IndexedEntity] = Field(default_factory=list)

    @property
    def article_id(self) -> str:
        return self.meta.article_id

    @property
    def pub_date(self) -> date:
        return self.meta.pub_date_only

    @property
    def slug(self) -> str:
        return self.meta.slug

    @property
    def comparison_text(self) -> str:
        """Full report, falling back to the summary."""
        return self.meta.full_report or self.meta.summary

    def cve_ids(self) -> Set[str]:
        return {c.cve_id for c in self.cves}

    def entity_names(self, entity_type: Optional[EntityType] = None) -> Set[str]:
        """Case-folded entity names, optionally restricted to one type."""
        return {
            e.entity_name.lower()
            for e in self.entities
            if entity_type is None or e.entity_type == entity_type
        }


class IndexStats(BaseModel):
    """Overall statistics about the index."""

    total_articles: int = 0
    total_publications: int = 0
    total_cves: int = 0
    unique_cves: int = 0
    total_entities: int = 0
    unique_entities: int = 0
    oldest_date: Optional[date] = None
    newest_date: Optional[date] = None
    entity_type_counts: Dict[str, int] = Field(default_factory=dict)
