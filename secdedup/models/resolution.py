"""Resolution models for duplicate decisions."""

from datetime import date
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from .base import DBModel


class Decision(str, Enum):
    """Final resolution decision."""

    NEW = "NEW"
    UPDATE = "UPDATE"
    SKIP = "SKIP"


class Confidence(str, Enum):
    """Confidence in a decision."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ResolutionMethod(str, Enum):
    """How a decision was made."""

    AUTOMATIC = "automatic"
    LLM = "llm"


class Resolution(DBModel):
    """Persisted duplicate resolution for one article."""

    article_id: str = Field(..., description="Article being evaluated")
    pub_date: date = Field(..., description="Publication date of the evaluated article")
    decision: Decision = Field(..., description="NEW, UPDATE or SKIP")
    confidence: Confidence = Field(..., description="Confidence level")
    similarity_score: float = Field(..., description="Weighted similarity", ge=0.0, le=1.0)
    original_article_id: Optional[str] = Field(None, description="Earlier article compared against")
    original_pub_date: Optional[date] = Field(None, description="Date of the earlier article")
    original_slug: Optional[str] = Field(None, description="Slug of the earlier article")
    canonical_article_id: Optional[str] = Field(None, description="Authoritative article for this story")
    reasoning: Optional[str] = Field(None, description="Decision rationale")
    new_information: List[str] = Field(default_factory=list, description="New facts in the article")
    overlap_summary: Optional[str] = Field(None, description="What the two articles share")
    resolution_method: ResolutionMethod = Field(..., description="automatic or llm")

    @model_validator(mode="after")
    def validate_canonical(self) -> "Resolution":
        """Canonical id must follow the decision."""
        if self.decision == Decision.NEW and self.canonical_article_id != self.article_id:
            raise ValueError("NEW resolutions must be canonical to the article itself")
        if self.decision == Decision.UPDATE:
            if not self.original_article_id or self.original_article_id == self.article_id:
                raise ValueError("UPDATE resolutions require an earlier original article")
            if self.canonical_article_id != self.original_article_id:
                raise ValueError("UPDATE resolutions must be canonical to the original article")
        if self.decision == Decision.SKIP and self.canonical_article_id is not None:
            raise ValueError("SKIP resolutions have no canonical article")
        return self

    @staticmethod
    def canonical_for(decision: Decision, article_id: str, original_article_id: Optional[str]) -> Optional[str]:
        """Canonical article id implied by a decision."""
        if decision == Decision.NEW:
            return article_id
        if decision == Decision.UPDATE:
            return original_article_id
        return None


class ResolutionStats(BaseModel):
    """Aggregate statistics for threshold tuning and audit."""

    total: int = 0
    by_decision: Dict[str, int] = Field(default_factory=dict)
    by_method: Dict[str, int] = Field(default_factory=dict)
    avg_similarity: Dict[str, float] = Field(default_factory=dict)
