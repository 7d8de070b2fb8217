"""Upstream article and publication models (input contract)."""

from datetime import date, datetime
from typing import Any, List, Optional

import pendulum
from pydantic import BaseModel, ConfigDict, Field, field_validator


class CVE(BaseModel):
    """CVE reference extracted from an article."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="CVE identifier, e.g. CVE-2025-1234")
    cvss_score: Optional[float] = Field(None, description="CVSS score", ge=0.0, le=10.0)
    severity: Optional[str] = Field(None, description="critical, high, medium, low, none")
    kev: bool = Field(False, description="Listed as known exploited")

    @field_validator("id")
    @classmethod
    def normalize_id(cls, v: str) -> str:
        """Upper-case and strip CVE identifiers."""
        v = v.strip().upper()
        if not v:
            raise ValueError("CVE id must not be empty")
        return v

    @field_validator("severity")
    @classmethod
    def normalize_severity(cls, v: Optional[str]) -> Optional[str]:
        """Lower-case severity, empty becomes None."""
        if v is None:
            return None
        v = v.strip().lower()
        return v or None

    @field_validator("kev", mode="before")
    @classmethod
    def coerce_kev(cls, v: Any) -> bool:
        """Accept null for the KEV flag."""
        return bool(v) if v is not None else False


class Entity(BaseModel):
    """Named entity extracted from an article."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., description="Entity name")
    type: str = Field(..., description="Entity type as produced upstream")

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        """Collapse whitespace in entity names."""
        v = " ".join(v.split())
        if not v:
            raise ValueError("Entity name must not be empty")
        return v


class Article(BaseModel):
    """Article record produced by the upstream generator."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Article UUID", min_length=1)
    slug: str = Field(..., description="URL slug", min_length=1)
    summary: str = Field(..., description="Article summary")
    full_report: Optional[str] = Field(None, description="Full article text")
    cves: List[CVE] = Field(default_factory=list, description="Referenced CVEs")
    entities: List[Entity] = Field(default_factory=list, description="Named entities")

    @field_validator("cves", "entities", mode="before")
    @classmethod
    def none_is_empty(cls, v: Any) -> Any:
        """Upstream sometimes emits null instead of an empty list."""
        return [] if v is None else v


class Publication(BaseModel):
    """Publication container holding a batch of generated articles."""

    model_config = ConfigDict(extra="ignore")

    pub_id: str = Field(..., description="Publication UUID", min_length=1)
    pub_date: datetime = Field(..., description="Publication timestamp (UTC)")
    pub_type: str = Field("daily", description="daily, weekly, monthly")
    headline: str = Field("", description="Publication headline")
    articles: List[Any] = Field(default_factory=list, description="Raw article records, validated one by one")

    @field_validator("pub_date", mode="before")
    @classmethod
    def parse_pub_date(cls, v: Any) -> Any:
        """Parse ISO strings with pendulum so date-only values are accepted."""
        if isinstance(v, str):
            return pendulum.parse(v)
        return v

    @property
    def pub_date_only(self) -> date:
        """Date-only projection used for window queries."""
        return self.pub_date.date()
