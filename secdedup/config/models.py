"""Configuration models."""

from typing import Dict, Optional

from pydantic import BaseModel, Field, model_validator


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("secdedup", description="Database name")
    user: str = Field("secdedup_user", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")


class SimilarityWeights(BaseModel):
    """Per-dimension weights for the weighted Jaccard similarity."""

    cve_weight: float = Field(0.45, ge=0.0, le=1.0)
    text_weight: float = Field(0.20, ge=0.0, le=1.0)
    threat_actor_weight: float = Field(0.11, ge=0.0, le=1.0)
    malware_weight: float = Field(0.11, ge=0.0, le=1.0)
    product_weight: float = Field(0.07, ge=0.0, le=1.0)
    company_weight: float = Field(0.06, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_weights(self) -> "SimilarityWeights":
        """Validate that weights sum to 1.0."""
        total = sum(self.as_dict().values())
        if abs(total - 1.0) > 0.001:
            raise ValueError(f"Weights must sum to 1.0, got {total:.3f}")
        return self

    @classmethod
    def legacy(cls) -> "SimilarityWeights":
        """Weights used before CVE overlap was promoted to 45%."""
        return cls(
            cve_weight=0.40,
            text_weight=0.20,
            threat_actor_weight=0.12,
            malware_weight=0.12,
            product_weight=0.08,
            company_weight=0.08,
        )

    def as_dict(self) -> Dict[str, float]:
        """Weights keyed by dimension name."""
        return {
            "cve": self.cve_weight,
            "text": self.text_weight,
            "threat_actor": self.threat_actor_weight,
            "malware": self.malware_weight,
            "product": self.product_weight,
            "company": self.company_weight,
        }


class DetectionConfig(BaseModel):
    """Duplicate detection thresholds."""

    threshold: float = Field(0.70, description="UPDATE threshold", ge=0.0, le=1.0)
    borderline_floor: float = Field(0.35, description="Lowest BORDERLINE score", ge=0.0, le=1.0)
    lookback_days: int = Field(30, description="Candidate lookback window in days", ge=1)

    @model_validator(mode="after")
    def validate_range(self) -> "DetectionConfig":
        """BORDERLINE range must not be inverted."""
        if self.borderline_floor > self.threshold:
            raise ValueError(
                f"borderline_floor ({self.borderline_floor}) must not exceed threshold ({self.threshold})"
            )
        return self


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = Field("openai", description="LLM provider (openai, mock)")
    model: str = Field("gpt-4o-mini", description="Model name")
    api_key_env: Optional[str] = Field("OPENAI_API_KEY", description="Environment variable for API key")
    api_key: Optional[str] = Field(None, description="API key (prefer api_key_env)")
    base_url: Optional[str] = Field(None, description="Base URL for API")
    timeout_seconds: float = Field(60.0, description="Request timeout", gt=0)
    temperature: float = Field(0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(2048, ge=128, le=16000)
    max_report_chars: int = Field(12000, description="Per-article text cap in prompts", ge=500)


class ConfigModel(BaseModel):
    """Main configuration model."""

    workspace_root: str = Field("~/secdedup", description="Root directory for run reports")
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    similarity: SimilarityWeights = Field(default_factory=SimilarityWeights)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
