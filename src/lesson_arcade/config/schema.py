from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class ModelConfig(BaseModel):
    """Model tiers and generation parameters for the content-generation backend."""

    provider: str = Field("gemini", description="Backend to use: gemini or openai.")
    primary: str = Field("gemini-3-pro-preview", description="Highest-capability model tier.")
    fallback: Optional[str] = Field(
        "gemini-2.5-flash",
        description="Lower-cost tier used once the primary tier is rate limited or overloaded.",
    )
    temperature: Optional[float] = Field(None, ge=0, le=2)
    max_output_tokens: Optional[int] = Field(None, ge=64)

    @field_validator("provider")
    @classmethod
    def provider_supported(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"gemini", "openai"}:
            raise ValueError("provider must be 'gemini' or 'openai'")
        return normalized

    @model_validator(mode="after")
    def fallback_differs_from_primary(self) -> "ModelConfig":
        if self.fallback is not None and self.fallback == self.primary:
            raise ValueError("fallback model must differ from the primary model")
        return self


class RetryPolicy(BaseModel):
    """Exponential backoff policy: delay before retry i is base_delay_ms * 2**i."""

    max_retries: int = Field(3, ge=0)
    base_delay_ms: int = Field(1000, ge=0)


class CallSitesConfig(BaseModel):
    """Per-call-site retry policies."""

    lesson_plan: RetryPolicy = Field(default_factory=lambda: RetryPolicy(base_delay_ms=2000))
    evaluation: RetryPolicy = Field(default_factory=RetryPolicy)
    summary: RetryPolicy = Field(default_factory=RetryPolicy)


class LeaderboardConfig(BaseModel):
    """Where and how leaderboards are persisted."""

    path: Path = Field(Path("data/leaderboard.json"))
    key_prefix: str = Field("lessonarcade_lite_leaderboard_")
    max_entries: int = Field(5, ge=1)
    max_name_length: int = Field(15, ge=1)


class MetadataConfig(BaseModel):
    """oEmbed lookup endpoint used to prefill video title and author."""

    oembed_endpoint: str = Field("https://www.youtube.com/oembed")
    timeout_seconds: float = Field(10.0, gt=0)


class LoggingConfig(BaseModel):
    """Controls for logging output and format."""

    level: str = Field("INFO")
    use_json: bool = False


class Settings(BaseModel):
    """Top-level project configuration aggregating all sub-settings."""

    project_name: str = Field("Lesson Arcade")
    model: ModelConfig = Field(default_factory=ModelConfig)
    retry: CallSitesConfig = Field(default_factory=CallSitesConfig)
    leaderboard: LeaderboardConfig = Field(default_factory=LeaderboardConfig)
    metadata: MetadataConfig = Field(default_factory=MetadataConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
