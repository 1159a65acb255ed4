"""Application settings management using Pydantic Settings."""

from typing import Literal, Self

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

EvictionPolicyName = Literal["lru", "lfu", "ttl", "fifo"]


class CacheSettings(BaseModel):
    """Relevance cache tunables."""

    max_size_bytes: int = Field(
        default=100 * 1024 * 1024,  # 100MB
        ge=1,
        description="Total cache capacity (character-count proxy for bytes)",
    )
    max_entries: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of cache entries",
    )
    max_tokens_per_entry: int = Field(
        default=10000,
        ge=1,
        description="Contexts above this estimate are truncated before admission",
    )
    expiration_seconds: int = Field(
        default=24 * 60 * 60,
        ge=1,
        description="Expiration window used for TTL and recency weighting",
    )
    relevance_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Contexts below this relevance score are never cached",
    )
    eviction_policy: EvictionPolicyName = Field(
        default="lru", description="Policy applied during optimisation sweeps"
    )
    token_estimation_ratio: int = Field(
        default=4,
        ge=1,
        description="Characters per token for token estimation",
    )


class ExtractionSettings(BaseModel):
    """Context extraction tunables."""

    max_tokens: int = Field(
        default=1000,
        ge=1,
        description="Default token budget for returned contexts",
    )
    include_imports: bool = Field(
        default=False, description="Include minimal imports by default"
    )
    stale_after_seconds: int = Field(
        default=5 * 60,
        ge=0,
        description="Cached contexts older than this are recomputed",
    )


class DiffSettings(BaseModel):
    """Diff tunables."""

    context_lines: int = Field(
        default=3,
        ge=0,
        le=100,
        description="Surrounding lines included in contextual diffs",
    )


class PerformanceSettings(BaseModel):
    """Collaborator limits."""

    timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Timeout for parser and import collaborator calls",
    )
    max_file_size: int = Field(
        default=1_000_000,  # 1MB
        ge=1,
        description="Maximum source file size in bytes",
    )


class Settings(BaseSettings):
    """Application configuration settings.

    All settings can be configured via environment variables with the
    prefix `CRO_`; nested sections use `__`, for example
    `CRO_CACHE__MAX_SIZE_BYTES`.
    """

    cache: CacheSettings = Field(default_factory=CacheSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    diff: DiffSettings = Field(default_factory=DiffSettings)
    performance: PerformanceSettings = Field(default_factory=PerformanceSettings)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )

    model_config = SettingsConfigDict(
        env_prefix="CRO_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @model_validator(mode="after")
    def validate_budgets(self) -> Self:
        """Validate cross-section constraints."""
        if self.extraction.max_tokens > self.cache.max_tokens_per_entry:
            raise ValueError(
                f"extraction.max_tokens ({self.extraction.max_tokens}) "
                f"must be <= cache.max_tokens_per_entry ({self.cache.max_tokens_per_entry})"
            )
        return self
