from __future__ import annotations

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"

    # Both stores are optional; every cache operation degrades to a miss
    # when the backing store is not configured.
    DATABASE_URL: str | None = None
    REDIS_URL: str | None = None

    APIM_INTERNAL_TOKEN: str | None = None

    OPENAI_API_KEY: str | None = None
    TITLE_MODEL: str = "gpt-4o-mini"

    JINA_API_KEY: str | None = None  # Optional - raises the free-tier rate limit
    JINA_READER_BASE_URL: str = "https://r.jina.ai"

    FIRECRAWL_API_KEY: str | None = None  # Paid tier, skipped when unset
    FIRECRAWL_BASE_URL: str = "https://api.firecrawl.dev"

    USER_AGENT: str = "Mozilla/5.0 (compatible; Linkwise/1.0; +https://linkwise.dev/bot)"

    # === Canonicalization ===
    CANONICAL_MAX_HOPS: int = Field(
        default=5,
        description="Maximum redirect hops followed per URL before settling on the last one.",
    )
    REDIRECT_TIMEOUT: float = Field(default=10.0, description="Per-hop HTTP timeout (seconds)")

    # === Cache TTL Configuration ===
    CACHE_TTL_EPHEMERAL: int = Field(
        default=7 * 24 * 3600, description="Redis TTL for resolved URLs (7 days)"
    )
    CACHE_TTL_DURABLE: int = Field(
        default=30 * 24 * 3600, description="Database TTL for resolved URLs (30 days)"
    )

    # === Enrichment ===
    ENRICH_TIER_TIMEOUT: float = Field(
        default=15.0, description="Timeout for a single enrichment tier attempt (seconds)"
    )
    ENRICH_BATCH_SIZE: int = 10
    ENRICH_MAX_RETRIES: int = 5
    GARBAGE_RESET_BATCH_SIZE: int = 20
    ENRICH_CLAIM_TIMEOUT: int = Field(
        default=600, description="Seconds before a link left in processing is claimable again"
    )

    # === API Rate Limits (requests per second) ===
    JINA_RATE_LIMIT: float = 8.0  # 500 RPM free tier
    FIRECRAWL_RATE_LIMIT: float = 2.0

    # === Circuit Breaker Config ===
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = 5
    CIRCUIT_BREAKER_RECOVERY_TIMEOUT: int = 60

    @field_validator("CANONICAL_MAX_HOPS")
    @classmethod
    def validate_max_hops(cls, v: int) -> int:
        """Validate redirect hop budget."""
        if v < 1:
            raise ValueError("CANONICAL_MAX_HOPS must be >= 1")
        if v > 20:
            raise ValueError("CANONICAL_MAX_HOPS must be <= 20")
        return v

    @field_validator("REDIRECT_TIMEOUT", "ENRICH_TIER_TIMEOUT")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        """Validate per-attempt network timeouts (seconds)."""
        if v <= 0:
            raise ValueError("Timeout must be > 0 seconds")
        if v > 120:
            raise ValueError("Timeout must be <= 120 seconds")
        return v

    @field_validator("JINA_RATE_LIMIT", "FIRECRAWL_RATE_LIMIT")
    @classmethod
    def validate_rate_limits(cls, v: float) -> float:
        """Validate API rate limits (requests per second)."""
        if v < 0.1:
            raise ValueError("Rate limit must be >= 0.1 requests/sec (minimum reasonable)")
        if v > 1000.0:
            raise ValueError("Rate limit must be <= 1000 requests/sec (reasonable max)")
        return v

    @field_validator(
        "ENRICH_BATCH_SIZE", "ENRICH_MAX_RETRIES", "GARBAGE_RESET_BATCH_SIZE", "ENRICH_CLAIM_TIMEOUT"
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Batch sizes, retry limits and claim timeouts must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_cache_ttls(self) -> Settings:
        """Redis must expire before the database so the database stays the source of truth."""
        if self.CACHE_TTL_EPHEMERAL < 60:
            raise ValueError("CACHE_TTL_EPHEMERAL must be >= 60 seconds")
        if self.CACHE_TTL_EPHEMERAL >= self.CACHE_TTL_DURABLE:
            raise ValueError("CACHE_TTL_EPHEMERAL must be shorter than CACHE_TTL_DURABLE")
        return self


settings = Settings()
