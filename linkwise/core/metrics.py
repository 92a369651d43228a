"""Prometheus metrics for link canonicalization and enrichment.

Provides counters and histograms for tracking:
- Canonicalization outcomes and redirect hop counts
- Cache hit/miss rates (redis and database tiers)
- Enrichment outcomes per tier
- External call durations, retries, circuit breaker and rate limiter activity
"""

from prometheus_client import Counter, Histogram

# Canonicalization metrics
canonicalize_total = Counter(
    "canonicalize_total",
    "Total canonicalization calls",
    ["status"],  # success/cached/failed
)

redirect_hops = Histogram(
    "redirect_hops",
    "Redirect hops taken per resolved URL",
    buckets=[0, 1, 2, 3, 4, 5, 10],
)

# Cache metrics
cache_hits_total = Counter(
    "cache_hits_total",
    "Total cache hits",
    ["cache_tier"],  # redis/database
)

cache_misses_total = Counter(
    "cache_misses_total",
    "Total cache misses",
    ["cache_tier"],
)

# Enrichment metrics
enrichment_total = Counter(
    "enrichment_total",
    "Total enrichment results by winning tier",
    ["source", "status"],  # source: preexisting/article/jina/firecrawl/ai/url_path
)

enrichment_tier_failures_total = Counter(
    "enrichment_tier_failures_total",
    "Enrichment tier attempts that did not yield a usable title",
    ["tier", "reason"],  # reason: empty/blocked/timeout/error
)

# External call metrics
api_calls_total = Counter(
    "api_calls_total",
    "Total external API calls",
    ["api_name", "status"],  # success/failure/timeout
)

api_call_duration_seconds = Histogram(
    "api_call_duration_seconds",
    "External call duration in seconds",
    ["api_name"],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)

retry_attempts_total = Counter(
    "retry_attempts_total",
    "Retries scheduled after a retryable failure",
    ["service", "error_code"],
)

# Circuit breaker metrics
circuit_breaker_state_changes_total = Counter(
    "circuit_breaker_state_changes_total",
    "Circuit breaker state transitions",
    ["api_name", "from_state", "to_state"],
)

# Rate limiter metrics
rate_limiter_throttled_total = Counter(
    "rate_limiter_throttled_total",
    "Total requests throttled by rate limiter",
    ["api_name"],
)
