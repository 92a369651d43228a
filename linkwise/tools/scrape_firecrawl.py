"""Firecrawl scrape tool: paid extraction service with paywall handling.

Only used when FIRECRAWL_API_KEY is set. Returns TierResult on success,
None on any failure. Never raises.
"""

import time

import httpx
import structlog

from linkwise.core.circuit_breaker import call_with_circuit_breaker, firecrawl_breaker
from linkwise.core.config import settings
from linkwise.core.constants import Enrichment
from linkwise.core.errors import error_from_status
from linkwise.core.metrics import api_call_duration_seconds, api_calls_total
from linkwise.core.rate_limiter import firecrawl_limiter, rate_limited_call
from linkwise.core.retry import RetryPolicies, with_retry
from linkwise.services.enrichment_types import TierResult

logger = structlog.get_logger(__name__)

_TIMEOUT = 30.0  # seconds


def is_configured() -> bool:
    return bool(settings.FIRECRAWL_API_KEY)


async def _scrape(url: str) -> dict:
    async with httpx.AsyncClient(timeout=_TIMEOUT) as client:
        response = await client.post(
            f"{settings.FIRECRAWL_BASE_URL.rstrip('/')}/v1/scrape",
            headers={
                "Authorization": f"Bearer {settings.FIRECRAWL_API_KEY}",
                "Content-Type": "application/json",
            },
            json={"url": url, "formats": ["html"], "onlyMainContent": True},
        )
        if response.status_code >= 400:
            raise error_from_status(
                response.status_code,
                {"service": "firecrawl", "url": url[:100]},
                retry_after=response.headers.get("retry-after"),
            )
        return response.json()


async def _scrape_with_retry(url: str) -> dict:
    return await with_retry(
        lambda: rate_limited_call(firecrawl_limiter, "firecrawl", _scrape, url),
        {"service": "firecrawl", "url": url[:100]},
        RetryPolicies.READER,
    )


def _truncate(value: object, limit: int) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text[:limit] if text else None


async def scrape_with_firecrawl(url: str) -> TierResult | None:
    """Scrape ``url`` and map Firecrawl's page metadata onto a TierResult."""
    if not is_configured():
        return None

    start_time = time.perf_counter()
    try:
        payload = await call_with_circuit_breaker(firecrawl_breaker, _scrape_with_retry, url)
    finally:
        api_call_duration_seconds.labels(api_name="firecrawl").observe(
            time.perf_counter() - start_time
        )

    if not isinstance(payload, dict) or not payload.get("success", True):
        api_calls_total.labels(api_name="firecrawl", status="error").inc()
        return None

    metadata = (payload.get("data") or {}).get("metadata") or {}
    api_calls_total.labels(api_name="firecrawl", status="success").inc()
    return TierResult(
        title=_truncate(metadata.get("title") or metadata.get("ogTitle"), Enrichment.MAX_TITLE_LENGTH),
        description=_truncate(
            metadata.get("description") or metadata.get("ogDescription"),
            Enrichment.MAX_DESCRIPTION_LENGTH,
        ),
        author=_truncate(metadata.get("author"), Enrichment.MAX_AUTHOR_LENGTH),
        image_url=_truncate(metadata.get("ogImage"), 2048),
        published_at=_truncate(
            metadata.get("publishedTime") or metadata.get("article:published_time"), 64
        ),
    )
