"""Self-hosted article metadata extraction: httpx fetch + trafilatura.

Returns TierResult on success, None on any failure. Never raises.
"""

import asyncio
import time

import httpx
import structlog
import trafilatura

from linkwise.core.config import settings
from linkwise.core.errors import error_from_status
from linkwise.core.metrics import api_call_duration_seconds, api_calls_total
from linkwise.core.retry import RetryPolicies, with_retry
from linkwise.services.enrichment_types import TierResult

logger = structlog.get_logger(__name__)

_TIMEOUT = 10.0  # seconds
_MAX_HTML_BYTES = 2_000_000


async def _fetch_html(url: str) -> str | None:
    async with httpx.AsyncClient(
        timeout=_TIMEOUT,
        follow_redirects=True,
        headers={
            "User-Agent": settings.USER_AGENT,
            "Accept": "text/html,application/xhtml+xml",
        },
    ) as client:
        response = await client.get(url)
        if response.status_code >= 400:
            raise error_from_status(response.status_code, {"url": url[:100]})
        content_type = response.headers.get("content-type", "")
        if "html" not in content_type.lower():
            return None
        return response.text[:_MAX_HTML_BYTES]


def _metadata_from_html(html: str, url: str) -> TierResult | None:
    document = trafilatura.extract_metadata(html, default_url=url)
    if document is None:
        return None
    return TierResult(
        title=document.title,
        description=document.description,
        author=document.author,
        image_url=document.image,
        published_at=document.date,
    )


async def extract_article(url: str) -> TierResult | None:
    """Fetch ``url`` and read title/description/author/image/date from its markup."""
    start_time = time.perf_counter()
    try:
        html = await with_retry(
            lambda: _fetch_html(url),
            {"service": "article", "url": url[:100]},
            RetryPolicies.METADATA,
        )
        if not html:
            api_calls_total.labels(api_name="article", status="empty").inc()
            return None
        # lxml parsing is CPU-bound
        result = await asyncio.to_thread(_metadata_from_html, html, url)
        api_calls_total.labels(api_name="article", status="success").inc()
        return result
    except Exception as exc:
        api_calls_total.labels(api_name="article", status="error").inc()
        logger.info("extract_article.failed", url=url[:100], error=str(exc))
        return None
    finally:
        api_call_duration_seconds.labels(api_name="article").observe(
            time.perf_counter() - start_time
        )
