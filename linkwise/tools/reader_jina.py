"""Jina Reader tool: remote, JS-rendering page reader.

Returns TierResult on success, None on any failure. Never raises.
"""

import time
from urllib.parse import quote

import httpx
import structlog

from linkwise.core.circuit_breaker import call_with_circuit_breaker, jina_breaker
from linkwise.core.config import settings
from linkwise.core.errors import error_from_status
from linkwise.core.metrics import api_call_duration_seconds, api_calls_total
from linkwise.core.rate_limiter import jina_limiter, rate_limited_call
from linkwise.core.retry import RetryPolicies, with_retry
from linkwise.services.enrichment_types import TierResult

logger = structlog.get_logger(__name__)

_TIMEOUT = 15.0  # seconds


async def _fetch(url: str) -> dict:
    headers = {
        "Accept": "application/json",
        "X-Return-Format": "json",
    }
    if settings.JINA_API_KEY:
        headers["Authorization"] = f"Bearer {settings.JINA_API_KEY}"

    reader_url = f"{settings.JINA_READER_BASE_URL.rstrip('/')}/{quote(url, safe='')}"
    async with httpx.AsyncClient(timeout=_TIMEOUT) as client:
        response = await client.get(reader_url, headers=headers)
        if response.status_code >= 400:
            raise error_from_status(
                response.status_code,
                {"service": "jina", "url": url[:100]},
                retry_after=response.headers.get("retry-after"),
            )
        return response.json()


async def _read_with_retry(url: str) -> dict:
    return await with_retry(
        lambda: rate_limited_call(jina_limiter, "jina", _fetch, url),
        {"service": "jina", "url": url[:100]},
        RetryPolicies.READER,
    )


async def read_with_jina(url: str) -> TierResult | None:
    """Read ``url`` through the Jina reader and normalize its JSON payload."""
    start_time = time.perf_counter()
    try:
        payload = await call_with_circuit_breaker(jina_breaker, _read_with_retry, url)
    finally:
        api_call_duration_seconds.labels(api_name="jina").observe(
            time.perf_counter() - start_time
        )

    if not isinstance(payload, dict):
        api_calls_total.labels(api_name="jina", status="error").inc()
        return None

    data = payload.get("data") or {}
    if not isinstance(data, dict):
        api_calls_total.labels(api_name="jina", status="error").inc()
        logger.warning("reader_jina.unexpected_payload", url=url[:100])
        return None

    api_calls_total.labels(api_name="jina", status="success").inc()
    return TierResult(
        title=(data.get("title") or "").strip() or None,
        description=(data.get("description") or "").strip() or None,
    )
