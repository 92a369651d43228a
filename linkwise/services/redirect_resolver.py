"""Bounded walk of an HTTP redirect chain.

Each hop either short-circuits through a zero-network wrapper extraction or
makes one request with redirect-following disabled. The walk never raises;
any failure settles on the best URL reached so far.
"""

from __future__ import annotations

import time
from urllib.parse import urljoin

import httpx
import structlog

from linkwise.core.config import settings
from linkwise.core.constants import REDIRECT_STATUS_CODES
from linkwise.core.errors import ErrorCode, ServiceError, error_from_status
from linkwise.core.metrics import api_call_duration_seconds, api_calls_total
from linkwise.core.retry import RetryPolicies, with_retry
from linkwise.services.url_patterns import is_known_wrapper, try_extract_destination

logger = structlog.get_logger(__name__)


class RedirectResolver:
    """Follows redirects one hop at a time, up to ``max_hops``.

    An ``httpx.AsyncClient`` may be injected; otherwise one is created per
    ``resolve`` call and closed afterwards.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        max_hops: int | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
    ):
        self._client = client
        self.max_hops = max_hops or settings.CANONICAL_MAX_HOPS
        self.timeout = timeout or settings.REDIRECT_TIMEOUT
        self.user_agent = user_agent or settings.USER_AGENT

    async def resolve(self, start_url: str, chain: list[str]) -> str:
        """Return the final URL reached from ``start_url``.

        Every URL visited after ``start_url`` is appended to ``chain``; the
        caller seeds it with the URL it started from.
        """
        if self._client is not None:
            return await self._walk(self._client, start_url, chain)
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
            follow_redirects=False,
        ) as client:
            return await self._walk(client, start_url, chain)

    async def _walk(self, client: httpx.AsyncClient, start_url: str, chain: list[str]) -> str:
        current = start_url
        seen: set[str] = set()

        for hop in range(self.max_hops):
            if current in seen:
                logger.warning("redirect.loop_detected", url=current[:100], hops=hop)
                return current
            seen.add(current)

            extracted = try_extract_destination(current)
            if extracted:
                logger.debug("redirect.extracted", url=current[:100], destination=extracted[:100])
                chain.append(extracted)
                current = extracted
                continue

            if hop > 0 and not is_known_wrapper(current):
                return current

            try:
                location = await self._next_location(client, current, first_hop=hop == 0)
            except ServiceError as error:
                logger.info(
                    "redirect.hop_failed",
                    url=current[:100],
                    hop=hop,
                    error_code=error.code.value,
                    error=error.message,
                )
                return current

            if not location:
                return current

            logger.debug("redirect.hop", hop=hop, url=current[:100], location=location[:100])
            chain.append(location)
            current = location

        logger.info("redirect.max_hops_reached", url=current[:100], max_hops=self.max_hops)
        return current

    async def _next_location(
        self, client: httpx.AsyncClient, url: str, first_hop: bool
    ) -> str | None:
        """HEAD the URL; on the first hop fall back to GET when HEAD fails."""
        try:
            return await self._request_with_retry(client, "HEAD", url)
        except ServiceError:
            if not first_hop:
                raise
            logger.debug("redirect.head_failed_trying_get", url=url[:100])
            return await self._request_with_retry(client, "GET", url)

    async def _request_with_retry(
        self, client: httpx.AsyncClient, method: str, url: str
    ) -> str | None:
        context = {"service": "redirect", "operation": method.lower(), "url": url[:100]}
        return await with_retry(
            lambda: self._request(client, method, url),
            context,
            RetryPolicies.REDIRECT,
        )

    async def _request(self, client: httpx.AsyncClient, method: str, url: str) -> str | None:
        """One request without following redirects. Returns the absolute Location or None."""
        start = time.monotonic()
        status = "failure"
        try:
            # stream() so a GET fallback does not download the body
            async with client.stream(
                method,
                url,
                follow_redirects=False,
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
            ) as response:
                code = response.status_code
                location = response.headers.get("location")

            if code in REDIRECT_STATUS_CODES:
                status = "success"
                if not location:
                    return None
                target = urljoin(url, location.strip())
                if not target.lower().startswith(("http://", "https://")):
                    raise ServiceError(
                        ErrorCode.REDIRECT_INVALID_URL,
                        "Redirect target is not an http(s) URL",
                        {"url": url[:100], "location": location[:100]},
                    )
                return target
            if code < 400 or code == 404:
                status = "success"
                return None
            raise error_from_status(
                code,
                {"url": url[:100], "method": method},
                retry_after=response.headers.get("retry-after"),
            )
        finally:
            api_calls_total.labels(api_name="redirect", status=status).inc()
            api_call_duration_seconds.labels(api_name="redirect").observe(
                time.monotonic() - start
            )
