"""Public entry point for URL canonicalization.

canonicalize() never raises. Any internal failure degrades to the normalized
original URL with ``status="failed"``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Literal

import structlog

from linkwise.core.errors import ErrorCode, ServiceError
from linkwise.core.metrics import canonicalize_total, redirect_hops
from linkwise.services.canonical_cache import CanonicalCache
from linkwise.services.redirect_resolver import RedirectResolver
from linkwise.services.url_normalizer import extract_domain, normalize_url, should_exclude
from linkwise.services.url_patterns import try_extract_destination

logger = structlog.get_logger(__name__)

ResolutionStatus = Literal["success", "cached", "failed"]


@dataclass
class ResolutionResult:
    original_url: str
    canonical_url: str
    domain: str
    redirect_chain: list[str] = field(default_factory=list)
    status: ResolutionStatus = "success"
    from_cache: bool = False
    error: str | None = None


class Canonicalizer:
    def __init__(self, cache: CanonicalCache, resolver: RedirectResolver | None = None):
        self.cache = cache
        self.resolver = resolver or RedirectResolver()

    async def canonicalize(self, url: str) -> ResolutionResult:
        """Resolve ``url`` to its canonical form.

        Steps: exclusion check, cache lookup, zero-network extraction, redirect
        walk, normalization, cache write.
        """
        if should_exclude(url):
            canonicalize_total.labels(status="failed").inc()
            return ResolutionResult(
                original_url=url,
                canonical_url=url,
                domain=extract_domain(url),
                redirect_chain=[url],
                status="failed",
                error="URL excluded from canonicalization",
            )

        try:
            cached = await self.cache.lookup(url)
            if cached is not None:
                logger.debug("canonicalize.cache_hit", url=url[:100], tier=cached.source)
                canonicalize_total.labels(status="cached").inc()
                return ResolutionResult(
                    original_url=url,
                    canonical_url=cached.canonical_url,
                    domain=extract_domain(cached.canonical_url),
                    redirect_chain=cached.redirect_chain or [url],
                    status="cached",
                    from_cache=True,
                )

            chain = [url]
            current = url
            extracted = try_extract_destination(url)
            if extracted:
                chain.append(extracted)
                current = extracted

            final_url = await self.resolver.resolve(current, chain)
            canonical = normalize_url(final_url)
            redirect_hops.observe(len(chain) - 1)

            await self.cache.store(url, canonical, chain)

            canonicalize_total.labels(status="success").inc()
            return ResolutionResult(
                original_url=url,
                canonical_url=canonical,
                domain=extract_domain(canonical),
                redirect_chain=chain,
                status="success",
            )
        except Exception as exc:
            logger.exception("canonicalize.failed", url=url[:100])
            canonicalize_total.labels(status="failed").inc()
            fallback = normalize_url(url)
            return ResolutionResult(
                original_url=url,
                canonical_url=fallback,
                domain=extract_domain(fallback),
                redirect_chain=[url],
                status="failed",
                error=str(exc) or type(exc).__name__,
            )

    async def canonicalize_many(self, urls: list[str]) -> list[ResolutionResult]:
        """Canonicalize every URL concurrently; one result per input, in input order."""
        if not urls:
            return []

        outcomes = await asyncio.gather(
            *(self.canonicalize(url) for url in urls),
            return_exceptions=True,
        )

        results: list[ResolutionResult] = []
        for url, outcome in zip(urls, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                error = ServiceError(
                    ErrorCode.BATCH_ITEM_FAILED,
                    str(outcome) or type(outcome).__name__,
                    {"url": url[:100]},
                    outcome,
                )
                logger.error("canonicalize.batch_item_failed", **error.to_dict())
                results.append(
                    ResolutionResult(
                        original_url=url,
                        canonical_url=normalize_url(url),
                        domain=extract_domain(url),
                        redirect_chain=[url],
                        status="failed",
                        error=error.message,
                    )
                )
            else:
                results.append(outcome)

        failed = sum(1 for r in results if r.status == "failed")
        logger.info(
            "canonicalize.batch_complete",
            total=len(results),
            succeeded=len(results) - failed,
            cached=sum(1 for r in results if r.from_cache),
            failed=failed,
        )
        return results

    async def same_canonical(self, url1: str, url2: str) -> bool:
        first, second = await asyncio.gather(self.canonicalize(url1), self.canonicalize(url2))
        return first.canonical_url == second.canonical_url
