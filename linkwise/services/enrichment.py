"""Title enrichment: an ordered chain of extraction tiers ending in one that cannot fail.

Tier order:
1. article    - httpx + trafilatura metadata, self-hosted
2. jina       - remote JS-rendering reader
3. firecrawl  - paid scraper, only when configured
4. ai         - headline synthesized from URL + domain
5. url_path   - deterministic URL-to-title formatter

Each tier's exception, timeout, or empty/short/blocked title advances to the
next tier. enrich() never raises and never returns an empty title.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

import structlog

from linkwise.core.config import settings
from linkwise.core.constants import Enrichment, EnrichmentSource, EnrichmentStatus
from linkwise.core.errors import ErrorCode, ServiceError
from linkwise.core.metrics import enrichment_tier_failures_total, enrichment_total
from linkwise.services import llm
from linkwise.services.enrichment_types import EnrichmentResult, LinkToEnrich, TierResult
from linkwise.services.title_utils import (
    decode_entities,
    format_url_as_title,
    is_blocked_title,
    strip_publication_suffix,
)
from linkwise.services.url_normalizer import extract_domain
from linkwise.tools.extract_article import extract_article
from linkwise.tools.reader_jina import read_with_jina
from linkwise.tools.scrape_firecrawl import is_configured as firecrawl_configured
from linkwise.tools.scrape_firecrawl import scrape_with_firecrawl

logger = structlog.get_logger(__name__)

# Tiers whose titles come from the page itself
_EXTRACTED_SOURCES = frozenset(
    {EnrichmentSource.ARTICLE, EnrichmentSource.JINA, EnrichmentSource.FIRECRAWL}
)


class EnrichmentTier(Protocol):
    name: str

    async def attempt(self, link: LinkToEnrich) -> TierResult | None: ...


class ArticleTier:
    name = EnrichmentSource.ARTICLE

    async def attempt(self, link: LinkToEnrich) -> TierResult | None:
        return await extract_article(link.canonical_url)


class JinaTier:
    name = EnrichmentSource.JINA

    async def attempt(self, link: LinkToEnrich) -> TierResult | None:
        return await read_with_jina(link.canonical_url)


class FirecrawlTier:
    name = EnrichmentSource.FIRECRAWL

    async def attempt(self, link: LinkToEnrich) -> TierResult | None:
        if not firecrawl_configured():
            return None
        return await scrape_with_firecrawl(link.canonical_url)


class AITitleTier:
    name = EnrichmentSource.AI

    async def attempt(self, link: LinkToEnrich) -> TierResult | None:
        title = await llm.generate_title(link.canonical_url, link.domain)
        return TierResult(title=title) if title else None


def default_tiers() -> list[EnrichmentTier]:
    return [ArticleTier(), JinaTier(), FirecrawlTier(), AITitleTier()]


def _clean_title(title: str | None) -> str:
    cleaned = strip_publication_suffix(decode_entities(title))
    return cleaned[: Enrichment.MAX_TITLE_LENGTH].strip()


def _fallback_title(link: LinkToEnrich) -> str:
    return format_url_as_title(link.canonical_url, link.domain) or link.canonical_url or "Untitled"


class EnrichmentOrchestrator:
    def __init__(
        self,
        tiers: list[EnrichmentTier] | None = None,
        tier_timeout: float | None = None,
    ):
        self.tiers = tiers if tiers is not None else default_tiers()
        self.tier_timeout = tier_timeout or settings.ENRICH_TIER_TIMEOUT

    async def enrich(self, link: LinkToEnrich) -> EnrichmentResult:
        """Return a title for ``link``; the title is never empty."""
        if not link.domain:
            link.domain = extract_domain(link.canonical_url)

        existing = (link.title or "").strip()
        if existing:
            enrichment_total.labels(
                source=EnrichmentSource.PREEXISTING, status=EnrichmentStatus.SUCCESS
            ).inc()
            return EnrichmentResult(
                status=EnrichmentStatus.SUCCESS,
                source=EnrichmentSource.PREEXISTING,
                title=existing,
                description=link.description,
            )

        errors: list[str] = []
        blocked_reason: str | None = None
        for tier in self.tiers:
            result, reason = await self._run_tier(tier, link)
            if result is None:
                if reason.startswith("blocked:") and blocked_reason is None:
                    blocked_reason = reason.removeprefix("blocked:")
                errors.append(f"{tier.name}: {reason}")
                continue

            status = (
                EnrichmentStatus.SUCCESS
                if tier.name in _EXTRACTED_SOURCES
                else EnrichmentStatus.FALLBACK
            )
            enrichment_total.labels(source=tier.name, status=status).inc()
            logger.info(
                "enrich.success",
                link_id=link.id,
                source=tier.name,
                title_preview=result.title[:80] if result.title else "",
            )
            return EnrichmentResult(
                status=status,
                source=tier.name,
                title=result.title or "",
                description=result.description or link.description,
                author=result.author,
                image_url=result.image_url,
                published_at=result.published_at,
                blocked_reason=blocked_reason if status == EnrichmentStatus.FALLBACK else None,
            )

        title = _fallback_title(link)
        enrichment_total.labels(
            source=EnrichmentSource.URL_PATH, status=EnrichmentStatus.FALLBACK
        ).inc()
        logger.info(
            "enrich.url_path_fallback",
            link_id=link.id,
            url=link.canonical_url[:100],
            tier_errors=errors,
        )
        return EnrichmentResult(
            status=EnrichmentStatus.FALLBACK,
            source=EnrichmentSource.URL_PATH,
            title=title,
            description=link.description,
            error="; ".join(errors) or None,
            blocked_reason=blocked_reason,
        )

    async def _run_tier(
        self, tier: EnrichmentTier, link: LinkToEnrich
    ) -> tuple[TierResult | None, str]:
        """Run one tier under its timeout. Returns (result, "") or (None, reason)."""
        try:
            raw = await asyncio.wait_for(tier.attempt(link), timeout=self.tier_timeout)
        except TimeoutError:
            return self._tier_failed(tier, link, "timeout")
        except Exception as exc:
            logger.warning(
                "enrich.tier_error",
                tier=tier.name,
                link_id=link.id,
                error=str(exc),
                error_code=exc.code.value if isinstance(exc, ServiceError) else None,
            )
            return self._tier_failed(tier, link, "error")

        if raw is None:
            return self._tier_failed(tier, link, "empty")

        title = _clean_title(raw.title)
        if len(title) < Enrichment.MIN_TITLE_LENGTH:
            return self._tier_failed(tier, link, "empty")
        blocked = is_blocked_title(title, domain=link.domain)
        if blocked:
            logger.info(
                "enrich.blocked_title",
                tier=tier.name,
                link_id=link.id,
                reason=blocked,
                title_preview=title[:80],
            )
            self._tier_failed(tier, link, "blocked")
            return None, f"blocked:{blocked}"

        raw.title = title
        if raw.description:
            raw.description = decode_entities(raw.description)[: Enrichment.MAX_DESCRIPTION_LENGTH]
        return raw, ""

    def _tier_failed(
        self, tier: EnrichmentTier, link: LinkToEnrich, reason: str
    ) -> tuple[None, str]:
        enrichment_tier_failures_total.labels(tier=tier.name, reason=reason).inc()
        logger.debug("enrich.tier_failed", tier=tier.name, link_id=link.id, reason=reason)
        return None, reason

    async def enrich_many(self, links: list[LinkToEnrich]) -> list[EnrichmentResult]:
        """Enrich every link concurrently; one result per input, in input order."""
        if not links:
            return []

        outcomes = await asyncio.gather(
            *(self.enrich(link) for link in links),
            return_exceptions=True,
        )

        results: list[EnrichmentResult] = []
        for link, outcome in zip(links, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                error = ServiceError(
                    ErrorCode.BATCH_ITEM_FAILED,
                    str(outcome) or type(outcome).__name__,
                    {"link_id": link.id},
                    outcome,
                )
                logger.error("enrich.batch_item_failed", **error.to_dict())
                results.append(
                    EnrichmentResult(
                        status=EnrichmentStatus.FALLBACK,
                        source=EnrichmentSource.URL_PATH,
                        title=_fallback_title(link),
                        error=error.message,
                    )
                )
            else:
                results.append(outcome)

        logger.info(
            "enrich.batch_complete",
            total=len(results),
            success=sum(1 for r in results if r.status == EnrichmentStatus.SUCCESS),
            fallback=sum(1 for r in results if r.status == EnrichmentStatus.FALLBACK),
        )
        return results
