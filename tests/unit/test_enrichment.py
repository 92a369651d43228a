"""Unit tests for the tiered EnrichmentOrchestrator, using fake tiers."""

import asyncio
from unittest.mock import patch

import pytest

from linkwise.core.constants import EnrichmentSource, EnrichmentStatus
from linkwise.services.enrichment import EnrichmentOrchestrator
from linkwise.services.enrichment_types import LinkToEnrich, TierResult


class FakeTier:
    def __init__(
        self,
        name: str,
        result: TierResult | None = None,
        exc: Exception | None = None,
        delay: float = 0.0,
    ):
        self.name = name
        self.result = result
        self.exc = exc
        self.delay = delay
        self.calls = 0

    async def attempt(self, link: LinkToEnrich) -> TierResult | None:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc:
            raise self.exc
        return self.result


def _link(url: str = "https://example.com/2024/05/my-cool-post", **kwargs) -> LinkToEnrich:
    return LinkToEnrich(id="link-1", canonical_url=url, **kwargs)


@pytest.mark.asyncio
async def test_first_tier_with_a_good_title_wins() -> None:
    article = FakeTier(EnrichmentSource.ARTICLE, TierResult(title="Real Headline &amp; More"))
    jina = FakeTier(EnrichmentSource.JINA, TierResult(title="Other"))
    orchestrator = EnrichmentOrchestrator(tiers=[article, jina])

    result = await orchestrator.enrich(_link())

    assert result.status == EnrichmentStatus.SUCCESS
    assert result.source == EnrichmentSource.ARTICLE
    assert result.title == "Real Headline & More"
    assert jina.calls == 0


@pytest.mark.asyncio
async def test_existing_title_short_circuits_all_tiers() -> None:
    article = FakeTier(EnrichmentSource.ARTICLE, TierResult(title="Ignored"))
    orchestrator = EnrichmentOrchestrator(tiers=[article])

    result = await orchestrator.enrich(_link(title="  Already Titled  "))

    assert result.source == EnrichmentSource.PREEXISTING
    assert result.title == "Already Titled"
    assert article.calls == 0


@pytest.mark.asyncio
async def test_error_and_empty_tiers_fall_through() -> None:
    tiers = [
        FakeTier(EnrichmentSource.ARTICLE, exc=RuntimeError("parse failed")),
        FakeTier(EnrichmentSource.JINA, None),
        FakeTier(EnrichmentSource.FIRECRAWL, TierResult(title="ab")),
        FakeTier(EnrichmentSource.AI, TierResult(title="Synthesized Headline")),
    ]
    result = await EnrichmentOrchestrator(tiers=tiers).enrich(_link())

    assert result.source == EnrichmentSource.AI
    assert result.status == EnrichmentStatus.FALLBACK
    assert result.title == "Synthesized Headline"
    assert all(tier.calls == 1 for tier in tiers)


@pytest.mark.asyncio
async def test_slow_tier_times_out() -> None:
    slow = FakeTier(EnrichmentSource.ARTICLE, TierResult(title="Too Late"), delay=1.0)
    fast = FakeTier(EnrichmentSource.JINA, TierResult(title="In Time Headline"))
    orchestrator = EnrichmentOrchestrator(tiers=[slow, fast], tier_timeout=0.01)

    result = await orchestrator.enrich(_link())

    assert result.source == EnrichmentSource.JINA
    assert result.title == "In Time Headline"


@pytest.mark.asyncio
async def test_blocked_title_is_skipped_for_the_next_tier() -> None:
    tiers = [
        FakeTier(EnrichmentSource.ARTICLE, TierResult(title="Please update your browser")),
        FakeTier(EnrichmentSource.JINA, TierResult(title="The Future of AI Regulation | Wired")),
    ]
    result = await EnrichmentOrchestrator(tiers=tiers).enrich(_link())

    assert result.title == "The Future of AI Regulation"
    assert result.source == EnrichmentSource.JINA
    assert result.status == EnrichmentStatus.SUCCESS
    assert result.blocked_reason is None


@pytest.mark.asyncio
async def test_blocked_reason_is_kept_when_only_the_url_path_title_is_left() -> None:
    tiers = [
        FakeTier(EnrichmentSource.ARTICLE, TierResult(title="Just a moment...")),
        FakeTier(EnrichmentSource.JINA, TierResult(title="Please update your browser")),
    ]
    result = await EnrichmentOrchestrator(tiers=tiers).enrich(_link())

    assert result.status == EnrichmentStatus.FALLBACK
    assert result.source == EnrichmentSource.URL_PATH
    assert result.title == "My Cool Post"
    assert result.blocked_reason == "robot"


@pytest.mark.asyncio
async def test_title_equal_to_the_links_domain_is_skipped() -> None:
    tiers = [
        FakeTier(EnrichmentSource.ARTICLE, TierResult(title="nodejs.org")),
        FakeTier(EnrichmentSource.JINA, TierResult(title="Node.js")),
    ]
    result = await EnrichmentOrchestrator(tiers=tiers).enrich(_link("https://nodejs.org/en/about"))

    assert result.source == EnrichmentSource.JINA
    assert result.title == "Node.js"


@pytest.mark.asyncio
async def test_all_tiers_failing_yields_url_path_title() -> None:
    tiers = [
        FakeTier(EnrichmentSource.ARTICLE, exc=RuntimeError("down")),
        FakeTier(EnrichmentSource.AI, None),
    ]
    result = await EnrichmentOrchestrator(tiers=tiers).enrich(_link())

    assert result.status == EnrichmentStatus.FALLBACK
    assert result.source == EnrichmentSource.URL_PATH
    assert result.title == "My Cool Post"
    assert "article: error" in (result.error or "")


@pytest.mark.asyncio
async def test_title_is_never_empty_even_for_bare_hosts() -> None:
    result = await EnrichmentOrchestrator(tiers=[]).enrich(_link("https://example.com/"))
    assert result.title == "Example"


@pytest.mark.asyncio
async def test_domain_is_filled_from_the_url() -> None:
    link = _link("https://www.example.org/a-story")
    await EnrichmentOrchestrator(tiers=[]).enrich(link)
    assert link.domain == "example.org"


@pytest.mark.asyncio
async def test_enrich_many_isolates_failures_and_keeps_order() -> None:
    orchestrator = EnrichmentOrchestrator(
        tiers=[FakeTier(EnrichmentSource.ARTICLE, TierResult(title="A Real Headline"))]
    )
    links = [
        LinkToEnrich(id=str(n), canonical_url=f"https://example.com/post-{n}") for n in range(4)
    ]
    original_enrich = orchestrator.enrich

    async def flaky(link: LinkToEnrich):
        if link.id == "1":
            raise RuntimeError("unexpected")
        return await original_enrich(link)

    with patch.object(orchestrator, "enrich", side_effect=flaky):
        results = await orchestrator.enrich_many(links)

    assert len(results) == 4
    assert results[1].source == EnrichmentSource.URL_PATH
    assert results[1].title == "Post 1"
    assert results[1].error == "unexpected"
    assert [r.title for i, r in enumerate(results) if i != 1] == ["A Real Headline"] * 3


@pytest.mark.asyncio
async def test_enrich_many_empty() -> None:
    assert await EnrichmentOrchestrator(tiers=[]).enrich_many([]) == []
