"""Unit tests for the Canonicalizer entry point."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio

from linkwise.services.canonical_cache import CanonicalCache
from linkwise.services.canonicalizer import Canonicalizer, ResolutionResult
from linkwise.services.redirect_resolver import RedirectResolver


@pytest.fixture
def calls() -> list[tuple[str, str]]:
    return []


@pytest_asyncio.fixture
async def canonicalizer(fake_redis, no_db, redirect_handler, calls):
    handler = redirect_handler(
        {
            "https://bit.ly/abc": "https://www.example.com/article/?utm_source=twitter",
            "https://bit.ly/loop": "https://bit.ly/loop",
        },
        calls,
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        yield Canonicalizer(
            CanonicalCache(fake_redis, no_db),
            RedirectResolver(client=client, max_hops=5, timeout=5.0),
        )


@pytest.mark.asyncio
async def test_plain_url_canonicalizes_to_its_normalized_form(canonicalizer) -> None:
    url = "http://www.Example.com/post/?utm_source=x&b=2&a=1"

    result = await canonicalizer.canonicalize(url)

    assert result.status == "success"
    assert result.canonical_url == "https://example.com/post?a=1&b=2"
    assert result.domain == "example.com"
    assert result.redirect_chain == [url]
    assert result.from_cache is False


@pytest.mark.asyncio
async def test_shortener_resolves_and_normalizes_destination(canonicalizer) -> None:
    result = await canonicalizer.canonicalize("https://bit.ly/abc")

    assert result.status == "success"
    assert result.canonical_url == "https://example.com/article"
    assert result.redirect_chain[0] == "https://bit.ly/abc"


@pytest.mark.asyncio
async def test_repeat_call_is_served_from_cache(canonicalizer, calls) -> None:
    first = await canonicalizer.canonicalize("https://bit.ly/abc")
    requests_after_first = len(calls)

    second = await canonicalizer.canonicalize("https://bit.ly/abc")

    assert second.status == "cached"
    assert second.from_cache is True
    assert second.canonical_url == first.canonical_url
    assert len(calls) == requests_after_first


@pytest.mark.asyncio
async def test_extractable_wrapper_never_requests_the_wrapper(canonicalizer, calls) -> None:
    url = (
        "https://example.us3.list-manage.com/track/click?u=1&id=2"
        "&url=https%3A%2F%2Fnews.example.org%2Fstory%3Futm_medium%3Demail"
    )

    result = await canonicalizer.canonicalize(url)

    assert result.canonical_url == "https://news.example.org/story"
    assert result.redirect_chain[:2] == [url, "https://news.example.org/story?utm_medium=email"]
    assert all("list-manage.com" not in requested for _, requested in calls)


@pytest.mark.asyncio
async def test_self_redirect_settles_without_error(canonicalizer) -> None:
    result = await canonicalizer.canonicalize("https://bit.ly/loop")

    assert result.status == "success"
    assert result.canonical_url == "https://bit.ly/loop"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "url",
    ["ftp://files.example.com/a", "http://localhost:8000/x", "http://127.0.0.1/admin", "not a url"],
)
async def test_excluded_urls_are_returned_unchanged(canonicalizer, calls, url) -> None:
    result = await canonicalizer.canonicalize(url)

    assert result.status == "failed"
    assert result.canonical_url == url
    assert result.error
    assert calls == []


@pytest.mark.asyncio
async def test_internal_failure_degrades_to_normalized_original(fake_redis, no_db) -> None:
    resolver = MagicMock()
    resolver.resolve = AsyncMock(side_effect=RuntimeError("boom"))
    canonicalizer = Canonicalizer(CanonicalCache(fake_redis, no_db), resolver)

    result = await canonicalizer.canonicalize("http://www.example.com/a/?utm_campaign=x")

    assert result.status == "failed"
    assert result.canonical_url == "https://example.com/a"
    assert result.error == "boom"


@pytest.mark.asyncio
async def test_batch_isolates_a_failing_item(canonicalizer) -> None:
    urls = [f"https://example.com/{n}" for n in range(5)]

    async def flaky(url: str) -> ResolutionResult:
        if url.endswith("/2"):
            raise RuntimeError("item exploded")
        return ResolutionResult(original_url=url, canonical_url=url, domain="example.com")

    canonicalizer.canonicalize = flaky

    results = await canonicalizer.canonicalize_many(urls)

    assert [r.original_url for r in results] == urls
    assert [r.status for r in results] == ["success", "success", "failed", "success", "success"]
    assert results[2].canonical_url == "https://example.com/2"
    assert "item exploded" in (results[2].error or "")


@pytest.mark.asyncio
async def test_empty_batch(canonicalizer) -> None:
    assert await canonicalizer.canonicalize_many([]) == []


@pytest.mark.asyncio
async def test_same_canonical(canonicalizer) -> None:
    assert await canonicalizer.same_canonical("https://bit.ly/abc", "https://example.com/article/")
    assert not await canonicalizer.same_canonical("https://example.com/a", "https://example.com/b")
