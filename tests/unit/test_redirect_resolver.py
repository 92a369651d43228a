"""Unit tests for RedirectResolver, driven entirely by httpx.MockTransport."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from linkwise.services.redirect_resolver import RedirectResolver


async def _resolve(handler, start: str, max_hops: int = 5) -> tuple[str, list[str]]:
    chain = [start]
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        resolver = RedirectResolver(client=client, max_hops=max_hops, timeout=5.0)
        final = await resolver.resolve(start, chain)
    return final, chain


@pytest.mark.asyncio
async def test_follows_shortener_to_destination_and_stops(redirect_handler) -> None:
    calls: list[tuple[str, str]] = []
    handler = redirect_handler(
        {"https://bit.ly/abc": "https://example.com/article"},
        calls,
    )

    final, chain = await _resolve(handler, "https://bit.ly/abc")

    assert final == "https://example.com/article"
    assert chain == ["https://bit.ly/abc", "https://example.com/article"]
    # A non-wrapper destination is not requested
    assert calls == [("HEAD", "https://bit.ly/abc")]


@pytest.mark.asyncio
async def test_redirect_loop_returns_first_repeated_url(redirect_handler) -> None:
    handler = redirect_handler(
        {
            "https://bit.ly/a": "https://bit.ly/b",
            "https://bit.ly/b": "https://bit.ly/c",
            "https://bit.ly/c": "https://bit.ly/a",
        }
    )

    final, chain = await _resolve(handler, "https://bit.ly/a")

    assert final == "https://bit.ly/a"
    assert chain == [
        "https://bit.ly/a",
        "https://bit.ly/b",
        "https://bit.ly/c",
        "https://bit.ly/a",
    ]


@pytest.mark.asyncio
async def test_hop_budget_caps_long_chains(redirect_handler) -> None:
    redirects = {f"https://bit.ly/{n}": f"https://bit.ly/{n + 1}" for n in range(1, 9)}
    calls: list[tuple[str, str]] = []

    final, chain = await _resolve(redirect_handler(redirects, calls), "https://bit.ly/1")

    assert final == "https://bit.ly/6"
    assert len(chain) == 6
    assert len(calls) == 5


@pytest.mark.asyncio
async def test_get_fallback_when_head_rejected_on_first_hop() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        if request.method == "HEAD":
            return httpx.Response(405)
        return httpx.Response(302, headers={"Location": "https://example.com/story"})

    final, chain = await _resolve(handler, "https://bit.ly/xyz")

    assert final == "https://example.com/story"
    assert calls == ["HEAD", "GET"]
    assert chain[-1] == "https://example.com/story"


@pytest.mark.asyncio
async def test_forbidden_later_hop_settles_on_current_url() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == "https://bit.ly/a":
            return httpx.Response(301, headers={"Location": "https://t.co/b"})
        return httpx.Response(403)

    final, chain = await _resolve(handler, "https://bit.ly/a")

    assert final == "https://t.co/b"
    assert chain == ["https://bit.ly/a", "https://t.co/b"]


@pytest.mark.asyncio
async def test_server_error_is_retried_before_giving_up_on_hop() -> None:
    responses = iter(
        [
            httpx.Response(503),
            httpx.Response(301, headers={"Location": "https://example.com/final"}),
        ]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return next(responses)

    with patch("linkwise.core.retry.asyncio.sleep", new=AsyncMock()):
        final, _ = await _resolve(handler, "https://bit.ly/retry")

    assert final == "https://example.com/final"


@pytest.mark.asyncio
async def test_relative_location_is_resolved_against_current_url(redirect_handler) -> None:
    handler = redirect_handler({"https://bit.ly/a": "/b"})

    final, chain = await _resolve(handler, "https://bit.ly/a")

    assert final == "https://bit.ly/b"
    assert chain == ["https://bit.ly/a", "https://bit.ly/b"]


@pytest.mark.asyncio
async def test_non_http_location_is_not_followed(redirect_handler) -> None:
    handler = redirect_handler({"https://bit.ly/a": "javascript:alert(1)"})

    final, chain = await _resolve(handler, "https://bit.ly/a")

    assert final == "https://bit.ly/a"
    assert chain == ["https://bit.ly/a"]


@pytest.mark.asyncio
async def test_extractable_wrapper_mid_chain_skips_network(redirect_handler) -> None:
    wrapped = "https://l.facebook.com/l.php?u=https%3A%2F%2Fexample.com%2Fpost&h=abc"
    calls: list[tuple[str, str]] = []
    handler = redirect_handler({"https://bit.ly/fb": wrapped}, calls)

    final, chain = await _resolve(handler, "https://bit.ly/fb")

    assert final == "https://example.com/post"
    assert chain == ["https://bit.ly/fb", wrapped, "https://example.com/post"]
    assert calls == [("HEAD", "https://bit.ly/fb")]


@pytest.mark.asyncio
async def test_not_found_keeps_current_url() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    final, chain = await _resolve(handler, "https://bit.ly/gone")

    assert final == "https://bit.ly/gone"
    assert chain == ["https://bit.ly/gone"]


@pytest.mark.asyncio
async def test_network_failure_keeps_start_url() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with patch("linkwise.core.retry.asyncio.sleep", new=AsyncMock()):
        final, chain = await _resolve(handler, "https://bit.ly/down")

    assert final == "https://bit.ly/down"
    assert chain == ["https://bit.ly/down"]
