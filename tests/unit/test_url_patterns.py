"""Unit tests for the wrapper-URL pattern table."""

from urllib.parse import quote

import pytest

from linkwise.services.url_patterns import (
    WRAPPER_PATTERNS,
    is_known_wrapper,
    match,
    try_extract_destination,
)

DESTINATION = "https://example.com/articles/ai-regulation?id=7"


def test_substack_uri_param_is_extracted_without_network() -> None:
    url = f"https://substack.com/redirect/2/abc?j=xyz&uri={quote(DESTINATION, safe='')}"
    pattern = match(url)
    assert pattern is not None
    assert pattern.kind == "extract"
    assert try_extract_destination(url) == DESTINATION


def test_mailchimp_url_param_is_extracted_without_network() -> None:
    url = (
        "https://news.us3.list-manage.com/track/click?u=abc&id=def"
        f"&url={quote(DESTINATION, safe='')}"
    )
    assert match(url).kind == "extract"
    assert try_extract_destination(url) == DESTINATION


def test_facebook_outbound_link_is_extracted() -> None:
    url = f"https://l.facebook.com/l.php?u={quote(DESTINATION, safe='')}&h=AT0"
    assert try_extract_destination(url) == DESTINATION


def test_redirect_only_wrappers_need_a_hop() -> None:
    url = "https://substack.com/redirect/2/eyJlIjoiaHR0cHM6Ly9leGFtcGxlLmNvbSJ9"
    pattern = match(url)
    assert pattern is not None
    assert pattern.kind == "redirect"
    assert try_extract_destination(url) is None


@pytest.mark.parametrize(
    "url",
    [
        "https://email.mg1.substack.com/c/eJxVkE1",
        "https://link.mail.beehiiv.com/ss/c/abc",
        "https://click.convertkit-mail2.com/abc/def",
        "https://links.buttondown.email/abc",
        "https://u12345.ct.sendgrid.net/ls/click?upn=abc",
        "https://bit.ly/3abcDEF",
        "http://t.co/xyz",
        "https://tinyurl.com/y7abc",
        "https://lnkd.in/dAbc",
        "https://www.linkedin.com/redir/redirect?url=abc",
        "https://news.google.com/rss/articles/CBMiK2h0",
        "https://acme.activehosted.com/lt.php?s=abc",
    ],
)
def test_known_wrappers_are_recognized(url: str) -> None:
    assert is_known_wrapper(url)


@pytest.mark.parametrize(
    "url",
    [
        "https://example.com/blog/post",
        "https://notbit.ly/abc",
        "https://substack.com/@writer",
        "",
    ],
)
def test_ordinary_urls_are_not_wrappers(url: str) -> None:
    assert not is_known_wrapper(url)
    assert try_extract_destination(url) is None


def test_extract_rejects_non_http_destinations() -> None:
    url = f"https://l.facebook.com/l.php?u={quote('javascript:alert(1)', safe='')}"
    assert try_extract_destination(url) is None


def test_extract_returns_none_when_param_missing() -> None:
    assert try_extract_destination("https://l.facebook.com/l.php?h=AT0") is None


def test_match_never_raises_on_garbage() -> None:
    assert match(None) is None  # type: ignore[arg-type]
    assert try_extract_destination("http://[::1") is None


def test_every_extract_pattern_precedes_broader_redirect_patterns() -> None:
    """An extract-capable URL must never be claimed first by a redirect entry.

    For each extract pattern, build a URL it matches and check no redirect
    entry earlier in the table also matches it.
    """
    samples = {
        "Substack Redirect with URI": (
            f"https://substack.com/redirect/2/abc?uri={quote(DESTINATION, safe='')}"
        ),
        "Mailchimp with URL param": (
            f"https://news.us3.list-manage.com/track/click?u=a&url={quote(DESTINATION, safe='')}"
        ),
        "Facebook External Link": f"https://l.facebook.com/l.php?u={quote(DESTINATION, safe='')}",
    }
    extract_names = {p.name for p in WRAPPER_PATTERNS if p.kind == "extract"}
    assert extract_names == set(samples)

    for name, sample in samples.items():
        index = next(i for i, p in enumerate(WRAPPER_PATTERNS) if p.name == name)
        assert WRAPPER_PATTERNS[index].matches(sample)
        earlier = [p.name for p in WRAPPER_PATTERNS[:index] if p.matches(sample)]
        assert earlier == [], f"{name} is shadowed by {earlier}"
        # And the broader redirect entry for the same host does match it later
        later = [p for p in WRAPPER_PATTERNS[index + 1 :] if p.matches(sample)]
        assert all(p.kind == "redirect" for p in later)
