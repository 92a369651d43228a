"""Known wrapper-URL shapes: newsletter click trackers, shorteners, social redirects.

``extract`` patterns yield the destination straight from the URL structure.
``redirect`` patterns need an HTTP hop. The table is ordered and the first
match wins, so each provider's ``extract`` entry must precede its broader
``redirect`` entry or extraction is silently skipped in favour of a network hop.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal
from urllib.parse import parse_qs, urlsplit

PatternKind = Literal["extract", "redirect"]


@dataclass(frozen=True)
class WrapperPattern:
    name: str
    kind: PatternKind
    pattern: re.Pattern[str]
    extract: Callable[[str], str | None] | None = None

    def matches(self, url: str) -> bool:
        return bool(self.pattern.search(url))


def _query_param(param: str) -> Callable[[str], str | None]:
    """Build an extractor reading one URL-decoded query parameter as the destination."""

    def _extract(url: str) -> str | None:
        try:
            values = parse_qs(urlsplit(url).query).get(param)
        except ValueError:
            return None
        if not values:
            return None
        destination = values[0].strip()
        try:
            parsed = urlsplit(destination)
        except ValueError:
            return None
        if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
            return None
        return destination

    return _extract


def _redirect(name: str, regex: str) -> WrapperPattern:
    return WrapperPattern(name=name, kind="redirect", pattern=re.compile(regex, re.IGNORECASE))


def _extract(name: str, regex: str, param: str) -> WrapperPattern:
    return WrapperPattern(
        name=name,
        kind="extract",
        pattern=re.compile(regex, re.IGNORECASE),
        extract=_query_param(param),
    )


WRAPPER_PATTERNS: tuple[WrapperPattern, ...] = (
    # Substack: extract before the redirect-only shapes
    _extract("Substack Redirect with URI", r"^https://substack\.com/redirect/.*\?.*\buri=", "uri"),
    _redirect("Substack Email (mg)", r"^https://email\.mg\d?\.substack\.com/c/"),
    _redirect("Substack Redirect", r"^https://substack\.com/redirect/"),
    _redirect("Substack Publication Redirect", r"^https://[^./]+\.substack\.com/redirect/"),
    # Beehiiv
    _redirect("Beehiiv", r"^https://link\.mail\.beehiiv\.com/"),
    _redirect("Beehiiv Clicks", r"^https://[^./]+\.beehiiv\.com/clicks/"),
    # ConvertKit
    _redirect("ConvertKit", r"^https://click\.convertkit-mail\d?\.com/"),
    # Mailchimp: extract before the redirect-only shapes
    _extract(
        "Mailchimp with URL param",
        r"^https://([^./]+\.)+list-manage\.com/track/click\?.*\burl=",
        "url",
    ),
    _redirect("Mailchimp Click", r"^https://click\.mailchimp\.com/"),
    _redirect("Mailchimp List-Manage", r"^https://([^./]+\.)+list-manage\.com/track/click"),
    # Buttondown
    _redirect("Buttondown", r"^https://links\.buttondown\.email/"),
    _redirect("Buttondown Redirect", r"^https://buttondown\.email/redirect/"),
    # Campaign Monitor
    _redirect("Campaign Monitor", r"^https://link\.mail\.campaignmonitor\.com/"),
    _redirect("Campaign Monitor CreateSend", r"^https://[^./]+\.createsend\d?\.com/t/"),
    # Transactional / marketing email platforms
    _redirect("Postmark", r"^https://click\.pstmrk\.it/"),
    _redirect("SendGrid", r"^https://u\d+\.ct\.sendgrid\.net/"),
    _redirect("Constant Contact", r"^https://click\.em\.constantcontact\.com/"),
    _redirect("ActiveCampaign", r"^https://[^./]+\.activehosted\.com/lt\.php"),
    _redirect("Drip", r"^https://click\.dripemail\d?\.com/"),
    # Generic email tracking shapes
    _redirect("Generic Email Links", r"^https://links\.e\.[^/]+/"),
    _redirect("Generic Email Click", r"^https://click\.e\.[^/]+/"),
    _redirect("Generic Email Redirect", r"^https://email\.[^/]+/c/"),
    # URL shorteners
    _redirect("bit.ly", r"^https?://bit\.ly/"),
    _redirect("t.co (Twitter)", r"^https?://t\.co/"),
    _redirect("TinyURL", r"^https?://tinyurl\.com/"),
    _redirect("ow.ly (Hootsuite)", r"^https?://ow\.ly/"),
    _redirect("is.gd", r"^https?://is\.gd/"),
    _redirect("goo.gl (Google)", r"^https?://goo\.gl/"),
    _redirect("buff.ly (Buffer)", r"^https?://buff\.ly/"),
    _redirect("j.mp (Bitly)", r"^https?://j\.mp/"),
    _redirect("spr.ly (Sprinklr)", r"^https?://spr\.ly/"),
    _redirect("lnkd.in (LinkedIn)", r"^https?://lnkd\.in/"),
    _redirect("rb.gy (Rebrandly)", r"^https?://rb\.gy/"),
    _redirect("cutt.ly", r"^https?://cutt\.ly/"),
    _redirect("shorturl.at", r"^https?://shorturl\.at/"),
    # Social link tracking
    _extract("Facebook External Link", r"^https://l\.facebook\.com/l\.php", "u"),
    _redirect("LinkedIn Redirect", r"^https://(www\.)?linkedin\.com/redir/"),
    # News aggregators
    _redirect("Google News RSS", r"^https://news\.google\.com/rss/articles/"),
    _redirect("Google Feedproxy", r"^https?://feedproxy\.google\.com/"),
)


def match(url: str) -> WrapperPattern | None:
    """Return the first wrapper pattern matching ``url``, or None."""
    if not isinstance(url, str):
        return None
    for pattern in WRAPPER_PATTERNS:
        if pattern.matches(url):
            return pattern
    return None


def try_extract_destination(url: str) -> str | None:
    """Destination URL read from the wrapper's own structure, without any network I/O."""
    pattern = match(url)
    if pattern is None or pattern.kind != "extract" or pattern.extract is None:
        return None
    try:
        return pattern.extract(url)
    except Exception:
        return None


def is_known_wrapper(url: str) -> bool:
    return match(url) is not None
