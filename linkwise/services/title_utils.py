"""Title sanitizing: entity decoding, blocked-title detection, suffix stripping
and URL-to-title derivation.

Every function here is pure. get_display_title never returns empty text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal
from urllib.parse import unquote, urlsplit

from linkwise.services.url_normalizer import extract_domain

_NAMED_ENTITIES: dict[str, str] = {
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&apos;": "'",
    "&#39;": "'",
    "&nbsp;": " ",
    "&ndash;": "–",
    "&mdash;": "—",
    "&hellip;": "…",
    "&lsquo;": "‘",
    "&rsquo;": "’",
    "&ldquo;": "“",
    "&rdquo;": "”",
    "&bull;": "•",
    "&middot;": "·",
    "&trade;": "™",
    "&copy;": "©",
    "&reg;": "®",
    "&laquo;": "«",
    "&raquo;": "»",
}

_NAMED_ENTITY_RE = re.compile("|".join(re.escape(k) for k in _NAMED_ENTITIES), re.IGNORECASE)
_DECIMAL_ENTITY_RE = re.compile(r"&#(\d+);")
_HEX_ENTITY_RE = re.compile(r"&#x([0-9a-f]+);", re.IGNORECASE)


def _codepoint(value: int, original: str) -> str:
    try:
        return chr(value)
    except (ValueError, OverflowError):
        return original


def decode_entities(text: str | None) -> str:
    """Replace named and numeric HTML character references with literal characters."""
    if not text:
        return ""
    decoded = _NAMED_ENTITY_RE.sub(lambda m: _NAMED_ENTITIES[m.group(0).lower()], text)
    decoded = _DECIMAL_ENTITY_RE.sub(lambda m: _codepoint(int(m.group(1)), m.group(0)), decoded)
    decoded = _HEX_ENTITY_RE.sub(lambda m: _codepoint(int(m.group(1), 16), m.group(0)), decoded)
    return decoded


# Ordered (pattern, reason) table; the first match wins.
BLOCKED_TITLE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), reason)
    for pattern, reason in (
        # Bot / CAPTCHA challenges
        (r"are you a robot", "robot"),
        (r"captcha", "robot"),
        (r"just a moment", "robot"),
        (r"checking (your|if the site connection is) (browser|secure)", "robot"),
        (r"verify (that )?you are (a )?human", "robot"),
        (r"attention required.*cloudflare", "robot"),
        (r"^cloudflare", "robot"),
        (r"ddos protection", "robot"),
        # Browser upgrade / JavaScript required
        (r"(please )?update your browser", "browser"),
        (r"unsupported browser", "browser"),
        (r"browser (is )?not supported", "browser"),
        (r"(enable|requires?) javascript", "browser"),
        (r"javascript (is )?(disabled|required)", "browser"),
        # Access denied / age gates
        (r"access denied", "access_denied"),
        (r"403 forbidden", "access_denied"),
        (r"^forbidden$", "access_denied"),
        (r"age verification", "access_denied"),
        (r"restricted content", "access_denied"),
        # 404 / expired
        (r"page not found", "404"),
        (r"404 (error|not found)", "404"),
        (r"^404$", "404"),
        (r"link.*has expired", "expired"),
        (r"^error \d{3}", "error"),
        # Paywall / login prompts
        (r"subscribe to (continue|read)", "paywall"),
        (r"subscription required", "paywall"),
        (r"please log ?in", "paywall"),
        (r"sign in to (continue|read)", "paywall"),
        (r"create (a free |an )?account to", "paywall"),
        (r"members only", "paywall"),
        # Generic placeholders
        (r"^untitled$", "garbage"),
        (r"^home$", "garbage"),
        (r"^home\s*[|:\-–—]", "garbage"),
        (r"^index$", "garbage"),
        (r"^loading", "garbage"),
        (r"^please wait", "garbage"),
        (r"^redirecting", "garbage"),
        # Bare hostname under a common TLD
        (
            r"^(www\.)?[a-z0-9-]+(\.[a-z0-9-]+)*"
            r"\.(com|org|net|edu|gov|co|us|uk|de|fr|info|biz|news|blog)$",
            "garbage",
        ),
        (r"^.{1,2}$", "garbage"),
    )
)


def is_blocked_title(title: str | None, domain: str | None = None) -> str | None:
    """Return the reason ``title`` looks like a challenge/error/placeholder page, or None.

    A title that is just the link's own ``domain`` counts as a placeholder.
    """
    if title is None:
        return None
    text = title.strip()
    if not text:
        return "garbage"
    if domain and text.lower().removeprefix("www.") == domain.lower().removeprefix("www."):
        return "garbage"
    for pattern, reason in BLOCKED_TITLE_PATTERNS:
        if pattern.search(text):
            return reason
    return None


_DASH_SUFFIX_RE = re.compile(r"^(?P<head>.+?)\s+[—–-]\s+(?P<tail>[^—–-]+)$")
_MAX_DASH_SUFFIX = 30


def strip_publication_suffix(title: str | None) -> str:
    """Drop a trailing ``| Publication`` segment and a short trailing `` - Publication``."""
    if not title:
        return ""
    text = title.strip()

    if "|" in text:
        head = text.split("|", 1)[0].strip()
        if head:
            text = head

    match = _DASH_SUFFIX_RE.match(text)
    if match:
        tail = match.group("tail").strip()
        head = match.group("head").strip()
        # Publication names are short; long tails are part of the headline
        if tail and len(tail) < _MAX_DASH_SUFFIX and len(head) >= len(tail):
            text = head

    return text


ACRONYMS: frozenset[str] = frozenset(
    {
        "ai", "api", "ceo", "cfo", "cto", "nfl", "nba", "mlb", "nhl", "usa", "uk",
        "eu", "gpt", "llm", "ice", "fbi", "cia", "doj", "sec", "ftc", "nyc", "la", "sf",
    }
)

KNOWN_DOMAINS: dict[str, str] = {
    "nytimes": "The New York Times",
    "washingtonpost": "The Washington Post",
    "wsj": "The Wall Street Journal",
    "theguardian": "The Guardian",
    "bbc": "BBC",
    "cnn": "CNN",
    "apnews": "AP News",
    "reuters": "Reuters",
    "bloomberg": "Bloomberg",
    "techcrunch": "TechCrunch",
    "theverge": "The Verge",
    "arstechnica": "Ars Technica",
    "wired": "Wired",
}

_MONTHS = frozenset(
    {
        "jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "sept", "oct",
        "nov", "dec", "january", "february", "march", "april", "june", "july",
        "august", "september", "october", "november", "december",
    }
)
_SECOND_LEVEL = frozenset({"co", "com", "org", "net", "ac", "gov"})
_FILE_EXT_RE = re.compile(r"\.(html?|php|aspx?|jsp)$", re.IGNORECASE)
_NUMERIC_RE = re.compile(r"^\d+$")
_MIN_FORMATTED_TITLE = 5


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


def format_domain(domain: str) -> str:
    """Display name for a host: curated publication names, else a tidied host label."""
    host = (domain or "").lower().removeprefix("www.")
    if not host:
        return ""
    parts = host.split(".")

    for part in parts:
        if part in KNOWN_DOMAINS:
            return KNOWN_DOMAINS[part]

    # example.co.uk has the same shape as example.com
    if len(parts) > 2 and len(parts[-1]) == 2 and parts[-2] in _SECOND_LEVEL:
        parts = [*parts[:-2], f"{parts[-2]}.{parts[-1]}"]

    if len(parts) > 2 and parts[0] not in ("blog", "www"):
        return f"{_capitalize(parts[-2])} {_capitalize(parts[0])}"

    return _capitalize(parts[-2] if len(parts) >= 2 else parts[0])


def _is_date_like(segment: str) -> bool:
    if _NUMERIC_RE.match(segment):
        return True
    return segment.lower() in _MONTHS


def format_url_as_title(url: str, domain: str | None = None) -> str:
    """Derive a readable title from the URL path, or the site name for root URLs."""
    host = domain or extract_domain(url)
    try:
        path = urlsplit(url).path
    except ValueError:
        path = ""

    segments = [unquote(s) for s in path.split("/") if s]
    segments = [s for s in segments if not _is_date_like(s)]
    if not segments:
        return format_domain(host) or url

    slug = _FILE_EXT_RE.sub("", segments[-1])
    words = [w for w in re.split(r"[-_+\s]+", slug) if w]
    title = " ".join(w.upper() if w.lower() in ACRONYMS else _capitalize(w.lower()) for w in words)

    if not title:
        return format_domain(host) or url
    if len(title) < _MIN_FORMATTED_TITLE:
        site = format_domain(host)
        return f"{title} - {site}" if site else title
    return title


DisplayTitleSource = Literal["extracted", "fallback", "generated"]


@dataclass
class TitleableLink:
    canonical_url: str
    title: str | None = None
    fallback_title: str | None = None
    domain: str | None = None


@dataclass
class DisplayTitle:
    title: str
    source: DisplayTitleSource


def _clean(title: str | None) -> str:
    return strip_publication_suffix(decode_entities(title)).strip()


def get_display_title(link: TitleableLink) -> DisplayTitle:
    """Best title available for display, tagged with where it came from."""
    title = _clean(link.title)
    if title:
        return DisplayTitle(title=title, source="extracted")

    fallback = _clean(link.fallback_title)
    if fallback:
        return DisplayTitle(title=fallback, source="fallback")

    generated = format_url_as_title(link.canonical_url, link.domain)
    return DisplayTitle(title=generated or link.canonical_url or "Untitled", source="generated")


def get_display_title_text(link: TitleableLink) -> str:
    return get_display_title(link).title
