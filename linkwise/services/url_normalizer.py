"""Canonical textual form of a URL.

normalize_url is a pure, idempotent function:
normalize_url(normalize_url(u)) == normalize_url(u).
"""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from linkwise.core.tracking_params import TRACKING_PARAMS
from linkwise.core.url_safety import should_exclude

__all__ = [
    "extract_base_domain",
    "extract_domain",
    "has_meaningful_params",
    "is_from_domain",
    "is_same_domain",
    "normalize_url",
    "should_exclude",
]

_DEFAULT_PORTS = {80, 443}
_REPEATED_SLASHES = re.compile(r"/{2,}")
_TWO_PART_TLDS = {"co.uk", "co.nz", "co.jp", "com.au", "com.br", "org.uk"}


def normalize_url(url: str) -> str:
    """Normalize a URL to its canonical form.

    Rules, in order:
    1. http → https
    2. lowercase host, strip a leading ``www.``
    3. drop explicit default ports (80/443)
    4. drop the fragment
    5. drop tracking query parameters
    6. sort remaining query parameters by key
    7. collapse repeated path slashes
    8. strip one trailing path slash, except for the root path

    Unparseable or non-http(s) input is returned unchanged.
    """
    try:
        parsed = urlsplit(url.strip())
        hostname = parsed.hostname
        port = parsed.port
    except (ValueError, AttributeError):
        return url

    scheme = parsed.scheme.lower()
    if scheme not in ("http", "https") or not hostname:
        return url

    host = hostname.lower()
    if host.startswith("www."):
        host = host[4:]
    if ":" in host:
        host = f"[{host}]"  # IPv6 literal

    userinfo = parsed.netloc.rpartition("@")[0]
    netloc = f"{userinfo}@{host}" if userinfo else host
    if port is not None and port not in _DEFAULT_PORTS:
        netloc = f"{netloc}:{port}"

    pairs = [
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if key not in TRACKING_PARAMS
    ]
    pairs.sort(key=lambda kv: kv[0])
    query = urlencode(pairs)

    path = _REPEATED_SLASHES.sub("/", parsed.path)
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    if not path:
        path = "/"

    return urlunsplit(("https", netloc, path, query, ""))


def extract_domain(url: str) -> str:
    """Hostname without a leading ``www.``, lowercased. Empty string on parse failure."""
    try:
        hostname = urlsplit(str(url or "").strip()).hostname or ""
    except ValueError:
        return ""
    hostname = hostname.lower()
    return hostname[4:] if hostname.startswith("www.") else hostname


def extract_base_domain(url: str) -> str:
    """Registrable domain, e.g. ``blog.example.co.uk`` → ``example.co.uk``.

    Heuristic: handles a short list of two-part TLDs, not the full public suffix list.
    """
    domain = extract_domain(url)
    parts = domain.split(".")
    if len(parts) <= 2:
        return domain
    if ".".join(parts[-2:]) in _TWO_PART_TLDS:
        return ".".join(parts[-3:])
    return ".".join(parts[-2:])


def is_same_domain(url1: str, url2: str) -> bool:
    return extract_domain(url1) == extract_domain(url2)


def is_from_domain(url: str, domain: str) -> bool:
    """True when ``url`` is on ``domain`` or one of its subdomains."""
    url_domain = extract_domain(url)
    target = domain.lower().removeprefix("www.")
    return bool(url_domain) and (url_domain == target or url_domain.endswith(f".{target}"))


def has_meaningful_params(url: str) -> bool:
    """True when the URL carries at least one non-tracking query parameter."""
    try:
        query = urlsplit(url).query
    except ValueError:
        return False
    return any(key not in TRACKING_PARAMS for key, _ in parse_qsl(query, keep_blank_values=True))
