"""URL guards applied before any outbound request is made for a link."""

import ipaddress
from urllib.parse import urlsplit

_BLOCKED_HOSTNAMES = {
    "localhost",
    "0.0.0.0",
    "127.0.0.1",
    "::1",
}


def _is_ip_literal(hostname: str) -> bool:
    try:
        ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return True


def _is_private_ip(hostname: str) -> bool:
    """Return True when hostname is an IP address in private/local ranges."""
    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_reserved
        or ip.is_unspecified
    )


def check_public_url(url: str) -> tuple[bool, str]:
    """Validate URL scheme/host. Returns (allowed, reason)."""
    try:
        parsed = urlsplit(str(url or "").strip())
        hostname = (parsed.hostname or "").strip().lower()
    except ValueError:
        return False, "unparseable"

    if parsed.scheme.lower() not in {"http", "https"}:
        return False, "invalid_scheme"
    if not hostname:
        return False, "missing_hostname"
    if (
        hostname in _BLOCKED_HOSTNAMES
        or hostname.endswith(".localhost")
        or hostname.endswith(".local")
        or hostname.endswith(".internal")
    ):
        return False, "blocked_hostname"
    if _is_private_ip(hostname):
        return False, "private_ip"
    # Bare IPv4 literals are never article links
    if _is_ip_literal(hostname):
        return False, "ip_literal"
    return True, "ok"


def should_exclude(url: str) -> bool:
    """True for non-http(s) schemes, local/loopback hosts, IP literals and unparseable input."""
    allowed, _ = check_public_url(url)
    return not allowed
