"""Typed contracts for the title enrichment pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass
class LinkToEnrich:
    id: str
    canonical_url: str
    domain: str = ""
    title: str | None = None
    description: str | None = None


@dataclass
class TierResult:
    """Normalized output of one extraction backend."""

    title: str | None = None
    description: str | None = None
    author: str | None = None
    image_url: str | None = None
    published_at: str | None = None


@dataclass
class EnrichmentResult:
    status: Literal["success", "fallback"]
    source: str
    title: str
    description: str | None = None
    author: str | None = None
    image_url: str | None = None
    published_at: str | None = None
    error: str | None = None
    # Set on a fallback result when a tier only reached a challenge/paywall/placeholder page
    blocked_reason: str | None = None
