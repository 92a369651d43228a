"""Pydantic request/response schemas for all API routes.

Route files import from here and never define BaseModel subclasses directly.
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

_MAX_URL_LENGTH = 4096


def _validate_url_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("url must not be empty")
    return value


# ---------------------------------------------------------------------------
# Canonicalization
# ---------------------------------------------------------------------------


class CanonicalizeRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=_MAX_URL_LENGTH)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _validate_url_text(v)


class CanonicalizeBatchRequest(BaseModel):
    urls: list[str] = Field(..., min_length=1, max_length=100)

    @field_validator("urls")
    @classmethod
    def validate_urls(cls, v: list[str]) -> list[str]:
        return [_validate_url_text(url) for url in v]


class ResolutionResponse(BaseModel):
    original_url: str
    canonical_url: str
    domain: str
    redirect_chain: list[str]
    status: Literal["success", "cached", "failed"]
    from_cache: bool
    error: str | None = None


class CanonicalizeBatchResponse(BaseModel):
    results: list[ResolutionResponse]
    total: int
    failed: int


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------


class EnrichRequest(BaseModel):
    id: str = Field(..., min_length=1, max_length=128)
    canonical_url: str = Field(..., min_length=1, max_length=_MAX_URL_LENGTH)
    domain: str | None = None
    title: str | None = Field(default=None, max_length=1000)
    description: str | None = None


class EnrichResponse(BaseModel):
    status: Literal["success", "fallback"]
    source: str
    title: str
    description: str | None = None
    author: str | None = None
    image_url: str | None = None
    published_at: str | None = None
    error: str | None = None
    blocked_reason: str | None = None


class DisplayTitleRequest(BaseModel):
    canonical_url: str = Field(..., min_length=1, max_length=_MAX_URL_LENGTH)
    title: str | None = None
    fallback_title: str | None = None
    domain: str | None = None


class DisplayTitleResponse(BaseModel):
    title: str
    source: Literal["extracted", "fallback", "generated"]


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


class ResetGarbageTitlesRequest(BaseModel):
    batch_size: int | None = Field(default=None, ge=1, le=1000)


class ResetGarbageTitlesResponse(BaseModel):
    scanned: int
    reset: int
