"""Two-tier cache of resolved canonical URLs.

Redis is the latency shortcut (7 days by default); Postgres is the long-term
source of truth (30 days). Lookups go Redis first, then Postgres; writes go to
both. Every storage failure is reported as a miss or a no-op, never raised.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

import structlog

from linkwise.core.config import settings
from linkwise.core.constants import RedisKeys
from linkwise.core.db import DatabaseHandle
from linkwise.core.metrics import cache_hits_total, cache_misses_total
from linkwise.core.redis import RedisHandle
from linkwise.repositories import url_cache as url_cache_repo

logger = structlog.get_logger(__name__)


@dataclass
class CacheEntry:
    original_url: str
    canonical_url: str
    redirect_chain: list[str] = field(default_factory=list)
    resolved_at: datetime | None = None
    expires_at: datetime | None = None
    source: Literal["redis", "database"] = "redis"


def cache_key(original_url: str) -> str:
    digest = hashlib.sha256(original_url.encode("utf-8")).hexdigest()
    return RedisKeys.CANONICAL_URL.format(hash=digest)


def _parse_ts(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


class CanonicalCache:
    def __init__(
        self,
        redis: RedisHandle,
        db: DatabaseHandle,
        ephemeral_ttl: int | None = None,
        durable_ttl: int | None = None,
    ):
        self.redis = redis
        self.db = db
        self.ephemeral_ttl = ephemeral_ttl or settings.CACHE_TTL_EPHEMERAL
        self.durable_ttl = durable_ttl or settings.CACHE_TTL_DURABLE

    async def lookup(self, original_url: str) -> CacheEntry | None:
        """Return the live entry for ``original_url`` or None."""
        entry = await self._lookup_ephemeral(original_url)
        if entry is not None:
            cache_hits_total.labels(cache_tier="redis").inc()
            return entry
        cache_misses_total.labels(cache_tier="redis").inc()

        entry = await self._lookup_durable(original_url)
        if entry is None:
            cache_misses_total.labels(cache_tier="database").inc()
            return None

        cache_hits_total.labels(cache_tier="database").inc()
        await self._write_ephemeral(entry)
        return entry

    async def store(
        self,
        original_url: str,
        canonical_url: str,
        redirect_chain: list[str],
    ) -> None:
        now = datetime.now(UTC)
        entry = CacheEntry(
            original_url=original_url,
            canonical_url=canonical_url,
            redirect_chain=list(redirect_chain),
            resolved_at=now,
            expires_at=now + timedelta(seconds=self.ephemeral_ttl),
        )
        await self._write_ephemeral(entry)

        pool = await self._pool()
        if pool is None:
            return
        try:
            await url_cache_repo.upsert_url_cache(
                pool,
                original_url=original_url,
                canonical_url=canonical_url,
                redirect_chain=entry.redirect_chain,
                resolved_at=now,
                expires_at=now + timedelta(seconds=self.durable_ttl),
            )
        except Exception as exc:
            logger.warning(
                "canonical_cache.store_failed",
                url=original_url[:100],
                error=str(exc),
            )

    async def invalidate(self, original_url: str) -> None:
        """Remove ``original_url`` from both tiers."""
        await self.redis.safe_delete(cache_key(original_url))
        pool = await self._pool()
        if pool is None:
            return
        try:
            await url_cache_repo.delete_url_cache(pool, original_url)
        except Exception as exc:
            logger.warning(
                "canonical_cache.invalidate_failed",
                url=original_url[:100],
                error=str(exc),
            )

    async def sweep(self) -> int:
        """Delete expired durable rows. Returns the number removed."""
        pool = await self._pool()
        if pool is None:
            return 0
        try:
            deleted = await url_cache_repo.delete_expired_url_cache(pool)
        except Exception:
            logger.exception("canonical_cache.sweep_failed")
            return 0
        logger.info("canonical_cache.swept", deleted=deleted)
        return deleted

    async def stats(self) -> dict[str, Any]:
        counts = {"total": 0, "expired": 0}
        pool = await self._pool()
        if pool is not None:
            try:
                counts = await url_cache_repo.count_url_cache(pool)
            except Exception as exc:
                logger.warning("canonical_cache.stats_failed", error=str(exc))
        return {
            "durable_total": counts["total"],
            "durable_expired": counts["expired"],
            "durable_configured": self.db.is_configured,
            "ephemeral_configured": self.redis.is_configured,
        }

    async def _lookup_ephemeral(self, original_url: str) -> CacheEntry | None:
        raw = await self.redis.safe_get(cache_key(original_url))
        if not raw:
            return None
        try:
            data = json.loads(raw)
            return CacheEntry(
                original_url=original_url,
                canonical_url=data["canonical_url"],
                redirect_chain=list(data.get("redirect_chain") or []),
                resolved_at=_parse_ts(data.get("resolved_at")),
                expires_at=_parse_ts(data.get("expires_at")),
                source="redis",
            )
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning(
                "canonical_cache.corrupt_entry",
                url=original_url[:100],
                error=str(exc),
            )
            return None

    async def _lookup_durable(self, original_url: str) -> CacheEntry | None:
        pool = await self._pool()
        if pool is None:
            return None
        try:
            row = await url_cache_repo.fetch_url_cache(pool, original_url)
            if row is None:
                return None
            expires_at = _parse_ts(row.get("expires_at"))
            if expires_at is not None and expires_at <= datetime.now(UTC):
                # Lazily purge the stale row
                await url_cache_repo.delete_url_cache(pool, original_url)
                return None
            return CacheEntry(
                original_url=original_url,
                canonical_url=row["canonical_url"],
                redirect_chain=list(row.get("redirect_chain") or []),
                resolved_at=_parse_ts(row.get("resolved_at")),
                expires_at=expires_at,
                source="database",
            )
        except Exception as exc:
            logger.warning(
                "canonical_cache.lookup_failed",
                url=original_url[:100],
                error=str(exc),
            )
            return None

    async def _write_ephemeral(self, entry: CacheEntry) -> None:
        payload = json.dumps(
            {
                "canonical_url": entry.canonical_url,
                "redirect_chain": entry.redirect_chain,
                "resolved_at": entry.resolved_at.isoformat() if entry.resolved_at else None,
                "expires_at": entry.expires_at.isoformat() if entry.expires_at else None,
            }
        )
        await self.redis.safe_setex(cache_key(entry.original_url), self.ephemeral_ttl, payload)

    async def _pool(self):
        if not self.db.is_configured:
            return None
        try:
            return await self.db.init()
        except Exception as exc:
            logger.warning("canonical_cache.db_unavailable", error=str(exc))
            return None
