"""Repository queries for the durable url_cache table."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import asyncpg


async def fetch_url_cache(pool: asyncpg.Pool, original_url: str) -> dict | None:
    """Fetch the cache row for one literal original URL, expired or not."""
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            """
            SELECT original_url, canonical_url, redirect_chain, resolved_at, expires_at
            FROM url_cache
            WHERE original_url = $1
            """,
            original_url,
        )
    if not row:
        return None
    record = dict(row)
    chain = record.get("redirect_chain")
    if isinstance(chain, str):
        record["redirect_chain"] = json.loads(chain)
    return record


async def upsert_url_cache(
    pool: asyncpg.Pool,
    *,
    original_url: str,
    canonical_url: str,
    redirect_chain: list[str],
    resolved_at: datetime,
    expires_at: datetime,
) -> None:
    """Insert or refresh the row for ``original_url``."""
    async with pool.acquire() as conn:
        await conn.execute(
            """
            INSERT INTO url_cache (
                original_url, canonical_url, redirect_chain, resolved_at, expires_at
            ) VALUES ($1, $2, $3::jsonb, $4, $5)
            ON CONFLICT (original_url)
            DO UPDATE SET
                canonical_url = EXCLUDED.canonical_url,
                redirect_chain = EXCLUDED.redirect_chain,
                resolved_at = EXCLUDED.resolved_at,
                expires_at = EXCLUDED.expires_at
            """,
            original_url,
            canonical_url,
            json.dumps(redirect_chain),
            resolved_at,
            expires_at,
        )


async def delete_url_cache(pool: asyncpg.Pool, original_url: str) -> int:
    async with pool.acquire() as conn:
        result = await conn.execute(
            "DELETE FROM url_cache WHERE original_url = $1",
            original_url,
        )
    return _affected_rows(result)


async def delete_expired_url_cache(pool: asyncpg.Pool, now: datetime | None = None) -> int:
    """Delete every row past expiry and return how many were removed."""
    cutoff = now or datetime.now(UTC)
    async with pool.acquire() as conn:
        result = await conn.execute(
            "DELETE FROM url_cache WHERE expires_at < $1",
            cutoff,
        )
    return _affected_rows(result)


async def count_url_cache(pool: asyncpg.Pool, now: datetime | None = None) -> dict[str, int]:
    """Total and expired row counts for monitoring."""
    cutoff = now or datetime.now(UTC)
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            """
            SELECT COUNT(*) AS total,
                   COUNT(*) FILTER (WHERE expires_at < $1) AS expired
            FROM url_cache
            """,
            cutoff,
        )
    return {"total": int(row["total"]), "expired": int(row["expired"])} if row else {
        "total": 0,
        "expired": 0,
    }


def _affected_rows(status: str | None) -> int:
    # asyncpg returns the command tag, e.g. "DELETE 3"
    try:
        return int(status.split()[-1]) if status else 0
    except ValueError:
        return 0
