"""Repository queries for the enrichment columns of the links table.

The links table itself is owned by the ingestion service; this module only
reads and writes the enrichment lifecycle fields.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import asyncpg

from linkwise.core.constants import EnrichmentStatus
from linkwise.services.enrichment_types import EnrichmentResult

# Statuses whose stored title is eligible for the garbage-title scan
RESCANNABLE_STATUSES: tuple[str, ...] = (EnrichmentStatus.SUCCESS, EnrichmentStatus.FALLBACK)

async def claim_pending_links(
    pool: asyncpg.Pool,
    *,
    limit: int,
    max_retries: int,
    stale_after: timedelta,
) -> list[dict]:
    """Mark up to ``limit`` links as processing and return them.

    Claims pending links plus links left in processing for longer than
    ``stale_after`` by a cancelled job or a dead worker. A reclaimed link
    counts as a failed attempt. FOR UPDATE SKIP LOCKED keeps concurrent
    workers from claiming the same rows.
    """
    now = datetime.now(UTC)
    async with pool.acquire() as conn:
        rows = await conn.fetch(
            """
            WITH claimed AS (
                SELECT id
                FROM links
                WHERE enrichment_retry_count < $2
                  AND (
                      enrichment_status = $1
                      OR (enrichment_status = $4 AND enrichment_last_attempt < $6)
                  )
                ORDER BY enrichment_last_attempt NULLS FIRST, id
                LIMIT $3
                FOR UPDATE SKIP LOCKED
            )
            UPDATE links
            SET enrichment_retry_count = links.enrichment_retry_count
                    + CASE WHEN links.enrichment_status = $4 THEN 1 ELSE 0 END,
                enrichment_status = $4,
                enrichment_last_attempt = $5
            FROM claimed
            WHERE links.id = claimed.id
            RETURNING links.id::text, links.canonical_url, links.domain,
                      links.title, links.description, links.enrichment_retry_count
            """,
            EnrichmentStatus.PENDING,
            max_retries,
            limit,
            EnrichmentStatus.PROCESSING,
            now,
            now - stale_after,
        )
    return [dict(row) for row in rows]

async def apply_enrichment_result(
    pool: asyncpg.Pool,
    link_id: str,
    result: EnrichmentResult,
) -> None:
    """Persist the winning tier's output for one link.

    Extracted titles go to ``title``. Synthesized titles (``fallback`` status)
    go to ``fallback_title`` and leave ``title`` untouched, so they are never
    picked up by the garbage-title scan.
    """
    now = datetime.now(UTC)
    is_blocked = result.blocked_reason is not None
    async with pool.acquire() as conn:
        if result.status == EnrichmentStatus.FALLBACK:
            await conn.execute(
                """
                UPDATE links
                SET fallback_title = $2,
                    fallback_title_source = $3,
                    description = COALESCE(description, $4),
                    enrichment_status = $5,
                    enrichment_source = $3,
                    enrichment_error = $6,
                    is_blocked = $7,
                    blocked_reason = $8,
                    enrichment_last_attempt = $9
                WHERE id::text = $1
                """,
                link_id,
                result.title,
                result.source,
                result.description,
                result.status,
                result.error,
                is_blocked,
                result.blocked_reason,
                now,
            )
            return

        await conn.execute(
            """
            UPDATE links
            SET title = $2,
                description = COALESCE($3, description),
                author = COALESCE($4, author),
                image_url = COALESCE($5, image_url),
                published_at = COALESCE($6, published_at),
                enrichment_status = $7,
                enrichment_source = $8,
                enrichment_error = NULL,
                is_blocked = $9,
                blocked_reason = $10,
                enrichment_last_attempt = $11
            WHERE id::text = $1
            """,
            link_id,
            result.title,
            result.description,
            result.author,
            result.image_url,
            result.published_at,
            result.status,
            result.source,
            is_blocked,
            result.blocked_reason,
            now,
        )

async def record_enrichment_failure(pool: asyncpg.Pool, link_id: str, error: str) -> None:
    """Return a link to pending and bump its retry counter."""
    async with pool.acquire() as conn:
        await conn.execute(
            """
            UPDATE links
            SET enrichment_status = $2,
                enrichment_retry_count = enrichment_retry_count + 1,
                enrichment_error = $3,
                enrichment_last_attempt = $4
            WHERE id::text = $1
            """,
            link_id,
            EnrichmentStatus.PENDING,
            error[:1000],
            datetime.now(UTC),
        )

async def fetch_titled_links(
    pool: asyncpg.Pool,
    *,
    limit: int,
    after_id: str | None = None,
) -> list[dict]:
    """Page through unblocked, enriched links that carry a title, ordered by id."""
    async with pool.acquire() as conn:
        rows = await conn.fetch(
            """
            SELECT id::text, title, domain
            FROM links
            WHERE title IS NOT NULL
              AND title <> ''
              AND is_blocked = FALSE
              AND enrichment_status = ANY($3::text[])
              AND ($1::text IS NULL OR id::text > $1)
            ORDER BY id::text
            LIMIT $2
            """,
            after_id,
            limit,
            list(RESCANNABLE_STATUSES),
        )
    return [dict(row) for row in rows]

async def reset_links_for_reenrichment(
    pool: asyncpg.Pool,
    link_ids: list[str],
    reasons: list[str],
) -> int:
    """Clear titles and return links to pending with a fresh retry budget.

    The matched reason is kept in ``blocked_reason`` for diagnostics.
    """
    if not link_ids:
        return 0
    async with pool.acquire() as conn:
        result = await conn.execute(
            """
            UPDATE links
            SET title = NULL,
                enrichment_status = $3,
                enrichment_source = NULL,
                enrichment_retry_count = 0,
                enrichment_error = NULL,
                blocked_reason = r.reason
            FROM unnest($1::text[], $2::text[]) AS r(id, reason)
            WHERE links.id::text = r.id
            """,
            link_ids,
            reasons,
            EnrichmentStatus.PENDING,
        )
    try:
        return int(result.split()[-1]) if result else 0
    except ValueError:
        return 0
