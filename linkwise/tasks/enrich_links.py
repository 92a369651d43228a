"""Background title enrichment for links ingested without a usable title."""

from __future__ import annotations

from datetime import timedelta

import structlog

from linkwise.core.config import settings
from linkwise.core.db import DatabaseHandle
from linkwise.repositories import links as links_repo
from linkwise.services.enrichment import EnrichmentOrchestrator
from linkwise.services.enrichment_types import LinkToEnrich
from linkwise.services.title_utils import is_blocked_title

logger = structlog.get_logger(__name__)


async def reset_garbage_titles(ctx: dict, batch_size: int | None = None) -> dict:
    """Send links whose stored title is a challenge/paywall/placeholder page back to pending.

    Scans titled links page by page and resets every match: title cleared,
    status pending, retry count 0, blocked reason recorded.
    """
    db: DatabaseHandle = ctx["db"]
    pool = await db.init()
    if pool is None:
        logger.warning("reset_garbage_titles.skipped", reason="database_not_configured")
        return {"scanned": 0, "reset": 0}

    page_size = batch_size or settings.GARBAGE_RESET_BATCH_SIZE
    scanned = 0
    reset = 0
    after_id: str | None = None
    while True:
        rows = await links_repo.fetch_titled_links(pool, limit=page_size, after_id=after_id)
        if not rows:
            break
        scanned += len(rows)
        after_id = rows[-1]["id"]

        ids: list[str] = []
        reasons: list[str] = []
        for row in rows:
            reason = is_blocked_title(row["title"], domain=row.get("domain"))
            if reason:
                ids.append(row["id"])
                reasons.append(reason)
        if ids:
            reset += await links_repo.reset_links_for_reenrichment(pool, ids, reasons)

        if len(rows) < page_size:
            break

    logger.info("reset_garbage_titles.complete", scanned=scanned, reset=reset)
    return {"scanned": scanned, "reset": reset}


async def enrich_pending_links(ctx: dict) -> dict:
    """Claim a batch of pending links and run the enrichment chain on each.

    Runs every 5 minutes via ARQ cron. Garbage titles are reset first so they
    are picked up in the same pass.
    """
    db: DatabaseHandle = ctx["db"]
    orchestrator: EnrichmentOrchestrator = ctx["enrichment"]

    pool = await db.init()
    if pool is None:
        logger.warning("enrich_pending_links.skipped", reason="database_not_configured")
        return {"claimed": 0, "enriched": 0, "failed": 0}

    try:
        await reset_garbage_titles(ctx)
    except Exception:
        logger.exception("enrich_pending_links.garbage_reset_failed")

    rows = await links_repo.claim_pending_links(
        pool,
        limit=settings.ENRICH_BATCH_SIZE,
        max_retries=settings.ENRICH_MAX_RETRIES,
        stale_after=timedelta(seconds=settings.ENRICH_CLAIM_TIMEOUT),
    )
    if not rows:
        logger.debug("enrich_pending_links.nothing_pending")
        return {"claimed": 0, "enriched": 0, "failed": 0}

    links = [
        LinkToEnrich(
            id=row["id"],
            canonical_url=row["canonical_url"],
            domain=row.get("domain") or "",
            title=row.get("title"),
            description=row.get("description"),
        )
        for row in rows
    ]
    results = await orchestrator.enrich_many(links)

    enriched = 0
    failed = 0
    for link, result in zip(links, results, strict=True):
        try:
            await links_repo.apply_enrichment_result(pool, link.id, result)
            enriched += 1
        except Exception as exc:
            failed += 1
            logger.exception("enrich_pending_links.persist_failed", link_id=link.id)
            try:
                await links_repo.record_enrichment_failure(pool, link.id, str(exc))
            except Exception:
                logger.exception("enrich_pending_links.retry_bump_failed", link_id=link.id)

    logger.info(
        "enrich_pending_links.complete",
        claimed=len(rows),
        enriched=enriched,
        failed=failed,
    )
    return {"claimed": len(rows), "enriched": enriched, "failed": failed}
