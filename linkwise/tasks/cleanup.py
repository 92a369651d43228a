"""Cleanup tasks for scheduled maintenance."""

import structlog

from linkwise.services.canonical_cache import CanonicalCache

logger = structlog.get_logger(__name__)


async def sweep_url_cache(ctx: dict) -> dict:
    """Delete durable url_cache rows past their expiry.

    Runs daily at 3am UTC via ARQ cron. Redis entries expire on their own TTL.
    """
    cache: CanonicalCache = ctx["cache"]
    logger.info("cleanup.url_cache.start")
    deleted = await cache.sweep()
    logger.info("cleanup.url_cache.complete", deleted=deleted)
    return {"deleted": deleted}
