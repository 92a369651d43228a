"""ARQ WorkerSettings: registers all background tasks and cron jobs.

Every new ARQ task must be added to `functions` here or it will never run.
Every new cron job must be added to `cron_jobs` here.

Worker is started with: arq linkwise.tasks.worker.WorkerSettings
"""

from arq.connections import RedisSettings
from arq.cron import cron

from linkwise.core.config import settings
from linkwise.core.db import DatabaseHandle
from linkwise.core.logging_setup import configure_logging
from linkwise.core.redis import RedisHandle
from linkwise.services.canonical_cache import CanonicalCache
from linkwise.services.enrichment import EnrichmentOrchestrator
from linkwise.tasks.cleanup import sweep_url_cache
from linkwise.tasks.enrich_links import enrich_pending_links, reset_garbage_titles

configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)


async def startup(ctx: dict) -> None:
    """Build the store handles once per worker process."""
    db = DatabaseHandle(settings.DATABASE_URL)
    redis_handle = RedisHandle(settings.REDIS_URL)
    ctx["db"] = db
    ctx["redis_handle"] = redis_handle
    ctx["cache"] = CanonicalCache(redis_handle, db)
    ctx["enrichment"] = EnrichmentOrchestrator()


async def shutdown(ctx: dict) -> None:
    await ctx["db"].close()
    await ctx["redis_handle"].close()


class WorkerSettings:
    """
    ARQ worker configuration.

    max_jobs: enrichment is I/O-bound; the event loop handles concurrency.
    job_timeout: one batch runs every tier for ENRICH_BATCH_SIZE links, each
    tier bounded by ENRICH_TIER_TIMEOUT. Links a killed job left in processing
    are reclaimed once ENRICH_CLAIM_TIMEOUT has passed.
    """

    functions = [
        enrich_pending_links,
        reset_garbage_titles,
        sweep_url_cache,
    ]

    cron_jobs = [
        cron(enrich_pending_links, minute=set(range(0, 60, 5))),
        # Expired durable cache rows, daily at 3am UTC
        cron(sweep_url_cache, hour=3, minute=0),
    ]

    on_startup = startup
    on_shutdown = shutdown

    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL or "redis://localhost:6379")

    max_jobs = 10
    job_timeout = settings.ENRICH_CLAIM_TIMEOUT
    health_check_interval = 30
