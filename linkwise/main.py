from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, status
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from linkwise.core.auth import verify_internal_token
from linkwise.core.config import settings
from linkwise.core.db import DatabaseHandle
from linkwise.core.logging_setup import configure_logging
from linkwise.core.middleware import RequestIDMiddleware
from linkwise.core.redis import RedisHandle
from linkwise.services.canonical_cache import CanonicalCache
from linkwise.services.canonicalizer import Canonicalizer
from linkwise.services.enrichment import EnrichmentOrchestrator

configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("app.startup", environment=settings.ENVIRONMENT)

    if not settings.OPENAI_API_KEY:
        logger.warning(
            "app.startup.openai_key_missing",
            hint="Set OPENAI_API_KEY, the AI title tier is skipped without it",
        )

    db = DatabaseHandle(settings.DATABASE_URL)
    redis_handle = RedisHandle(settings.REDIS_URL)
    app.state.db = db
    app.state.redis = redis_handle
    app.state.cache = CanonicalCache(redis_handle, db)
    app.state.canonicalizer = Canonicalizer(app.state.cache)
    app.state.enrichment = EnrichmentOrchestrator()

    if not await db.ping():
        logger.warning("db.unavailable", configured=db.is_configured)
    if not await redis_handle.ping():
        logger.warning("redis.unavailable", configured=redis_handle.is_configured)

    yield

    logger.info("app.shutdown")
    await db.close()
    await redis_handle.close()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Linkwise API",
        description="Link canonicalization and title enrichment",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(RequestIDMiddleware)

    from linkwise.api.v1 import admin, links

    app.include_router(links.router, prefix="/api/v1/links", tags=["links"])
    app.include_router(admin.router, prefix="/api/v1/admin", tags=["admin"])

    @app.get("/health", dependencies=[Depends(verify_internal_token)])
    async def health_check():
        """
        Readiness check.

        Both stores are optional: an unconfigured store is reported but does
        not degrade health. A configured store that is unreachable returns 503.
        """
        db: DatabaseHandle = app.state.db
        redis_handle: RedisHandle = app.state.redis

        db_ok = await db.ping() if db.is_configured else None
        redis_ok = await redis_handle.ping() if redis_handle.is_configured else None

        def _label(ok: bool | None) -> str:
            if ok is None:
                return "not_configured"
            return "ok" if ok else "unavailable"

        healthy = db_ok is not False and redis_ok is not False
        body = {
            "status": "healthy" if healthy else "degraded",
            "db": _label(db_ok),
            "redis": _label(redis_ok),
        }
        http_status = status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE
        return JSONResponse(content=body, status_code=http_status)

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
