import asyncio
import re
from typing import Any
from urllib.parse import urlparse

import asyncpg
import structlog

from linkwise.core.constants import DatabasePool

logger = structlog.get_logger(__name__)


def _parse_db_url(url: str) -> dict[str, Any]:
    """Parse DATABASE_URL into asyncpg connection parameters.

    Strips SQLAlchemy driver prefixes (postgresql+asyncpg://) so the same
    setting can be shared with Alembic.
    """
    normalised = re.sub(r"^postgresql\+\w+://", "postgresql://", url)
    parsed = urlparse(normalised)
    return {
        "host": parsed.hostname or "localhost",
        "port": parsed.port or 5432,
        "user": parsed.username or "linkwise",
        "password": parsed.password or "linkwise",
        "database": parsed.path.lstrip("/") or "linkwise",
    }


class DatabaseHandle:
    """Durable store handle backed by a lazily created asyncpg pool.

    Constructed once per process and injected into repositories' callers.
    ``is_configured`` is False when DATABASE_URL is unset; callers treat that
    as "durable tier unavailable".
    """

    def __init__(self, url: str | None):
        self._url = url
        self._pool: asyncpg.Pool | None = None
        self._lock = asyncio.Lock()

    @property
    def is_configured(self) -> bool:
        return bool(self._url)

    async def init(self) -> asyncpg.Pool | None:
        """Return the shared pool, creating it on first call (double-checked lock)."""
        if not self.is_configured:
            return None
        if self._pool is None:
            async with self._lock:
                if self._pool is None:
                    db_params = _parse_db_url(self._url or "")
                    logger.info(
                        "db.pool.create",
                        host=db_params["host"],
                        port=db_params["port"],
                        min_size=DatabasePool.MIN_SIZE,
                        max_size=DatabasePool.MAX_SIZE,
                    )
                    self._pool = await asyncpg.create_pool(
                        **db_params,
                        min_size=DatabasePool.MIN_SIZE,
                        max_size=DatabasePool.MAX_SIZE,
                    )
                    logger.info("db.pool.created", pool_size=self._pool.get_size())
        return self._pool

    async def close(self) -> None:
        """Close the pool on application shutdown."""
        if self._pool is not None:
            logger.info("db.pool.closing", pool_size=self._pool.get_size())
            await self._pool.close()
            self._pool = None

    async def ping(self) -> bool:
        try:
            pool = await self.init()
            if pool is None:
                return False
            async with pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception as exc:
            logger.warning("db.ping_failed", error=str(exc))
            return False
