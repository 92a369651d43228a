"""Ephemeral cache tier: a lazily connected Redis handle.

The handle is constructed once and injected wherever it is needed. When
REDIS_URL is unset or the server is unreachable every operation degrades to
a miss / no-op instead of raising.
"""

import asyncio

import redis.asyncio as redis
import structlog

logger = structlog.get_logger(__name__)


def _redact(url: str) -> str:
    return url.split("@")[-1] if "@" in url else url


class RedisHandle:
    def __init__(self, url: str | None, max_connections: int = 50):
        self._url = url
        self._max_connections = max_connections
        self._client: redis.Redis | None = None
        # asyncio.Lock() no longer binds to a loop at construction (Python 3.10+)
        self._lock = asyncio.Lock()

    @property
    def is_configured(self) -> bool:
        return bool(self._url)

    async def init(self) -> redis.Redis | None:
        """Return the shared client, creating it on first call.

        Double-checked locking prevents concurrent first callers from each
        building a connection pool.
        """
        if not self.is_configured:
            return None
        if self._client is None:
            async with self._lock:
                if self._client is None:
                    logger.info("redis.connecting", url=_redact(self._url or ""))
                    client = redis.from_url(
                        self._url,
                        encoding="utf-8",
                        decode_responses=True,
                        max_connections=self._max_connections,
                        socket_connect_timeout=2,
                        socket_timeout=2,
                    )
                    await client.ping()
                    self._client = client
                    logger.info("redis.connected")
        return self._client

    async def close(self) -> None:
        """Close the client on application shutdown."""
        if self._client is not None:
            logger.info("redis.closing")
            await self._client.aclose()
            self._client = None

    async def ping(self) -> bool:
        try:
            client = await self.init()
            return bool(client and await client.ping())
        except Exception as exc:
            logger.warning("redis.ping_failed", error=str(exc))
            return False

    async def safe_get(self, key: str) -> str | None:
        """GET that returns None on any error."""
        if not self.is_configured:
            return None
        try:
            client = await self.init()
            return await client.get(key) if client else None
        except Exception as exc:
            logger.warning("redis.get_failed", key_preview=key[:50], error=str(exc))
            return None

    async def safe_setex(self, key: str, ttl_seconds: int, value: str) -> bool:
        """SETEX that returns False on any error."""
        if not self.is_configured:
            return False
        try:
            client = await self.init()
            if client is None:
                return False
            await client.setex(key, ttl_seconds, value)
            return True
        except Exception as exc:
            logger.warning("redis.setex_failed", key_preview=key[:50], error=str(exc))
            return False

    async def safe_delete(self, key: str) -> bool:
        if not self.is_configured:
            return False
        try:
            client = await self.init()
            if client is None:
                return False
            await client.delete(key)
            return True
        except Exception as exc:
            logger.warning("redis.delete_failed", key_preview=key[:50], error=str(exc))
            return False
