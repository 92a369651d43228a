"""Shared fixtures for unit tests. No test touches the network or a real store."""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx
import pytest

from linkwise.core.db import DatabaseHandle


class FakeRedisHandle:
    """In-memory stand-in for RedisHandle with the same safe_* surface."""

    def __init__(self, configured: bool = True):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self._configured = configured

    @property
    def is_configured(self) -> bool:
        return self._configured

    async def safe_get(self, key: str) -> str | None:
        return self.store.get(key)

    async def safe_setex(self, key: str, ttl_seconds: int, value: str) -> bool:
        self.store[key] = value
        self.ttls[key] = ttl_seconds
        return True

    async def safe_delete(self, key: str) -> bool:
        self.store.pop(key, None)
        return True

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


@pytest.fixture
def fake_redis() -> FakeRedisHandle:
    return FakeRedisHandle()


@pytest.fixture
def offline_redis() -> FakeRedisHandle:
    return FakeRedisHandle(configured=False)


class FakeConnection:
    """Records every (query, args) pair and answers fetch/execute with canned values."""

    def __init__(self, rows: list[dict] | None = None, status: str = "UPDATE 0"):
        self.rows = rows or []
        self.status = status
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    async def fetch(self, query: str, *args: Any) -> list[dict]:
        self.calls.append((query, args))
        return self.rows

    async def fetchrow(self, query: str, *args: Any) -> dict | None:
        self.calls.append((query, args))
        return self.rows[0] if self.rows else None

    async def execute(self, query: str, *args: Any) -> str:
        self.calls.append((query, args))
        return self.status


class FakePool:
    def __init__(self, conn: FakeConnection | None = None):
        self.conn = conn or FakeConnection()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[FakeConnection]:
        yield self.conn


@pytest.fixture
def fake_pool() -> FakePool:
    return FakePool()


@pytest.fixture
def no_db() -> DatabaseHandle:
    return DatabaseHandle(None)


def redirect_map_handler(
    redirects: dict[str, str],
    calls: list[tuple[str, str]] | None = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """Answer 301 with the mapped Location, or 200 for unmapped URLs."""

    def _handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if calls is not None:
            calls.append((request.method, url))
        if url in redirects:
            return httpx.Response(301, headers={"Location": redirects[url]})
        return httpx.Response(200, text="ok")

    return _handler


@pytest.fixture
def redirect_handler() -> Callable[..., Callable[[httpx.Request], httpx.Response]]:
    return redirect_map_handler
