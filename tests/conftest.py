"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
import uuid
from typing import AsyncGenerator

import pytest
import pytest_asyncio

# Set test environment
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/1")
os.environ.setdefault("OBSERVABILITY_LOG_FORMAT", "console")

from reliqueue.queue.memory_store import MemoryStore  # noqa: E402
from reliqueue.queue.reliable import ReliableQueue  # noqa: E402


class FakeClock:
    """Manually advanced clock for debounce and expiry tests."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingStore(MemoryStore):
    """MemoryStore that counts SSCAN pages requested."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.sscan_calls = 0

    async def sscan(self, key, cursor=0, count=None):
        self.sscan_calls += 1
        return await super().sscan(key, cursor=cursor, count=count)


class BytesClient:
    """
    Stand-in for a redis.asyncio client built without decode_responses.

    Commands run against a MemoryStore; every text reply comes back as bytes.
    """

    def __init__(self, store: MemoryStore) -> None:
        self.store = store

    @staticmethod
    def _encode(value):
        return value.encode("utf-8") if isinstance(value, str) else value

    async def ping(self):
        return True

    async def lpush(self, key, value):
        return await self.store.lpush(key, value)

    async def rpop(self, key):
        return self._encode(await self.store.rpop(key))

    async def lmove(self, source, destination, src="LEFT", dest="RIGHT"):
        assert (src, dest) == ("RIGHT", "LEFT")
        return self._encode(await self.store.rpoplpush(source, destination))

    async def lindex(self, key, index):
        return self._encode(await self.store.lindex(key, index))

    async def lrange(self, key, start, stop):
        return [self._encode(item) for item in await self.store.lrange(key, start, stop)]

    async def llen(self, key):
        return await self.store.llen(key)

    async def sadd(self, key, member):
        return await self.store.sadd(key, member)

    async def srem(self, key, member):
        return await self.store.srem(key, member)

    async def sscan(self, key, cursor=0, count=None):
        next_cursor, members = await self.store.sscan(key, cursor=cursor, count=count)
        return next_cursor, [self._encode(member) for member in members]

    async def get(self, key):
        return self._encode(await self.store.get(key))

    async def set(self, key, value, ex=None):
        await self.store.set(key, value, ex=ex)
        return True

    async def delete(self, *keys):
        return await self.store.delete(*keys)

    async def expire(self, key, seconds):
        return await self.store.expire(key, seconds)


@pytest.fixture
def clock() -> FakeClock:
    """A fake clock shared by store and queue."""
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> MemoryStore:
    """In-process store driven by the fake clock."""
    return MemoryStore(clock=clock)


@pytest.fixture
def counting_store(clock: FakeClock) -> CountingStore:
    """In-process store that counts scans."""
    return CountingStore(clock=clock)


@pytest.fixture
def bytes_client(memory_store: MemoryStore) -> BytesClient:
    """Client double that replies with bytes, sharing the in-process store."""
    return BytesClient(memory_store)


@pytest.fixture
def queue(memory_store: MemoryStore, clock: FakeClock) -> ReliableQueue:
    """Queue with a dead letter list on the in-process store."""
    return ReliableQueue("foo", memory_store, dead_key="graveyard", clock=clock)


@pytest.fixture
def sample_value() -> dict:
    """Sample queue value."""
    return {"foo": 13, "tags": ["a", "b"], "nested": {"ok": True}}


@pytest_asyncio.fixture
async def redis_client() -> AsyncGenerator:
    """Create a Redis client for testing; skip if no server is reachable."""
    import redis.asyncio as redis
    from redis.exceptions import RedisError

    from reliqueue.core.config import get_settings

    settings = get_settings()
    client = redis.from_url(settings.redis.url.get_secret_value(), decode_responses=True)

    try:
        await client.ping()
    except (RedisError, OSError):
        await client.aclose()
        pytest.skip("Redis server not available")

    yield client

    await client.aclose()


@pytest_asyncio.fixture
async def redis_prefix(redis_client) -> AsyncGenerator:
    """Unique key prefix, deleted after the test."""
    prefix = f"reliqueue-test-{uuid.uuid4().hex[:8]}"

    yield prefix

    # Cleanup
    keys = [key async for key in redis_client.scan_iter(match=f"{prefix}*")]
    if keys:
        await redis_client.delete(*keys)
