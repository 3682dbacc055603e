"""Redis implementation of the store adapter."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import redis.asyncio as redis
from redis.exceptions import RedisError

from reliqueue.core.config import get_settings
from reliqueue.core.exceptions import StoreError
from reliqueue.observability.logging import get_logger
from reliqueue.queue.base import StoreAdapter

logger = get_logger(__name__)


def _text(value: bytes | str | None) -> str | None:
    """Decode a reply from a client built without decode_responses."""
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


@contextmanager
def _store_errors(operation: str, key: str | None = None) -> Iterator[None]:
    """Translate Redis failures into StoreError."""
    try:
        yield
    except RedisError as e:
        details = {"operation": operation}
        if key is not None:
            details["key"] = key
        raise StoreError(f"Redis {operation} failed: {e}", details=details) from e


class RedisStore(StoreAdapter):
    """
    Store adapter backed by Redis lists, sets and keys.

    The client is created lazily from a connection pool; the first command
    opens the connection. Pass ``client`` to reuse an existing
    ``redis.asyncio.Redis`` instance, in which case close() leaves it open.
    Replies are always returned as ``str``, whether or not that client was
    built with ``decode_responses``.
    """

    def __init__(
        self,
        url: str | None = None,
        client: redis.Redis | None = None,
        max_connections: int | None = None,
        socket_timeout: float | None = None,
        socket_connect_timeout: float | None = None,
        scan_count: int | None = None,
    ) -> None:
        settings = get_settings().redis

        self._url = url or settings.url.get_secret_value()
        self._max_connections = max_connections or settings.max_connections
        self._socket_timeout = socket_timeout or settings.socket_timeout
        self._socket_connect_timeout = (
            socket_connect_timeout or settings.socket_connect_timeout
        )
        self._scan_count = scan_count or settings.scan_count

        self._pool: redis.ConnectionPool | None = None
        self._client: redis.Redis | None = client
        self._owns_client = client is None

    @classmethod
    def from_url(cls, url: str, **kwargs: object) -> RedisStore:
        """Build a store for a Redis URL."""
        return cls(url=url, **kwargs)  # type: ignore[arg-type]

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client, creating it on first use."""
        if self._client is None:
            self._pool = redis.ConnectionPool.from_url(
                self._url,
                max_connections=self._max_connections,
                socket_timeout=self._socket_timeout,
                socket_connect_timeout=self._socket_connect_timeout,
                decode_responses=True,
            )
            self._client = redis.Redis(connection_pool=self._pool)
        return self._client

    async def connect(self) -> None:
        """Connect to Redis."""
        try:
            await self.client.ping()
        except RedisError as e:
            raise StoreError(
                f"Failed to connect to Redis: {e}",
                details={"url": self._url.split("@")[-1]},  # Hide password
            ) from e
        logger.info("Connected to Redis")

    async def close(self) -> None:
        """Disconnect from Redis."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None

    async def ping(self) -> bool:
        with _store_errors("ping"):
            return bool(await self.client.ping())

    async def lpush(self, key: str, value: str) -> int:
        with _store_errors("lpush", key):
            return int(await self.client.lpush(key, value))

    async def rpop(self, key: str) -> str | None:
        with _store_errors("rpop", key):
            return _text(await self.client.rpop(key))

    async def rpoplpush(self, source: str, destination: str) -> str | None:
        with _store_errors("lmove", source):
            return _text(await self.client.lmove(source, destination, "RIGHT", "LEFT"))

    async def lindex(self, key: str, index: int) -> str | None:
        with _store_errors("lindex", key):
            return _text(await self.client.lindex(key, index))

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        with _store_errors("lrange", key):
            return [_text(item) for item in await self.client.lrange(key, start, stop)]

    async def llen(self, key: str) -> int:
        with _store_errors("llen", key):
            return int(await self.client.llen(key))

    async def sadd(self, key: str, member: str) -> int:
        with _store_errors("sadd", key):
            return int(await self.client.sadd(key, member))

    async def srem(self, key: str, member: str) -> int:
        with _store_errors("srem", key):
            return int(await self.client.srem(key, member))

    async def sscan(
        self,
        key: str,
        cursor: int = 0,
        count: int | None = None,
    ) -> tuple[int, list[str]]:
        with _store_errors("sscan", key):
            next_cursor, members = await self.client.sscan(
                key,
                cursor=cursor,
                count=count or self._scan_count,
            )
        return int(next_cursor), [_text(member) for member in members]

    async def get(self, key: str) -> str | None:
        with _store_errors("get", key):
            return _text(await self.client.get(key))

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        with _store_errors("set", key):
            await self.client.set(key, value, ex=ex)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        with _store_errors("delete", keys[0]):
            return int(await self.client.delete(*keys))

    async def expire(self, key: str, seconds: int) -> bool:
        with _store_errors("expire", key):
            return bool(await self.client.expire(key, seconds))
