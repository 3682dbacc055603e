"""In-process store adapter with Redis-like semantics."""

from __future__ import annotations

import time
from collections import deque
from typing import Any, Callable

from reliqueue.core.exceptions import StoreError
from reliqueue.queue.base import StoreAdapter


class MemoryStore(StoreAdapter):
    """
    Store adapter that keeps everything in a dict.

    Mirrors the Redis behaviour the queue depends on:
    - empty lists and sets disappear
    - SSCAN cursors survive concurrent changes to the set
    - keys expire against ``clock`` (seconds, monotonic by default)
    - using a key as the wrong type raises StoreError

    Each method runs without awaiting, so it is atomic on a single event
    loop. Only one process can share it; use RedisStore for workers in
    separate processes.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, Any] = {}
        self._expires: dict[str, float] = {}
        self._sequence = 0

    async def close(self) -> None:
        pass

    async def ping(self) -> bool:
        return True

    def _live(self, key: str) -> Any:
        deadline = self._expires.get(key)
        if deadline is not None and deadline <= self._clock():
            self._data.pop(key, None)
            self._expires.pop(key, None)
        return self._data.get(key)

    def _typed(self, key: str, kind: type) -> Any:
        value = self._live(key)
        if value is not None and not isinstance(value, kind):
            raise StoreError(
                "WRONGTYPE Operation against a key holding the wrong kind of value",
                details={"key": key},
            )
        return value

    def _drop_if_empty(self, key: str) -> None:
        if not self._data.get(key):
            self._data.pop(key, None)
            self._expires.pop(key, None)

    # Lists

    async def lpush(self, key: str, value: str) -> int:
        items = self._typed(key, deque)
        if items is None:
            items = self._data[key] = deque()
        items.appendleft(value)
        return len(items)

    async def rpop(self, key: str) -> str | None:
        items = self._typed(key, deque)
        if not items:
            return None
        value = items.pop()
        self._drop_if_empty(key)
        return value

    async def rpoplpush(self, source: str, destination: str) -> str | None:
        items = self._typed(source, deque)
        target = self._typed(destination, deque)
        if not items:
            return None
        value = items.pop()
        self._drop_if_empty(source)
        if target is None:
            target = self._data[destination] = deque()
        target.appendleft(value)
        return value

    async def lindex(self, key: str, index: int) -> str | None:
        items = self._typed(key, deque)
        if not items:
            return None
        try:
            return items[index]
        except IndexError:
            return None

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        items = self._typed(key, deque)
        if not items:
            return []
        size = len(items)
        if start < 0:
            start = max(size + start, 0)
        if stop < 0:
            stop = size + stop
        return list(items)[start : stop + 1]

    async def llen(self, key: str) -> int:
        items = self._typed(key, deque)
        return len(items) if items else 0

    # Sets

    async def sadd(self, key: str, member: str) -> int:
        members = self._typed(key, dict)
        if members is None:
            members = self._data[key] = {}
        if member in members:
            return 0
        self._sequence += 1
        members[member] = self._sequence
        return 1

    async def srem(self, key: str, member: str) -> int:
        members = self._typed(key, dict)
        if not members or member not in members:
            return 0
        del members[member]
        self._drop_if_empty(key)
        return 1

    async def sscan(
        self,
        key: str,
        cursor: int = 0,
        count: int | None = None,
    ) -> tuple[int, list[str]]:
        # Cursor is the next insertion sequence number to visit; members
        # present for the whole scan are always returned
        members = self._typed(key, dict) or {}
        count = count or 10
        pending = sorted(
            (sequence, member)
            for member, sequence in members.items()
            if sequence >= cursor
        )
        page = pending[:count]
        if len(pending) <= count:
            return 0, [member for _, member in page]
        return page[-1][0] + 1, [member for _, member in page]

    # Scalars

    async def get(self, key: str) -> str | None:
        return self._typed(key, str)

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        self._data[key] = value
        self._expires.pop(key, None)
        if ex is not None:
            await self.expire(key, ex)

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self._live(key) is not None:
                deleted += 1
            self._data.pop(key, None)
            self._expires.pop(key, None)
        return deleted

    async def expire(self, key: str, seconds: int) -> bool:
        if self._live(key) is None:
            return False
        self._expires[key] = self._clock() + seconds
        return True

    def keys(self) -> list[str]:
        """Return all live keys (for inspection in tests and tooling)."""
        return [key for key in list(self._data) if self._live(key) is not None]
