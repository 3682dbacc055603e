"""Abstract base class for backing store adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator


class StoreAdapter(ABC):
    """
    Abstract contract for the atomic primitives the queue relies on.

    Lists are addressed Redis-style: the head is the left end (index 0)
    and the tail is the right end. Implementations must make every method
    atomic on its own, and raise StoreError when the store is unreachable
    or rejects a command.
    """

    async def connect(self) -> None:
        """Verify the store is reachable."""
        await self.ping()

    @abstractmethod
    async def close(self) -> None:
        """Release any resources held by the adapter."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Round-trip to the store."""
        pass

    # Lists

    @abstractmethod
    async def lpush(self, key: str, value: str) -> int:
        """
        Prepend a value to a list.

        Returns:
            The list length after the push.
        """
        pass

    @abstractmethod
    async def rpop(self, key: str) -> str | None:
        """Remove and return the tail value, or None if empty."""
        pass

    @abstractmethod
    async def rpoplpush(self, source: str, destination: str) -> str | None:
        """
        Move the tail of ``source`` to the head of ``destination``.

        Returns:
            The moved value, or None if ``source`` was empty.
        """
        pass

    @abstractmethod
    async def lindex(self, key: str, index: int) -> str | None:
        """Return the element at ``index`` without removing it."""
        pass

    @abstractmethod
    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        """Return elements from ``start`` to ``stop`` inclusive."""
        pass

    @abstractmethod
    async def llen(self, key: str) -> int:
        """Return the length of a list (0 if missing)."""
        pass

    # Sets

    @abstractmethod
    async def sadd(self, key: str, member: str) -> int:
        """Add a member; returns 1 if it was new."""
        pass

    @abstractmethod
    async def srem(self, key: str, member: str) -> int:
        """Remove a member; returns 1 if it was present."""
        pass

    @abstractmethod
    async def sscan(
        self,
        key: str,
        cursor: int = 0,
        count: int | None = None,
    ) -> tuple[int, list[str]]:
        """
        Return one page of set members.

        Returns:
            A (next_cursor, members) tuple; a next_cursor of 0 ends the scan.
        """
        pass

    async def sscan_iter(self, key: str, count: int | None = None) -> AsyncIterator[str]:
        """
        Lazily iterate over set members, one page at a time.

        Members may be seen more than once while the set changes
        underneath the scan.
        """
        cursor = 0
        while True:
            cursor, members = await self.sscan(key, cursor=cursor, count=count)
            for member in members:
                yield member
            if cursor == 0:
                break

    # Scalars

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return a scalar value, or None if missing or expired."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        """Set a scalar value, optionally with a TTL in seconds."""
        pass

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys; returns how many existed."""
        pass

    @abstractmethod
    async def expire(self, key: str, seconds: int) -> bool:
        """Set a relative TTL; returns False if the key does not exist."""
        pass
