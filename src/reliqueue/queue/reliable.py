"""Reliable FIFO queue with crash recovery."""

from __future__ import annotations

import time
from types import TracebackType
from typing import Any, Callable

import redis.asyncio as redis

from reliqueue.core.config import QueueOptions
from reliqueue.core.exceptions import DecodeError
from reliqueue.observability.logging import get_queue_logger
from reliqueue.observability.metrics import MetricsCollector, get_metrics_collector
from reliqueue.queue.base import StoreAdapter
from reliqueue.queue.dead_letter import DeadLetterQueue
from reliqueue.queue.recovery import RecoveryScanner
from reliqueue.queue.redis_store import RedisStore
from reliqueue.queue.serialization import deserialize_value, serialize_value
from reliqueue.queue.transaction import Handler, TransactionManager
from reliqueue.resilience.retry import RetryWrapper, call_once

StoreLike = StoreAdapter | redis.Redis | str | None


def _make_store(store: StoreLike) -> StoreAdapter:
    if isinstance(store, StoreAdapter):
        return store
    if isinstance(store, str):
        return RedisStore.from_url(store)
    if isinstance(store, redis.Redis):
        return RedisStore(client=store)
    if store is None:
        return RedisStore()
    raise TypeError(f"Unsupported store: {type(store).__name__}")


class ReliableQueue:
    """
    FIFO queue with at-least-once delivery.

    Producers ``push`` onto the head of a list; consumers ``shift`` from the
    tail. ``shift(handler)`` keeps the value in a locked transaction until
    the handler returns, so a crashed or hung consumer's value goes back on
    the queue once its lock expires. Every push and shift first runs a
    debounced recovery pass that does exactly that.

    A value may be delivered more than once: if a handler outlives the lock
    timeout, another worker will reclaim and redeliver its value.

    Usage:
        async with ReliableQueue("jobs", "redis://localhost:6379/0") as queue:
            await queue.push({"id": 1})
            await queue.shift(process)
    """

    def __init__(
        self,
        key: str,
        store: StoreLike = None,
        *,
        delim: str | None = None,
        dead_key: str | None = None,
        recover_key: str | None = None,
        retry: RetryWrapper | None = None,
        timeout: int | None = None,
        recover_timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the queue.

        Args:
            key: Key of the main list.
            store: Store adapter, Redis client or Redis URL (settings if None).
            delim: Separator used when deriving keys.
            dead_key: Key of the dead letter list (none if unset).
            recover_key: Key of the recovery index (``key:tx`` if unset).
            retry: Wrapper around handler calls (call once if unset).
            timeout: Lock TTL in seconds.
            recover_timeout: Minimum seconds between recovery passes.
            clock: Monotonic clock used for debouncing.
            metrics: Metrics collector (global one if unset).

        Raises:
            ConfigError: If the options are invalid.
        """
        self._options = QueueOptions.build(
            key=key,
            delim=delim,
            dead_key=dead_key,
            recover_key=recover_key,
            timeout=timeout,
            recover_timeout=recover_timeout,
        )
        self._store = _make_store(store)
        self._metrics = metrics or get_metrics_collector()
        self._logger = get_queue_logger(self._options.key)

        self._dead_letters: DeadLetterQueue | None = None
        if self._options.dead_key:
            self._dead_letters = DeadLetterQueue(
                self._store,
                self._options.dead_key,
                self._options.key,
                metrics=self._metrics,
            )

        self._scanner = RecoveryScanner(
            self._store,
            self._options,
            clock=clock,
            metrics=self._metrics,
        )
        self._transactions = TransactionManager(
            self._store,
            self._options,
            retry=retry or call_once,
            dead_letters=self._dead_letters,
            metrics=self._metrics,
        )

    @property
    def key(self) -> str:
        """Get the main list key."""
        return self._options.key

    @property
    def options(self) -> QueueOptions:
        """Get the validated options."""
        return self._options

    @property
    def store(self) -> StoreAdapter:
        """Get the store adapter."""
        return self._store

    @property
    def dead_letters(self) -> DeadLetterQueue | None:
        """Get the dead letter list, if configured."""
        return self._dead_letters

    async def connect(self) -> None:
        """Check the store is reachable."""
        await self._store.connect()

    async def close(self) -> None:
        """Release the store."""
        await self._store.close()

    async def __aenter__(self) -> ReliableQueue:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def recover(self, force: bool = False) -> int | None:
        """
        Return abandoned transactions to the queue.

        Args:
            force: Ignore the debounce interval.

        Returns:
            Number of transactions reclaimed, or None if skipped.
        """
        return await self._scanner.recover(force=force)

    async def push(self, value: Any) -> None:
        """
        Add a value to the back of the queue.

        Raises:
            EncodeError: If the value cannot be serialized.
        """
        data = serialize_value(value)
        await self.recover()
        await self._store.lpush(self._options.key, data)

        self._metrics.record_push(self._options.key)
        self._logger.debug("Pushed value")

    async def shift(self, handler: Handler | None = None) -> Any:
        """
        Remove the value at the front of the queue.

        Without a handler the value is popped outright. With a handler the
        value is only removed for good once the handler succeeds; the
        handler's return value is ignored.

        Args:
            handler: Sync or async callable run on the value.

        Returns:
            The value, or None if the queue was empty.

        Raises:
            DecodeError: If the stored payload cannot be parsed.
            HandlerError: If the handler failed after retries.
        """
        await self.recover()

        if handler is None:
            return await self._pop()

        try:
            value = await self._transactions.run(handler)
        except Exception:
            self._metrics.record_shift(self._options.key, "failure")
            raise

        self._metrics.record_shift(
            self._options.key, "empty" if value is None else "success"
        )
        return value

    async def _pop(self) -> Any:
        raw = await self._store.rpop(self._options.key)
        if raw is None:
            self._metrics.record_shift(self._options.key, "empty")
            return None

        try:
            value = deserialize_value(raw)
        except DecodeError as e:
            self._metrics.record_shift(self._options.key, "failure")
            self._logger.warning("Popped undecodable value", error=str(e))
            if self._dead_letters is not None:
                await self._dead_letters.add(e, raw)
            raise

        self._metrics.record_shift(self._options.key, "success")
        return value

    async def length(self) -> int:
        """Get the number of values waiting in the queue."""
        return await self._store.llen(self._options.key)
