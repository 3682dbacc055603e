"""Per-item processing transactions."""

from __future__ import annotations

import time
from typing import Any, Callable

from reliqueue.core.config import QueueOptions
from reliqueue.core.exceptions import DecodeError, HandlerError
from reliqueue.observability.logging import get_logger
from reliqueue.observability.metrics import MetricsCollector, get_metrics_collector
from reliqueue.queue.base import StoreAdapter
from reliqueue.queue.dead_letter import DeadLetterQueue
from reliqueue.queue.idgen import generate_transaction_id
from reliqueue.queue.serialization import deserialize_value
from reliqueue.resilience.retry import RetryWrapper, call_once

logger = get_logger(__name__)

LOCKED = "locked"

Handler = Callable[[Any], Any]


class TransactionManager:
    """
    Runs a handler over one value while the value sits in a transaction.

    The value is moved out of the main queue into a single-element list
    registered in the recovery index and guarded by an expiring lock. On
    success all three are removed. On failure they are left for the
    recovery scanner, which returns the value to the queue once the lock
    expires.
    """

    def __init__(
        self,
        store: StoreAdapter,
        options: QueueOptions,
        retry: RetryWrapper = call_once,
        dead_letters: DeadLetterQueue | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._store = store
        self._options = options
        self._retry = retry
        self._dead_letters = dead_letters
        self._metrics = metrics or get_metrics_collector()

    async def begin(self) -> str:
        """
        Open a transaction and move the next value into it.

        The lock is written before the transaction is indexed, so a scan
        never sees an indexed transaction that is not yet locked.

        Returns:
            The transaction key.
        """
        options = self._options
        transaction_key = options.transaction_key(generate_transaction_id())

        await self._store.set(options.lock_key(transaction_key), LOCKED, ex=options.timeout)
        await self._store.sadd(options.recover_key, transaction_key)
        await self._store.rpoplpush(options.key, transaction_key)

        return transaction_key

    async def commit(self, transaction_key: str) -> None:
        """Tear down a finished transaction."""
        options = self._options
        await self._store.delete(transaction_key)
        await self._store.srem(options.recover_key, transaction_key)
        await self._store.delete(options.lock_key(transaction_key))

    async def run(self, handler: Handler) -> Any:
        """
        Shift the next value through ``handler``.

        Returns:
            The delivered value, or None if the queue was empty.

        Raises:
            DecodeError: If the stored payload cannot be parsed.
            HandlerError: If the handler failed after retries.
        """
        transaction_key = await self.begin()
        raw = await self._store.lindex(transaction_key, 0)

        if raw is None:
            await self.commit(transaction_key)
            return None

        log = logger.bind(queue=self._options.key, transaction_key=transaction_key)

        try:
            value = deserialize_value(raw)
        except DecodeError as e:
            log.warning("Undecodable value in transaction", error=str(e))
            await self._dead_letter(e, raw)
            raise

        started = time.perf_counter()
        try:
            await self._retry(lambda: handler(deserialize_value(raw)))
        except Exception as e:
            log.warning("Handler failed", error=str(e), error_type=type(e).__name__)
            error = HandlerError(e, transaction_key=transaction_key)
            await self._dead_letter(error, raw)
            raise error from e
        finally:
            self._metrics.observe_handler(
                self._options.key, time.perf_counter() - started
            )

        await self.commit(transaction_key)
        log.debug("Committed transaction")

        return value

    async def _dead_letter(self, error: BaseException, raw: str) -> None:
        if self._dead_letters is not None:
            await self._dead_letters.add(error, raw)
