"""Recovery of abandoned transactions."""

from __future__ import annotations

import time
from typing import Callable

from reliqueue.core.config import QueueOptions
from reliqueue.observability.logging import get_logger
from reliqueue.observability.metrics import MetricsCollector, get_metrics_collector
from reliqueue.queue.base import StoreAdapter

logger = get_logger(__name__)


class RecoveryScanner:
    """
    Returns values held by abandoned transactions to the main queue.

    A transaction is abandoned once its lock key is gone, whether it expired,
    was never written, or was already cleaned up. Passes are debounced per
    instance: a pass is skipped while the previous successful one is younger
    than ``recover_timeout`` seconds.
    """

    def __init__(
        self,
        store: StoreAdapter,
        options: QueueOptions,
        clock: Callable[[], float] = time.monotonic,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._store = store
        self._options = options
        self._clock = clock
        self._metrics = metrics or get_metrics_collector()

        self.last_recovered: float | None = None

    def is_due(self) -> bool:
        """Check whether the debounce interval has elapsed."""
        if self.last_recovered is None:
            return True
        return self._clock() - self.last_recovered >= self._options.recover_timeout

    async def recover(self, force: bool = False) -> int | None:
        """
        Run a recovery pass unless one ran recently.

        Args:
            force: Ignore the debounce interval.

        Returns:
            Number of transactions reclaimed, or None if the pass was skipped.
        """
        if not force and not self.is_due():
            return None

        recovered = await self._scan()

        self.last_recovered = self._clock()
        self._metrics.record_recovery_pass(self._options.key, recovered)

        return recovered

    async def _scan(self) -> int:
        options = self._options
        recovered = 0

        async for transaction_key in self._store.sscan_iter(options.recover_key):
            if await self._store.get(options.lock_key(transaction_key)) is not None:
                continue

            value = await self._store.rpoplpush(transaction_key, options.key)
            await self._store.srem(options.recover_key, transaction_key)

            if value is not None:
                recovered += 1
                logger.info(
                    "Recovered abandoned transaction",
                    queue=options.key,
                    transaction_key=transaction_key,
                )
            else:
                logger.debug(
                    "Removed empty transaction from index",
                    queue=options.key,
                    transaction_key=transaction_key,
                )

        return recovered
