"""Dead letter list handling."""

from __future__ import annotations

import json
from typing import Any

from reliqueue.core.exceptions import HandlerError, ReliQueueError
from reliqueue.observability.logging import get_logger
from reliqueue.observability.metrics import MetricsCollector, get_metrics_collector
from reliqueue.queue.base import StoreAdapter

logger = get_logger(__name__)

_MALFORMED = object()


def _record_value(record: str) -> Any:
    """Extract the raw payload from a record, or _MALFORMED."""
    try:
        return json.loads(record)["value"]
    except (ValueError, KeyError, TypeError):
        return _MALFORMED


def _reason(error: BaseException) -> BaseException:
    """Unwrap HandlerError so records carry the handler's own error."""
    if isinstance(error, HandlerError):
        return error.original
    return error


def _message(reason: BaseException) -> str:
    """Get the error text without the structured details."""
    if isinstance(reason, ReliQueueError):
        return reason.message
    return str(reason)


class DeadLetterQueue:
    """
    Append-only list of values whose processing failed permanently.

    Each record is JSON text ``{"err": {"message", "type"}, "value": raw}``
    where ``raw`` is the payload exactly as it was stored. Records are
    pushed to the head, so the oldest record sits at the tail.
    """

    def __init__(
        self,
        store: StoreAdapter,
        key: str,
        queue_key: str,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._store = store
        self._key = key
        self._queue_key = queue_key
        self._metrics = metrics or get_metrics_collector()

    @property
    def key(self) -> str:
        """Get the dead letter list key."""
        return self._key

    async def add(self, error: BaseException, raw: str | None) -> int:
        """
        Record a failed value.

        Args:
            error: The error that caused the failure.
            raw: The serialized value as stored.

        Returns:
            The dead letter list length.
        """
        reason = _reason(error)
        message = _message(reason)
        record = json.dumps({
            "err": {"message": message, "type": type(reason).__name__},
            "value": raw,
        })

        length = await self._store.lpush(self._key, record)
        self._metrics.record_dead_letter(self._queue_key, type(reason).__name__)

        logger.warning(
            "Added to dead letters",
            queue=self._queue_key,
            dead_key=self._key,
            error=message,
            error_type=type(reason).__name__,
        )

        return length

    async def list(self, count: int = 100) -> list[dict[str, Any]]:
        """
        List dead letter records, oldest first.

        Args:
            count: Maximum records to return.

        Returns:
            Decoded records; unreadable ones are returned as ``{"raw": ...}``.
        """
        if count <= 0:
            return []

        records = await self._store.lrange(self._key, -count, -1)

        items: list[dict[str, Any]] = []
        for record in reversed(records):
            try:
                items.append(json.loads(record))
            except ValueError:
                items.append({"raw": record})
        return items

    async def count(self) -> int:
        """Get the number of records."""
        return await self._store.llen(self._key)

    async def requeue(self, count: int = 1) -> int:
        """
        Move the oldest records' values back onto the queue.

        The oldest record is inspected before it is popped; a malformed one
        stays in place and stops the requeue.

        Args:
            count: Maximum records to requeue.

        Returns:
            Number of values requeued.
        """
        requeued = 0

        while requeued < count:
            oldest = await self._store.lindex(self._key, -1)
            if oldest is None:
                break
            if _record_value(oldest) is _MALFORMED:
                logger.warning("Malformed dead letter record", dead_key=self._key)
                break

            record = await self._store.rpop(self._key)
            if record is None:
                break

            raw = _record_value(record)
            if raw is _MALFORMED:
                # Another consumer popped the inspected record first
                await self._store.lpush(self._key, record)
                break

            if raw is not None:
                await self._store.lpush(self._queue_key, raw)
            requeued += 1

        if requeued:
            logger.info(
                "Requeued dead letters",
                queue=self._queue_key,
                dead_key=self._key,
                count=requeued,
            )

        return requeued

    async def purge(self) -> bool:
        """
        Delete all records.

        Returns:
            True if anything was deleted.
        """
        deleted = await self._store.delete(self._key)
        if deleted:
            logger.info("Purged dead letters", dead_key=self._key)
        return deleted > 0

    async def get_stats(self) -> dict[str, Any]:
        """Get dead letter statistics."""
        return {
            "dead_key": self._key,
            "queue": self._queue_key,
            "count": await self.count(),
        }
