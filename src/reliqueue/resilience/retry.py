"""Retry policies for handler invocation."""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Sequence, Union

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_random_exponential,
)

from reliqueue.observability.logging import get_logger

logger = get_logger(__name__)

Thunk = Callable[[], Union[Any, Awaitable[Any]]]
RetryWrapper = Callable[[Thunk], Awaitable[Any]]


async def invoke(fn: Thunk) -> Any:
    """Call a sync or async no-argument callable and await its result."""
    result = fn()
    if inspect.isawaitable(result):
        result = await result
    return result


async def call_once(fn: Thunk) -> Any:
    """Default policy: run the thunk once, no retry."""
    return await invoke(fn)


class RetryPolicy:
    """
    Bounded retry with randomized exponential backoff.

    Instances are retry wrappers: pass one as a queue's ``retry`` option.
    The thunk is called afresh on every attempt and the last exception is
    re-raised once attempts run out.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        retryable_exceptions: Sequence[type[BaseException]] | None = None,
        non_retryable_exceptions: Sequence[type[BaseException]] | None = None,
    ) -> None:
        """
        Initialize retry policy.

        Args:
            max_attempts: Maximum attempts, the first call included.
            base_delay: Multiplier for the exponential wait, in seconds.
            max_delay: Upper bound for a single wait, in seconds.
            retryable_exceptions: Exceptions that trigger retry (all if None).
            non_retryable_exceptions: Exceptions that never retry.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.retryable_exceptions = tuple(retryable_exceptions or (Exception,))
        self.non_retryable_exceptions = tuple(non_retryable_exceptions or ())

    def should_retry(self, exception: BaseException) -> bool:
        """Determine if an exception should trigger a retry."""
        if isinstance(exception, self.non_retryable_exceptions):
            return False
        return isinstance(exception, self.retryable_exceptions)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "Retrying handler after error",
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
            error=str(exception),
            delay=round(delay, 2),
        )

    async def __call__(self, fn: Thunk) -> Any:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_random_exponential(multiplier=self.base_delay, max=self.max_delay),
            retry=retry_if_exception(self.should_retry),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await invoke(fn)
