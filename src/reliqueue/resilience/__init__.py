"""Resilience module for handler retries."""

from reliqueue.resilience.retry import RetryPolicy, RetryWrapper, call_once

__all__ = [
    "RetryPolicy",
    "RetryWrapper",
    "call_once",
]
