"""reliqueue - Reliable FIFO queue on Redis lists with crash recovery."""

from reliqueue.core.config import Settings
from reliqueue.core.exceptions import (
    ConfigError,
    DecodeError,
    HandlerError,
    ReliQueueError,
    StoreError,
)
from reliqueue.queue import MemoryStore, RedisStore, ReliableQueue
from reliqueue.resilience import RetryPolicy, call_once

__version__ = "1.0.0"
__all__ = [
    "Settings",
    "ConfigError",
    "DecodeError",
    "HandlerError",
    "ReliQueueError",
    "StoreError",
    "MemoryStore",
    "RedisStore",
    "ReliableQueue",
    "RetryPolicy",
    "call_once",
    "__version__",
]
