"""Queue module: store adapters, transactions, recovery and the facade."""

from reliqueue.queue.base import StoreAdapter
from reliqueue.queue.dead_letter import DeadLetterQueue
from reliqueue.queue.memory_store import MemoryStore
from reliqueue.queue.recovery import RecoveryScanner
from reliqueue.queue.redis_store import RedisStore
from reliqueue.queue.reliable import ReliableQueue
from reliqueue.queue.transaction import TransactionManager

__all__ = [
    "StoreAdapter",
    "DeadLetterQueue",
    "MemoryStore",
    "RecoveryScanner",
    "RedisStore",
    "ReliableQueue",
    "TransactionManager",
]
