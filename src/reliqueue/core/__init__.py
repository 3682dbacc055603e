"""Core module for reliqueue."""

from reliqueue.core.config import QueueOptions, Settings
from reliqueue.core.exceptions import (
    ConfigError,
    DecodeError,
    EncodeError,
    HandlerError,
    ReliQueueError,
    SerializationError,
    StoreError,
)

__all__ = [
    "QueueOptions",
    "Settings",
    "ConfigError",
    "DecodeError",
    "EncodeError",
    "HandlerError",
    "ReliQueueError",
    "SerializationError",
    "StoreError",
]
