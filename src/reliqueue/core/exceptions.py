"""Exception hierarchy for reliqueue."""

from __future__ import annotations

from typing import Any


class ReliQueueError(Exception):
    """Base exception for all reliqueue errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# Configuration Errors
class ConfigError(ReliQueueError):
    """Invalid or missing queue configuration."""

    pass


# Serialization Errors
class SerializationError(ReliQueueError):
    """Base error for payload encoding issues."""

    pass


class EncodeError(SerializationError):
    """Value could not be serialized for storage."""

    pass


class DecodeError(SerializationError):
    """Stored payload could not be parsed back into a value."""

    def __init__(self, message: str, raw: str | None = None) -> None:
        details: dict[str, Any] = {}
        if raw is not None:
            details["raw"] = raw[:200]  # Truncate for logging
        super().__init__(message, details)
        self.raw = raw


# Processing Errors
class HandlerError(ReliQueueError):
    """Handler failed permanently (retries exhausted)."""

    def __init__(
        self,
        original: BaseException,
        transaction_key: str | None = None,
    ) -> None:
        details: dict[str, Any] = {"error_type": type(original).__name__}
        if transaction_key:
            details["transaction_key"] = transaction_key
        super().__init__(f"Handler failed: {original}", details)
        self.original = original
        self.transaction_key = transaction_key


# Store Errors
class StoreError(ReliQueueError):
    """Backing store unreachable or returned an error."""

    pass
