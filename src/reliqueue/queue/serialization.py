"""Serialization utilities for queue payloads."""

from __future__ import annotations

import json
from typing import Any

from reliqueue.core.exceptions import DecodeError, EncodeError


def serialize_value(value: Any) -> str:
    """
    Serialize a value for queue storage.

    Args:
        value: Any JSON-encodable value.

    Returns:
        JSON text.

    Raises:
        EncodeError: If the value cannot be encoded.
    """
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise EncodeError(
            f"Failed to serialize value: {e}",
            details={"value_type": type(value).__name__},
        ) from e


def deserialize_value(data: str | bytes) -> Any:
    """
    Deserialize a value from queue data.

    Args:
        data: JSON text as stored.

    Returns:
        The decoded value.

    Raises:
        DecodeError: If the payload is not valid JSON.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode()
        except UnicodeDecodeError as e:
            raise DecodeError(f"Payload is not UTF-8: {e}") from e

    try:
        return json.loads(data)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"Failed to deserialize value: {e}", raw=data) from e
