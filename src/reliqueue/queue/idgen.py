"""Transaction identifier generation."""

from __future__ import annotations

import secrets

ID_BYTES = 8


def generate_transaction_id() -> str:
    """Return 64 random bits from the OS CSPRNG as lowercase hex."""
    return secrets.token_hex(ID_BYTES)
