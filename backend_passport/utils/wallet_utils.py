"""Wallet validation utilities."""

from __future__ import annotations

import re

EVM_ADDRESS_LENGTH = 42
_EVM_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_valid_wallet(w: str | None) -> bool:
    """Return True if w is a syntactically valid EVM address (0x + 40 hex chars)."""
    if not w:
        return False
    return bool(_EVM_ADDRESS_RE.match(w.strip()))


def normalize_wallet(w: str) -> str:
    """Strip and lower-case an address; callers validate first."""
    return w.strip().lower()


def short_wallet(w: str | None) -> str:
    """Truncate an address for log fields."""
    w = w or ""
    return w[:16] + "..." if len(w) > 16 else w
