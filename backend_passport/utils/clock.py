"""Wall-clock helpers (epoch milliseconds) shared by the health and pipeline layers."""

from __future__ import annotations

import time


def now_ms() -> float:
    """Current wall-clock time as epoch milliseconds."""
    return time.time() * 1000.0


def elapsed_ms(start_monotonic: float) -> float:
    """Milliseconds elapsed since a time.monotonic() reading."""
    return (time.monotonic() - start_monotonic) * 1000.0
