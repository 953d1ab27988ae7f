"""Monotonic clock source and HH:MM:SS formatting."""
from __future__ import annotations

import time
from typing import Protocol, runtime_checkable

Milliseconds = float


@runtime_checkable
class Clock(Protocol):
    """Anything with a monotonic ``now()`` in milliseconds."""

    def now(self) -> Milliseconds:
        ...


class MonotonicClock:
    """Reads ``time.monotonic()``; unaffected by wall-clock adjustments."""

    def now(self) -> Milliseconds:
        return time.monotonic() * 1000.0


def format_time(ms: Milliseconds) -> str:
    """Format a millisecond count as ``HH:MM:SS``.

    The input is floored to whole seconds. Hours are not wrapped at 24.

    >>> format_time(3923000)
    '01:05:23'
    """
    if ms < 0:
        raise ValueError(f"ms must be non-negative, got {ms}")
    total_seconds = int(ms // 1000)
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
