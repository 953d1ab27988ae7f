"""Timer engine configuration dataclass."""
from __future__ import annotations

from dataclasses import dataclass

BACKEND_NAMES = ("auto", "thread", "process")


@dataclass(frozen=True)
class TimerConfig:
    """Immutable configuration for a TimerManager.

    Attributes:
        interval_ms: Cadence between ticks, in milliseconds.
        backend: ``"auto"``, ``"thread"`` or ``"process"``.
        poll_interval: Seconds ``run_until_idle`` blocks per dispatch pass.
        join_timeout: Seconds ``close()`` waits for each worker to exit.
    """

    interval_ms: float = 1000.0
    backend: str = "auto"
    poll_interval: float = 0.05
    join_timeout: float = 1.0

    def __post_init__(self) -> None:
        if self.interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {self.interval_ms}")
        if self.backend not in BACKEND_NAMES:
            raise ValueError(
                f"backend must be one of {BACKEND_NAMES}, got {self.backend!r}"
            )
        if self.poll_interval <= 0:
            raise ValueError(
                f"poll_interval must be positive, got {self.poll_interval}"
            )
        if self.join_timeout < 0:
            raise ValueError(
                f"join_timeout must be non-negative, got {self.join_timeout}"
            )
