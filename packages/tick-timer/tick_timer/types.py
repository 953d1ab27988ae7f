"""Shared types, callback aliases and errors for tick-timer."""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Callable

TimerId = str

OnTick = Callable[[str, TimerId], None]
OnComplete = Callable[[TimerId], None]
OnError = Callable[[Exception], None]


class TimerKind(Enum):
    COUNTDOWN = "countdown"
    STOPWATCH = "stopwatch"


class UnsupportedEnvironmentError(RuntimeError):
    """Raised when no background execution backend can run here."""


class WorkerFaultError(Exception):
    """A timer's background worker died or raised."""

    def __init__(self, timer_id: TimerId, message: str, error_type: str = "") -> None:
        self.timer_id = timer_id
        self.error_type = error_type
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class TimerSpec:
    """Immutable configuration captured at ``create_timer`` time.

    ``duration`` is in milliseconds: time to reach zero for a countdown, or
    the elapsed time at which a stopwatch auto-completes. ``kind`` may be
    given as a ``TimerKind`` or its string value.
    """

    kind: TimerKind
    duration: float
    on_tick: OnTick
    on_complete: OnComplete | None = None
    on_error: OnError | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", TimerKind(self.kind))
        if isinstance(self.duration, bool) or not isinstance(self.duration, Real):
            raise TypeError(
                f"duration must be a number, got {type(self.duration).__name__}"
            )
        if not math.isfinite(self.duration) or self.duration < 0:
            raise ValueError(
                f"duration must be a non-negative finite number, got {self.duration}"
            )
