"""tick-timer - Countdown and stopwatch timers ticking on background workers."""
from __future__ import annotations

from tick_timer.backends import ProcessBackend, ThreadBackend, select_backend
from tick_timer.clock import MonotonicClock, format_time
from tick_timer.config import TimerConfig
from tick_timer.manager import TimerHandle, TimerManager
from tick_timer.types import (
    TimerId,
    TimerKind,
    TimerSpec,
    UnsupportedEnvironmentError,
    WorkerFaultError,
)
from tick_timer.worker import TimerWorker, WorkerState

__all__ = [
    "TimerManager",
    "TimerHandle",
    "TimerSpec",
    "TimerKind",
    "TimerId",
    "TimerConfig",
    "TimerWorker",
    "WorkerState",
    "ThreadBackend",
    "ProcessBackend",
    "select_backend",
    "MonotonicClock",
    "format_time",
    "UnsupportedEnvironmentError",
    "WorkerFaultError",
]
