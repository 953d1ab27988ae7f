"""TimerWorker state machine and the cadence loop that drives it.

The worker never accumulates time per tick. Every tick recomputes elapsed
time as ``now - start_timestamp``; pause freezes ``elapsed`` and resume
re-anchors ``start_timestamp = now - elapsed``, so paused time drops out
exactly.

``run_worker`` is the body of one background unit (thread or process). It
blocks on the inbox until either a command arrives or the next tick is due,
and posts every response to the shared outbox.
"""
from __future__ import annotations

import logging
import math
import queue
from enum import Enum
from typing import Any, Callable

from tick_timer.clock import Clock, MonotonicClock, format_time
from tick_timer.commands import (
    Command,
    Fault,
    Init,
    Pause,
    Reset,
    Resume,
    Start,
    Stop,
    Tick,
)
from tick_timer.types import TimerId, TimerKind

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 1000.0
ZERO_TIME = "00:00:00"


class WorkerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    STOPPED = "stopped"


_TERMINAL = frozenset({WorkerState.COMPLETED, WorkerState.STOPPED})


class TimerWorker:
    """One timer's state machine. Not thread-safe; owned by a single loop.

    Commands that do not apply to the current state are ignored.
    """

    def __init__(
        self,
        timer_id: TimerId,
        clock: Clock | None = None,
        interval_ms: float = DEFAULT_INTERVAL_MS,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self._id = timer_id
        self._clock: Clock = clock if clock is not None else MonotonicClock()
        self._interval = interval_ms

        self._kind: TimerKind | None = None
        self._duration: float = 0.0

        self._state = WorkerState.IDLE
        self._start_ts: float = 0.0
        self._elapsed: float = 0.0
        self._next_tick: float | None = None

        self._handlers: dict[type[Any], Callable[[Any], Tick | None]] = {
            Init: self._on_init,
            Start: self._on_start,
            Pause: self._on_pause,
            Resume: self._on_resume,
            Reset: self._on_reset,
            Stop: self._on_stop,
        }

    @property
    def timer_id(self) -> TimerId:
        return self._id

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def kind(self) -> TimerKind | None:
        return self._kind

    @property
    def elapsed(self) -> float:
        """Elapsed milliseconds as of the last tick, pause or reset."""
        return self._elapsed

    @property
    def next_tick(self) -> float | None:
        """Clock reading at which the next tick is due, or None if no cadence."""
        return self._next_tick

    @property
    def finished(self) -> bool:
        return self._state in _TERMINAL

    def seconds_until_tick(self) -> float | None:
        if self._next_tick is None:
            return None
        return max(0.0, (self._next_tick - self._clock.now()) / 1000.0)

    # --- Commands ---

    def handle(self, cmd: Command) -> Tick | None:
        """Apply one command. Returns the response to post, if any.

        Raises ``TypeError`` for an object that is not a known command.
        """
        handler = self._handlers.get(type(cmd))
        if handler is None:
            raise TypeError(f"No handler registered for {type(cmd).__qualname__}")
        if self.finished:
            return None
        return handler(cmd)

    def _on_init(self, cmd: Init) -> Tick | None:
        if self._state is not WorkerState.IDLE:
            logger.debug("Timer %s: init ignored in state %s", self._id, self._state.value)
            return None
        self._kind = TimerKind(cmd.kind)
        self._duration = float(cmd.duration)
        return None

    def _on_start(self, cmd: Start) -> Tick | None:
        if self._kind is None or self._state is not WorkerState.IDLE:
            logger.debug("Timer %s: start ignored in state %s", self._id, self._state.value)
            return None
        now = self._clock.now()
        self._start_ts = now
        self._elapsed = 0.0
        self._state = WorkerState.RUNNING
        # First tick is immediate.
        return self._tick(now)

    def _on_pause(self, cmd: Pause) -> Tick | None:
        if self._state is not WorkerState.RUNNING:
            return None
        self._elapsed = self._clock.now() - self._start_ts
        self._state = WorkerState.PAUSED
        self._next_tick = None
        return None

    def _on_resume(self, cmd: Resume) -> Tick | None:
        if self._state is not WorkerState.PAUSED:
            return None
        now = self._clock.now()
        self._start_ts = now - self._elapsed
        self._state = WorkerState.RUNNING
        self._schedule_after(now)
        return None

    def _on_reset(self, cmd: Reset) -> Tick | None:
        if self._kind is None:
            return None
        self._elapsed = 0.0
        self._next_tick = None
        self._state = WorkerState.IDLE
        if self._kind is TimerKind.COUNTDOWN:
            return Tick(format_time(self._duration), self._id)
        return Tick(ZERO_TIME, self._id)

    def _on_stop(self, cmd: Stop) -> Tick | None:
        self._state = WorkerState.STOPPED
        self._next_tick = None
        return None

    # --- Cadence ---

    def tick(self) -> Tick | None:
        """Fire the cadence if a tick is due; otherwise do nothing."""
        if self._state is not WorkerState.RUNNING or self._next_tick is None:
            return None
        now = self._clock.now()
        if now < self._next_tick:
            return None
        return self._tick(now)

    def _tick(self, now: float) -> Tick:
        self._elapsed = now - self._start_ts

        if self._kind is TimerKind.COUNTDOWN:
            remaining = self._duration - self._elapsed
            if remaining <= 0:
                return self._complete(ZERO_TIME)
            # Round up so "00:00:00" only ever appears on the completion tick.
            time_string = format_time(math.ceil(remaining / 1000.0) * 1000.0)
        else:
            if self._elapsed >= self._duration:
                return self._complete(format_time(self._duration))
            time_string = format_time(self._elapsed)

        self._schedule_after(now)
        return Tick(time_string, self._id)

    def _complete(self, time_string: str) -> Tick:
        self._state = WorkerState.COMPLETED
        self._next_tick = None
        return Tick(time_string, self._id, done=True)

    def _schedule_after(self, now: float) -> None:
        """Due when elapsed next reaches a whole multiple of the interval."""
        k = math.floor((now - self._start_ts) / self._interval) + 1
        deadline = self._start_ts + k * self._interval
        if deadline <= now:
            deadline += self._interval
        self._next_tick = deadline


def run_worker(
    timer_id: TimerId,
    inbox: Any,
    outbox: Any,
    interval_ms: float = DEFAULT_INTERVAL_MS,
    clock: Clock | None = None,
) -> None:
    """Drive one TimerWorker until it completes, stops or raises.

    ``inbox`` and ``outbox`` are ``queue.Queue`` or ``multiprocessing``
    queues. Any exception is logged and posted to the outbox as a ``Fault``.
    """
    worker = TimerWorker(timer_id, clock=clock, interval_ms=interval_ms)
    logger.debug("Timer %s: worker loop started", timer_id)
    try:
        while not worker.finished:
            timeout = worker.seconds_until_tick()
            try:
                if timeout is None:
                    cmd = inbox.get()
                elif timeout > 0:
                    cmd = inbox.get(timeout=timeout)
                else:
                    cmd = inbox.get_nowait()
            except queue.Empty:
                response = worker.tick()
            else:
                response = worker.handle(cmd)
            if response is not None:
                outbox.put(response)
    except Exception as exc:
        logger.exception("Timer %s: worker failed", timer_id)
        outbox.put(Fault.from_exception(timer_id, exc))
        return
    logger.debug("Timer %s: worker loop exited (%s)", timer_id, worker.state.value)
