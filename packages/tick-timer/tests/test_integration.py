"""End-to-end tests with real workers and the real clock.

These run in wall-clock time (a few seconds each at the 1 s cadence).
"""
from __future__ import annotations

import time

import pytest
from tick_timer import (
    ProcessBackend,
    TimerConfig,
    TimerKind,
    TimerManager,
    TimerSpec,
    format_time,
)


class Recorder:
    def __init__(self) -> None:
        self.ticks: list[str] = []
        self.completed: list[str] = []
        self.errors: list[Exception] = []

    def on_tick(self, time_string: str, timer_id: str) -> None:
        self.ticks.append(time_string)

    def on_complete(self, timer_id: str) -> None:
        self.completed.append(timer_id)

    def on_error(self, error: Exception) -> None:
        self.errors.append(error)

    def spec(self, kind: TimerKind, duration: float) -> TimerSpec:
        return TimerSpec(kind, duration, self.on_tick, self.on_complete, self.on_error)


def _pump(manager: TimerManager, seconds: float) -> None:
    deadline = time.monotonic() + seconds
    while time.monotonic() < deadline:
        manager.dispatch(timeout=0.02)


def _pump_until(manager: TimerManager, predicate, timeout: float) -> None:  # type: ignore[no-untyped-def]
    deadline = time.monotonic() + timeout
    while not predicate():
        assert time.monotonic() < deadline, "condition not reached in time"
        manager.dispatch(timeout=0.02)


def test_countdown_three_seconds():
    rec = Recorder()
    with TimerManager(TimerConfig(backend="thread")) as manager:
        handle = manager.create_timer(rec.spec(TimerKind.COUNTDOWN, 3000))
        handle.start()
        assert manager.run_until_idle(timeout=6.0)

    assert rec.ticks == ["00:00:03", "00:00:02", "00:00:01", "00:00:00"]
    assert rec.completed == [handle.id]
    assert rec.errors == []


def test_stopwatch_pause_and_resume():
    rec = Recorder()
    with TimerManager(TimerConfig(backend="thread")) as manager:
        handle = manager.create_timer(rec.spec(TimerKind.STOPWATCH, 2000))
        handle.start()
        _pump_until(manager, lambda: "00:00:01" in rec.ticks, timeout=3.0)

        handle.pause()
        paused_at = time.monotonic()
        ticks_at_pause = len(rec.ticks)
        _pump(manager, 2.0)
        assert len(rec.ticks) == ticks_at_pause

        handle.resume()
        assert manager.run_until_idle(timeout=3.0)
        finished_at = time.monotonic()

    assert rec.ticks[:2] == ["00:00:00", "00:00:01"]
    assert rec.ticks[-1] == "00:00:02"
    assert set(rec.ticks[ticks_at_pause:]) <= {"00:00:01", "00:00:02"}
    assert rec.completed == [handle.id]
    # Completed about a second after resuming, not immediately.
    assert finished_at - paused_at >= 2.5


def test_reset_then_start_again():
    rec = Recorder()
    with TimerManager(TimerConfig(backend="thread")) as manager:
        handle = manager.create_timer(rec.spec(TimerKind.COUNTDOWN, 2000))
        handle.start()
        _pump_until(manager, lambda: len(rec.ticks) == 1, timeout=2.0)

        handle.reset()
        _pump_until(manager, lambda: len(rec.ticks) == 2, timeout=2.0)
        _pump(manager, 1.3)
        assert rec.ticks == ["00:00:02", "00:00:02"]

        handle.start()
        assert manager.run_until_idle(timeout=4.0)

    assert rec.ticks == ["00:00:02", "00:00:02", "00:00:02", "00:00:01", "00:00:00"]
    assert rec.completed == [handle.id]


def test_stop_silences_timer():
    rec = Recorder()
    with TimerManager(TimerConfig(backend="thread", interval_ms=20)) as manager:
        handle = manager.create_timer(rec.spec(TimerKind.STOPWATCH, 60_000))
        handle.start()
        _pump_until(manager, lambda: len(rec.ticks) >= 3, timeout=2.0)

        handle.stop()
        handle.stop()
        count = len(rec.ticks)
        _pump(manager, 0.2)

    assert len(rec.ticks) == count
    assert rec.completed == []
    assert handle.id not in manager


def test_concurrent_timers_complete_independently():
    recs = [Recorder() for _ in range(5)]
    with TimerManager(TimerConfig(backend="thread", interval_ms=20)) as manager:
        handles = [
            manager.create_timer(rec.spec(TimerKind.STOPWATCH, 100 + 50 * i))
            for i, rec in enumerate(recs)
        ]
        for handle in handles:
            handle.start()
        # Pausing one timer must not hold up the others.
        handles[0].pause()
        _pump_until(manager, lambda: len(manager) == 1, timeout=5.0)
        assert manager.active_ids() == [handles[0].id]

        handles[0].resume()
        assert manager.run_until_idle(timeout=5.0)

    for rec, handle in zip(recs, handles):
        assert rec.completed == [handle.id]
        assert rec.ticks[-1] == format_time(0)
        assert rec.errors == []


@pytest.mark.skipif(not ProcessBackend.available(), reason="multiprocessing not usable here")
def test_process_backend_countdown():
    rec = Recorder()
    with TimerManager(TimerConfig(backend="process")) as manager:
        handle = manager.create_timer(rec.spec(TimerKind.COUNTDOWN, 1000))
        handle.start()
        assert manager.run_until_idle(timeout=15.0)

    assert rec.ticks == ["00:00:01", "00:00:00"]
    assert rec.completed == [handle.id]
    assert rec.errors == []
