"""TimerManager — registry of live timer workers and response routing."""
from __future__ import annotations

import logging
import queue
import time
from dataclasses import dataclass
from typing import Any, Callable

from tick_timer.backends import Backend, WorkerHandle, select_backend
from tick_timer.commands import Command, Fault, Init, Pause, Reset, Resume, Start, Tick
from tick_timer.config import TimerConfig
from tick_timer.ids import generate_timer_id
from tick_timer.types import TimerId, TimerSpec, WorkerFaultError

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    worker: WorkerHandle
    spec: TimerSpec


class TimerHandle:
    """Caller-facing controls for one timer.

    Every method is a fire-and-forget send and a no-op once the timer has
    been stopped, has completed or has faulted.
    """

    __slots__ = ("_manager", "_id")

    def __init__(self, manager: TimerManager, timer_id: TimerId) -> None:
        self._manager = manager
        self._id = timer_id

    @property
    def id(self) -> TimerId:
        return self._id

    def start(self) -> None:
        self._manager.start(self._id)

    def pause(self) -> None:
        self._manager.pause(self._id)

    def resume(self) -> None:
        self._manager.resume(self._id)

    def reset(self) -> None:
        self._manager.reset(self._id)

    def stop(self) -> None:
        self._manager.stop(self._id)

    def __repr__(self) -> str:
        return f"TimerHandle(id={self._id!r})"


class TimerManager:
    """Creates timer workers, routes commands to them and fans responses out.

    The backend (thread or process) is chosen on first ``create_timer``.
    Responses are delivered only when the owner calls ``dispatch()`` or
    ``run_until_idle()``, so callbacks always run on the owner's thread.
    A manager is not safe to share between threads.
    """

    def __init__(
        self,
        config: TimerConfig | None = None,
        backend: Backend | None = None,
        id_factory: Callable[[], TimerId] = generate_timer_id,
    ) -> None:
        self.config: TimerConfig = config if config is not None else TimerConfig()
        self._backend = backend
        self._id_factory = id_factory
        self._outbox: Any = None
        self._registry: dict[TimerId, _Entry] = {}
        # Workers asked to stop that may still be winding down.
        self._retired: list[WorkerHandle] = []

    @property
    def backend(self) -> Backend:
        """The execution backend, selected on first access.

        Raises ``UnsupportedEnvironmentError`` if none can run here.
        """
        if self._backend is None:
            self._backend = select_backend(self.config.backend, self.config.interval_ms)
        return self._backend

    # --- Creation ---

    def create_timer(self, spec: TimerSpec) -> TimerHandle:
        """Spawn a worker for *spec* and return its handle. Not started yet.

        If the backend fails to spawn the worker, ``spec.on_error`` is called
        with the exception before it is re-raised.
        """
        backend = self.backend
        if self._outbox is None:
            self._outbox = backend.make_outbox()

        timer_id = self._id_factory()
        while timer_id in self._registry:
            timer_id = self._id_factory()

        try:
            worker = backend.spawn(timer_id, self._outbox)
        except Exception as exc:
            logger.error("Timer %s: failed to spawn %s worker: %s", timer_id, backend.name, exc)
            if spec.on_error is not None:
                spec.on_error(exc)
            raise

        self._registry[timer_id] = _Entry(worker, spec)
        worker.post(Init(timer_id, spec.duration, spec.kind))
        logger.debug(
            "Timer %s: created %s for %.0f ms on %s backend",
            timer_id,
            spec.kind.value,
            spec.duration,
            backend.name,
        )
        return TimerHandle(self, timer_id)

    # --- Control ---

    def start(self, timer_id: TimerId) -> None:
        self._send(Start(timer_id))

    def pause(self, timer_id: TimerId) -> None:
        self._send(Pause(timer_id))

    def resume(self, timer_id: TimerId) -> None:
        self._send(Resume(timer_id))

    def reset(self, timer_id: TimerId) -> None:
        self._send(Reset(timer_id))

    def stop(self, timer_id: TimerId) -> None:
        """Stop the worker and forget the id. Repeated calls do nothing."""
        entry = self._registry.pop(timer_id, None)
        if entry is None:
            return
        self._teardown(entry.worker)
        logger.debug("Timer %s: stopped", timer_id)

    def stop_all(self) -> None:
        for timer_id in list(self._registry):
            self.stop(timer_id)

    def _send(self, cmd: Command) -> None:
        entry = self._registry.get(cmd.id)
        if entry is None:
            logger.debug("Timer %s: not registered, dropping %s", cmd.id, type(cmd).__name__)
            return
        entry.worker.post(cmd)

    def _teardown(self, worker: WorkerHandle) -> None:
        worker.terminate()
        self._retired = [w for w in self._retired if w.is_alive()]
        self._retired.append(worker)

    # --- Introspection ---

    def active_ids(self) -> list[TimerId]:
        return list(self._registry)

    def __contains__(self, timer_id: object) -> bool:
        return timer_id in self._registry

    def __len__(self) -> int:
        return len(self._registry)

    # --- Response routing ---

    def dispatch(self, timeout: float = 0.0) -> int:
        """Deliver pending worker responses on the calling thread.

        Waits up to *timeout* seconds for the first response, then drains
        whatever else is queued without blocking. Workers found dead without
        having completed are reported as faults. Returns the number of
        responses delivered to callbacks (stale ones are not counted).
        """
        if self._outbox is None:
            return 0

        # Sampled before draining: anything a dead worker posted is already
        # queued, so a completion is seen before the death is judged.
        dead = [tid for tid, entry in self._registry.items() if not entry.worker.is_alive()]

        delivered = 0
        wait = timeout
        while True:
            try:
                if wait > 0:
                    msg = self._outbox.get(timeout=wait)
                else:
                    msg = self._outbox.get_nowait()
            except queue.Empty:
                break
            wait = 0.0
            if self._deliver(msg):
                delivered += 1

        for timer_id in dead:
            entry = self._registry.pop(timer_id, None)
            if entry is not None:
                self._fault(
                    timer_id,
                    entry,
                    WorkerFaultError(timer_id, "worker exited unexpectedly"),
                )
        return delivered

    def _deliver(self, msg: Tick | Fault) -> bool:
        entry = self._registry.get(msg.id)
        if entry is None:
            logger.debug("Timer %s: dropping stale %s", msg.id, type(msg).__name__)
            return False

        if isinstance(msg, Fault):
            del self._registry[msg.id]
            self._fault(
                msg.id,
                entry,
                WorkerFaultError(msg.id, msg.message, error_type=msg.error_type),
            )
            return True

        entry.spec.on_tick(msg.time_string, msg.id)
        # on_tick may have stopped the timer itself.
        if msg.done and msg.id in self._registry:
            if entry.spec.on_complete is not None:
                entry.spec.on_complete(msg.id)
            self.stop(msg.id)
        return True

    def _fault(self, timer_id: TimerId, entry: _Entry, error: WorkerFaultError) -> None:
        self._teardown(entry.worker)
        if entry.spec.on_error is not None:
            logger.debug("Timer %s: worker fault: %s", timer_id, error)
            entry.spec.on_error(error)
        else:
            logger.error("Timer %s: worker fault with no on_error handler: %s", timer_id, error)

    def run_until_idle(self, timeout: float | None = None) -> bool:
        """Pump ``dispatch`` until no timers remain registered.

        Returns True once idle, False if *timeout* seconds pass first. A
        created-but-never-started timer keeps the manager busy.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while self._registry:
            wait = self.config.poll_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                wait = min(wait, remaining)
            self.dispatch(timeout=wait)
        return True

    # --- Lifecycle ---

    def close(self) -> None:
        """Stop every timer and wait briefly for the workers to exit."""
        self.stop_all()
        for worker in self._retired:
            worker.join(self.config.join_timeout)
        self._retired.clear()
        # Whatever is left in the outbox is stale now.
        self.dispatch()

    def __enter__(self) -> TimerManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
