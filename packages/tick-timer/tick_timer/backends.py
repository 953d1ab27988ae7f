"""Execution backends: where a timer worker's loop actually runs.

A backend is a capability with two methods, ``make_outbox()`` and
``spawn(timer_id, outbox)``. The manager picks one backend up front and
never branches on it again. Two ship here:

- ``ThreadBackend``: one daemon thread per timer, ``queue.Queue`` messaging.
- ``ProcessBackend``: one daemon process per timer, ``multiprocessing``
  queues. Useful when the caller's process holds the GIL for long stretches.
"""
from __future__ import annotations

import logging
import multiprocessing
import queue
import sys
import threading
from typing import Any, Protocol, runtime_checkable

from tick_timer.commands import Command, Stop
from tick_timer.types import TimerId, UnsupportedEnvironmentError
from tick_timer.worker import DEFAULT_INTERVAL_MS, run_worker

logger = logging.getLogger(__name__)

_NO_THREAD_PLATFORMS = frozenset({"wasi"})
_NO_PROCESS_PLATFORMS = frozenset({"emscripten", "wasi", "ios", "android"})


@runtime_checkable
class WorkerHandle(Protocol):
    """Manager-side handle to one running worker."""

    @property
    def timer_id(self) -> TimerId:
        ...

    def post(self, cmd: Command) -> None:
        """Send a command. Never blocks."""
        ...

    def terminate(self) -> None:
        """Ask the worker to stop. Never blocks."""
        ...

    def is_alive(self) -> bool:
        ...

    def join(self, timeout: float | None = None) -> None:
        ...


@runtime_checkable
class Backend(Protocol):
    name: str

    def make_outbox(self) -> Any:
        ...

    def spawn(self, timer_id: TimerId, outbox: Any) -> WorkerHandle:
        ...


# ------------------------------------------------------------------
# Threads
# ------------------------------------------------------------------


class ThreadWorkerHandle:
    def __init__(self, timer_id: TimerId, outbox: Any, interval_ms: float) -> None:
        self._timer_id = timer_id
        self._inbox: queue.Queue[Any] = queue.Queue()
        self._thread = threading.Thread(
            target=run_worker,
            args=(timer_id, self._inbox, outbox, interval_ms),
            name=f"tick-timer-{timer_id}",
            daemon=True,
        )

    @property
    def timer_id(self) -> TimerId:
        return self._timer_id

    def start(self) -> None:
        self._thread.start()

    def post(self, cmd: Command) -> None:
        self._inbox.put(cmd)

    def terminate(self) -> None:
        self._inbox.put(Stop(self._timer_id))

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)


class ThreadBackend:
    name = "thread"

    def __init__(self, interval_ms: float = DEFAULT_INTERVAL_MS) -> None:
        self._interval = interval_ms

    @staticmethod
    def available() -> bool:
        return sys.platform not in _NO_THREAD_PLATFORMS

    def make_outbox(self) -> queue.Queue[Any]:
        return queue.Queue()

    def spawn(self, timer_id: TimerId, outbox: Any) -> ThreadWorkerHandle:
        handle = ThreadWorkerHandle(timer_id, outbox, self._interval)
        handle.start()
        return handle


# ------------------------------------------------------------------
# Processes
# ------------------------------------------------------------------


class ProcessWorkerHandle:
    def __init__(
        self,
        ctx: Any,
        timer_id: TimerId,
        outbox: Any,
        interval_ms: float,
    ) -> None:
        self._timer_id = timer_id
        self._inbox = ctx.Queue()
        self._process = ctx.Process(
            target=run_worker,
            args=(timer_id, self._inbox, outbox, interval_ms),
            name=f"tick-timer-{timer_id}",
            daemon=True,
        )

    @property
    def timer_id(self) -> TimerId:
        return self._timer_id

    def start(self) -> None:
        self._process.start()

    def post(self, cmd: Command) -> None:
        self._inbox.put(cmd)

    def terminate(self) -> None:
        # Killing a process mid-write can corrupt the shared outbox, so the
        # worker is asked to exit on its own.
        self._inbox.put(Stop(self._timer_id))

    def is_alive(self) -> bool:
        return self._process.is_alive()

    def join(self, timeout: float | None = None) -> None:
        self._process.join(timeout)
        if self._process.is_alive():
            logger.warning("Timer %s: worker process did not exit, killing", self._timer_id)
            self._process.kill()
            self._process.join()


class ProcessBackend:
    name = "process"

    def __init__(
        self,
        interval_ms: float = DEFAULT_INTERVAL_MS,
        start_method: str | None = None,
    ) -> None:
        self._interval = interval_ms
        self._ctx = multiprocessing.get_context(start_method)

    @staticmethod
    def available() -> bool:
        if sys.platform in _NO_PROCESS_PLATFORMS:
            return False
        try:
            # Needs a working sem_open; missing on some minimal builds.
            import multiprocessing.synchronize  # noqa: F401
        except ImportError:
            return False
        return True

    def make_outbox(self) -> Any:
        return self._ctx.Queue()

    def spawn(self, timer_id: TimerId, outbox: Any) -> ProcessWorkerHandle:
        handle = ProcessWorkerHandle(self._ctx, timer_id, outbox, self._interval)
        handle.start()
        return handle


_BACKENDS: dict[str, type[Any]] = {
    ThreadBackend.name: ThreadBackend,
    ProcessBackend.name: ProcessBackend,
}
_AUTO_ORDER = (ThreadBackend.name, ProcessBackend.name)


def select_backend(
    name: str = "auto",
    interval_ms: float = DEFAULT_INTERVAL_MS,
) -> Backend:
    """Return the named backend, or the first available one for ``"auto"``.

    Raises ``UnsupportedEnvironmentError`` when the choice cannot run here
    and ``ValueError`` for an unknown name.
    """
    if name == "auto":
        for candidate in _AUTO_ORDER:
            if _BACKENDS[candidate].available():
                logger.debug("Selected %s backend", candidate)
                return _BACKENDS[candidate](interval_ms=interval_ms)
        raise UnsupportedEnvironmentError(
            f"No background execution backend available on {sys.platform}"
        )

    backend_cls = _BACKENDS.get(name)
    if backend_cls is None:
        raise ValueError(f"Unknown backend {name!r}")
    if not backend_cls.available():
        raise UnsupportedEnvironmentError(
            f"The {name} backend is not available on {sys.platform}"
        )
    return backend_cls(interval_ms=interval_ms)
