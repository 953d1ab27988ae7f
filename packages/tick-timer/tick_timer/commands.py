"""Command and response messages exchanged with timer workers.

Commands travel manager -> worker, responses worker -> manager. Both are
frozen dataclasses so they can cross a thread queue or be pickled onto a
process queue unchanged. The ``*_message`` helpers convert to and from the
plain-dict wire shape::

    {"command": "start", "id": "timer-..."}
    {"timeString": "00:00:03", "id": "timer-...", "done": True}
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from tick_timer.types import TimerId, TimerKind


@dataclass(frozen=True)
class Init:
    id: TimerId
    duration: float
    kind: TimerKind


@dataclass(frozen=True)
class Start:
    id: TimerId


@dataclass(frozen=True)
class Pause:
    id: TimerId


@dataclass(frozen=True)
class Resume:
    id: TimerId


@dataclass(frozen=True)
class Reset:
    id: TimerId


@dataclass(frozen=True)
class Stop:
    id: TimerId


Command = Union[Init, Start, Pause, Resume, Reset, Stop]


@dataclass(frozen=True)
class Tick:
    """A time update. ``done`` marks the single completion tick of a run."""

    time_string: str
    id: TimerId
    done: bool = False


@dataclass(frozen=True)
class Fault:
    """The worker raised; carries only picklable text."""

    id: TimerId
    error_type: str
    message: str

    @classmethod
    def from_exception(cls, timer_id: TimerId, exc: BaseException) -> Fault:
        return cls(timer_id, type(exc).__qualname__, str(exc))


Response = Union[Tick, Fault]

_COMMAND_TYPES: dict[str, type[Any]] = {
    "init": Init,
    "start": Start,
    "pause": Pause,
    "resume": Resume,
    "reset": Reset,
    "stop": Stop,
}
_COMMAND_NAMES = {cls: name for name, cls in _COMMAND_TYPES.items()}


def command_to_message(cmd: Command) -> dict[str, Any]:
    message: dict[str, Any] = {"command": _COMMAND_NAMES[type(cmd)], "id": cmd.id}
    if isinstance(cmd, Init):
        message["duration"] = cmd.duration
        message["kind"] = cmd.kind.value
    return message


def command_from_message(message: dict[str, Any]) -> Command:
    """Build a command from its dict form.

    Raises ``ValueError`` for an unknown command name and ``KeyError`` when
    a required field is missing.
    """
    name = message.get("command")
    cmd_type = _COMMAND_TYPES.get(name)  # type: ignore[arg-type]
    if cmd_type is None:
        raise ValueError(f"Unknown command: {name!r}")
    if cmd_type is Init:
        return Init(
            id=message["id"],
            duration=message["duration"],
            kind=TimerKind(message["kind"]),
        )
    return cmd_type(id=message["id"])


def response_to_message(response: Tick) -> dict[str, Any]:
    message: dict[str, Any] = {"timeString": response.time_string, "id": response.id}
    if response.done:
        message["done"] = True
    return message
