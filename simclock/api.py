"""Functional scheduling surface and the process-wide default clock.

Every function takes the clock it acts on as its first argument; the
engine itself never reaches for a global. For scripts that only ever need
one clock, default_clock() returns a lazily created, process-wide instance:

    from simclock.api import default_clock, schedule, run

    clock = default_clock()
    schedule(clock, lambda: print("tick"), after=1.0)
    run(clock, duration=5.0)

delay(), wait() and interrupt() are re-exported for use inside process
bodies.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from typing import Any, Callable

from simclock.core.clock import Clock, RunResult
from simclock.core.conditional import ConditionalEntry, Predicate
from simclock.core.event import Action, Event
from simclock.core.process import Process, delay, interrupt, wait
from simclock.core.sampling import SamplingEntry
from simclock.core.temporal import TimeLike, TimeUnit

logger = logging.getLogger(__name__)

__all__ = [
    "default_clock",
    "reset_default_clock",
    "initialize",
    "schedule",
    "schedule_conditional",
    "schedule_sampling",
    "cancel",
    "run",
    "stop",
    "resume",
    "reset",
    "current_time",
    "set_time_unit",
    "spawn_process",
    "start_processes",
    "delay",
    "wait",
    "interrupt",
]

_default_clock: Clock | None = None


def default_clock() -> Clock:
    """Return the process-wide default clock, creating it on first use."""
    global _default_clock
    if _default_clock is None:
        _default_clock = Clock(name="default")
        logger.debug("Created default clock")
    return _default_clock


def reset_default_clock(**clock_kwargs: Any) -> Clock:
    """Replace the default clock with a fresh one built from `clock_kwargs`."""
    global _default_clock
    clock_kwargs.setdefault("name", "default")
    _default_clock = Clock(**clock_kwargs)
    return _default_clock


def initialize(clock: Clock) -> None:
    clock.initialize()


def schedule(
    clock: Clock,
    action: Action,
    *,
    at: TimeLike | None = None,
    after: TimeLike | None = None,
    name: str | None = None,
) -> Event:
    """Queue `action` at time `at` or `after` a delay. Returns the Event handle."""
    return clock.schedule(action, at=at, after=after, name=name)


def schedule_conditional(
    clock: Clock, predicate: Predicate, action: Callable[[], Any], *, name: str | None = None
) -> ConditionalEntry:
    return clock.schedule_conditional(predicate, action, name=name)


def schedule_sampling(
    clock: Clock, action: Callable[[], Any], period: TimeLike | None = None, *, name: str | None = None
) -> SamplingEntry:
    return clock.schedule_sampling(action, period, name=name)


def cancel(clock: Clock, handle: Event | ConditionalEntry | SamplingEntry) -> None:
    clock.cancel(handle)


def run(clock: Clock, duration: TimeLike | None = None, *, until: TimeLike | None = None) -> RunResult:
    """Run `clock` for a duration or until an absolute time (exactly one of them)."""
    if (duration is None) == (until is None):
        raise ValueError("run() takes exactly one of duration or until=")
    if until is not None:
        return clock.run_until(until)
    return clock.run(duration)


def stop(clock: Clock) -> None:
    clock.stop()


def resume(clock: Clock) -> RunResult:
    return clock.resume()


def reset(clock: Clock, t0: float | None = None, *, hard: bool = True) -> None:
    """Clear everything and bring the clock back to IDLE at its initial time."""
    clock.reset(t0, hard=hard)


def current_time(clock: Clock) -> float:
    return clock.now


def set_time_unit(clock: Clock, unit: TimeUnit | None) -> None:
    clock.set_time_unit(unit)


def spawn_process(
    clock: Clock,
    fn: Callable[..., Generator],
    *args: Any,
    name: str | None = None,
    cycles: float = 1,
    start: bool = True,
    **kwargs: Any,
) -> Process:
    return clock.spawn(fn, *args, name=name, cycles=cycles, start=start, **kwargs)


def start_processes(clock: Clock) -> list[Process]:
    return clock.start_processes()
