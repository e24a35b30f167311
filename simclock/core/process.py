"""Generator-based processes driven by the clock.

A process is ordinary sequential code written as a generator function. Each
``yield`` hands a suspension request back to the clock and parks the
generator; the clock resumes it later through a private wake-up entry. The
clock's run loop is the only thing that resumes a suspended process (with
the exception of interrupt(), which resumes it immediately).

    def customer(clock, counter):
        yield delay(2.0)                          # walk to the counter
        yield wait(lambda: counter.free > 0)      # queue until served
        counter.free -= 1
        item = yield orders.take()                # block on a channel
        ...

    clock.spawn(customer, clock, counter)

Yields are interpreted as:

- ``yield delay(dt)`` / ``yield delay(until=t)`` - resume at a later time
- ``yield dt`` (a number or Quantity) - shorthand for ``delay(dt)``
- ``yield wait(predicate)`` - resume once ``predicate()`` is true
- ``yield channel.take()`` / ``yield channel.put(item)`` - data exchange
- ``yield`` - resume at the same instant after already-queued work

Failures stay local: an uncaught exception ends only the failing process.
It is logged and recorded on the clock as an ActionFault.
"""

from __future__ import annotations

import inspect
import logging
import math
from collections.abc import Generator
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Callable

from simclock.core.conditional import ConditionalEntry, Predicate
from simclock.core.errors import Interrupted, ProcessError, SchedulingError
from simclock.core.event import Event
from simclock.core.temporal import Quantity, TimeLike
from simclock.utils.ids import get_id

if TYPE_CHECKING:
    from simclock.core.clock import Clock

logger = logging.getLogger(__name__)


class ProcessState(Enum):
    """Lifecycle of a process."""

    CREATED = auto()
    READY = auto()
    RUNNING = auto()
    SUSPENDED = auto()
    DONE = auto()
    FAILED = auto()
    INTERRUPTED = auto()
    TERMINATED = auto()


_FINISHED = frozenset({
    ProcessState.DONE,
    ProcessState.FAILED,
    ProcessState.INTERRUPTED,
    ProcessState.TERMINATED,
})


class SuspendRequest:
    """Base class for values a process yields to suspend itself.

    Subclasses implement _suspend(), which either completes the request at
    once and returns (True, value) so the generator continues with `value`,
    or registers a wake-up for the process and returns (False, None).
    """

    def _suspend(self, process: Process) -> tuple[bool, Any]:
        raise NotImplementedError


class Delay(SuspendRequest):
    """Suspend for a duration, or until an absolute time."""

    __slots__ = ("duration", "until")

    def __init__(self, duration: TimeLike | None = None, until: TimeLike | None = None):
        if (duration is None) == (until is None):
            raise SchedulingError("delay() takes exactly one of a duration or until=")
        self.duration = duration
        self.until = until

    def _suspend(self, process: Process) -> tuple[bool, Any]:
        clock = process._clock
        if self.until is not None:
            due = clock._to_clock(self.until)
            if due < clock.now:
                raise SchedulingError(f"Cannot delay until {due}: it is before now ({clock.now})")
        else:
            dt = clock._to_clock(self.duration)
            if dt < 0:
                raise SchedulingError(f"Cannot delay by a negative duration ({dt})")
            due = clock.now + dt
        process._wake_at(due, None)
        return False, None

    def __repr__(self) -> str:
        if self.until is not None:
            return f"Delay(until={self.until!r})"
        return f"Delay({self.duration!r})"


class WaitUntil(SuspendRequest):
    """Suspend until a predicate holds. Continues at once if it already does."""

    __slots__ = ("predicate",)

    def __init__(self, predicate: Predicate):
        if not callable(predicate):
            raise TypeError(f"wait() needs a callable predicate, got {type(predicate).__name__}")
        self.predicate = predicate

    def _suspend(self, process: Process) -> tuple[bool, Any]:
        if self.predicate():
            return True, None
        entry = ConditionalEntry(
            self.predicate,
            lambda: process._resume(None),
            name=f"{process.name}:wait",
            kind="wait",
        )
        process._clock._add_conditional(entry)
        process._park(entry)
        return False, None

    def __repr__(self) -> str:
        return f"WaitUntil({self.predicate!r})"


def delay(duration: TimeLike | None = None, *, until: TimeLike | None = None) -> Delay:
    """Suspension request: resume after `duration`, or at time `until`.

    Only meaningful when yielded from a process body.
    """
    return Delay(duration, until)


def wait(predicate: Predicate) -> WaitUntil:
    """Suspension request: resume once `predicate()` is true.

    Only meaningful when yielded from a process body.
    """
    return WaitUntil(predicate)


def interrupt(process: Process, cause: Any = None) -> None:
    """Interrupt a suspended process. See Process.interrupt()."""
    process.interrupt(cause)


class Process:
    """A suspendable unit of execution owned by a clock.

    Created through Clock.spawn(); not meant to be instantiated directly.

    Attributes:
        id: Stable identity for observers.
        name: Label for logs and traces.
        state: Current ProcessState.
        result: Return value of the last completed cycle.
        error: Exception that ended the process, if any.
        cycles: How many times the generator function is run (may be math.inf).
    """

    def __init__(
        self,
        clock: Clock,
        fn: Callable[..., Generator],
        args: tuple = (),
        kwargs: dict[str, Any] | None = None,
        *,
        name: str | None = None,
        cycles: float = 1,
    ):
        if not callable(fn):
            raise TypeError(f"Process body must be callable, got {type(fn).__name__}")
        if not (cycles >= 1 and (cycles == math.inf or float(cycles).is_integer())):
            raise ValueError(f"cycles must be a positive integer or math.inf, got {cycles!r}")
        self._clock = clock
        self._fn = fn
        self._args = args
        self._kwargs = kwargs or {}
        self.id = get_id("proc")
        self.name = name or getattr(fn, "__name__", None) or self.id
        self.cycles = cycles
        self.cycles_completed = 0
        self.result: Any = None
        self.error: BaseException | None = None
        self._state = ProcessState.CREATED
        self._gen: Generator | None = None
        self._pending: Any = None
        self._suspended_in_cycle = False

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    @property
    def state(self) -> ProcessState:
        return self._state

    @property
    def alive(self) -> bool:
        return self._state not in _FINISHED

    @property
    def finished(self) -> bool:
        return self._state in _FINISHED

    @property
    def pending_resume(self) -> Any:
        """The wake-up entry the process is parked on (Event, ConditionalEntry, channel waiter or delivery)."""
        return self._pending

    def interrupt(self, cause: Any = None) -> None:
        """Cancel the pending wake-up and resume the process right away with Interrupted.

        The generator sees ``Interrupted(cause)`` raised at its suspension
        point. It may catch it and carry on; otherwise the process ends in
        state INTERRUPTED.

        Raises:
            ProcessError: If the process is not currently suspended.
        """
        if self._state is not ProcessState.SUSPENDED:
            raise ProcessError(f"Cannot interrupt {self!r}: it is not suspended")
        pending, self._pending = self._pending, None
        if isinstance(pending, (Event, ConditionalEntry)):
            self._clock.cancel(pending)
        elif pending is not None:
            pending.withdraw()
        logger.debug("[%s] Interrupted at t=%s (cause=%r)", self.name, self._clock.now, cause)
        self._clock._trace.record(
            time=self._clock.now, kind="process.interrupt", event_id=self.id, event_type=self.name
        )
        self._advance(exc=Interrupted(cause))

    # ------------------------------------------------------------------
    # Clock-facing hooks
    # ------------------------------------------------------------------

    def _schedule_start(self) -> None:
        if self._state is not ProcessState.CREATED:
            raise ProcessError(f"{self!r} has already been started")
        event = Event(self._start, self._clock.now, name=f"{self.name}:start", kind="wakeup")
        self._clock._schedule_event(event)
        self._pending = event
        self._state = ProcessState.READY

    def _start(self) -> None:
        self._pending = None
        try:
            self._gen = self._make_generator()
        except Exception as err:
            self._fail(err)
            return
        self._advance()

    def _make_generator(self) -> Generator:
        self._suspended_in_cycle = False
        gen = self._fn(*self._args, **self._kwargs)
        if not inspect.isgenerator(gen):
            raise ProcessError(
                f"Process body {self.name!r} must be a generator function (use yield to suspend)"
            )
        return gen

    def _park(self, pending: Any) -> None:
        self._pending = pending
        self._suspended_in_cycle = True
        self._clock._trace.record(
            time=self._clock.now, kind="process.suspend", event_id=self.id, event_type=self.name
        )

    def _wake_at(self, due: float, value: Any) -> Event:
        """Register a clock event that resumes this process with `value` at `due`."""
        event = Event(lambda: self._resume(value), due, name=f"{self.name}:wakeup", kind="wakeup")
        self._clock._schedule_event(event)
        self._park(event)
        return event

    def _resume(self, value: Any) -> None:
        self._pending = None
        self._clock._trace.record(
            time=self._clock.now, kind="process.resume", event_id=self.id, event_type=self.name
        )
        self._advance(value)

    def _advance(self, value: Any = None, exc: BaseException | None = None) -> None:
        """Run the generator until it suspends or ends."""
        clock = self._clock
        previous = clock._active_process
        clock._active_process = self
        self._state = ProcessState.RUNNING
        try:
            while True:
                try:
                    if exc is not None:
                        to_throw, exc = exc, None
                        request = self._gen.throw(to_throw)
                    else:
                        request = self._gen.send(value)
                except StopIteration as stop:
                    self.result = stop.value
                    self.cycles_completed += 1
                    if self.cycles_completed >= self.cycles:
                        self._finish(ProcessState.DONE)
                        return
                    if not self._suspended_in_cycle:
                        raise ProcessError(
                            f"Process {self.name!r} completed a cycle without suspending; "
                            "a repeating process must yield at least once per cycle"
                        )
                    self._gen = self._make_generator()
                    value = None
                    continue
                except Interrupted as interrupted:
                    self.error = interrupted
                    self._finish(ProcessState.INTERRUPTED)
                    logger.info("[%s] Ended by interrupt at t=%s", self.name, clock.now)
                    return

                try:
                    completed, value = self._suspend(request)
                except Exception as err:
                    # Bad requests surface at the yield that made them.
                    exc = err
                    continue
                if not completed:
                    self._state = ProcessState.SUSPENDED
                    return
        except Exception as err:
            self._fail(err)
        finally:
            clock._active_process = previous

    def _suspend(self, request: Any) -> tuple[bool, Any]:
        if request is None:
            request = Delay(0.0)
        elif isinstance(request, (int, float, Quantity)):
            request = Delay(request)
        elif not isinstance(request, SuspendRequest):
            logger.warning(
                "[%s] Process yielded unknown type %s; assuming 0 delay.", self.name, type(request).__name__
            )
            request = Delay(0.0)
        return request._suspend(self)

    def _fail(self, err: Exception) -> None:
        self.error = err
        self._finish(ProcessState.FAILED)
        self._clock._report_fault("process", self.id, self.name, err)

    def _finish(self, state: ProcessState) -> None:
        self._state = state
        self._pending = None
        self._clock._trace.record(
            time=self._clock.now, kind="process.end", event_id=self.id, event_type=self.name,
            state=state.name,
        )
        logger.debug("[%s] Finished with state %s", self.name, state.name)

    def _terminate(self) -> None:
        """Drop the process on clock reset."""
        if self.finished:
            return
        self._pending = None
        if self._gen is not None:
            self._gen.close()
        self._state = ProcessState.TERMINATED

    def __repr__(self) -> str:
        return f"Process({self.name!r}, {self._state.name})"
