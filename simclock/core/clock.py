"""The clock: virtual time, scheduling API, and the run loop.

A Clock owns everything that makes up a simulation run: the current time,
the event queue, the conditional and sampling registries, the processes it
drives, and its lifecycle state. Nothing else mutates those; events,
conditions, samplers and processes talk to the clock only through the
scheduling API below.

Lifecycle (an explicit transition table, see state_machine.py)::

    UNDEFINED --initialize--> IDLE --run--> RUNNING --(done)--> IDLE
                                               |  ^
                                          stop v  | resume
                                              HALTED
    reset (from UNDEFINED, IDLE or HALTED) --> UNDEFINED --> IDLE

BUSY is entered while a single action executes and left right after.

Run loop, per simulated instant ``t``:

1. advance ``now`` to ``t``
2. pop and execute every queued event due at ``t``, one at a time, so
   events scheduled for ``t`` by those actions run in the same pass
3. sweep the conditional registry to a fixed point
4. fire samplers whose next time is ``<= now`` and re-arm them

Example::

    clock = Clock()
    clock.schedule(lambda: print("hello", clock.now), at=3)
    result = clock.run(10)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Generator
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable

from simclock.core.conditional import ConditionalEntry, ConditionalRegistry, Predicate
from simclock.core.errors import (
    ActionFault,
    ClockStateError,
    SchedulingError,
)
from simclock.core.event import Action, Event
from simclock.core.event_queue import EventQueue
from simclock.core.process import Process, ProcessState
from simclock.core.sampling import SamplingEntry, SamplingRegistry
from simclock.core.state_machine import Transition, TransitionTable
from simclock.core.temporal import Quantity, TimeLike, TimeUnit
from simclock.tracing.recorder import NullTraceRecorder, TraceRecorder
from simclock.utils.ids import get_id

logger = logging.getLogger(__name__)


class ClockState(Enum):
    UNDEFINED = auto()
    IDLE = auto()
    RUNNING = auto()
    BUSY = auto()
    HALTED = auto()


class ClockEvent(Enum):
    INITIALIZE = auto()
    SCHEDULE = auto()
    RUN = auto()
    STEP = auto()
    EXECUTE = auto()
    EXECUTED = auto()
    STOP = auto()
    RESUME = auto()
    FINISH = auto()
    RESET = auto()


def _clock_fallback(state: ClockState, event: ClockEvent) -> Transition:
    raise ClockStateError(state, event, f"Cannot {event.name.lower()} a clock in state {state.name}")


def _build_transitions() -> TransitionTable:
    S, E = ClockState, ClockEvent
    table = TransitionTable(fallback=_clock_fallback)
    table.add(S.UNDEFINED, E.INITIALIZE, S.IDLE)
    table.add(S.IDLE, E.INITIALIZE, S.IDLE)
    for state in (S.IDLE, S.RUNNING, S.BUSY, S.HALTED):
        table.add(state, E.SCHEDULE, state)
    table.add(S.IDLE, E.RUN, S.RUNNING)
    table.add(S.IDLE, E.STEP, S.RUNNING)
    table.add(S.RUNNING, E.EXECUTE, S.BUSY)
    table.add(S.BUSY, E.EXECUTED, S.RUNNING)
    table.add([S.RUNNING, S.BUSY], E.STOP, S.HALTED)
    table.add(S.HALTED, E.RESUME, S.RUNNING)
    table.add([S.RUNNING, S.BUSY], E.FINISH, S.IDLE)
    table.add([S.UNDEFINED, S.IDLE, S.HALTED], E.RESET, S.UNDEFINED)
    return table


_TRANSITIONS = _build_transitions()


@dataclass(frozen=True)
class RunResult:
    """Outcome of run(), run_until(), resume() or step().

    Attributes:
        events_executed: Queued events and conditional actions executed.
        samples_executed: Sampler invocations.
        final_time: Clock time when the call returned.
        state: Clock state when the call returned (IDLE, or HALTED if stopped).
    """
    events_executed: int
    samples_executed: int
    final_time: float
    state: ClockState


def _scale(span: float) -> float:
    """Largest power of ten not above `span`."""
    return 10.0 ** math.floor(math.log10(span))


class Clock:
    """Virtual clock driving a discrete-event simulation.

    Args:
        t0: Initial (and reset) time, in clock units.
        unit: Optional TimeUnit tag. Enables Quantity arguments.
        sample_interval: Default period for samplers. Also the step used to
            re-check pending conditions when nothing else is scheduled.
            Condition checks fall on the grid ``t0 + k * step``. Without a
            sample interval each run() picks its own step from the span it
            was asked to cover, so run(10) and ten run(1) calls may check a
            time-only condition at different instants. Set a sample interval
            when the check instants must not depend on how a run is split.
        name: Label for logs.
        elapse_idle: If True, run() moves ``now`` to its target time even
            when the last executed instant is earlier. By default ``now``
            stays at the last executed instant.
        raise_on_fault: Re-raise exceptions from actions instead of
            recording them and carrying on. Intended for debugging.
        trace_recorder: Optional recorder for engine-level spans.
        initialize: Leave the clock IDLE (default) or UNDEFINED.
    """

    def __init__(
        self,
        t0: float = 0.0,
        *,
        unit: TimeUnit | None = None,
        sample_interval: float | None = None,
        name: str | None = None,
        elapse_idle: bool = False,
        raise_on_fault: bool = False,
        trace_recorder: TraceRecorder | None = None,
        initialize: bool = True,
    ):
        self.id = get_id("clock")
        self.name = name or "Clock"
        self._t0 = float(t0)
        self._initial_unit = unit
        self._initial_sample_interval = sample_interval
        self._elapse_idle = elapse_idle
        self._raise_on_fault = raise_on_fault
        self._trace = trace_recorder or NullTraceRecorder()

        self._state = ClockState.UNDEFINED
        self._now = self._t0
        self._unit = unit
        self._sample_interval: float | None = None
        self._queue = EventQueue(trace_recorder=self._trace)
        self._conditionals = ConditionalRegistry()
        self._samplers = SamplingRegistry()
        self._processes: dict[str, Process] = {}
        self._faults: list[ActionFault] = []
        self._active_process: Process | None = None
        self._target: float | None = None
        self._tick: float | None = None
        self._tick_count = 0
        self.events_executed = 0
        self.samples_executed = 0

        if sample_interval is not None:
            self.set_sample_interval(sample_interval)
        if initialize:
            self.initialize()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def now(self) -> float:
        """Current simulation time in clock units."""
        return self._now

    @property
    def unit(self) -> TimeUnit | None:
        return self._unit

    @property
    def state(self) -> ClockState:
        return self._state

    @property
    def sample_interval(self) -> float | None:
        return self._sample_interval

    @property
    def queue(self) -> EventQueue:
        """The event queue. Read-only by convention; schedule through the clock."""
        return self._queue

    @property
    def conditionals(self) -> ConditionalRegistry:
        return self._conditionals

    @property
    def samplers(self) -> SamplingRegistry:
        return self._samplers

    @property
    def processes(self) -> list[Process]:
        return list(self._processes.values())

    @property
    def faults(self) -> list[ActionFault]:
        """Action faults caught while running, oldest first."""
        return list(self._faults)

    @property
    def active_process(self) -> Process | None:
        """The process whose body is executing right now, if any."""
        return self._active_process

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _transition(self, event: ClockEvent) -> None:
        old = self._state
        new, _ = _TRANSITIONS.step(old, event)
        self._state = new
        if new is not old and event not in (ClockEvent.EXECUTE, ClockEvent.EXECUTED):
            logger.debug("[%s] %s --%s--> %s", self.name, old.name, event.name, new.name)
            self._trace.record(time=self._now, kind="clock.state", event_id=self.id,
                               event_type=event.name, old=old.name, new=new.name)

    def initialize(self) -> None:
        """UNDEFINED -> IDLE. A no-op on an already idle clock."""
        self._transition(ClockEvent.INITIALIZE)

    def stop(self) -> None:
        """Halt a running clock after the action currently executing.

        Raises:
            ClockStateError: If the clock is not running.
        """
        self._transition(ClockEvent.STOP)
        logger.info("[%s] Halted at t=%s", self.name, self._now)

    def resume(self) -> RunResult:
        """Continue a halted run towards the target it was given.

        Raises:
            ClockStateError: If the clock is not halted.
        """
        self._transition(ClockEvent.RESUME)
        logger.info("[%s] Resuming at t=%s towards t=%s", self.name, self._now, self._target)
        return self._loop()

    def reset(self, t0: float | None = None, *, hard: bool = True, initialize: bool = True) -> None:
        """Clear queue, registries, processes, faults, and time.

        Args:
            t0: New initial time. Defaults to the constructor's t0.
            hard: Also restore the constructor's unit and sample interval.
            initialize: Re-initialize to IDLE afterwards (default) or stay UNDEFINED.

        Raises:
            ClockStateError: If called while the clock is running.
        """
        self._transition(ClockEvent.RESET)
        self._queue.clear()
        self._conditionals.clear()
        self._samplers.clear()
        for process in self._processes.values():
            process._terminate()
        self._processes.clear()
        self._faults.clear()
        self._active_process = None
        self._target = None
        self._tick = None
        self._tick_count = 0
        self.events_executed = 0
        self.samples_executed = 0
        if t0 is not None:
            self._t0 = float(t0)
        self._now = self._t0
        if hard:
            self._unit = self._initial_unit
            self._sample_interval = None
            if self._initial_sample_interval is not None:
                self.set_sample_interval(self._initial_sample_interval)
        logger.info("[%s] Reset to t=%s", self.name, self._now)
        if initialize:
            self.initialize()

    # ------------------------------------------------------------------
    # Time units
    # ------------------------------------------------------------------

    def set_time_unit(self, unit: TimeUnit | None) -> None:
        """Tag the clock with a unit, converting all times if it already had one.

        Without a previous unit the existing numbers are simply taken to be
        in `unit`. Passing None drops the tag and keeps the numbers.
        """
        old = self._unit
        if old is not None and unit is not None and unit is not old:
            factor = old.factor_to(unit)
            self._now *= factor
            self._t0 *= factor
            self._queue._rescale(factor)
            self._samplers._rescale(factor)
            if self._sample_interval is not None:
                self._sample_interval *= factor
            if self._target is not None:
                self._target *= factor
            if self._tick is not None:
                self._tick *= factor
            logger.info("[%s] Converted clock from %s to %s", self.name, old.symbol, unit.symbol)
        self._unit = unit

    def set_sample_interval(self, interval: TimeLike) -> None:
        """Set the default sampler period and condition re-check step."""
        value = self._to_clock(interval)
        if value <= 0:
            raise SchedulingError(f"Sample interval must be positive, got {value}")
        self._sample_interval = value

    def _to_clock(self, value: TimeLike) -> float:
        """Convert a number or Quantity into clock units."""
        if isinstance(value, Quantity):
            if self._unit is None:
                raise SchedulingError(
                    f"Got {value!r} but the clock has no time unit; call set_time_unit() first"
                )
            return value.magnitude_in(self._unit)
        if isinstance(value, (int, float)):
            return float(value)
        raise TypeError(f"Expected a number or Quantity, got {type(value).__name__}")

    # ------------------------------------------------------------------
    # Scheduling API
    # ------------------------------------------------------------------

    def schedule(
        self,
        action: Action,
        *,
        at: TimeLike | None = None,
        after: TimeLike | None = None,
        name: str | None = None,
    ) -> Event:
        """Schedule `action` to run at time `at`, or `after` a delay from now.

        Returns:
            The queued Event, usable as a handle for cancel().

        Raises:
            SchedulingError: If both or neither of at/after are given, or
                the due time is in the past.
            ClockStateError: If the clock is UNDEFINED.
        """
        if (at is None) == (after is None):
            raise SchedulingError("schedule() takes exactly one of at= or after=")
        if after is not None:
            dt = self._to_clock(after)
            if dt < 0:
                raise SchedulingError(f"Cannot schedule after a negative delay ({dt})")
            due = self._now + dt
        else:
            due = self._to_clock(at)
        return self._schedule_event(Event(action, due, name=name))

    def _schedule_event(self, event: Event) -> Event:
        self._transition(ClockEvent.SCHEDULE)
        if event.due < self._now:
            raise SchedulingError(
                f"Cannot schedule {event.name!r} at {event.due}: it is before now ({self._now})"
            )
        self._queue.push(event)
        logger.debug("[%s] Scheduled %r", self.name, event)
        return event

    def schedule_conditional(
        self, predicate: Predicate, action: Callable[[], Any], *, name: str | None = None
    ) -> ConditionalEntry:
        """Run `action` once, at the first sweep where `predicate()` is true."""
        return self._add_conditional(ConditionalEntry(predicate, action, name=name))

    def _add_conditional(self, entry: ConditionalEntry) -> ConditionalEntry:
        self._transition(ClockEvent.SCHEDULE)
        return self._conditionals.add(entry)

    def schedule_sampling(
        self, action: Callable[[], Any], period: TimeLike | None = None, *, name: str | None = None
    ) -> SamplingEntry:
        """Run `action` every `period` (default: the clock's sample interval), starting one period from now.

        Raises:
            SchedulingError: Without a period and without a clock sample
                interval, or for a non-positive period.
        """
        self._transition(ClockEvent.SCHEDULE)
        if period is None:
            if self._sample_interval is None:
                raise SchedulingError("No period given and the clock has no sample interval")
            value = self._sample_interval
        else:
            value = self._to_clock(period)
        if value <= 0:
            raise SchedulingError(f"Sampling period must be positive, got {value}")
        entry = SamplingEntry(action, value, self._now, name=name)
        return self._samplers.add(entry)

    def cancel(self, handle: Event | ConditionalEntry | SamplingEntry) -> None:
        """Withdraw a pending event, a pending conditional, or a sampler.

        Raises:
            CancellationError: If the handle already fired or was cancelled.
        """
        if isinstance(handle, Event):
            self._queue.cancel(handle)
        elif isinstance(handle, ConditionalEntry):
            self._conditionals.cancel(handle)
        elif isinstance(handle, SamplingEntry):
            self._samplers.remove(handle)
        else:
            raise TypeError(f"Cannot cancel {type(handle).__name__}")

    def remove_sampling(self, entry: SamplingEntry) -> None:
        self._samplers.remove(entry)

    # ------------------------------------------------------------------
    # Processes
    # ------------------------------------------------------------------

    def spawn(
        self,
        fn: Callable[..., Generator],
        *args: Any,
        name: str | None = None,
        cycles: float = 1,
        start: bool = True,
        **kwargs: Any,
    ) -> Process:
        """Register a generator function as a process.

        Args:
            fn: Generator function forming the process body.
            *args: Positional arguments for `fn`.
            name: Label for logs. Defaults to the function name.
            cycles: How many times to run `fn` back to back (math.inf allowed).
            start: Schedule the first step at the current time. Otherwise
                the process waits for start_processes().
            **kwargs: Keyword arguments for `fn`.
        """
        self._transition(ClockEvent.SCHEDULE)
        process = Process(self, fn, args, kwargs, name=name, cycles=cycles)
        self._processes[process.id] = process
        logger.debug("[%s] Spawned %r", self.name, process)
        if start:
            process._schedule_start()
        return process

    def start_processes(self) -> list[Process]:
        """Schedule the first step of every registered process not started yet."""
        started = []
        for process in self._processes.values():
            if process.state is ProcessState.CREATED:
                process._schedule_start()
                started.append(process)
        return started

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    def run(self, duration: TimeLike) -> RunResult:
        """Run for `duration` from the current time. See run_until()."""
        dt = self._to_clock(duration)
        if dt < 0:
            raise SchedulingError(f"Cannot run for a negative duration ({dt})")
        return self.run_until(self._now + dt)

    def run_until(self, time: TimeLike) -> RunResult:
        """Execute everything due up to and including `time`.

        Returns immediately when `time` is not after now.

        Raises:
            ClockStateError: If the clock is not IDLE.
        """
        target = self._to_clock(time)
        if self._state is ClockState.UNDEFINED:
            raise ClockStateError(self._state, ClockEvent.RUN, "Cannot run an undefined clock; initialize() it first")
        if target <= self._now:
            return RunResult(0, 0, self._now, self._state)
        self._transition(ClockEvent.RUN)
        self._target = target
        sample = self._sample_interval
        self._set_tick(sample if sample is not None else _scale(target - self._now) / 100)
        logger.info("[%s] Running from t=%s to t=%s", self.name, self._now, target)
        return self._loop()

    def step(self) -> RunResult:
        """Execute the next single instant (events, conditions, samplers), then go IDLE."""
        self._transition(ClockEvent.STEP)
        self._target = math.inf
        self._set_tick(self._sample_interval)
        try:
            t = self._next_instant()
            # A resume after a stop inside this step only finishes this instant.
            self._target = self._now if t is None else t
            events, samples = (0, 0) if t is None else self._process_instant(t)
        except BaseException:
            self._abort()
            raise
        if self._state is not ClockState.HALTED:
            self._transition(ClockEvent.FINISH)
            self._target = None
        return RunResult(events, samples, self._now, self._state)

    def _loop(self) -> RunResult:
        events = samples = 0
        try:
            # Conditions that already hold fire at the starting instant.
            events += self._sweep_conditionals()
            self.events_executed += events
            while self._state is ClockState.RUNNING:
                t = self._next_instant()
                if t is None or t > self._target:
                    break
                e, s = self._process_instant(t)
                events += e
                samples += s
        except BaseException:
            self._abort()
            raise

        if self._state is ClockState.RUNNING:
            if self._elapse_idle and self._now < self._target:
                self._now = self._target
            self._transition(ClockEvent.FINISH)
            self._target = None
            logger.info("[%s] Run finished at t=%s (%d events, %d samples)", self.name, self._now, events, samples)
        return RunResult(events, samples, self._now, self._state)

    def _abort(self) -> None:
        """Leave RUNNING/BUSY after an exception escaped the loop (raise_on_fault)."""
        if self._state in (ClockState.RUNNING, ClockState.BUSY):
            self._transition(ClockEvent.FINISH)
        self._target = None

    def _set_tick(self, tick: float | None) -> None:
        self._tick = tick
        if tick is not None:
            self._tick_count = max(0, math.floor((self._now - self._t0) / tick) - 1)

    def _next_tick(self) -> float:
        """First instant after now on the grid t0 + k * tick."""
        while True:
            due = self._t0 + (self._tick_count + 1) * self._tick
            if due > self._now:
                return due
            self._tick_count += 1

    def _next_instant(self) -> float | None:
        candidates = []
        next_event = self._queue.peek_next_due()
        if next_event is not None:
            candidates.append(next_event)
        next_sample = self._samplers.next_due()
        if next_sample is not None:
            candidates.append(next_sample)
        if len(self._conditionals) and self._tick is not None:
            candidates.append(self._next_tick())
        if not candidates:
            return None
        return max(min(candidates), self._now)

    def _process_instant(self, t: float) -> tuple[int, int]:
        if t > self._now:
            self._now = t
        executed = 0
        while self._state is ClockState.RUNNING:
            head = self._queue.peek()
            if head is None or head.due > t:
                break
            self._execute_event(self._queue.pop())
            executed += 1
        samples = 0
        if self._state is ClockState.RUNNING:
            executed += self._sweep_conditionals()
            samples = self._service_samplers()
        self.events_executed += executed
        return executed, samples

    def _execute_event(self, event: Event) -> None:
        self._transition(ClockEvent.EXECUTE)
        try:
            event.invoke()
        except Exception as exc:
            if self._raise_on_fault:
                raise
            self._report_fault(event.kind, event.id, event.name, exc)
        finally:
            if self._state is ClockState.BUSY:
                self._transition(ClockEvent.EXECUTED)

    def _sweep_conditionals(self) -> int:
        if not len(self._conditionals):
            return 0
        return self._conditionals.sweep(self._fire_conditional, self._predicate_failed, self._is_running)

    def _is_running(self) -> bool:
        return self._state is ClockState.RUNNING

    def _fire_conditional(self, entry: ConditionalEntry) -> None:
        self._trace.record(time=self._now, kind="conditional.fire", event_id=entry.id, event_type=entry.name)
        self._transition(ClockEvent.EXECUTE)
        try:
            entry.action()
        except Exception as exc:
            if self._raise_on_fault:
                raise
            self._report_fault(entry.kind, entry.id, entry.name, exc)
        finally:
            if self._state is ClockState.BUSY:
                self._transition(ClockEvent.EXECUTED)

    def _predicate_failed(self, entry: ConditionalEntry, exc: Exception) -> None:
        if self._raise_on_fault:
            raise exc
        self._report_fault(entry.kind, entry.id, entry.name, exc)

    def _service_samplers(self) -> int:
        fired = 0
        for entry in self._samplers.due(self._now):
            if self._state is not ClockState.RUNNING:
                break
            if not entry.active:
                continue
            self._trace.record(time=self._now, kind="sample.fire", event_id=entry.id, event_type=entry.name)
            self._transition(ClockEvent.EXECUTE)
            try:
                entry.action()
            except Exception as exc:
                if self._raise_on_fault:
                    raise
                self._report_fault("sample", entry.id, entry.name, exc)
            finally:
                if self._state is ClockState.BUSY:
                    self._transition(ClockEvent.EXECUTED)
            entry.fire_count += 1
            entry.next_due = entry.origin + (entry.fire_count + 1) * entry.period
            if entry.next_due <= self._now:
                entry.next_due = self._now + entry.period
            fired += 1
        self.samples_executed += fired
        return fired

    def _report_fault(self, kind: str, source_id: str, source_name: str, exc: BaseException) -> None:
        fault = ActionFault(time=self._now, kind=kind, source_id=source_id, source_name=source_name, exception=exc)
        self._faults.append(fault)
        logger.error("[%s] %s", self.name, fault, exc_info=exc)
        self._trace.record(time=self._now, kind="fault", event_id=source_id, event_type=source_name,
                           fault_kind=kind, error=type(exc).__name__)
        if self._raise_on_fault:
            raise exc

    def __repr__(self) -> str:
        unit = f" {self._unit.symbol}" if self._unit is not None else ""
        return f"Clock({self.name!r}, t={self._now}{unit}, {self._state.name}, queued={len(self._queue)})"
