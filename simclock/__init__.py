"""simclock - a discrete-event simulation clock.

A virtual clock that jumps from one scheduled happening to the next.
Scheduled events, conditional events, periodic samplers and
generator-based processes all run on the same clock:

    from simclock import Clock, delay

    clock = Clock()

    def worker():
        yield delay(2.0)
        print("done at", clock.now)

    clock.spawn(worker)
    clock.run(10)

Logging is silent by default; see simclock.logging_config.
"""

import logging

logging.getLogger("simclock").addHandler(logging.NullHandler())

from simclock.core import (
    ActionFault,
    CancellationError,
    Channel,
    Clock,
    ClockEvent,
    ClockState,
    ClockStateError,
    ConditionalEntry,
    Delay,
    Event,
    EventQueue,
    Interrupted,
    Process,
    ProcessError,
    ProcessState,
    Quantity,
    RunResult,
    SamplingEntry,
    SchedulingError,
    SimClockError,
    StateMachine,
    TimeUnit,
    Transition,
    TransitionTable,
    UndefinedTransition,
    WaitUntil,
    delay,
    interrupt,
    wait,
)
from simclock.api import default_clock, reset_default_clock
from simclock.instrumentation import ObservationLog, ObservationMode
from simclock.logging_config import (
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    enable_json_file_logging,
    enable_json_logging,
    enable_timed_file_logging,
    set_level,
    set_module_level,
)
from simclock.tracing import InMemoryTraceRecorder, NullTraceRecorder, TraceRecorder

__version__ = "0.1.0"

__all__ = [
    # Engine
    "Clock",
    "ClockState",
    "ClockEvent",
    "RunResult",
    "Event",
    "EventQueue",
    "ConditionalEntry",
    "SamplingEntry",
    # Processes
    "Process",
    "ProcessState",
    "Delay",
    "WaitUntil",
    "delay",
    "wait",
    "interrupt",
    "Channel",
    # State machines
    "TransitionTable",
    "Transition",
    "StateMachine",
    # Time
    "TimeUnit",
    "Quantity",
    # Errors
    "SimClockError",
    "SchedulingError",
    "CancellationError",
    "ClockStateError",
    "UndefinedTransition",
    "ProcessError",
    "Interrupted",
    "ActionFault",
    # Default clock
    "default_clock",
    "reset_default_clock",
    # Observation and tracing
    "ObservationLog",
    "ObservationMode",
    "TraceRecorder",
    "InMemoryTraceRecorder",
    "NullTraceRecorder",
    # Logging
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_file_logging",
    "enable_json_logging",
    "enable_timed_file_logging",
    "set_level",
    "set_module_level",
]
