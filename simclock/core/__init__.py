"""Core clock engine components."""

from simclock.core.channel import Channel
from simclock.core.clock import Clock, ClockEvent, ClockState, RunResult
from simclock.core.conditional import ConditionalEntry, ConditionalRegistry
from simclock.core.errors import (
    ActionFault,
    CancellationError,
    ClockStateError,
    Interrupted,
    ProcessError,
    SchedulingError,
    SimClockError,
    UndefinedTransition,
)
from simclock.core.event import Event
from simclock.core.event_queue import EventQueue
from simclock.core.process import (
    Delay,
    Process,
    ProcessState,
    SuspendRequest,
    WaitUntil,
    delay,
    interrupt,
    wait,
)
from simclock.core.sampling import SamplingEntry, SamplingRegistry
from simclock.core.state_machine import StateMachine, Transition, TransitionTable
from simclock.core.temporal import Quantity, TimeUnit

__all__ = [
    "Clock",
    "ClockState",
    "ClockEvent",
    "RunResult",
    "Event",
    "EventQueue",
    "ConditionalEntry",
    "ConditionalRegistry",
    "SamplingEntry",
    "SamplingRegistry",
    "Process",
    "ProcessState",
    "SuspendRequest",
    "Delay",
    "WaitUntil",
    "delay",
    "wait",
    "interrupt",
    "Channel",
    "TransitionTable",
    "Transition",
    "StateMachine",
    "TimeUnit",
    "Quantity",
    "SimClockError",
    "SchedulingError",
    "CancellationError",
    "ClockStateError",
    "UndefinedTransition",
    "ProcessError",
    "Interrupted",
    "ActionFault",
]
