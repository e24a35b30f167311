"""Error taxonomy for the clock engine.

Three kinds of problems are reported:

- Scheduling errors (SchedulingError, CancellationError) are raised
  synchronously to the caller that tried to schedule or cancel.
- State-machine violations (ClockStateError, a kind of UndefinedTransition)
  are raised when an operation is not allowed in the clock's current
  state. The state is left untouched.
- Action faults are exceptions raised by user actions while the clock runs.
  They are caught at the run-loop boundary and recorded as ActionFault.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class SimClockError(Exception):
    """Base class for errors raised by the clock engine."""


class SchedulingError(SimClockError, ValueError):
    """An action could not be scheduled (past due time, bad period, ...)."""


class CancellationError(SchedulingError):
    """Cancelling an entry that already fired, was cancelled, or is unknown."""


class UndefinedTransition(SimClockError, RuntimeError):
    """No transition is defined for a (state, event) pair."""

    def __init__(self, state: Any, event: Any, message: str | None = None):
        self.state = state
        self.event = event
        super().__init__(message or f"Undefined transition: {_label(event)} in state {_label(state)}")


class ClockStateError(UndefinedTransition):
    """The requested operation is not allowed in the clock's current state."""


class ProcessError(SimClockError, RuntimeError):
    """A process was misused (interrupting a finished process, ...)."""


class Interrupted(Exception):
    """Thrown into a process generator at its suspension point by interrupt().

    Attributes:
        cause: Optional value passed by the interrupter.
    """

    def __init__(self, cause: Any = None):
        self.cause = cause
        super().__init__(cause)

    def __repr__(self) -> str:
        return f"Interrupted(cause={self.cause!r})"


@dataclass(frozen=True)
class ActionFault:
    """Record of an exception raised by an action while the clock was running.

    Attributes:
        time: Simulation time at which the fault happened.
        kind: "event", "conditional", "sample", or "process".
        source_id: Stable id of the faulting entity.
        source_name: Human-readable name of the faulting entity.
        exception: The exception object itself.
    """
    time: float
    kind: str
    source_id: str
    source_name: str
    exception: BaseException = field(compare=False)

    def __str__(self) -> str:
        return (
            f"{self.kind} {self.source_name} ({self.source_id}) at t={self.time}: "
            f"{type(self.exception).__name__}: {self.exception}"
        )


def _label(value: Any) -> str:
    return getattr(value, "name", None) or repr(value)
