"""Scheduled actions, the fundamental units of deferred work.

An Event couples a zero-argument callable with the simulation time at which
it becomes due. Events are pushed onto an EventQueue, which stamps each one
with a sequence number; ordering uses (due, sequence) so that events
scheduled for the same instant run in registration order.

Events are handles as well: the object returned by Clock.schedule() can be
passed back to Clock.cancel() while it is still pending.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from simclock.utils.ids import get_id

logger = logging.getLogger(__name__)

Action = Callable[[], Any]
"""Signature for scheduled actions: called with no arguments."""


class Event:
    """A one-shot action due at a specific simulation time.

    Attributes:
        action: Callable invoked when the event fires.
        due: Simulation time (in clock units) at which the event fires.
        name: Human-readable label for logs and traces.
        kind: "event" for user actions, "wakeup" for process resumptions.
        id: Stable identity for observers.
    """

    __slots__ = (
        "_fired",
        "_cancelled",
        "_queued",
        "_sequence",
        "action",
        "due",
        "id",
        "kind",
        "name",
    )

    def __init__(self, action: Action, due: float, *, name: str | None = None, kind: str = "event"):
        if not callable(action):
            raise TypeError(f"Event action must be callable, got {type(action).__name__}")
        self.action = action
        self.due = due
        self.kind = kind
        self.id = get_id("ev")
        self.name = name or getattr(action, "__name__", None) or self.id
        self._sequence: int | None = None
        self._queued = False
        self._fired = False
        self._cancelled = False

    @property
    def sequence(self) -> int | None:
        """Tie-break number assigned by the queue, or None before queueing."""
        return self._sequence

    @property
    def pending(self) -> bool:
        """True while the event sits in a queue waiting to fire."""
        return self._queued and not self._fired and not self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def invoke(self) -> Any:
        """Run the action. Marks the event fired first so re-entrant cancels fail cleanly."""
        self._fired = True
        return self.action()

    def __lt__(self, other: Event) -> bool:
        """
        1. Due time (Primary)
        2. Sequence (Secondary - guarantees FIFO for simultaneous events)
        """
        if self.due != other.due:
            return self.due < other.due
        return self._sequence < other._sequence

    def __repr__(self) -> str:
        return f"Event({self.due!r}, {self.name!r}, seq={self._sequence})"
