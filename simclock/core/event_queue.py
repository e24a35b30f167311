"""Time-ordered priority queue of scheduled actions."""

from __future__ import annotations

import heapq
import logging
from itertools import count
from typing import TYPE_CHECKING, Union

from simclock.core.errors import CancellationError
from simclock.core.event import Event
from simclock.tracing.recorder import NullTraceRecorder, TraceRecorder

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


class EventQueue:
    """Heap of Events ordered by (due, sequence).

    Events are stored directly on the heap; Event implements ordering, so
    there's no need to store (due, seq, event) tuples. Cancellation marks the
    event and leaves it on the heap; cancelled entries are discarded when they
    reach the top. The live count is tracked separately so len() always
    reflects pending entries only.

    Args:
        trace_recorder: Optional recorder for queue.push/pop/cancel spans.
    """

    def __init__(self, trace_recorder: TraceRecorder | None = None):
        self._heap: list[Event] = []
        self._sequence = count()
        self._live = 0
        self._trace = trace_recorder or NullTraceRecorder()

    def push(self, events: Union[Event, list[Event]]) -> None:
        """Push an Event or a list of Events, stamping each with a fresh sequence number."""
        if isinstance(events, list):
            for event in events:
                self._push_one(event)
        else:
            self._push_one(events)

    def _push_one(self, event: Event) -> None:
        if event._queued:
            raise ValueError(f"{event!r} has already been queued")
        event._sequence = next(self._sequence)
        event._queued = True
        heapq.heappush(self._heap, event)
        self._live += 1
        self._trace.record(time=event.due, kind="queue.push", event_id=event.id, event_type=event.name)

    def _discard_cancelled(self) -> None:
        while self._heap and self._heap[0]._cancelled:
            heapq.heappop(self._heap)

    def pop(self) -> Event:
        """Remove and return the next live event.

        Raises:
            IndexError: If the queue holds no live events.
        """
        self._discard_cancelled()
        event = heapq.heappop(self._heap)
        self._live -= 1
        self._trace.record(time=event.due, kind="queue.pop", event_id=event.id, event_type=event.name)
        return event

    def peek(self) -> Event | None:
        """Return the next live event without removing it, or None."""
        self._discard_cancelled()
        return self._heap[0] if self._heap else None

    def peek_next_due(self) -> float | None:
        """Smallest due time among live entries, or None if empty."""
        head = self.peek()
        return None if head is None else head.due

    def pop_due(self, time_limit: float) -> list[Event]:
        """Remove and return, in (due, sequence) order, every live entry with due <= time_limit."""
        due: list[Event] = []
        while True:
            head = self.peek()
            if head is None or head.due > time_limit:
                return due
            due.append(self.pop())

    def cancel(self, event: Event) -> None:
        """Remove a specific pending event without disturbing the order of the rest.

        Raises:
            CancellationError: If the event already fired, was already
                cancelled, or was never pushed onto this queue.
        """
        if event._cancelled:
            raise CancellationError(f"{event!r} was already cancelled")
        if event._fired:
            raise CancellationError(f"{event!r} has already fired")
        if not event._queued or event not in self._heap:
            raise CancellationError(f"{event!r} is not pending in this queue")
        event._cancelled = True
        self._live -= 1
        self._trace.record(time=event.due, kind="queue.cancel", event_id=event.id, event_type=event.name)
        logger.debug("Cancelled %r", event)

    def _rescale(self, factor: float) -> None:
        """Multiply every due time by a positive factor (unit change). Order is preserved."""
        for event in self._heap:
            event.due = event.due * factor
        heapq.heapify(self._heap)

    def clear(self) -> None:
        for event in self._heap:
            event._cancelled = True
        self._heap.clear()
        self._live = 0

    def has_events(self) -> bool:
        return self._live > 0

    def size(self) -> int:
        return self._live

    def __len__(self) -> int:
        return self._live

    def __iter__(self) -> Iterator[Event]:
        """Iterate live events in (due, sequence) order without consuming them."""
        return iter(sorted(e for e in self._heap if not e._cancelled))
