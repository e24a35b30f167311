"""Virtual-time channels for passing data between processes.

A Channel is a FIFO buffer with an optional capacity. Processes block on it
by yielding ``channel.take()`` or ``channel.put(item)``; the operation
completes at once when possible, otherwise the process parks on the
channel. The counterpart operation wakes the parked process through the
clock at the current instant, so data flow is ordered by simulated time
alone and needs no real-time settling after processes are spawned.

    orders = Channel(clock, capacity=10, name="orders")

    def kitchen():
        while True:
            order = yield orders.take()
            yield delay(order.prep_time)

Plain callbacks (scheduled events, samplers) can use try_put() and
try_take(), which never block.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from typing import TYPE_CHECKING, Any

from simclock.core.event import Event
from simclock.core.process import Process, SuspendRequest
from simclock.utils.ids import get_id

if TYPE_CHECKING:
    from simclock.core.clock import Clock

logger = logging.getLogger(__name__)


class _Waiter:
    """A process parked on a channel."""

    __slots__ = ("channel", "item", "kind", "process")

    def __init__(self, channel: Channel, process: Process, kind: str, item: Any = None):
        self.channel = channel
        self.process = process
        self.kind = kind
        self.item = item

    def withdraw(self) -> None:
        """Remove the waiter from its channel (used by interrupt)."""
        queue = self.channel._takers if self.kind == "take" else self.channel._putters
        queue.remove(self)

    def __repr__(self) -> str:
        return f"_Waiter({self.kind}, {self.process.name!r} on {self.channel.name!r})"


class _Delivery:
    """An item handed to a parked taker whose wake-up has not run yet."""

    __slots__ = ("channel", "event", "item")

    def __init__(self, channel: Channel, event: Event, item: Any):
        self.channel = channel
        self.event = event
        self.item = item

    def withdraw(self) -> None:
        """Cancel the wake-up and give the item back to the channel (used by interrupt)."""
        self.channel._clock.cancel(self.event)
        self.channel._restore(self.item)

    def __repr__(self) -> str:
        return f"_Delivery({self.item!r} from {self.channel.name!r})"


class Take(SuspendRequest):
    """Request to remove the next item from a channel."""

    __slots__ = ("channel",)

    def __init__(self, channel: Channel):
        self.channel = channel

    def _suspend(self, process: Process) -> tuple[bool, Any]:
        ok, item = self.channel.try_take()
        if ok:
            return True, item
        waiter = _Waiter(self.channel, process, "take")
        self.channel._takers.append(waiter)
        process._park(waiter)
        return False, None


class Put(SuspendRequest):
    """Request to append an item to a channel."""

    __slots__ = ("channel", "item")

    def __init__(self, channel: Channel, item: Any):
        self.channel = channel
        self.item = item

    def _suspend(self, process: Process) -> tuple[bool, Any]:
        if self.channel.try_put(self.item):
            return True, None
        waiter = _Waiter(self.channel, process, "put", self.item)
        self.channel._putters.append(waiter)
        process._park(waiter)
        return False, None


class Channel:
    """FIFO channel whose blocking operations are resolved in virtual time.

    Args:
        clock: Clock used to wake parked processes.
        capacity: Maximum number of buffered items. 0 makes every put wait
            for a taker (rendezvous). Defaults to unbounded.
        name: Label for logs.
        items: Optional initial contents.
    """

    def __init__(self, clock: Clock, capacity: float = math.inf, name: str | None = None, items=()):
        if capacity < 0:
            raise ValueError(f"Channel capacity must be >= 0, got {capacity}")
        self._clock = clock
        self.capacity = capacity
        self.id = get_id("chan")
        self.name = name or self.id
        self._items: deque[Any] = deque()
        self._takers: deque[_Waiter] = deque()
        self._putters: deque[_Waiter] = deque()
        self.stats_put = 0
        self.stats_taken = 0
        for item in items:
            if not self.try_put(item):
                raise ValueError(f"Initial items exceed channel capacity {capacity}")

    def take(self) -> Take:
        """Suspension request: yield it from a process to receive the next item."""
        return Take(self)

    def put(self, item: Any) -> Put:
        """Suspension request: yield it from a process to send `item`."""
        return Put(self, item)

    def try_put(self, item: Any) -> bool:
        """Send without blocking. Returns False if the item could not be accepted."""
        if self._takers:
            # Buffer is necessarily empty; hand over directly.
            self.stats_put += 1
            self._hand_over(self._takers.popleft(), item)
            return True
        if len(self._items) < self.capacity:
            self._items.append(item)
            self.stats_put += 1
            return True
        return False

    def try_take(self) -> tuple[bool, Any]:
        """Receive without blocking. Returns (True, item) or (False, None)."""
        if self._items:
            item = self._items.popleft()
            self.stats_taken += 1
            self._admit_putter()
            return True, item
        if self._putters:
            # Rendezvous with a parked putter (capacity 0).
            waiter = self._putters.popleft()
            self.stats_put += 1
            self.stats_taken += 1
            waiter.process._wake_at(self._clock.now, None)
            return True, waiter.item
        return False, None

    def _hand_over(self, waiter: _Waiter, item: Any) -> None:
        process = waiter.process
        self.stats_taken += 1
        event = process._wake_at(self._clock.now, item)
        process._pending = _Delivery(self, event, item)
        logger.debug("[%s] Handed item to %s", self.name, process.name)

    def _restore(self, item: Any) -> None:
        """Take back an item whose receiver was interrupted before waking.

        The item goes to the next parked taker, or else back to the front
        of the buffer, even when that briefly exceeds the capacity.
        """
        self.stats_taken -= 1
        if self._takers:
            self._hand_over(self._takers.popleft(), item)
        else:
            self._items.appendleft(item)
        logger.debug("[%s] Restored undelivered item %r", self.name, item)

    def _admit_putter(self) -> None:
        if self._putters and len(self._items) < self.capacity:
            waiter = self._putters.popleft()
            self._items.append(waiter.item)
            self.stats_put += 1
            waiter.process._wake_at(self._clock.now, None)

    @property
    def depth(self) -> int:
        """Number of buffered items."""
        return len(self._items)

    @property
    def waiting_takers(self) -> int:
        return len(self._takers)

    @property
    def waiting_putters(self) -> int:
        return len(self._putters)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Channel({self.name!r}, depth={len(self._items)}, capacity={self.capacity})"
