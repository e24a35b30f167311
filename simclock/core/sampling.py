"""Sampling: actions re-invoked at every tick of a fixed period.

Samplers live beside the event queue rather than in it. Each entry keeps its
own next-fire time; after firing it is re-armed `period` later. This mirrors
how continuous quantities are observed or integrated in a discrete-event
model without flooding the event queue with one-shot events.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from simclock.core.errors import CancellationError
from simclock.utils.ids import get_id

logger = logging.getLogger(__name__)


class SamplingEntry:
    """A recurring action fired every `period` time units.

    Attributes:
        action: Zero-argument callable.
        period: Interval between firings, in clock units.
        origin: Time the entry was registered; firings fall on origin + k * period.
        next_due: Next simulation time at which the entry fires.
        fire_count: Number of times the entry has fired.
        id: Stable identity for observers.
    """

    __slots__ = ("_removed", "action", "fire_count", "id", "name", "next_due", "origin", "period")

    def __init__(self, action: Callable[[], Any], period: float, origin: float, *, name: str | None = None):
        if not callable(action):
            raise TypeError(f"Sampling action must be callable, got {type(action).__name__}")
        self.action = action
        self.period = period
        self.origin = origin
        self.next_due = origin + period
        self.fire_count = 0
        self.id = get_id("samp")
        self.name = name or getattr(action, "__name__", None) or self.id
        self._removed = False

    @property
    def active(self) -> bool:
        return not self._removed

    def __repr__(self) -> str:
        return f"SamplingEntry({self.name!r}, period={self.period!r}, next_due={self.next_due!r})"


class SamplingRegistry:
    """Registration-ordered collection of sampling entries."""

    def __init__(self) -> None:
        self._entries: list[SamplingEntry] = []

    def add(self, entry: SamplingEntry) -> SamplingEntry:
        self._entries.append(entry)
        logger.debug("Registered %r", entry)
        return entry

    def remove(self, entry: SamplingEntry) -> None:
        """Stop a sampler.

        Raises:
            CancellationError: If the entry is not registered.
        """
        if entry._removed or entry not in self._entries:
            raise CancellationError(f"{entry!r} is not registered")
        self._entries.remove(entry)
        entry._removed = True

    def next_due(self) -> float | None:
        """Earliest next-fire time among entries, or None without samplers."""
        if not self._entries:
            return None
        return min(entry.next_due for entry in self._entries)

    def due(self, now: float) -> list[SamplingEntry]:
        """Entries whose next-fire time is <= now, in registration order."""
        return [entry for entry in self._entries if entry.next_due <= now]

    def _rescale(self, factor: float) -> None:
        for entry in self._entries:
            entry.period *= factor
            entry.origin *= factor
            entry.next_due *= factor

    def clear(self) -> None:
        for entry in self._entries:
            entry._removed = True
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))
