"""Conditional events: actions gated by a predicate instead of a time.

Each pending entry is re-evaluated whenever the clock sweeps the registry.
A sweep runs to a fixed point: it evaluates every remaining predicate in
registration order, fires the ones that hold, and repeats until a full pass
fires nothing. A condition that becomes true as a side effect of another
firing is therefore honored at the same simulated instant.

The fixed-point sweep costs O(n^2) predicate evaluations per instant in the
worst case. Conditional sets are expected to be small.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from simclock.core.errors import CancellationError
from simclock.utils.ids import get_id

logger = logging.getLogger(__name__)

Predicate = Callable[[], bool]


class ConditionalEntry:
    """A (predicate, action) pair waiting for its predicate to become true.

    Attributes:
        predicate: Zero-argument callable returning a truthy value when due.
        action: Zero-argument callable run once when the predicate holds.
        name: Human-readable label.
        kind: "conditional" for user entries, "wait" for process waits.
        id: Stable identity for observers.
    """

    __slots__ = ("_done", "action", "id", "kind", "name", "predicate")

    def __init__(self, predicate: Predicate, action: Callable[[], Any], *, name: str | None = None, kind: str = "conditional"):
        if not callable(predicate):
            raise TypeError(f"Condition predicate must be callable, got {type(predicate).__name__}")
        if not callable(action):
            raise TypeError(f"Condition action must be callable, got {type(action).__name__}")
        self.predicate = predicate
        self.action = action
        self.kind = kind
        self.id = get_id("cond")
        self.name = name or getattr(action, "__name__", None) or self.id
        self._done = False

    @property
    def pending(self) -> bool:
        return not self._done

    def __repr__(self) -> str:
        state = "done" if self._done else "pending"
        return f"ConditionalEntry({self.name!r}, {state})"


class ConditionalRegistry:
    """Ordered set of pending conditional entries."""

    def __init__(self) -> None:
        self._entries: list[ConditionalEntry] = []

    def add(self, entry: ConditionalEntry) -> ConditionalEntry:
        self._entries.append(entry)
        logger.debug("Registered %r", entry)
        return entry

    def cancel(self, entry: ConditionalEntry) -> None:
        """Remove a pending entry.

        Raises:
            CancellationError: If the entry already fired or is not registered.
        """
        if entry._done or entry not in self._entries:
            raise CancellationError(f"{entry!r} is not pending")
        self._entries.remove(entry)
        entry._done = True

    def sweep(
        self,
        fire: Callable[[ConditionalEntry], None],
        on_predicate_error: Callable[[ConditionalEntry, Exception], None],
        should_continue: Callable[[], bool] | None = None,
    ) -> int:
        """Evaluate pending predicates until a full pass fires none.

        Entries are removed before their action runs, so an action may
        register new entries (they are considered on the next pass) or
        cancel others. An entry whose predicate raises is dropped and
        reported through `on_predicate_error`.

        `should_continue` is checked before each entry. Once it returns
        False the sweep stops and the remaining entries stay registered,
        untouched, for a later sweep.

        Returns:
            Number of entries fired.
        """
        fired = 0
        while True:
            fired_this_pass = 0
            for entry in list(self._entries):
                if should_continue is not None and not should_continue():
                    return fired + fired_this_pass
                if entry._done:
                    continue
                try:
                    ready = bool(entry.predicate())
                except Exception as exc:
                    self._entries.remove(entry)
                    entry._done = True
                    on_predicate_error(entry, exc)
                    continue
                if not ready:
                    continue
                self._entries.remove(entry)
                entry._done = True
                fire(entry)
                fired_this_pass += 1
            fired += fired_this_pass
            if fired_this_pass == 0:
                return fired

    def clear(self) -> None:
        for entry in self._entries:
            entry._done = True
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))
