"""Explicit (state, event) transition tables.

State-based models are written as a table rather than as open-ended
dispatch: every handled pair maps to a Transition naming the next state and
an optional follow-up action. Pairs missing from the table go to a fallback,
which by default raises UndefinedTransition and leaves the state alone.

Example::

    class Door(Enum):
        OPEN = auto()
        CLOSED = auto()

    table = TransitionTable()
    table.add(Door.CLOSED, "push", Door.OPEN, action=lambda: log.append("opened"))
    table.add(Door.OPEN, "pull", Door.CLOSED)

    door = StateMachine(table, Door.CLOSED, name="door")
    door.send("push")       # door.state is Door.OPEN
    door.send("push")       # raises UndefinedTransition

The clock's own lifecycle is defined with the same table.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterable
from dataclasses import dataclass
from typing import Any, Callable

from simclock.core.errors import UndefinedTransition

logger = logging.getLogger(__name__)

Fallback = Callable[[Hashable, Hashable], "Transition"]


@dataclass(frozen=True)
class Transition:
    """Outcome of a (state, event) pair.

    Attributes:
        next_state: State entered after the transition.
        action: Optional follow-up called with the arguments passed to step().
    """
    next_state: Hashable
    action: Callable[..., Any] | None = None


def _raise_undefined(state: Hashable, event: Hashable) -> Transition:
    raise UndefinedTransition(state, event)


class TransitionTable:
    """Mapping of (state, event) pairs to transitions.

    Args:
        fallback: Called with (state, event) for unhandled pairs. It either
            returns a Transition to use or raises. Defaults to raising
            UndefinedTransition.
    """

    def __init__(self, fallback: Fallback | None = None):
        self._table: dict[tuple[Hashable, Hashable], Transition] = {}
        self._fallback = fallback or _raise_undefined

    def add(
        self,
        state: Hashable | Iterable[Hashable],
        event: Hashable,
        next_state: Hashable,
        action: Callable[..., Any] | None = None,
    ) -> None:
        """Define a transition. `state` may be a list/tuple/set of states sharing it."""
        states = state if isinstance(state, (list, tuple, set, frozenset)) else (state,)
        for s in states:
            self._table[(s, event)] = Transition(next_state, action)

    def lookup(self, state: Hashable, event: Hashable) -> Transition | None:
        return self._table.get((state, event))

    def handles(self, state: Hashable, event: Hashable) -> bool:
        return (state, event) in self._table

    def step(self, state: Hashable, event: Hashable, *args: Any, **kwargs: Any) -> tuple[Hashable, Any]:
        """Resolve a transition and run its follow-up action.

        Returns:
            (next_state, action result). The result is None without an action.
        """
        transition = self._table.get((state, event))
        if transition is None:
            transition = self._fallback(state, event)
        result = transition.action(*args, **kwargs) if transition.action is not None else None
        return transition.next_state, result

    def __len__(self) -> int:
        return len(self._table)


class StateMachine:
    """A current state driven by a TransitionTable.

    Args:
        table: Transitions to apply.
        initial: Starting state.
        name: Label for logs.
        on_change: Optional hook called as on_change(old, new, event) after
            every transition that changes the state.
    """

    def __init__(
        self,
        table: TransitionTable,
        initial: Hashable,
        name: str = "StateMachine",
        on_change: Callable[[Hashable, Hashable, Hashable], None] | None = None,
    ):
        self.table = table
        self.name = name
        self._state = initial
        self._on_change = on_change

    @property
    def state(self) -> Hashable:
        return self._state

    def send(self, event: Hashable, *args: Any, **kwargs: Any) -> Any:
        """Apply `event` to the current state.

        The state only changes once the follow-up action has returned, so a
        failing action leaves the machine where it was.

        Raises:
            UndefinedTransition: If neither the table nor the fallback handle the pair.
        """
        old = self._state
        new, result = self.table.step(old, event, *args, **kwargs)
        self._state = new
        if new != old:
            logger.debug("[%s] %s --%s--> %s", self.name, _name(old), _name(event), _name(new))
            if self._on_change is not None:
                self._on_change(old, new, event)
        return result


def _name(value: Any) -> str:
    return getattr(value, "name", None) or str(value)
