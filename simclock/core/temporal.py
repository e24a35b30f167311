"""Simulation time values and time units.

A clock keeps its time as a plain float expressed in the clock's unit.
When the clock carries a TimeUnit, callers can pass a Quantity instead of a
bare number and it is converted to the clock's unit on the way in:

    clock = Clock(unit=TimeUnit.MINUTE)
    clock.schedule(fn, after=Quantity(90, TimeUnit.SECOND))  # 1.5 minutes

Bare numbers are always interpreted in the clock's own unit.
"""

from __future__ import annotations

from enum import Enum
from typing import Union


class TimeUnit(Enum):
    """Time units with their length in seconds."""

    NANOSECOND = ("ns", 1e-9)
    MICROSECOND = ("us", 1e-6)
    MILLISECOND = ("ms", 1e-3)
    SECOND = ("s", 1.0)
    MINUTE = ("minute", 60.0)
    HOUR = ("hr", 3600.0)
    DAY = ("d", 86400.0)

    def __init__(self, symbol: str, seconds: float):
        self.symbol = symbol
        self.seconds = seconds

    def factor_to(self, other: TimeUnit) -> float:
        """Multiplier converting a value in this unit into `other`."""
        return self.seconds / other.seconds

    @classmethod
    def from_symbol(cls, symbol: str) -> TimeUnit:
        for unit in cls:
            if unit.symbol == symbol:
                return unit
        raise ValueError(f"Unknown time unit symbol {symbol!r}")

    def __repr__(self) -> str:
        return f"TimeUnit.{self.name}"


class Quantity:
    """A time amount tagged with a unit."""

    __slots__ = ("value", "unit")

    def __init__(self, value: float, unit: TimeUnit):
        if not isinstance(unit, TimeUnit):
            raise TypeError(f"unit must be a TimeUnit, got {type(unit).__name__}")
        self.value = float(value)
        self.unit = unit

    def to(self, unit: TimeUnit) -> Quantity:
        return Quantity(self.value * self.unit.factor_to(unit), unit)

    def magnitude_in(self, unit: TimeUnit) -> float:
        return self.value * self.unit.factor_to(unit)

    def _seconds(self) -> float:
        return self.value * self.unit.seconds

    def __add__(self, other: Union[Quantity, int, float]):
        if isinstance(other, Quantity):
            return Quantity(self.value + other.magnitude_in(self.unit), self.unit)
        if isinstance(other, (int, float)):
            return Quantity(self.value + other, self.unit)
        return NotImplemented

    __radd__ = __add__

    def __sub__(self, other: Union[Quantity, int, float]):
        if isinstance(other, Quantity):
            return Quantity(self.value - other.magnitude_in(self.unit), self.unit)
        if isinstance(other, (int, float)):
            return Quantity(self.value - other, self.unit)
        return NotImplemented

    def __mul__(self, other: Union[int, float]):
        if isinstance(other, (int, float)):
            return Quantity(self.value * other, self.unit)
        return NotImplemented

    __rmul__ = __mul__

    def __eq__(self, other):
        if not isinstance(other, Quantity):
            return NotImplemented
        return self._seconds() == other._seconds()

    def __hash__(self):
        return hash(self._seconds())

    def __lt__(self, other):
        if not isinstance(other, Quantity):
            return NotImplemented
        return self._seconds() < other._seconds()

    def __le__(self, other):
        if not isinstance(other, Quantity):
            return NotImplemented
        return self._seconds() <= other._seconds()

    def __gt__(self, other):
        if not isinstance(other, Quantity):
            return NotImplemented
        return self._seconds() > other._seconds()

    def __ge__(self, other):
        if not isinstance(other, Quantity):
            return NotImplemented
        return self._seconds() >= other._seconds()

    def __repr__(self) -> str:
        return f"Quantity({self.value!r}, {self.unit.symbol})"


TimeLike = Union[int, float, Quantity]
"""Anything accepted where the clock expects a time or a duration."""
