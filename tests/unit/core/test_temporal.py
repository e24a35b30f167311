"""Unit tests for TimeUnit and Quantity."""

from __future__ import annotations

import pytest

from simclock import Quantity, TimeUnit


class TestTimeUnit:
    def test_factor_to(self):
        assert TimeUnit.MINUTE.factor_to(TimeUnit.SECOND) == 60.0
        assert TimeUnit.SECOND.factor_to(TimeUnit.MILLISECOND) == pytest.approx(1000.0)
        assert TimeUnit.HOUR.factor_to(TimeUnit.HOUR) == 1.0

    def test_from_symbol(self):
        assert TimeUnit.from_symbol("ms") is TimeUnit.MILLISECOND
        with pytest.raises(ValueError):
            TimeUnit.from_symbol("fortnight")


class TestQuantity:
    def test_conversion(self):
        assert Quantity(90, TimeUnit.SECOND).magnitude_in(TimeUnit.MINUTE) == pytest.approx(1.5)
        assert Quantity(2, TimeUnit.HOUR).to(TimeUnit.MINUTE).value == 120.0

    def test_arithmetic_keeps_left_unit(self):
        total = Quantity(1, TimeUnit.MINUTE) + Quantity(30, TimeUnit.SECOND)

        assert total.unit is TimeUnit.MINUTE
        assert total.value == pytest.approx(1.5)
        assert (Quantity(3, TimeUnit.SECOND) * 2).value == 6.0
        assert (Quantity(3, TimeUnit.SECOND) - 1).value == 2.0

    def test_comparisons_across_units(self):
        assert Quantity(60, TimeUnit.SECOND) == Quantity(1, TimeUnit.MINUTE)
        assert Quantity(59, TimeUnit.SECOND) < Quantity(1, TimeUnit.MINUTE)
        assert Quantity(1, TimeUnit.DAY) >= Quantity(24, TimeUnit.HOUR)

    def test_unit_must_be_time_unit(self):
        with pytest.raises(TypeError):
            Quantity(1, "s")
