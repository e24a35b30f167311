"""Observation log: named variables sampled against clock time.

An ObservationLog is bound to a clock and a set of named getters. Each
record() call reads every getter and stamps the row with ``clock.now``.
Depending on the mode the row is dropped, emitted through the package
logger, or kept for later analysis as a pandas DataFrame.

    log = ObservationLog(clock, ObservationMode.STORE, depth=lambda: channel.depth)
    clock.schedule_sampling(log.record, 1.0)
    clock.run(100)
    frame = log.to_dataframe()
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

import pandas as pd

if TYPE_CHECKING:
    from simclock.core.clock import Clock

logger = logging.getLogger(__name__)


class ObservationMode(Enum):
    OFF = "off"
    PRINT = "print"
    STORE = "store"


class ObservationLog:
    """Records named variables with the time at which they were read.

    Args:
        clock: Clock whose ``now`` stamps each row.
        mode: OFF ignores record() calls, PRINT logs each row at INFO,
            STORE keeps rows for to_dataframe() and plot().
        **variables: Column name -> zero-argument getter.
    """

    TIME = "time"

    def __init__(self, clock: Clock, mode: ObservationMode = ObservationMode.STORE,
                 **variables: Callable[[], Any]):
        for name, getter in variables.items():
            if name == self.TIME:
                raise ValueError(f"'{self.TIME}' is reserved for the clock time column")
            if not callable(getter):
                raise TypeError(f"Variable {name!r} needs a zero-argument getter")
        self._clock = clock
        self.mode = mode
        self._variables = dict(variables)
        self._rows: list[dict[str, Any]] = []

    @property
    def columns(self) -> list[str]:
        return [self.TIME, *self._variables]

    def add_variable(self, name: str, getter: Callable[[], Any]) -> None:
        """Start observing another variable. Earlier rows get NaN for it."""
        if name == self.TIME or name in self._variables:
            raise ValueError(f"Column {name!r} already exists")
        self._variables[name] = getter

    def record(self) -> dict[str, Any] | None:
        """Read every variable once. Returns the row, or None when OFF."""
        if self.mode is ObservationMode.OFF:
            return None
        row = {self.TIME: self._clock.now}
        for name, getter in self._variables.items():
            row[name] = getter()
        if self.mode is ObservationMode.PRINT:
            logger.info("[%s] %s", self._clock.name,
                        ", ".join(f"{key}={value!r}" for key, value in row.items()))
        else:
            self._rows.append(row)
        return row

    def clear(self) -> None:
        self._rows.clear()

    def to_dataframe(self) -> pd.DataFrame:
        """Stored rows as a DataFrame with a ``time`` column first."""
        return pd.DataFrame(self._rows, columns=self.columns)

    def plot(self, path: str | Path | None = None, *, title: str | None = None):
        """Plot every stored numeric variable against time.

        Args:
            path: If given, the figure is saved there and closed.
            title: Figure title. Defaults to the clock name.

        Returns:
            The matplotlib Figure.
        """
        import matplotlib.pyplot as plt

        frame = self.to_dataframe()
        series = frame.drop(columns=[self.TIME]).select_dtypes("number")
        fig, ax = plt.subplots(figsize=(10, 4))
        for name in series.columns:
            ax.step(frame[self.TIME], series[name], where="post", label=name)
        unit = self._clock.unit
        ax.set_xlabel(f"time ({unit.symbol})" if unit is not None else "time")
        ax.set_title(title or self._clock.name)
        if len(series.columns):
            ax.legend()
        ax.grid(True, alpha=0.3)
        fig.tight_layout()
        if path is not None:
            path = Path(path)
            path.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(path, dpi=150)
            plt.close(fig)
        return fig

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:
        return f"ObservationLog({', '.join(self._variables)}; mode={self.mode.name}, rows={len(self._rows)})"
