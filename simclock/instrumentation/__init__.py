"""Observation of simulation state over time."""

from simclock.instrumentation.observation_log import ObservationLog, ObservationMode

__all__ = ["ObservationLog", "ObservationMode"]
