"""Tracing infrastructure for clock engine instrumentation.

Engine-level spans (queue operations, conditional and sampling firings,
process suspension) are recorded through a TraceRecorder passed to the Clock.
"""

from simclock.tracing.recorder import (
    TraceRecorder,
    InMemoryTraceRecorder,
    NullTraceRecorder,
)

__all__ = [
    "TraceRecorder",
    "InMemoryTraceRecorder",
    "NullTraceRecorder",
]
