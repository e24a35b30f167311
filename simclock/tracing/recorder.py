"""Trace recorders for engine-level clock instrumentation.

The clock reports every scheduling decision it makes as a span: queue
push/pop/cancel, conditional and sampler firings, process suspension and
resumption, state changes, and caught faults. Spans are plain dicts:

    {"time": 2.0, "kind": "process.resume", "event_id": "proc-0000001A",
     "event_type": "customer", "data": {...}}

Tracing is independent of the observation log, which records model
variables rather than engine decisions.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    import pandas as pd


class TraceRecorder(Protocol):
    """Anything the clock can hand spans to."""

    def record(
        self,
        *,
        time: float,
        kind: str,
        event_id: str | None = None,
        event_type: str | None = None,
        **data: Any,
    ) -> None:
        """Record one span.

        Args:
            time: Clock time the span refers to (a due time for queue spans).
            kind: Dotted category, e.g. "queue.push" or "sample.fire".
            event_id: Stable id of the event, entry, process or clock involved.
            event_type: Name of that entity.
            **data: Extra structured fields, kept under the "data" key.
        """


@dataclass
class InMemoryTraceRecorder:
    """Keeps spans in a list for tests and post-run inspection."""

    spans: list[dict[str, Any]] = field(default_factory=list)

    def record(
        self,
        *,
        time: float,
        kind: str,
        event_id: str | None = None,
        event_type: str | None = None,
        **data: Any,
    ) -> None:
        span: dict[str, Any] = {"time": time, "kind": kind}
        if event_id is not None:
            span["event_id"] = event_id
        if event_type is not None:
            span["event_type"] = event_type
        if data:
            span["data"] = data
        self.spans.append(span)

    def clear(self) -> None:
        self.spans.clear()

    def filter_by_kind(self, kind: str) -> list[dict[str, Any]]:
        """Spans of one kind. A trailing dot matches a family, e.g. "process."."""
        if kind.endswith("."):
            return [s for s in self.spans if s["kind"].startswith(kind)]
        return [s for s in self.spans if s["kind"] == kind]

    def filter_by_event(self, event_id: str) -> list[dict[str, Any]]:
        return [s for s in self.spans if s.get("event_id") == event_id]

    def between(self, start: float, end: float) -> list[dict[str, Any]]:
        """Spans with start <= time < end."""
        return [s for s in self.spans if start <= s["time"] < end]

    def kind_counts(self) -> Counter:
        return Counter(s["kind"] for s in self.spans)

    def to_dataframe(self) -> pd.DataFrame:
        """Spans as a DataFrame; extra fields are flattened into columns."""
        import pandas as pd

        rows = []
        for span in self.spans:
            row = {k: v for k, v in span.items() if k != "data"}
            row.update(span.get("data", {}))
            rows.append(row)
        return pd.DataFrame(rows, columns=None if rows else ["time", "kind", "event_id", "event_type"])


@dataclass
class NullTraceRecorder:
    """Discards every span. The clock's default."""

    def record(
        self,
        *,
        time: float,
        kind: str,
        event_id: str | None = None,
        event_type: str | None = None,
        **data: Any,
    ) -> None:
        pass
