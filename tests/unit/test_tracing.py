"""Tests for engine-level tracing through the clock."""

from __future__ import annotations

from simclock import Clock, InMemoryTraceRecorder, NullTraceRecorder, delay


def test_clock_records_state_changes(traced_clock):
    clock, recorder = traced_clock
    clock.schedule(lambda: None, at=1.0)

    clock.run(2)

    transitions = [(s["data"]["old"], s["data"]["new"]) for s in recorder.filter_by_kind("clock.state")]
    assert ("IDLE", "RUNNING") in transitions
    assert ("RUNNING", "IDLE") in transitions
    assert ("RUNNING", "BUSY") not in transitions


def test_queue_spans_follow_event(traced_clock):
    clock, recorder = traced_clock
    event = clock.schedule(lambda: None, at=1.0)

    clock.run(2)

    assert [s["kind"] for s in recorder.filter_by_event(event.id)] == ["queue.push", "queue.pop"]


def test_process_lifecycle_spans(traced_clock):
    clock, recorder = traced_clock

    def body():
        yield delay(1.0)

    process = clock.spawn(body)
    clock.run(2)

    kinds = [s["kind"] for s in recorder.filter_by_event(process.id)]
    assert kinds == ["process.suspend", "process.resume", "process.end"]
    assert recorder.filter_by_event(process.id)[-1]["data"]["state"] == "DONE"


def test_conditional_sample_and_fault_spans(traced_clock):
    clock, recorder = traced_clock
    clock.schedule_conditional(lambda: True, lambda: None)
    clock.schedule_sampling(lambda: None, 1.0)

    def boom():
        raise KeyError("missing")

    clock.schedule(boom, at=1.0)
    clock.run(1)

    assert len(recorder.filter_by_kind("conditional.fire")) == 1
    assert len(recorder.filter_by_kind("sample.fire")) == 1
    fault = recorder.filter_by_kind("fault")[0]
    assert fault["data"]["error"] == "KeyError"
    assert fault["time"] == 1.0


def test_recorder_clear():
    recorder = InMemoryTraceRecorder()
    recorder.record(time=0.0, kind="x")

    recorder.clear()

    assert recorder.spans == []


def test_null_recorder_is_the_default():
    clock = Clock()

    assert isinstance(clock._trace, NullTraceRecorder)


def test_family_filter_and_counts(traced_clock):
    clock, recorder = traced_clock

    def body():
        yield delay(1.0)

    clock.spawn(body)
    clock.run(2)

    family = recorder.filter_by_kind("process.")
    assert {s["kind"] for s in family} == {"process.suspend", "process.resume", "process.end"}
    assert recorder.kind_counts()["queue.push"] == 2
    assert all(0.0 <= s["time"] < 1.0 for s in recorder.between(0.0, 1.0))


def test_spans_as_dataframe(traced_clock):
    clock, recorder = traced_clock
    clock.schedule(lambda: None, at=1.0, name="ping")
    clock.run(2)

    frame = recorder.to_dataframe()

    assert {"time", "kind", "event_id", "event_type"} <= set(frame.columns)
    pushes = frame[frame["kind"] == "queue.push"]
    assert pushes["event_type"].tolist() == ["ping"]


def test_empty_recorder_dataframe():
    frame = InMemoryTraceRecorder().to_dataframe()

    assert frame.empty
    assert list(frame.columns) == ["time", "kind", "event_id", "event_type"]
