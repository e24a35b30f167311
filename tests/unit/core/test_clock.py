"""Unit tests for the Clock: lifecycle, scheduling, run loop and faults."""

from __future__ import annotations

import logging

import pytest

from simclock import (
    ActionFault,
    CancellationError,
    Clock,
    ClockState,
    ClockStateError,
    Quantity,
    SchedulingError,
    TimeUnit,
)


class TestLifecycle:
    def test_new_clock_is_idle(self):
        clock = Clock(t0=5.0)

        assert clock.state is ClockState.IDLE
        assert clock.now == 5.0

    def test_uninitialized_clock_is_undefined(self):
        clock = Clock(initialize=False)

        assert clock.state is ClockState.UNDEFINED
        clock.initialize()
        assert clock.state is ClockState.IDLE

    def test_initialize_is_idempotent_on_idle(self, clock: Clock):
        clock.initialize()

        assert clock.state is ClockState.IDLE

    def test_schedule_on_undefined_clock_raises(self):
        clock = Clock(initialize=False)

        with pytest.raises(ClockStateError):
            clock.schedule(lambda: None, at=1.0)
        assert clock.state is ClockState.UNDEFINED

    def test_run_on_undefined_clock_raises(self):
        with pytest.raises(ClockStateError):
            Clock(initialize=False).run(1.0)

    def test_stop_when_idle_raises(self, clock: Clock):
        with pytest.raises(ClockStateError):
            clock.stop()
        assert clock.state is ClockState.IDLE

    def test_resume_when_not_halted_raises(self, clock: Clock):
        with pytest.raises(ClockStateError):
            clock.resume()

    def test_state_is_busy_inside_an_action(self, clock: Clock):
        seen: list[ClockState] = []
        clock.schedule(lambda: seen.append(clock.state), at=1.0)

        clock.run(2)

        assert seen == [ClockState.BUSY]
        assert clock.state is ClockState.IDLE


class TestScheduling:
    def test_at_and_after_are_exclusive(self, clock: Clock):
        with pytest.raises(SchedulingError):
            clock.schedule(lambda: None, at=1.0, after=1.0)
        with pytest.raises(SchedulingError):
            clock.schedule(lambda: None)

    def test_past_time_raises(self):
        clock = Clock(t0=10.0)

        with pytest.raises(SchedulingError):
            clock.schedule(lambda: None, at=9.0)
        with pytest.raises(SchedulingError):
            clock.schedule(lambda: None, after=-1.0)

    def test_schedule_at_now_is_allowed(self, clock: Clock):
        fired: list[float] = []
        clock.schedule(lambda: fired.append(clock.now), at=0.0)

        clock.run(1)

        assert fired == [0.0]

    def test_after_is_relative_to_now(self):
        clock = Clock(t0=2.0)
        event = clock.schedule(lambda: None, after=3.0)

        assert event.due == 5.0

    def test_cancel_pending_event(self, clock: Clock):
        fired: list[str] = []
        event = clock.schedule(lambda: fired.append("x"), at=1.0)

        clock.cancel(event)
        clock.run(2)

        assert fired == []
        assert event.cancelled

    def test_cancel_fired_event_raises(self, clock: Clock):
        event = clock.schedule(lambda: None, at=1.0)
        clock.run(2)

        with pytest.raises(CancellationError):
            clock.cancel(event)

    def test_cancel_rejects_other_types(self, clock: Clock):
        with pytest.raises(TypeError):
            clock.cancel("event")

    def test_action_can_cancel_a_later_event(self, clock: Clock):
        fired: list[str] = []
        later = clock.schedule(lambda: fired.append("later"), at=2.0)
        clock.schedule(lambda: clock.cancel(later), at=1.0)

        clock.run(3)

        assert fired == []


class TestRunLoop:
    def test_ordering_c_a_b(self, clock: Clock):
        order: list[str] = []
        clock.schedule(lambda: order.append("A"), at=3.0)
        clock.schedule(lambda: order.append("B"), at=3.0)
        clock.schedule(lambda: order.append("C"), at=1.0)

        result = clock.run(5)

        assert order == ["C", "A", "B"]
        assert clock.now == 3.0
        assert result.events_executed == 3
        assert result.final_time == 3.0
        assert result.state is ClockState.IDLE

    def test_now_never_passes_last_executed_instant(self, clock: Clock):
        clock.schedule(lambda: None, at=2.0)

        clock.run(100)

        assert clock.now == 2.0

    def test_elapse_idle_moves_to_target(self):
        clock = Clock(elapse_idle=True)
        clock.schedule(lambda: None, at=2.0)

        clock.run(10)

        assert clock.now == 10.0

    def test_events_beyond_target_stay_queued(self, clock: Clock):
        fired: list[float] = []
        clock.schedule(lambda: fired.append(clock.now), at=1.0)
        clock.schedule(lambda: fired.append(clock.now), at=7.0)

        clock.run(5)
        assert fired == [1.0]
        assert len(clock.queue) == 1

        clock.run_until(7)
        assert fired == [1.0, 7.0]

    def test_target_not_after_now_returns_immediately(self):
        clock = Clock(t0=4.0)
        clock.schedule(lambda: None, at=4.0)

        result = clock.run_until(3.0)

        assert result.events_executed == 0
        assert len(clock.queue) == 1

    def test_negative_duration_raises(self, clock: Clock):
        with pytest.raises(SchedulingError):
            clock.run(-1)

    def test_reentrant_scheduling_at_now_runs_in_same_pass(self, clock: Clock):
        order: list[tuple[str, float]] = []

        def first():
            order.append(("first", clock.now))
            clock.schedule(lambda: order.append(("nested", clock.now)), after=0)

        clock.schedule(first, at=1.0)
        clock.schedule(lambda: order.append(("second", clock.now)), at=1.0)

        result = clock.run(1.0)

        assert order == [("first", 1.0), ("second", 1.0), ("nested", 1.0)]
        assert result.events_executed == 3

    def test_chained_activities(self, clock: Clock):
        """Timed activities: each completion schedules the next one."""
        log: list[tuple[str, float]] = []

        def start():
            log.append(("start", clock.now))
            clock.schedule(finish, after=2.5)

        def finish():
            log.append(("finish", clock.now))

        clock.schedule(start, at=1.0)
        clock.run(10)

        assert log == [("start", 1.0), ("finish", 3.5)]

    def test_cumulative_counters(self, clock: Clock):
        clock.schedule(lambda: None, at=1.0)
        clock.run(2)
        clock.schedule(lambda: None, at=3.0)
        clock.run(2)

        assert clock.events_executed == 2


class TestConditionals:
    def test_condition_true_before_run_fires_on_first_sweep(self, clock: Clock):
        fired: list[float] = []
        clock.schedule_conditional(lambda: True, lambda: fired.append(clock.now))

        result = clock.run(1)

        assert fired == [0.0]
        assert result.events_executed == 1

    def test_condition_fires_after_the_event_that_satisfies_it(self, clock: Clock):
        state = {"open": False}
        fired: list[float] = []
        clock.schedule_conditional(lambda: state["open"], lambda: fired.append(clock.now))
        clock.schedule(lambda: state.update(open=True), at=3.0)

        clock.run(10)

        assert fired == [3.0]

    def test_condition_on_time_alone_is_reached_by_ticks(self, clock: Clock):
        fired: list[float] = []
        clock.schedule_conditional(lambda: clock.now >= 0.5, lambda: fired.append(clock.now))

        clock.run(1.0)

        assert fired == [0.5]

    def test_condition_ticks_fall_on_a_grid_from_t0(self, clock: Clock):
        fired: list[float] = []
        clock.schedule_conditional(lambda: clock.now >= 5, lambda: fired.append(clock.now))

        clock.run(10)

        assert fired == [5.0]

    def test_sample_interval_sets_condition_tick(self):
        clock = Clock(sample_interval=0.25)
        fired: list[float] = []
        clock.schedule_conditional(lambda: clock.now >= 0.6, lambda: fired.append(clock.now))

        clock.run(2.0)

        assert fired == [0.75]

    def test_sample_interval_makes_ticks_independent_of_run_splits(self):
        whole = Clock(sample_interval=0.25)
        split = Clock(sample_interval=0.25)
        fired: dict[str, list[float]] = {"whole": [], "split": []}
        whole.schedule_conditional(lambda: whole.now >= 2.6, lambda: fired["whole"].append(whole.now))
        split.schedule_conditional(lambda: split.now >= 2.6, lambda: fired["split"].append(split.now))

        whole.run(10)
        for _ in range(10):
            split.run(1)

        assert fired["whole"] == fired["split"] == [2.75]

    def test_cancel_conditional(self, clock: Clock):
        fired: list[str] = []
        entry = clock.schedule_conditional(lambda: True, lambda: fired.append("x"))

        clock.cancel(entry)
        clock.run(1)

        assert fired == []

    def test_failing_predicate_is_recorded(self, clock: Clock):
        clock.schedule_conditional(lambda: 1 / 0, lambda: None, name="divide")

        clock.run(1)

        assert len(clock.faults) == 1
        assert clock.faults[0].kind == "conditional"
        assert isinstance(clock.faults[0].exception, ZeroDivisionError)
        assert len(clock.conditionals) == 0


class TestStopResume:
    def test_stop_from_action_halts_after_it(self, clock: Clock):
        fired: list[float] = []

        def halt():
            fired.append(clock.now)
            clock.stop()

        clock.schedule(halt, at=1.0)
        clock.schedule(lambda: fired.append(clock.now), at=1.0)
        clock.schedule(lambda: fired.append(clock.now), at=2.0)

        result = clock.run(5)

        assert result.state is ClockState.HALTED
        assert clock.state is ClockState.HALTED
        assert fired == [1.0]

        result = clock.resume()

        assert fired == [1.0, 1.0, 2.0]
        assert result.state is ClockState.IDLE
        assert clock.now == 2.0

    def test_stop_from_conditional_action_keeps_remaining_conditions(self, clock: Clock):
        fired: list[str] = []

        def halt():
            fired.append("a")
            clock.stop()

        clock.schedule_conditional(lambda: True, halt)
        clock.schedule_conditional(lambda: True, lambda: fired.append("b"))

        result = clock.run(5)

        assert result.state is ClockState.HALTED
        assert fired == ["a"]
        assert len(clock.conditionals) == 1

        result = clock.resume()

        assert fired == ["a", "b"]
        assert result.state is ClockState.IDLE
        assert clock.now == 0.0
        assert len(clock.conditionals) == 0

    def test_halted_clock_accepts_scheduling(self, clock: Clock):
        clock.schedule(clock.stop, at=1.0)
        clock.run(5)

        fired: list[float] = []
        clock.schedule(lambda: fired.append(clock.now), at=4.0)
        clock.resume()

        assert fired == [4.0]

    def test_run_while_halted_raises(self, clock: Clock):
        clock.schedule(clock.stop, at=1.0)
        clock.run(5)

        with pytest.raises(ClockStateError):
            clock.run(1)
        with pytest.raises(ClockStateError):
            clock.step()


class TestStep:
    def test_step_executes_one_instant(self, clock: Clock):
        fired: list[str] = []
        clock.schedule(lambda: fired.append("a"), at=1.0)
        clock.schedule(lambda: fired.append("b"), at=1.0)
        clock.schedule(lambda: fired.append("c"), at=2.0)

        result = clock.step()

        assert fired == ["a", "b"]
        assert result.events_executed == 2
        assert clock.now == 1.0
        assert clock.state is ClockState.IDLE

        clock.step()
        assert fired == ["a", "b", "c"]
        assert clock.now == 2.0

    def test_resume_after_stop_inside_step_finishes_that_instant(self, clock: Clock):
        fired: list[object] = []
        clock.schedule_sampling(lambda: fired.append(clock.now), 1.0)
        clock.schedule(clock.stop, at=0.5)
        clock.schedule(lambda: fired.append("same instant"), at=0.5)

        result = clock.step()

        assert result.state is ClockState.HALTED
        assert fired == []

        result = clock.resume()

        assert result.state is ClockState.IDLE
        assert clock.now == 0.5
        assert fired == ["same instant"]

    def test_step_with_nothing_to_do(self, clock: Clock):
        result = clock.step()

        assert result.events_executed == 0
        assert clock.state is ClockState.IDLE


class TestReset:
    def test_reset_clears_everything(self):
        clock = Clock(t0=1.0)
        clock.schedule(lambda: None, at=2.0)
        clock.schedule_conditional(lambda: False, lambda: None)
        clock.schedule_sampling(lambda: None, 1.0)
        clock.run(1.5)

        clock.reset()

        assert clock.state is ClockState.IDLE
        assert clock.now == 1.0
        assert len(clock.queue) == 0
        assert len(clock.conditionals) == 0
        assert len(clock.samplers) == 0
        assert clock.events_executed == 0
        assert clock.samples_executed == 0

    def test_reset_without_initialize_then_initialize(self, clock: Clock):
        clock.schedule(lambda: None, at=1.0)

        clock.reset(initialize=False)
        assert clock.state is ClockState.UNDEFINED

        clock.initialize()
        assert clock.state is ClockState.IDLE
        assert len(clock.queue) == 0
        assert clock.now == 0.0

    def test_reset_with_new_origin(self, clock: Clock):
        clock.reset(t0=100.0)

        assert clock.now == 100.0

    def test_reset_from_halted(self, clock: Clock):
        clock.schedule(clock.stop, at=1.0)
        clock.schedule(lambda: None, at=2.0)
        clock.run(5)

        clock.reset()

        assert clock.state is ClockState.IDLE
        assert len(clock.queue) == 0

    def test_reset_during_run_is_rejected(self, clock: Clock):
        clock.schedule(clock.reset, at=1.0)

        clock.run(2)

        assert isinstance(clock.faults[0].exception, ClockStateError)
        assert clock.now == 1.0

    def test_hard_reset_restores_unit(self):
        clock = Clock(unit=TimeUnit.SECOND)
        clock.set_time_unit(TimeUnit.MILLISECOND)

        clock.reset()
        assert clock.unit is TimeUnit.SECOND

        clock.set_time_unit(TimeUnit.MILLISECOND)
        clock.reset(hard=False)
        assert clock.unit is TimeUnit.MILLISECOND


class TestTimeUnits:
    def test_quantity_converted_to_clock_unit(self):
        clock = Clock(unit=TimeUnit.MINUTE)

        event = clock.schedule(lambda: None, after=Quantity(90, TimeUnit.SECOND))

        assert event.due == pytest.approx(1.5)

    def test_quantity_without_unit_raises(self, clock: Clock):
        with pytest.raises(SchedulingError):
            clock.schedule(lambda: None, after=Quantity(1, TimeUnit.SECOND))

    def test_non_numeric_time_raises(self, clock: Clock):
        with pytest.raises(TypeError):
            clock.schedule(lambda: None, at="soon")

    def test_changing_unit_rescales_pending_work(self):
        clock = Clock(unit=TimeUnit.MINUTE, sample_interval=0.5)
        event = clock.schedule(lambda: None, at=1.5)
        sampler = clock.schedule_sampling(lambda: None)

        clock.set_time_unit(TimeUnit.SECOND)

        assert clock.unit is TimeUnit.SECOND
        assert event.due == pytest.approx(90.0)
        assert clock.sample_interval == pytest.approx(30.0)
        assert sampler.period == pytest.approx(30.0)
        assert sampler.next_due == pytest.approx(30.0)

    def test_setting_first_unit_keeps_numbers(self, clock: Clock):
        event = clock.schedule(lambda: None, at=5.0)

        clock.set_time_unit(TimeUnit.HOUR)

        assert event.due == 5.0
        assert clock.unit is TimeUnit.HOUR

    def test_sample_interval_must_be_positive(self, clock: Clock):
        with pytest.raises(SchedulingError):
            clock.set_sample_interval(0)


class TestFaults:
    def test_failing_event_is_recorded_and_run_continues(self, clock: Clock, caplog):
        fired: list[float] = []

        def boom():
            raise ValueError("boom")

        event = clock.schedule(boom, at=1.0, name="boom")
        clock.schedule(lambda: fired.append(clock.now), at=2.0)

        with caplog.at_level(logging.ERROR, logger="simclock"):
            clock.run(3)

        assert fired == [2.0]
        assert len(clock.faults) == 1
        fault = clock.faults[0]
        assert isinstance(fault, ActionFault)
        assert fault.time == 1.0
        assert fault.kind == "event"
        assert fault.source_id == event.id
        assert fault.source_name == "boom"
        assert "boom" in caplog.text

    def test_raise_on_fault_propagates_and_leaves_clock_idle(self):
        clock = Clock(raise_on_fault=True)

        def boom():
            raise ValueError("boom")

        clock.schedule(boom, at=1.0)

        with pytest.raises(ValueError):
            clock.run(2)
        assert clock.state is ClockState.IDLE
        assert clock.now == 1.0


def test_repr_mentions_state_and_unit():
    clock = Clock(name="main", unit=TimeUnit.SECOND)

    assert "main" in repr(clock)
    assert "IDLE" in repr(clock)
    assert " s" in repr(clock)
