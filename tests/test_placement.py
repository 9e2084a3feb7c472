"""
Tests for task placement and the full optimization pass.
"""

from datetime import timedelta

import pytest

from planner.exceptions import InvalidConfigurationError
from planner.models import Priority, TaskState, UserSchedule, WorkingHours
from planner.scheduling import HappinessScheduler
from planner.scheduling.constraints.time_constraints import find_buffer_violations
from planner.scheduling.core.scheduler import PlacementEngine, build_scheduled_task
from planner.scheduling.scoring.schedule_metrics import identify_warnings


def times(result, task):
    return [(p.scheduled_time, p.end_time) for p in result.schedule if p.parent_task_id == task.id]


class TestSchedulerBasics:
    def test_high_priority_task_goes_to_the_morning(self, scheduler, create_task_factory, at):
        task = create_task_factory("Report", priority=Priority.HIGH)
        result = scheduler.optimize([task])

        assert times(result, task) == [(at(0, 9), at(0, 10))]
        assert result.unscheduled == []
        assert result.confidence == 1.0
        # Written back onto the input
        assert task.scheduled_time == at(0, 9)
        assert task.end_time == at(0, 10)

    def test_overdue_task_is_placed_first(self, scheduler, create_task_factory, now, at):
        relaxed = create_task_factory("Relaxed", priority=Priority.MEDIUM)
        overdue = create_task_factory("Overdue", priority=Priority.MEDIUM, deadline=now - timedelta(hours=2))
        result = scheduler.optimize([relaxed, overdue])

        # Medium prefers the afternoon
        assert times(result, overdue) == [(at(0, 13), at(0, 14))]
        assert times(result, relaxed) == [(at(0, 14, 15), at(0, 15, 15))]

    def test_zero_tasks(self, scheduler):
        result = scheduler.optimize([])
        assert result.schedule == []
        assert result.unscheduled_tasks == []
        assert result.happiness_score == 0.0
        assert result.confidence == 1.0

    def test_done_tasks_are_ignored(self, scheduler, create_task_factory):
        done = create_task_factory("Finished", state=TaskState.DONE)
        result = scheduler.optimize([done])
        assert result.schedule == []
        assert result.unscheduled == []

    def test_commit_false_leaves_tasks_untouched(self, scheduler, create_task_factory):
        task = create_task_factory()
        result = scheduler.optimize([task], commit=False)
        assert len(result.schedule) == 1
        assert task.scheduled_time is None

    def test_invalid_configuration(self, clock, create_task_factory):
        with pytest.raises(InvalidConfigurationError):
            HappinessScheduler(UserSchedule(working_hours=WorkingHours()), clock=clock)

        scheduler = HappinessScheduler(UserSchedule(working_hours=WorkingHours(monday=(9, 17))), clock=clock)
        bad = create_task_factory(estimated_minutes=300, chunkable=True, min_chunk_minutes=200,
                                  max_chunk_minutes=120)
        with pytest.raises(InvalidConfigurationError):
            scheduler.optimize([bad])

    def test_duplicate_ids_rejected(self, scheduler, create_task_factory):
        task = create_task_factory()
        with pytest.raises(InvalidConfigurationError):
            scheduler.optimize([task, task.model_copy()])


class TestUnschedulable:
    def test_no_contiguous_window(self, working_hours, clock, create_task_factory, create_event_factory, at):
        scheduler = HappinessScheduler(UserSchedule(working_hours=working_hours, buffer_between_tasks=0),
                                       horizon_days=1, clock=clock)
        events = [create_event_factory(at(0, 10), at(0, 15)), create_event_factory(at(0, 16), at(0, 17))]
        task = create_task_factory("Deep work", estimated_minutes=180)

        result = scheduler.optimize([task], events)

        assert result.schedule == []
        assert result.unscheduled_tasks == [task.id]
        assert result.unscheduled[0].reason == (
            "No contiguous free window of 180 minutes is available in the scheduling horizon"
        )
        assert result.confidence == pytest.approx(0.4)
        assert any("couldn't be scheduled" in r for r in result.recommendations)

    def test_longer_than_any_working_day(self, scheduler, create_task_factory):
        task = create_task_factory("Marathon", estimated_minutes=600)
        result = scheduler.optimize([task])
        assert result.unscheduled[0].reason == (
            "Requires 600 minutes but the longest working day is 480 minutes and the task is not chunkable"
        )
        assert result.warnings == [f'Task "Marathon" could not be scheduled: {result.unscheduled[0].reason}']

    def test_high_priority_unscheduled_recommendation(self, scheduler, create_task_factory):
        task = create_task_factory("Huge", priority=Priority.HIGH, estimated_minutes=600)
        result = scheduler.optimize([task])
        assert any("1 high-priority tasks are unscheduled" in r for r in result.recommendations)

    def test_late_placement_is_reported(self, scheduler, create_task_factory, at):
        task = create_task_factory("Late", deadline=at(0, 9, 30))
        result = scheduler.optimize([task])

        assert len(result.schedule) == 1
        assert 'Task "Late" is scheduled to finish after its deadline.' in result.warnings
        assert "1 tasks are scheduled after their deadlines." in result.recommendations


class TestChunking:
    def test_long_task_is_split(self, scheduler, create_task_factory, at):
        task = create_task_factory("Marking", priority=Priority.LOW, estimated_minutes=300, chunkable=True)
        result = scheduler.optimize([task])

        assert times(result, task) == [
            (at(0, 9), at(0, 10, 40)),
            (at(0, 10, 55), at(0, 12, 35)),
            (at(0, 12, 50), at(0, 14, 30)),
        ]
        pieces = result.schedule
        assert [p.name for p in pieces] == ["Marking (Part 1/3)", "Marking (Part 2/3)", "Marking (Part 3/3)"]
        assert [p.id for p in pieces] == [f"{task.id}-chunk-{i}" for i in (1, 2, 3)]
        assert all(p.is_chunk for p in pieces)
        assert sum(p.estimated_minutes for p in pieces) == 300
        assert task.scheduled_time == at(0, 9)
        assert task.end_time == at(0, 14, 30)

    def test_partial_chunks_are_rolled_back(self, working_hours, user_schedule, clock, create_task_factory, at):
        scheduler = HappinessScheduler(user_schedule, horizon_days=1, clock=clock)
        big = create_task_factory("Big", priority=Priority.ASAP, estimated_minutes=600, chunkable=True)
        small = create_task_factory("Small", priority=Priority.LOW)

        result = scheduler.optimize([big, small])

        assert result.unscheduled[0].task_id == big.id
        assert result.unscheduled[0].reason == "Only 3 of 5 chunks could be placed in the scheduling horizon"
        assert times(result, big) == []
        # The released time is available again
        assert times(result, small) == [(at(0, 9), at(0, 10))]


class TestPinnedAndDependencies:
    def test_pinned_task_keeps_its_time(self, scheduler, create_task_factory, at):
        pinned = create_task_factory("Standup", is_flexible=False, scheduled_time=at(0, 14))
        flexible = create_task_factory("Anything", priority=Priority.LOW)
        result = scheduler.optimize([flexible, pinned])

        assert times(result, pinned) == [(at(0, 14), at(0, 15))]
        assert times(result, flexible) == [(at(0, 9), at(0, 10))]

    def test_pinned_task_over_an_event_is_dropped(self, scheduler, create_task_factory, create_event_factory, at):
        pinned = create_task_factory("Clash", is_flexible=False, scheduled_time=at(0, 14))
        event = create_event_factory(at(0, 14), at(0, 15))
        result = scheduler.optimize([pinned], [event])

        assert result.schedule == []
        assert result.unscheduled[0].reason == "Pinned time 2025-01-06 14:00 is no longer available"
        # Pinned times are not cleared on failure
        assert pinned.scheduled_time == at(0, 14)

    def test_dependency_is_placed_first(self, scheduler, create_task_factory, at):
        prerequisite = create_task_factory("Prepare", id="a", priority=Priority.LOW)
        dependent = create_task_factory("Deliver", id="b", priority=Priority.ASAP, dependencies={"a"})
        result = scheduler.optimize([dependent, prerequisite])

        assert times(result, prerequisite) == [(at(0, 9), at(0, 10))]
        assert times(result, dependent) == [(at(0, 10, 15), at(0, 11, 15))]

    def test_dependency_ready_time(self, user_schedule, create_task_factory, at):
        engine = PlacementEngine(user_schedule)
        engine._placed_end["a"] = at(0, 10)
        engine._placed_end["b"] = at(0, 11, 30)

        free = create_task_factory("Free")
        after_both = create_task_factory("After both", dependencies={"a", "b"})
        blocked = create_task_factory("Blocked", dependencies={"a", "c"})
        known = {"a", "b", "c", free.id, after_both.id, blocked.id}

        assert engine._dependency_ready_time(free, known) == (True, None)
        assert engine._dependency_ready_time(after_both, known) == (True, at(0, 11, 30))
        assert engine._dependency_ready_time(blocked, known) == (False, None)
        assert [u.reason for u in engine.unscheduled] == ["Depends on unscheduled task c"]

    def test_dependency_outside_the_working_set_is_satisfied(self, scheduler, create_task_factory, at):
        task = create_task_factory("Follow-up", priority=Priority.HIGH, dependencies={"finished-earlier"})
        result = scheduler.optimize([task])
        assert times(result, task) == [(at(0, 9), at(0, 10))]

    def test_cycles_are_reported(self, scheduler, create_task_factory):
        a = create_task_factory("A", id="a", dependencies={"b"})
        b = create_task_factory("B", id="b", dependencies={"a"})
        c = create_task_factory("C", id="c", dependencies={"a"})
        result = scheduler.optimize([a, b, c])

        reasons = {u.task_id: u.reason for u in result.unscheduled}
        assert reasons["a"] == "Circular dependency between tasks: a, b"
        assert reasons["b"] == "Circular dependency between tasks: a, b"
        assert reasons["c"] == "Depends on unscheduled task a"
        assert result.schedule == []


class TestScheduleInvariants:
    @pytest.fixture
    def workload(self, create_task_factory, create_event_factory, now, at):
        tasks = [
            create_task_factory("Urgent", priority=Priority.ASAP, estimated_minutes=45),
            create_task_factory("Plan", priority=Priority.HIGH, estimated_minutes=90, deadline=now + timedelta(days=2)),
            create_task_factory("Review", priority=Priority.MEDIUM, estimated_minutes=240, chunkable=True),
            create_task_factory("Email", priority=Priority.LOW, estimated_minutes=30),
            create_task_factory("Research", priority=Priority.LOW, estimated_minutes=400),
        ]
        events = [
            create_event_factory(at(0, 10), at(0, 11)),
            create_event_factory(at(1, 13, 10), at(1, 14, 20)),
        ]
        return tasks, events

    def test_buffers_are_respected(self, scheduler, workload, user_schedule):
        tasks, events = workload
        result = scheduler.optimize(tasks, events)
        assert find_buffer_violations(result.schedule, events, user_schedule.buffer_between_tasks) == []
        assert not any("insufficient buffer" in w for w in result.warnings)
        assert not any("minutes of" in w for w in result.warnings)

    def test_task_too_close_to_an_event_is_warned(self, user_schedule, create_task_factory, create_event_factory, at):
        piece = build_scheduled_task(create_task_factory("Report"), at(0, 9), at(0, 10), score=0.5, happiness=0.5)
        close = create_event_factory(at(0, 10, 5), at(0, 11), title="Client call")
        distant = create_event_factory(at(0, 14), at(0, 15), title="Review")

        warnings = identify_warnings([piece], [], user_schedule.buffer_between_tasks, [close, distant])

        assert warnings == ['Task "Report" is within 15 minutes of "Client call".']

    def test_every_task_is_accounted_for_once(self, scheduler, workload):
        tasks, events = workload
        result = scheduler.optimize(tasks, events)
        placed = {p.parent_task_id for p in result.schedule}
        unscheduled = set(result.unscheduled_tasks)
        assert placed.isdisjoint(unscheduled)
        assert placed | unscheduled == {t.id for t in tasks}
        assert len(result.unscheduled_tasks) == len(unscheduled)

    def test_same_inputs_same_schedule(self, scheduler, workload):
        tasks, events = workload
        first = scheduler.optimize(tasks, events, commit=False)
        second = scheduler.optimize(tasks, events, commit=False)
        assert [(p.id, p.scheduled_time, p.end_time) for p in first.schedule] == \
            [(p.id, p.scheduled_time, p.end_time) for p in second.schedule]

    def test_pieces_stay_inside_working_hours(self, scheduler, workload):
        tasks, events = workload
        result = scheduler.optimize(tasks, events)
        for piece in result.schedule:
            assert piece.scheduled_time.weekday() < 5
            assert piece.scheduled_time.hour >= 9
            assert piece.end_time <= piece.end_time.replace(hour=17, minute=0)
            assert piece.scheduled_time >= scheduler.clock()

    def test_happiness_and_confidence_in_range(self, scheduler, workload):
        tasks, events = workload
        result = scheduler.optimize(tasks, events)
        assert 0.0 <= result.happiness_score <= 1.0
        assert 0.0 <= result.confidence <= 1.0
