"""
Tests for task, slot and meeting scoring.
"""

from datetime import datetime, timedelta

import pytest

from planner.models import Event, PreferredTimeOfDay, Priority, SlotType
from planner.scheduling.algorithms.chunking import calculate_chunk_sizes
from planner.scheduling.scoring.meeting_scoring import calculate_meeting_slot_score, is_optimal_meeting_score
from planner.scheduling.scoring.priority_scoring import calculate_priority_weight, escalate_priority
from planner.scheduling.scoring.schedule_metrics import calculate_confidence, calculate_happiness_contribution
from planner.scheduling.scoring.task_scoring import (
    calculate_deadline_urgency, calculate_duration_weight, score_task, score_tasks
)
from planner.scheduling.scoring.time_scoring import (
    calculate_slot_availability, calculate_slot_quality, calculate_slot_suitability, determine_slot_type,
    is_preference_honoured
)


class TestTaskScoring:
    def test_no_deadline_has_minimum_urgency(self, create_task_factory, now):
        assert calculate_deadline_urgency(create_task_factory(), now) == 0.1

    def test_overdue_task_is_maximally_urgent(self, create_task_factory, now):
        task = create_task_factory(deadline=now - timedelta(hours=1))
        assert calculate_deadline_urgency(task, now) == 1.0

    @pytest.mark.parametrize("delta, expected", [
        (timedelta(hours=12), 0.9),
        (timedelta(days=1), 0.9),
        (timedelta(days=2), 0.7),
        (timedelta(days=5), 0.5),
        (timedelta(days=16), 0.25),
        (timedelta(days=200), 0.1),
    ])
    def test_urgency_decreases_with_distance(self, create_task_factory, now, delta, expected):
        task = create_task_factory(deadline=now + delta)
        assert calculate_deadline_urgency(task, now) == pytest.approx(expected)

    def test_priority_weights(self):
        assert calculate_priority_weight(Priority.ASAP) == 1.0
        assert calculate_priority_weight(Priority.HIGH) == 0.75
        assert calculate_priority_weight(Priority.MEDIUM) == 0.5
        assert calculate_priority_weight(Priority.LOW) == 0.25

    @pytest.mark.parametrize("minutes, expected", [(5, 1.0), (30, 1.0), (60, 1.0), (120, 0.5), (240, 0.25)])
    def test_duration_weight_favours_short_tasks(self, minutes, expected):
        assert calculate_duration_weight(minutes) == pytest.approx(expected)

    def test_combined_score(self, create_task_factory, now):
        score = score_task(create_task_factory(priority=Priority.HIGH, estimated_minutes=60), now)
        assert score.urgency == 0.1
        assert score.priority_weight == 0.75
        assert score.duration_weight == 1.0
        assert score.combined == pytest.approx(0.3 * 0.1 + 0.25 * 0.75 + 0.15 * 1.0)

    def test_ties_keep_input_order(self, create_task_factory, now):
        first = create_task_factory("First")
        second = create_task_factory("Second")
        third = create_task_factory("Third")
        ordered = score_tasks([first, second, third], now)
        assert [s.task.name for s in ordered] == ["First", "Second", "Third"]

    def test_overdue_task_ranks_ahead_of_equal_priority(self, create_task_factory, now):
        relaxed = create_task_factory("Relaxed", priority=Priority.MEDIUM)
        overdue = create_task_factory("Overdue", priority=Priority.MEDIUM, deadline=now - timedelta(hours=1))
        ordered = score_tasks([relaxed, overdue], now)
        assert ordered[0].task.name == "Overdue"

    def test_escalation_converges_to_asap(self):
        priority = Priority.LOW
        seen = []
        for _ in range(5):
            priority = escalate_priority(priority)
            seen.append(priority)
        assert seen == [Priority.MEDIUM, Priority.HIGH, Priority.ASAP, Priority.ASAP, Priority.ASAP]


class TestSlotAnnotation:
    @pytest.mark.parametrize("hour, expected", [
        (7, 0.3), (9, 0.8), (10, 0.8), (12, 0.4), (13, 0.4), (14, 0.8), (17, 0.5), (19, 0.3),
    ])
    def test_quality_by_hour(self, hour, expected):
        assert calculate_slot_quality(datetime(2025, 1, 6, hour)) == pytest.approx(expected)

    def test_availability_penalised_by_nearby_events(self):
        slot_start = datetime(2025, 1, 6, 10, 0)
        near = Event(start=slot_start + timedelta(minutes=20), end=slot_start + timedelta(minutes=50))
        also_near = Event(start=slot_start - timedelta(minutes=10), end=slot_start)
        exactly_thirty = Event(start=slot_start + timedelta(minutes=30), end=slot_start + timedelta(hours=1))

        assert calculate_slot_availability(slot_start, []) == 1.0
        assert calculate_slot_availability(slot_start, [near]) == pytest.approx(0.7)
        assert calculate_slot_availability(slot_start, [near, also_near]) == pytest.approx(0.4)
        assert calculate_slot_availability(slot_start, [exactly_thirty]) == 1.0
        assert calculate_slot_availability(slot_start, [near, also_near, near, near]) == 0.2

    @pytest.mark.parametrize("hour, expected", [(8, 0.4), (9, 0.9), (12, 0.9), (13, 0.7), (17, 0.7), (18, 0.4)])
    def test_suitability_by_hour(self, hour, expected):
        assert calculate_slot_suitability(datetime(2025, 1, 6, hour)) == expected

    @pytest.mark.parametrize("hour, expected", [
        (8, SlotType.WORK), (10, SlotType.FOCUS), (12, SlotType.BREAK), (13, SlotType.BREAK), (15, SlotType.WORK),
    ])
    def test_slot_type_by_hour(self, hour, expected):
        assert determine_slot_type(datetime(2025, 1, 6, hour)) == expected

    def test_preference_windows(self):
        assert is_preference_honoured(PreferredTimeOfDay.MORNING, datetime(2025, 1, 6, 11, 45))
        assert not is_preference_honoured(PreferredTimeOfDay.MORNING, datetime(2025, 1, 6, 12, 0))
        assert is_preference_honoured(PreferredTimeOfDay.AFTERNOON, datetime(2025, 1, 6, 13, 0))
        assert is_preference_honoured(PreferredTimeOfDay.EVENING, datetime(2025, 1, 6, 18, 0))
        assert not is_preference_honoured(PreferredTimeOfDay.ANYTIME, datetime(2025, 1, 6, 10, 0))


class TestMeetingScoring:
    @pytest.mark.parametrize("moment, expected", [
        (datetime(2025, 1, 7, 10, 0), 0.9),   # Tuesday peak
        (datetime(2025, 1, 6, 14, 0), 0.7),   # Monday post-lunch
        (datetime(2025, 1, 6, 9, 0), 0.6),    # Monday standard hours
        (datetime(2025, 1, 6, 8, 0), 0.3),    # early
        (datetime(2025, 1, 6, 18, 0), 0.3),   # late
        (datetime(2025, 1, 8, 16, 0), 0.7),   # Wednesday afternoon
    ])
    def test_time_and_day_bonuses(self, moment, expected):
        assert calculate_meeting_slot_score(moment) == pytest.approx(expected)

    def test_preferred_range_bonus_is_clamped(self):
        thursday_peak = datetime(2025, 1, 9, 10, 0)
        assert calculate_meeting_slot_score(thursday_peak, [("10:00", "10:30")]) == 1.0
        early = datetime(2025, 1, 6, 8, 0)
        assert calculate_meeting_slot_score(early, [("08:00", "09:00")]) == pytest.approx(0.5)

    def test_optimal_threshold_is_strict(self):
        assert is_optimal_meeting_score(0.9)
        assert not is_optimal_meeting_score(0.7)


class TestScheduleMetrics:
    def test_happiness_contribution(self, create_task_factory, now):
        task = create_task_factory(priority=Priority.HIGH)
        start = datetime(2025, 1, 6, 9, 0)
        happiness = calculate_happiness_contribution(task, start, start + timedelta(hours=1),
                                                     PreferredTimeOfDay.MORNING)
        assert happiness == pytest.approx(0.5 + 0.3 * 0.75 + 0.2)

    def test_happiness_is_capped(self, create_task_factory):
        start = datetime(2025, 1, 6, 9, 0)
        task = create_task_factory(priority=Priority.ASAP, deadline=start + timedelta(days=1))
        happiness = calculate_happiness_contribution(task, start, start + timedelta(hours=1),
                                                     PreferredTimeOfDay.MORNING)
        assert happiness == 1.0

    def test_confidence(self, create_task_factory):
        high = create_task_factory(priority=Priority.HIGH)
        low = create_task_factory(priority=Priority.LOW)
        assert calculate_confidence([], []) == 1.0
        assert calculate_confidence([high], [high, low]) == pytest.approx(0.6 * 0.5 + 0.4 * 1.0)
        assert calculate_confidence([low], [high, low]) == pytest.approx(0.6 * 0.5)


class TestChunking:
    @pytest.mark.parametrize("total, min_chunk, max_chunk, expected", [
        (100, 30, 120, [100]),
        (300, 30, 120, [100, 100, 100]),
        (250, 30, 120, [84, 83, 83]),
        (130, 70, 120, [130]),
    ])
    def test_chunk_sizes(self, total, min_chunk, max_chunk, expected):
        sizes = calculate_chunk_sizes(total, min_chunk, max_chunk)
        assert sizes == expected
        assert sum(sizes) == total
