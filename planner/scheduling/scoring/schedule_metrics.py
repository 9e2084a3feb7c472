"""
Per-placement and whole-schedule metrics: happiness, confidence, warnings
and recommendations.
"""

from datetime import datetime
from statistics import mean
from typing import Dict, List, Sequence

from ...models import Event, PreferredTimeOfDay, ScheduledTask, Task, TaskScore, UnscheduledTask
from ..constraints.time_constraints import find_buffer_violations
from ..core.constants import (
    BASE_HAPPINESS, DEADLINE_HAPPINESS_BONUS, LOW_HAPPINESS_THRESHOLD, PREFERENCE_HAPPINESS_BONUS,
    PRIORITY_HAPPINESS_WEIGHT, WEIGHT_CONTEXT_SWITCHING, WEIGHT_ENERGY_ALIGNMENT,
    WEIGHT_TIME_OPTIMALITY, WEIGHT_USER_PREFERENCE, WEIGHT_WORK_LIFE_BALANCE
)
from ..core.time_slot import TimeSlot
from .priority_scoring import calculate_priority_weight, is_high_priority
from .time_scoring import calculate_preference_match, is_preference_honoured


def calculate_happiness_contribution(task: Task, start: datetime, end: datetime,
                                     preference: PreferredTimeOfDay) -> float:
    happiness = BASE_HAPPINESS
    happiness += calculate_priority_weight(task.priority) * PRIORITY_HAPPINESS_WEIGHT

    if task.deadline is not None and end <= task.deadline:
        happiness += DEADLINE_HAPPINESS_BONUS

    if is_preference_honoured(preference, start):
        happiness += PREFERENCE_HAPPINESS_BONUS

    return min(1.0, happiness)


def calculate_placement_score(task_score: TaskScore, preference: PreferredTimeOfDay, start: datetime,
                              slots: Sequence[TimeSlot], context_switch: float) -> float:
    """
    The task's combined score plus the slot-dependent terms: preference match,
    time optimality (quality), work-life balance (availability), context
    switching and energy alignment (suitability).
    """
    quality = mean(s.quality for s in slots) if slots else 0.5
    availability = mean(s.availability for s in slots) if slots else 1.0
    suitability = mean(s.suitability for s in slots) if slots else 0.5

    return (
        task_score.combined +
        (WEIGHT_USER_PREFERENCE * calculate_preference_match(preference, start)) +
        (WEIGHT_TIME_OPTIMALITY * quality) +
        (WEIGHT_WORK_LIFE_BALANCE * availability) +
        (WEIGHT_CONTEXT_SWITCHING * context_switch) +
        (WEIGHT_ENERGY_ALIGNMENT * suitability)
    )


def group_by_parent(schedule: Sequence[ScheduledTask]) -> Dict[str, List[ScheduledTask]]:
    grouped: Dict[str, List[ScheduledTask]] = {}
    for piece in schedule:
        grouped.setdefault(piece.parent_task_id, []).append(piece)
    return grouped


def calculate_overall_happiness(schedule: Sequence[ScheduledTask]) -> float:
    """Mean happiness over placed parent tasks (chunks averaged first); 0 when nothing is placed."""
    grouped = group_by_parent(schedule)
    if not grouped:
        return 0.0
    return mean(mean(p.happiness_contribution for p in pieces) for pieces in grouped.values())


def calculate_confidence(placed: Sequence[Task], all_tasks: Sequence[Task]) -> float:
    if not all_tasks:
        return 1.0

    scheduled_ratio = len(placed) / len(all_tasks)
    total_high = sum(1 for t in all_tasks if is_high_priority(t))
    placed_high = sum(1 for t in placed if is_high_priority(t))
    high_priority_ratio = placed_high / total_high if total_high else 1.0

    return scheduled_ratio * 0.6 + high_priority_ratio * 0.4


def finishes_after_deadline(task: Task, end: datetime) -> bool:
    return task.deadline is not None and end > task.deadline


def generate_recommendations(all_tasks: Sequence[Task], schedule: Sequence[ScheduledTask],
                             unscheduled: Sequence[UnscheduledTask]) -> List[str]:
    recommendations = []

    if unscheduled:
        recommendations.append(
            f"{len(unscheduled)} tasks couldn't be scheduled. Consider extending work hours or reducing task load."
        )

    grouped = group_by_parent(schedule)
    late = [pieces for pieces in grouped.values() if finishes_after_deadline(pieces[-1], pieces[-1].end_time)]
    if late:
        recommendations.append(f"{len(late)} tasks are scheduled after their deadlines.")

    if grouped and calculate_overall_happiness(schedule) < LOW_HAPPINESS_THRESHOLD:
        recommendations.append(
            "Schedule optimization is suboptimal. Consider adjusting priorities or extending deadlines."
        )

    by_id = {t.id: t for t in all_tasks}
    missing_high = [u for u in unscheduled if u.task_id in by_id and is_high_priority(by_id[u.task_id])]
    if missing_high:
        recommendations.append(
            f"{len(missing_high)} high-priority tasks are unscheduled. "
            f"Consider deferring lower-priority work to make room."
        )

    return recommendations


def identify_warnings(schedule: Sequence[ScheduledTask], unscheduled: Sequence[UnscheduledTask],
                      buffer_minutes: int, events: Sequence[Event] = ()) -> List[str]:
    warnings = []

    for item in unscheduled:
        warnings.append(f'Task "{item.name}" could not be scheduled: {item.reason}')

    ordered = sorted(schedule, key=lambda p: p.scheduled_time)
    for current, following in zip(ordered, ordered[1:]):
        if current.end_time.date() != following.scheduled_time.date():
            continue
        gap = (following.scheduled_time - current.end_time).total_seconds() / 60
        if gap < buffer_minutes:
            warnings.append(f'Tasks "{current.name}" and "{following.name}" have insufficient buffer time.')

    # Task pairs are covered above; only task-to-event gaps here
    task_names = {f"task:{p.id}": p.name for p in ordered}
    event_titles = {f"event:{e.id}": e.title for e in events}
    for first, second in find_buffer_violations(ordered, events, buffer_minutes):
        if first in task_names and second in event_titles:
            warnings.append(f'Task "{task_names[first]}" is within {buffer_minutes} minutes of '
                            f'"{event_titles[second]}".')

    for pieces in group_by_parent(ordered).values():
        last = pieces[-1]
        if finishes_after_deadline(last, last.end_time):
            warnings.append(f'Task "{last.name}" is scheduled to finish after its deadline.')

    return warnings
