"""
Time-related constraint checks used by placement and by result verification.
"""

from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, Tuple

from ...models import Event, PreferredTimeOfDay, ScheduledTask
from ..scoring.time_scoring import is_preference_honoured
from ..utils.slot_utils import Interval, intervals_overlap


def preference_filter(preference: PreferredTimeOfDay) -> Optional[Callable[[datetime], bool]]:
    """Start-time predicate for a preference, or None when any start is acceptable."""
    if PreferredTimeOfDay(preference) == PreferredTimeOfDay.ANYTIME:
        return None
    return lambda start: is_preference_honoured(preference, start)


def busy_intervals(events: Iterable[Event]) -> List[Interval]:
    return [(e.start, e.end) for e in events if e.busy and e.start < e.end]


def occupied_intervals(schedule: Iterable[ScheduledTask], events: Iterable[Event]) -> List[Tuple[str, Interval]]:
    """Every committed interval with a label, tasks and busy events alike."""
    labelled = [(f"task:{p.id}", (p.scheduled_time, p.end_time)) for p in schedule]
    labelled.extend((f"event:{e.id}", (e.start, e.end)) for e in events if e.busy)
    return labelled


def find_buffer_violations(schedule: Iterable[ScheduledTask], events: Iterable[Event],
                           buffer_minutes: int) -> List[Tuple[str, str]]:
    """
    Pairs of committed intervals closer together than the buffer. Busy events
    are not checked against each other since they are not ours to move.
    """
    buffer = timedelta(minutes=buffer_minutes)
    labelled = occupied_intervals(schedule, events)
    violations = []
    for i, (label_a, (a_start, a_end)) in enumerate(labelled):
        for label_b, (b_start, b_end) in labelled[i + 1:]:
            if label_a.startswith("event:") and label_b.startswith("event:"):
                continue
            if intervals_overlap(a_start - buffer, a_end + buffer, b_start, b_end):
                violations.append((label_a, label_b))
    return violations
