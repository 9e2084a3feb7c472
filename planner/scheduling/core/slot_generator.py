"""
Free slot generation over a working-hours calendar.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, Iterator, List, Sequence

from ...models import Event, WorkingHours
from ..constraints.time_constraints import busy_intervals
from ..constraints.validation import validate_positive, validate_working_hours
from ..scoring.time_scoring import (
    calculate_slot_availability, calculate_slot_quality, calculate_slot_suitability, determine_slot_type
)
from ..utils.slot_utils import Interval, subtract_intervals
from ..utils.time_utils import at_hour, at_time, ceil_to_grid, iterate_days, parse_hhmm
from .time_slot import TimeSlot

logger = logging.getLogger(__name__)


def generate_slots(working_hours: WorkingHours, fixed_events: Iterable[Event], horizon_start: datetime,
                   horizon_days: int, granularity_minutes: int) -> Iterator[TimeSlot]:
    """
    Yield annotated free slots of `granularity_minutes`, in chronological order.

    For each day in the horizon the working window is looked up (no window,
    no slots), busy events and daily breaks are subtracted, and each free
    stretch is cut into equal slots. Leftovers shorter than the granularity
    are dropped. Arguments are validated before the first slot is produced.
    """
    validate_positive("Slot granularity", granularity_minutes)
    validate_positive("Scheduling horizon", horizon_days)
    validate_working_hours(working_hours)

    return _iter_slots(working_hours, list(fixed_events), horizon_start, horizon_days, granularity_minutes)


def _iter_slots(working_hours: WorkingHours, events: List[Event], horizon_start: datetime,
                horizon_days: int, granularity_minutes: int) -> Iterator[TimeSlot]:
    busy = busy_intervals(events)
    step = timedelta(minutes=granularity_minutes)

    for day in iterate_days(horizon_start, horizon_days):
        window = working_window(working_hours, day, horizon_start, granularity_minutes)
        if window is None:
            continue

        day_busy = busy + break_intervals(working_hours, day)
        for free_start, free_end in subtract_intervals(window, day_busy):
            cursor = free_start
            while cursor + step <= free_end:
                yield annotate_slot(cursor, cursor + step, events)
                cursor += step


def working_window(working_hours: WorkingHours, day: datetime, horizon_start: datetime,
                   granularity_minutes: int):
    """
    The day's working interval, clipped so it never starts before the horizon
    start (rounded up onto the slot grid). None for days off and for windows
    that have already ended.
    """
    hours = working_hours.for_weekday(day.weekday())
    if hours is None:
        return None

    day_start = at_hour(day, hours[0])
    day_end = at_hour(day, hours[1])
    window_start = day_start
    if horizon_start > day_start:
        window_start = ceil_to_grid(horizon_start, day_start, granularity_minutes)

    if window_start >= day_end:
        return None
    return window_start, day_end


def break_intervals(working_hours: WorkingHours, day: datetime) -> List[Interval]:
    return [
        (at_time(day, parse_hhmm(b.start)), at_time(day, parse_hhmm(b.end)))
        for b in working_hours.breaks
    ]


def annotate_slot(start: datetime, end: datetime, events: Sequence[Event]) -> TimeSlot:
    return TimeSlot(
        start,
        end,
        quality=calculate_slot_quality(start),
        availability=calculate_slot_availability(start, [e for e in events if e.busy]),
        suitability=calculate_slot_suitability(start),
        slot_type=determine_slot_type(start),
    )


class SlotSequence:
    """
    Restartable view over generate_slots: every iteration regenerates the
    slots from the stored arguments, so no state is shared between passes.
    """
    def __init__(self, working_hours: WorkingHours, fixed_events: Iterable[Event], horizon_start: datetime,
                 horizon_days: int, granularity_minutes: int):
        self.working_hours = working_hours
        self.fixed_events = list(fixed_events)
        self.horizon_start = horizon_start
        self.horizon_days = horizon_days
        self.granularity_minutes = granularity_minutes
        # Fail fast on bad arguments rather than on first iteration
        generate_slots(working_hours, self.fixed_events, horizon_start, horizon_days, granularity_minutes)

    def __iter__(self) -> Iterator[TimeSlot]:
        return generate_slots(self.working_hours, self.fixed_events, self.horizon_start,
                              self.horizon_days, self.granularity_minutes)

    def to_list(self) -> List[TimeSlot]:
        slots = list(self)
        logger.debug(f"Generated {len(slots)} slots over {self.horizon_days} days from {self.horizon_start}")
        return slots
