"""
Interval arithmetic and slot list manipulation.

Intervals are (start, end) datetime tuples, half-open.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from ..core.time_slot import TimeSlot

Interval = Tuple[datetime, datetime]


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def merge_overlapping_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """
    Merge overlapping or touching intervals into a minimal sorted set.

    Example:
        [(9:00, 10:00), (9:30, 11:00), (11:00, 11:30), (13:00, 14:00)]
        -> [(9:00, 11:30), (13:00, 14:00)]
    """
    ordered = sorted(i for i in intervals if i[0] < i[1])
    if not ordered:
        return []

    merged = []
    current_start, current_end = ordered[0]
    for next_start, next_end in ordered[1:]:
        if next_start <= current_end:
            current_end = max(current_end, next_end)
        else:
            merged.append((current_start, current_end))
            current_start, current_end = next_start, next_end
    merged.append((current_start, current_end))
    return merged


def subtract_intervals(window: Interval, busy: Iterable[Interval]) -> List[Interval]:
    """Maximal free sub-intervals of `window` not covered by any busy interval."""
    window_start, window_end = window
    free = []
    cursor = window_start
    for busy_start, busy_end in merge_overlapping_intervals(busy):
        if busy_end <= cursor or busy_start >= window_end:
            continue
        if busy_start > cursor:
            free.append((cursor, busy_start))
        cursor = max(cursor, busy_end)
        if cursor >= window_end:
            break
    if cursor < window_end:
        free.append((cursor, window_end))
    return free


def widen(start: datetime, end: datetime, before: int, after: Optional[int] = None) -> Interval:
    """Interval grown by a buffer on each side (minutes)."""
    if after is None:
        after = before
    return start - timedelta(minutes=before), end + timedelta(minutes=after)


def replace_slot(old_slot: TimeSlot, new_slots: List[TimeSlot], slots: List[TimeSlot]):
    """Replace an old slot with new slots, keeping the list in chronological order."""
    index = next(i for i, slot in enumerate(slots) if slot is old_slot)
    slots[index:index + 1] = new_slots


def reserve_interval(slots: List[TimeSlot], start: datetime, end: datetime) -> List[TimeSlot]:
    """
    Remove [start, end) from the free slot list, splitting any slot that only
    partially overlaps into its leading and trailing fragments. Returns the
    removed slots.
    """
    removed = []
    for slot in [s for s in slots if s.overlaps(start, end)]:
        fragments = []
        if slot.start < start:
            fragments.append(slot.fragment(slot.start, start))
        if end < slot.end:
            fragments.append(slot.fragment(end, slot.end))
        replace_slot(slot, fragments, slots)
        removed.append(slot)
    return removed


def contiguous_run_end(slots: List[TimeSlot], index: int, minutes: int) -> Optional[int]:
    """
    Index one past the last slot of the shortest contiguous run starting at
    `index` that covers `minutes`, or None if the run is broken first.
    """
    needed = timedelta(minutes=minutes)
    run_start = slots[index].start
    for i in range(index, len(slots)):
        if i > index and slots[i].start != slots[i - 1].end:
            return None
        if slots[i].end - run_start >= needed:
            return i + 1
    return None


def find_contiguous_run(slots: List[TimeSlot], minutes: int, not_before: Optional[datetime] = None,
                        start_filter=None) -> Optional[Tuple[int, int]]:
    """
    Earliest run of contiguous free slots long enough for `minutes`. The run
    starts at the first slot's start. `start_filter` receives the candidate
    start and may reject it.
    """
    for i, slot in enumerate(slots):
        if not_before is not None and slot.start < not_before:
            continue
        if start_filter is not None and not start_filter(slot.start):
            continue
        end_index = contiguous_run_end(slots, i, minutes)
        if end_index is not None:
            return i, end_index
    return None


def covers_interval(slots: List[TimeSlot], start: datetime, end: datetime) -> bool:
    """True when free slots cover [start, end) without a gap."""
    cursor = start
    for slot in slots:
        if slot.end <= cursor:
            continue
        if slot.start > cursor:
            return False
        cursor = slot.end
        if cursor >= end:
            return True
    return cursor >= end
