"""
Time slot representation for the scheduling system.
"""

from datetime import datetime

from ...models import SlotType


class TimeSlot:
    """
    A free window on the calendar, annotated with how desirable it is:
    - quality: time-of-day desirability
    - availability: penalised by fixed events starting nearby
    - suitability: fit for focused versus collaborative work
    """
    def __init__(self, start: datetime, end: datetime, quality: float = 0.5, availability: float = 1.0,
                 suitability: float = 0.5, slot_type: SlotType = SlotType.WORK):
        self.start = start
        self.end = end
        self.quality = quality
        self.availability = availability
        self.suitability = suitability
        self.type = slot_type

    @property
    def duration(self) -> int:
        """Length in minutes."""
        return int((self.end - self.start).total_seconds() // 60)

    def fragment(self, start: datetime, end: datetime) -> "TimeSlot":
        """A piece of this slot carrying the same annotations."""
        return TimeSlot(start, end, self.quality, self.availability, self.suitability, self.type)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end

    def __lt__(self, other):
        return self.start < other.start

    def __eq__(self, other):
        if not isinstance(other, TimeSlot):
            return NotImplemented
        return (self.start, self.end, self.quality, self.availability, self.suitability, self.type) == \
            (other.start, other.end, other.quality, other.availability, other.suitability, other.type)

    def __hash__(self):
        return hash((self.start, self.end))

    def __repr__(self):
        return (f"TimeSlot({self.start.strftime('%a %I:%M %p')} - {self.end.strftime('%I:%M %p')}, "
                f"{self.type.value}, q={self.quality:.2f})")
