"""
Time-of-day scoring functions for slot annotation and preference matching.
"""

from datetime import datetime, timedelta
from typing import Iterable

from ...models import Event, PreferredTimeOfDay, SlotType
from ..core.constants import (
    MIN_AVAILABILITY, NEARBY_EVENT_MINUTES, NEARBY_EVENT_PENALTY, PREFERENCE_WINDOWS
)


def calculate_slot_quality(moment: datetime) -> float:
    """
    Time-of-day desirability:
    - Peak productivity (9-11 AM, 2-4 PM): +0.3
    - Very early or late (before 8 AM, after 6 PM): -0.2
    - Lunch (12-1 PM): -0.1
    """
    hour = moment.hour
    quality = 0.5

    if 9 <= hour <= 11 or 14 <= hour <= 16:
        quality += 0.3

    if hour < 8 or hour > 18:
        quality -= 0.2

    if 12 <= hour <= 13:
        quality -= 0.1

    return max(0.1, min(1.0, quality))


def calculate_slot_availability(moment: datetime, events: Iterable[Event]) -> float:
    """Penalise slots that start close to the start of a fixed event."""
    window = timedelta(minutes=NEARBY_EVENT_MINUTES)
    nearby = sum(1 for event in events if abs(event.start - moment) < window)
    return max(MIN_AVAILABILITY, 1.0 - nearby * NEARBY_EVENT_PENALTY)


def calculate_slot_suitability(moment: datetime) -> float:
    hour = moment.hour
    # Mornings suit focused work
    if 9 <= hour <= 12:
        return 0.9
    # Afternoons suit meetings and collaboration
    if 13 <= hour <= 17:
        return 0.7
    return 0.4


def determine_slot_type(moment: datetime) -> SlotType:
    hour = moment.hour
    if 12 <= hour <= 13:
        return SlotType.BREAK
    if 9 <= hour <= 12:
        return SlotType.FOCUS
    return SlotType.WORK


def is_preference_honoured(preference: PreferredTimeOfDay, start: datetime) -> bool:
    """True when the start hour lies inside the preference window. `anytime` has no window."""
    window = PREFERENCE_WINDOWS.get(PreferredTimeOfDay(preference))
    if window is None:
        return False
    return window[0] <= start.hour < window[1]


def calculate_preference_match(preference: PreferredTimeOfDay, start: datetime) -> float:
    if PreferredTimeOfDay(preference) == PreferredTimeOfDay.ANYTIME:
        return 0.5
    return 1.0 if is_preference_honoured(preference, start) else 0.0
