"""
Scoring for bookable meeting slots.
"""

from datetime import datetime
from typing import Iterable, Optional, Tuple

from ..core.constants import OPTIMAL_MEETING_SCORE


def calculate_meeting_slot_score(start: datetime, preferred_time_ranges: Optional[Iterable[Tuple[str, str]]] = None) -> float:
    """
    Base 0.5, adjusted for:
    - Hour of day: 10-11 AM +0.3, 2-3 PM +0.2, otherwise 9 AM-4 PM +0.1
    - Outside 9 AM-5 PM: -0.2
    - Tuesday to Thursday: +0.1
    - Start inside one of the preferred "HH:MM" ranges: +0.2
    """
    score = 0.5
    hour = start.hour

    if 10 <= hour <= 11:
        score += 0.3
    elif 14 <= hour <= 15:
        score += 0.2
    elif 9 <= hour <= 16:
        score += 0.1

    if hour < 9 or hour > 17:
        score -= 0.2

    if 1 <= start.weekday() <= 3:
        score += 0.1

    if preferred_time_ranges:
        time_string = start.strftime("%H:%M")
        if any(range_start <= time_string <= range_end for range_start, range_end in preferred_time_ranges):
            score += 0.2

    return max(0.0, min(1.0, score))


def is_optimal_meeting_score(score: float) -> bool:
    return score > OPTIMAL_MEETING_SCORE
