"""
Scheduling engine

Scoring, slot generation and greedy placement. Designed to run as a plain
library; the services and routes wrap it for a host application.
"""

from .core.scheduler import HappinessScheduler, PlacementEngine, PlacementOutcome
from .core.slot_generator import SlotSequence, generate_slots
from .core.time_slot import TimeSlot

__all__ = [
    "HappinessScheduler",
    "PlacementEngine",
    "PlacementOutcome",
    "SlotSequence",
    "TimeSlot",
    "generate_slots",
]
