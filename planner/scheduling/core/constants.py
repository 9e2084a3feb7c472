"""
Fixed weights and thresholds shared by the scoring and placement code.
"""

from ...models import DisruptionPriority, PreferredTimeOfDay, Priority

# Combined score weights (sum to 1.0). Only the first three are known before a
# slot is chosen; the rest are applied against the chosen placement.
WEIGHT_DEADLINE = 0.30
WEIGHT_PRIORITY = 0.25
WEIGHT_DURATION = 0.15
WEIGHT_USER_PREFERENCE = 0.12
WEIGHT_TIME_OPTIMALITY = 0.08
WEIGHT_WORK_LIFE_BALANCE = 0.05
WEIGHT_CONTEXT_SWITCHING = 0.03
WEIGHT_ENERGY_ALIGNMENT = 0.02

PRIORITY_WEIGHTS = {
    Priority.ASAP: 1.0,
    Priority.HIGH: 0.75,
    Priority.MEDIUM: 0.5,
    Priority.LOW: 0.25,
}

HIGH_PRIORITIES = (Priority.ASAP, Priority.HIGH)

ESCALATION = {
    Priority.LOW: Priority.MEDIUM,
    Priority.MEDIUM: Priority.HIGH,
    Priority.HIGH: Priority.ASAP,
    Priority.ASAP: Priority.ASAP,
}

# [start_hour, end_hour) windows
PREFERENCE_WINDOWS = {
    PreferredTimeOfDay.MORNING: (9, 12),
    PreferredTimeOfDay.AFTERNOON: (13, 17),
    PreferredTimeOfDay.EVENING: (17, 21),
}

DISRUPTION_RANK = {
    DisruptionPriority.CRITICAL: 0,
    DisruptionPriority.HIGH: 1,
    DisruptionPriority.MEDIUM: 2,
    DisruptionPriority.LOW: 3,
}

# Happiness contribution
BASE_HAPPINESS = 0.5
PRIORITY_HAPPINESS_WEIGHT = 0.3
DEADLINE_HAPPINESS_BONUS = 0.3
PREFERENCE_HAPPINESS_BONUS = 0.2

# Slot annotation
NEARBY_EVENT_MINUTES = 30
NEARBY_EVENT_PENALTY = 0.3
MIN_AVAILABILITY = 0.2

# Meetings
OPTIMAL_MEETING_SCORE = 0.7

LOW_HAPPINESS_THRESHOLD = 0.6
