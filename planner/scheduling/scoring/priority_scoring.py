"""
Priority-based scoring functions.
"""

from ...models import Priority, Task
from ..core.constants import ESCALATION, HIGH_PRIORITIES, PRIORITY_WEIGHTS


def calculate_priority_weight(priority: Priority) -> float:
    """
    Map priority to weight: ASAP: 1.0, High: 0.75, Medium: 0.5, Low: 0.25
    """
    return PRIORITY_WEIGHTS[Priority(priority)]


def escalate_priority(priority: Priority) -> Priority:
    """One step up: Low -> Medium -> High -> ASAP, where it stays."""
    return ESCALATION[Priority(priority)]


def is_high_priority(task: Task) -> bool:
    return task.priority in HIGH_PRIORITIES
