"""
Task scoring: turns priority, deadline proximity and duration into the
weights that decide placement order.
"""

import logging
import math
from datetime import datetime
from typing import Iterable, List

from ...models import Task, TaskScore
from ..core.constants import WEIGHT_DEADLINE, WEIGHT_DURATION, WEIGHT_PRIORITY
from .priority_scoring import calculate_priority_weight

logger = logging.getLogger(__name__)


def calculate_deadline_urgency(task: Task, now: datetime) -> float:
    """
    Urgency from deadline proximity (0.1 - 1.0).
    Overdue: 1.0, within a day: 0.9, three days: 0.7, a week: 0.5,
    further out: 1/sqrt(days) floored at 0.1. No deadline: 0.1.
    """
    if task.deadline is None:
        return 0.1

    if task.deadline <= now:
        return 1.0

    days_until_deadline = (task.deadline - now).total_seconds() / 86400
    if days_until_deadline <= 1:
        return 0.9
    if days_until_deadline <= 3:
        return 0.7
    if days_until_deadline <= 7:
        return 0.5
    return max(0.1, 1 / math.sqrt(days_until_deadline))


def calculate_duration_weight(estimated_minutes: int) -> float:
    """Shorter tasks score slightly higher so they fill gaps."""
    return min(1.0, 60 / max(estimated_minutes, 15))


def score_task(task: Task, now: datetime) -> TaskScore:
    urgency = calculate_deadline_urgency(task, now)
    priority_weight = calculate_priority_weight(task.priority)
    duration_weight = calculate_duration_weight(task.estimated_minutes)

    combined = (
        (WEIGHT_DEADLINE * urgency) +
        (WEIGHT_PRIORITY * priority_weight) +
        (WEIGHT_DURATION * duration_weight)
    )

    return TaskScore(
        task=task,
        urgency=urgency,
        priority_weight=priority_weight,
        duration_weight=duration_weight,
        combined=combined,
    )


def score_tasks(tasks: Iterable[Task], now: datetime) -> List[TaskScore]:
    """Score every task and sort best-first. The sort is stable, so ties keep input order."""
    scored = [score_task(task, now) for task in tasks]
    scored.sort(key=lambda s: s.combined, reverse=True)
    for s in scored:
        logger.debug(f"Scored '{s.task.name}': urgency={s.urgency:.2f} priority={s.priority_weight:.2f} "
                     f"duration={s.duration_weight:.2f} combined={s.combined:.3f}")
    return scored
