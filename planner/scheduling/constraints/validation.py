"""
Configuration validation. Anything rejected here is a caller error and is
raised immediately rather than coerced.
"""

from typing import Iterable

from ...exceptions import InvalidConfigurationError
from ...models import Task, UserSchedule, WorkingHours
from ..utils.time_utils import parse_hhmm


def validate_working_hours(working_hours: WorkingHours):
    days = working_hours.working_days()
    if not days:
        raise InvalidConfigurationError("Working hours must include at least one working day")

    for day in days:
        start_hour, end_hour = getattr(working_hours, day.value)
        if not (0 <= start_hour < end_hour <= 24):
            raise InvalidConfigurationError(
                f"Working hours for {day.value} must satisfy 0 <= start < end <= 24, got {start_hour}-{end_hour}"
            )

    for brk in working_hours.breaks:
        if parse_hhmm(brk.start) >= parse_hhmm(brk.end):
            raise InvalidConfigurationError(f"Break '{brk.name}' must end after it starts")


def validate_user_schedule(user_schedule: UserSchedule):
    validate_working_hours(user_schedule.working_hours)
    if user_schedule.buffer_between_tasks < 0:
        raise InvalidConfigurationError("Buffer between tasks cannot be negative")


def validate_task(task: Task, default_max_chunk_minutes: int):
    if task.estimated_minutes <= 0:
        raise InvalidConfigurationError(f"Task '{task.name}' must have a positive estimated duration")

    if task.chunkable:
        max_chunk = task.max_chunk_minutes or default_max_chunk_minutes
        if task.min_chunk_minutes > max_chunk:
            raise InvalidConfigurationError(
                f"Task '{task.name}' has min_chunk_minutes ({task.min_chunk_minutes}) "
                f"greater than max_chunk_minutes ({max_chunk})"
            )


def validate_tasks(tasks: Iterable[Task], default_max_chunk_minutes: int):
    seen = set()
    for task in tasks:
        if task.id in seen:
            raise InvalidConfigurationError(f"Task id {task.id} appears more than once")
        seen.add(task.id)
        validate_task(task, default_max_chunk_minutes)


def validate_positive(name: str, value: int):
    if value is None or value <= 0:
        raise InvalidConfigurationError(f"{name} must be positive, got {value}")
