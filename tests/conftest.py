from datetime import datetime

import pytest

from planner.models import Event, Task, UserSchedule, WorkingHours
from planner.scheduling import HappinessScheduler

# A Monday, before the working day starts
MONDAY = datetime(2025, 1, 6, 8, 0)


@pytest.fixture
def now():
    return MONDAY


@pytest.fixture
def at():
    """Wall-clock time `day` days after the Monday test clock."""
    def _at(day: int, hour: int, minute: int = 0) -> datetime:
        return MONDAY.replace(day=MONDAY.day + day, hour=hour, minute=minute)

    return _at


@pytest.fixture
def clock(now):
    return lambda: now


@pytest.fixture
def working_hours():
    return WorkingHours(
        monday=(9, 17),
        tuesday=(9, 17),
        wednesday=(9, 17),
        thursday=(9, 17),
        friday=(9, 17),
    )


@pytest.fixture
def user_schedule(working_hours):
    return UserSchedule(working_hours=working_hours, buffer_between_tasks=15)


@pytest.fixture
def scheduler(user_schedule, clock):
    return HappinessScheduler(user_schedule, clock=clock)


@pytest.fixture
def create_task_factory():
    def _create(name="Task", **kwargs):
        kwargs.setdefault("estimated_minutes", 60)
        return Task(name=name, **kwargs)

    return _create


@pytest.fixture
def create_event_factory():
    def _create(start, end, **kwargs):
        return Event(start=start, end=end, **kwargs)

    return _create
