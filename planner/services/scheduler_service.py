"""
Scheduler service that keeps each user's engines in memory.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Set

from ..config import Config
from ..exceptions import SchedulerError
from ..models import (
    Disruption, DisruptionPriority, Event, Meeting, MeetingAdded, OptimizationResult, Task, UserSchedule
)
from ..scheduling.core.scheduler import HappinessScheduler
from .meeting_scheduler import ACTIVE_MEETING_STATUSES, MeetingScheduler
from .real_time_optimizer import RealTimeOptimizer

logger = logging.getLogger(__name__)


class UserNotRegisteredError(SchedulerError):
    def __init__(self, user_id: str):
        super().__init__(f"No schedule registered for user {user_id}")
        self.user_id = user_id


class UserEngines:
    """
    The engines serving one user, wired together over one calendar. The
    booking side's events list is the full calendar: host events, booked
    meetings with their buffers, and events added through disruptions.
    Bookings reach the optimizer as meeting-added disruptions and every
    applied result folds the optimizer's events back into the calendar.
    """
    def __init__(self, user_id: str, user_schedule: UserSchedule, clock: Optional[Callable[[], datetime]] = None):
        self.user_id = user_id
        self.user_schedule = user_schedule
        self.scheduler = HappinessScheduler(
            user_schedule,
            granularity_minutes=Config.SLOT_GRANULARITY_MINUTES,
            horizon_days=Config.SCHEDULING_HORIZON_DAYS,
            default_max_chunk_minutes=Config.DEFAULT_MAX_CHUNK_MINUTES,
            clock=clock,
        )
        self.optimizer = RealTimeOptimizer(self.scheduler)
        self.meetings = MeetingScheduler(
            user_schedule,
            stride_minutes=Config.MEETING_SLOT_STRIDE_MINUTES,
            clock=self.scheduler.clock,
            on_booked=self._meeting_booked,
            on_cancelled=self._meeting_cancelled,
        )
        self.optimizer.subscribe(self._sync_events)

    def update_state(self, tasks: Sequence[Task], events: Sequence[Event]):
        """Replace the host's tasks and events. Active bookings stay on the calendar."""
        active = self._meeting_event_ids(active=True)
        host_ids = {e.id for e in events}
        booked = [e for e in self.meetings.events if e.id in active and e.id not in host_ids]
        self.meetings.events[:] = [e.model_copy() for e in events] + booked
        self.optimizer.update_state(tasks, self.meetings.events)

    def carry_over(self, previous: "UserEngines"):
        """Adopt another set of engines' links, meetings, calendar and tasks."""
        self.meetings.booking_links.update(previous.meetings.booking_links)
        self.meetings.meetings.update(previous.meetings.meetings)
        self.meetings.events[:] = [e.model_copy() for e in previous.meetings.events]
        _merge_events(self.meetings.events, previous.optimizer.events, self._meeting_event_ids(active=False))
        self.optimizer.update_state(previous.optimizer.tasks, self.meetings.events)

    def _meeting_event_ids(self, active: bool):
        statuses = ACTIVE_MEETING_STATUSES
        return {
            event_id for m in self.meetings.meetings.values() if (m.status in statuses) == active
            for event_id in m.event_ids
        }

    def _sync_events(self, result: OptimizationResult):
        _merge_events(self.meetings.events, self.optimizer.events, self._meeting_event_ids(active=False))

    def _meeting_booked(self, meeting: Meeting, events: List[Event]):
        # Meeting plus its buffers become fixed time for the task schedule
        for event in events:
            self.optimizer.submit(MeetingAdded(event=event), priority=DisruptionPriority.HIGH)

    def _meeting_cancelled(self, meeting: Meeting):
        self.optimizer.remove_events(meeting.event_ids)
        self.optimizer.optimize()


def _merge_events(calendar: List[Event], events: Sequence[Event], released: Set[str]):
    """Fold `events` into `calendar` by id, skipping events of cancelled meetings."""
    positions = {e.id: i for i, e in enumerate(calendar)}
    for event in events:
        if event.id in released:
            continue
        if event.id in positions:
            calendar[positions[event.id]] = event.model_copy()
        else:
            positions[event.id] = len(calendar)
            calendar.append(event.model_copy())


class SchedulerService:
    """Service to manage in-memory scheduling engines for users."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.user_engines: Dict[str, UserEngines] = {}
        self.clock = clock

    def register_user(self, user_id: str, user_schedule: UserSchedule) -> UserEngines:
        """
        Create (or recreate) a user's engines. Existing tasks, events, booking
        links and meetings carry over; pending disruptions are dropped.
        """
        previous = self.user_engines.get(user_id)
        engines = UserEngines(user_id, user_schedule, clock=self.clock)
        if previous is not None:
            previous.optimizer.clear_queue()
            engines.carry_over(previous)
        self.user_engines[user_id] = engines
        logger.info(f"Registered schedule for user {user_id}")
        return engines

    def get_engines(self, user_id: str) -> UserEngines:
        engines = self.user_engines.get(user_id)
        if engines is None:
            raise UserNotRegisteredError(user_id)
        return engines

    def find_meeting_engines(self, booking_link_id: str = None, meeting_id: str = None) -> Optional[UserEngines]:
        for engines in self.user_engines.values():
            if booking_link_id is not None and booking_link_id in engines.meetings.booking_links:
                return engines
            if meeting_id is not None and meeting_id in engines.meetings.meetings:
                return engines
        return None

    def update_state(self, user_id: str, tasks: Sequence[Task], events: Sequence[Event]) -> UserEngines:
        engines = self.get_engines(user_id)
        engines.update_state(tasks, events)
        return engines

    def optimize(self, user_id: str) -> OptimizationResult:
        return self.get_engines(user_id).optimizer.optimize()

    async def submit_disruption(self, user_id: str, disruption: Disruption) -> Disruption:
        """Submit and wait for the queue to drain, so the caller sees the outcome."""
        optimizer = self.get_engines(user_id).optimizer
        optimizer.submit(disruption)
        await optimizer.join()
        return disruption


scheduler_service = SchedulerService()


def get_scheduler_service() -> SchedulerService:
    return scheduler_service
