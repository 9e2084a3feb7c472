"""
Meeting negotiation: bookable links with buffers and daily caps, plus a
multi-participant search for common free time.
"""

import logging
import re
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from ..config import Config
from ..exceptions import (
    BookingConflictError, BookingLinkNotFoundError, InvalidConfigurationError, MeetingNotFoundError
)
from ..models import (
    Attendee, AvailabilitySlot, BookingLink, BookingLinkSettings, Event, EventSource, Meeting, MeetingKind,
    MeetingStatus, Participant, UserSchedule, WorkingHours
)
from ..scheduling.constraints.validation import validate_positive, validate_user_schedule
from ..scheduling.scoring.meeting_scoring import calculate_meeting_slot_score, is_optimal_meeting_score
from ..scheduling.utils.slot_utils import intervals_overlap, widen
from ..scheduling.utils.time_utils import at_hour, iterate_days, local_now, start_of_day, to_datetime

logger = logging.getLogger(__name__)

TimeRange = Tuple[str, str]
BookedCallback = Callable[[Meeting, List[Event]], None]
CancelledCallback = Callable[[Meeting], None]

ACTIVE_MEETING_STATUSES = (MeetingStatus.SCHEDULED, MeetingStatus.CONFIRMED)


def generate_slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def find_common_working_hours(schedules: Iterable[WorkingHours], day: datetime) -> Optional[Tuple[float, float]]:
    """Latest common start and earliest common end; None if anyone is off or there is no overlap."""
    schedules = list(schedules)
    if not schedules:
        raise InvalidConfigurationError("At least one participant is required")

    latest_start, earliest_end = 0.0, 24.0
    for working_hours in schedules:
        hours = working_hours.for_weekday(day.weekday())
        if hours is None:
            return None
        latest_start = max(latest_start, hours[0])
        earliest_end = min(earliest_end, hours[1])

    if latest_start >= earliest_end:
        return None
    return latest_start, earliest_end


class MeetingScheduler:
    """
    Booking links for one calendar owner. The events list is shared by
    reference, so schedulers built over the same list see each other's
    bookings, and the same list can feed the task scheduler.
    """
    def __init__(self, user_schedule: UserSchedule, events: Optional[List[Event]] = None,
                 stride_minutes: int = Config.MEETING_SLOT_STRIDE_MINUTES,
                 clock: Optional[Callable[[], datetime]] = None,
                 on_booked: Optional[BookedCallback] = None,
                 on_cancelled: Optional[CancelledCallback] = None):
        validate_user_schedule(user_schedule)
        validate_positive("Meeting slot stride", stride_minutes)

        self.user_schedule = user_schedule
        self.events: List[Event] = events if events is not None else []
        self.stride_minutes = stride_minutes
        self.clock = clock or (lambda: local_now(user_schedule.timezone))
        self.on_booked = on_booked
        self.on_cancelled = on_cancelled

        self.booking_links: Dict[str, BookingLink] = {}
        self.meetings: Dict[str, Meeting] = {}

# ================================
# BOOKING LINKS
# ================================

    def create_booking_link(self, name: str, description: Optional[str] = None, duration: int = 60,
                            buffer_before: int = 15, buffer_after: int = 15,
                            meeting_kind: MeetingKind = MeetingKind.VIDEO, max_meetings_per_day: int = 8,
                            advance_notice_hours: int = 24,
                            settings: Optional[BookingLinkSettings] = None) -> BookingLink:
        validate_positive("Meeting duration", duration)
        validate_positive("Max meetings per day", max_meetings_per_day)
        if buffer_before < 0 or buffer_after < 0 or advance_notice_hours < 0:
            raise InvalidConfigurationError("Buffers and advance notice cannot be negative")

        now = self.clock()
        link = BookingLink(
            name=name,
            description=description,
            slug=generate_slug(name),
            duration=duration,
            buffer_before=buffer_before,
            buffer_after=buffer_after,
            meeting_kind=meeting_kind,
            max_meetings_per_day=max_meetings_per_day,
            advance_notice_hours=advance_notice_hours,
            settings=settings or BookingLinkSettings(),
            created_at=now,
            updated_at=now,
        )
        self.booking_links[link.id] = link
        logger.info(f"Created booking link '{link.name}' ({link.slug}), {link.duration} min")
        return link

    def add_booking_link(self, link: BookingLink) -> BookingLink:
        self.booking_links[link.id] = link
        return link

    def get_booking_link(self, booking_link_id: str) -> BookingLink:
        link = self.booking_links.get(booking_link_id)
        if link is None:
            raise BookingLinkNotFoundError(booking_link_id)
        return link

    def meetings_on(self, day: Union[date, datetime]) -> List[Meeting]:
        target = to_datetime(day).date()
        return [
            m for m in self.meetings.values()
            if m.start.date() == target and m.status in ACTIVE_MEETING_STATUSES
        ]

# ================================
# AVAILABILITY
# ================================

    def available_slots(self, booking_link_id: str, day: Union[date, datetime]) -> List[AvailabilitySlot]:
        """
        Bookable starts for the link on `day`, best first. The whole day is
        empty when it falls inside the advance-notice window or the daily cap
        is already reached.
        """
        link = self.booking_links.get(booking_link_id)
        if link is None or not link.is_active:
            return []

        day_start = start_of_day(to_datetime(day))
        if day_start < self.clock() + timedelta(hours=link.advance_notice_hours):
            return []

        if len(self.meetings_on(day_start)) >= link.max_meetings_per_day:
            return []

        hours = self.user_schedule.working_hours.for_weekday(day_start.weekday())
        if hours is None:
            return []

        slots = []
        for start, end in self._candidates(day_start, hours, link.duration):
            if self._conflicts(*widen(start, end, link.buffer_before, link.buffer_after)):
                continue
            score = calculate_meeting_slot_score(start)
            slots.append(AvailabilitySlot(start=start, end=end, score=score,
                                          is_optimal=is_optimal_meeting_score(score)))

        slots.sort(key=lambda s: (-s.score, s.start))
        return slots

    def _candidates(self, day: datetime, hours: Tuple[float, float], duration: int) -> Iterator[Tuple[datetime, datetime]]:
        """Starts at stride intervals from the window start, while the meeting still fits."""
        window_start, window_end = at_hour(day, hours[0]), at_hour(day, hours[1])
        length = timedelta(minutes=duration)
        stride = timedelta(minutes=self.stride_minutes)
        current = window_start
        while current + length <= window_end:
            yield current, current + length
            current += stride

    def _conflicts(self, start: datetime, end: datetime, extra_events: Sequence[Event] = ()) -> List[str]:
        return [
            e.id for e in list(self.events) + list(extra_events)
            if e.busy and intervals_overlap(start, end, e.start, e.end)
        ]

# ================================
# BOOKING
# ================================

    def book(self, booking_link_id: str, slot_start: datetime, attendee: Attendee) -> Meeting:
        """
        Book `slot_start` if it is still offered. Availability is recomputed
        here; a slot taken since the caller looked raises a retryable
        BookingConflictError and nothing is booked in its place.
        """
        link = self.get_booking_link(booking_link_id)

        available = self.available_slots(booking_link_id, slot_start)
        if not any(slot.start == slot_start for slot in available):
            logger.warning(f"Booking conflict on link {link.slug} at {slot_start}")
            raise BookingConflictError(
                f"Selected time slot {slot_start.strftime('%Y-%m-%d %H:%M')} is no longer available",
                booking_link_id=booking_link_id,
                slot_start=slot_start,
            )

        slot_end = slot_start + timedelta(minutes=link.duration)
        status = MeetingStatus.SCHEDULED if link.settings.require_confirmation else MeetingStatus.CONFIRMED
        meeting = Meeting(
            booking_link_id=link.id,
            title=f"{link.name} with {attendee.name}",
            attendee_name=attendee.name,
            attendee_email=attendee.email,
            start=slot_start,
            end=slot_end,
            status=status,
            notes=attendee.notes,
            created_at=self.clock(),
        )
        meeting.meeting_link = generate_meeting_link(link.meeting_kind, meeting.id)

        new_events = self._materialize(meeting, link)
        self.events.extend(new_events)
        meeting.event_ids = [e.id for e in new_events]
        self.meetings[meeting.id] = meeting

        logger.info(f"Booked '{meeting.title}' {slot_start.strftime('%a %Y-%m-%d %H:%M')} ({status.value})")
        if self.on_booked is not None:
            self.on_booked(meeting, new_events)
        return meeting

    def _materialize(self, meeting: Meeting, link: BookingLink) -> List[Event]:
        events = [Event(id=f"meeting-{meeting.id}", title=meeting.title, start=meeting.start, end=meeting.end,
                        source=EventSource.BOOKING)]
        if link.buffer_before > 0:
            events.append(Event(
                id=f"buffer-before-{meeting.id}",
                title=f"Buffer before {meeting.title}",
                start=meeting.start - timedelta(minutes=link.buffer_before),
                end=meeting.start,
                source=EventSource.BOOKING,
            ))
        if link.buffer_after > 0:
            events.append(Event(
                id=f"buffer-after-{meeting.id}",
                title=f"Buffer after {meeting.title}",
                start=meeting.end,
                end=meeting.end + timedelta(minutes=link.buffer_after),
                source=EventSource.BOOKING,
            ))
        return events

    def cancel_meeting(self, meeting_id: str) -> Meeting:
        meeting = self.meetings.get(meeting_id)
        if meeting is None:
            raise MeetingNotFoundError(meeting_id)

        meeting.status = MeetingStatus.CANCELLED
        released = set(meeting.event_ids)
        self.events[:] = [e for e in self.events if e.id not in released]
        logger.info(f"Cancelled '{meeting.title}', released {len(released)} events")

        if self.on_cancelled is not None:
            self.on_cancelled(meeting)
        return meeting

# ================================
# MULTI-PARTICIPANT SEARCH
# ================================

    def find_optimal_meeting_times(self, duration: int,
                                   participants: Sequence[Union[Participant, WorkingHours]],
                                   preferred_time_ranges: Optional[Sequence[TimeRange]] = None,
                                   max_suggestions: int = 5, start_date: Optional[Union[date, datetime]] = None,
                                   horizon_days: int = Config.MEETING_SEARCH_DAYS,
                                   busy_events: Sequence[Event] = ()) -> List[AvailabilitySlot]:
        validate_positive("Meeting duration", duration)
        validate_positive("Search horizon", horizon_days)

        now = self.clock()
        start = to_datetime(start_date) if start_date is not None else now
        schedules = [getattr(p, "working_hours", p) for p in participants]

        suggestions = []
        for day in iterate_days(start, horizon_days):
            common = find_common_working_hours(schedules, day)
            if common is None:
                continue
            for slot_start, slot_end in self._candidates(day, common, duration):
                if slot_start < now or self._conflicts(slot_start, slot_end, busy_events):
                    continue
                score = calculate_meeting_slot_score(slot_start, preferred_time_ranges)
                suggestions.append(AvailabilitySlot(start=slot_start, end=slot_end, score=score,
                                                    is_optimal=is_optimal_meeting_score(score)))

        suggestions.sort(key=lambda s: (-s.score, s.start))
        logger.debug(f"Found {len(suggestions)} common slots for {len(schedules)} participants")
        return suggestions[:max_suggestions]


def generate_meeting_link(kind: MeetingKind, meeting_id: str) -> Optional[str]:
    if kind == MeetingKind.VIDEO:
        return f"https://meet.example.com/room/{meeting_id}"
    if kind == MeetingKind.PHONE:
        return "tel:pending"
    return None
