"""
Error types raised by the scheduling engine.

Unschedulable tasks are never raised; they are reported in the optimization
result. Everything here is either fatal to the triggering call (invalid
configuration) or recoverable by the caller (booking conflicts, bad
disruption payloads).
"""


class SchedulerError(Exception):
    """Base class for all engine errors."""

    retryable = False


class InvalidConfigurationError(SchedulerError):
    """Working hours, task or engine settings that cannot be scheduled against."""


class BookingConflictError(SchedulerError):
    """
    The requested meeting slot was taken between the availability check and
    the booking. Callers should re-query availability and pick again.
    """

    retryable = True

    def __init__(self, message: str, booking_link_id: str = None, slot_start=None):
        super().__init__(message)
        self.booking_link_id = booking_link_id
        self.slot_start = slot_start


class BookingLinkNotFoundError(SchedulerError):
    def __init__(self, booking_link_id: str):
        super().__init__(f"Booking link {booking_link_id} not found")
        self.booking_link_id = booking_link_id


class MeetingNotFoundError(SchedulerError):
    def __init__(self, meeting_id: str):
        super().__init__(f"Meeting {meeting_id} not found")
        self.meeting_id = meeting_id


class TaskNotFoundError(SchedulerError):
    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} is not in the active working set")
        self.task_id = task_id


class DuplicateTaskError(SchedulerError):
    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} is already in the active working set")
        self.task_id = task_id
