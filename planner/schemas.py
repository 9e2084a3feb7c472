from datetime import date, datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from .models import (
    Attendee, BookingLinkSettings, Disruption, DisruptionPayload, DisruptionPriority, Event, MeetingKind,
    OptimizationResult, OptimizerState, Participant, Task, UserSchedule
)

# ----------------- Schedule Schemas ---------------------

class WorkingSetUpdate(BaseModel):
    tasks: List[Task] = Field(default_factory=list)
    events: List[Event] = Field(default_factory=list)

class SchedulePreviewRequest(BaseModel):
    user_schedule: UserSchedule
    tasks: List[Task] = Field(default_factory=list)
    events: List[Event] = Field(default_factory=list)
    now: Optional[datetime] = None

class WorkingSetSummary(BaseModel):
    user_id: str
    task_count: int
    event_count: int

# ----------------- Disruption Schemas ---------------------

class DisruptionCreate(BaseModel):
    payload: DisruptionPayload
    priority: DisruptionPriority = DisruptionPriority.MEDIUM

class DisruptionOut(BaseModel):
    disruption: Disruption
    result: Optional[OptimizationResult] = None

class OptimizerStatusOut(BaseModel):
    state: OptimizerState
    queue_length: int
    task_count: int
    completed_task_ids: List[str]

class ClearQueueOut(BaseModel):
    discarded: List[Disruption]
    state: OptimizerState

# ----------------- Meeting Schemas ---------------------

class BookingLinkCreate(BaseModel):
    name: str
    description: Optional[str] = None
    duration: int = 60
    buffer_before: int = 15
    buffer_after: int = 15
    meeting_kind: MeetingKind = MeetingKind.VIDEO
    max_meetings_per_day: int = 8
    advance_notice_hours: int = 24
    settings: Optional[BookingLinkSettings] = None

class BookingRequest(BaseModel):
    slot_start: datetime
    attendee: Attendee

class TimeRangeIn(BaseModel):
    start: str  # "HH:MM"
    end: str

class OptimalTimesRequest(BaseModel):
    user_id: str
    duration: int
    participants: List[Participant]
    preferred_time_ranges: Optional[List[TimeRangeIn]] = None
    max_suggestions: int = 5
    start_date: Optional[date] = None
    horizon_days: Optional[int] = None
    busy_events: List[Event] = Field(default_factory=list)

    def time_ranges(self) -> Optional[List[Tuple[str, str]]]:
        if not self.preferred_time_ranges:
            return None
        return [(r.start, r.end) for r in self.preferred_time_ranges]
