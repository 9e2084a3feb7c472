import enum
import uuid
from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional, Set, Tuple, Union

from pydantic import BaseModel, Field

from .config import Config


def generate_id() -> str:
    return uuid.uuid4().hex


# ----------------- Enums ---------------------

class Priority(str, enum.Enum):
    ASAP = "ASAP"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

class TaskState(str, enum.Enum):
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

class TaskType(str, enum.Enum):
    # Reporting only, never consulted by placement
    MARKING = "marking"
    LESSON_PREP = "lesson_prep"
    ADMIN = "admin"
    COMMUNICATION = "communication"
    PASTORAL = "pastoral"
    EXTRACURRICULAR = "extracurricular"
    PROFESSIONAL_DEVELOPMENT = "professional_development"
    CONFERENCE = "conference"
    GENERAL = "general"

class PreferredTimeOfDay(str, enum.Enum):
    MORNING = "morning"      # 9:00 AM - 12:00 PM
    AFTERNOON = "afternoon"  # 1:00 PM - 5:00 PM
    EVENING = "evening"      # 5:00 PM - 9:00 PM
    ANYTIME = "anytime"

class EventSource(str, enum.Enum):
    HARD_BLOCK = "hard_block"
    BOOKING = "booking"
    EXTERNAL = "external"
    TASK_CHUNK = "task_chunk"

class SlotType(str, enum.Enum):
    WORK = "work"
    BREAK = "break"
    MEETING = "meeting"
    FOCUS = "focus"

class Weekday(str, enum.Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

# Indexed by datetime.weekday()
WEEKDAYS = list(Weekday)

class DisruptionPriority(str, enum.Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class DisruptionStatus(str, enum.Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    APPLIED = "applied"
    FAILED = "failed"
    DISCARDED = "discarded"

class OptimizerState(str, enum.Enum):
    IDLE = "idle"
    OPTIMIZING = "optimizing"

class MeetingKind(str, enum.Enum):
    VIDEO = "video"
    PHONE = "phone"
    IN_PERSON = "in-person"

class MeetingStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# ----------------- Calendar configuration ---------------------

class BreakTime(BaseModel):
    name: str
    start: str  # "HH:MM"
    end: str

class WorkingHours(BaseModel):
    """Working window per weekday as (start_hour, end_hour); None means a day off."""
    monday: Optional[Tuple[float, float]] = None
    tuesday: Optional[Tuple[float, float]] = None
    wednesday: Optional[Tuple[float, float]] = None
    thursday: Optional[Tuple[float, float]] = None
    friday: Optional[Tuple[float, float]] = None
    saturday: Optional[Tuple[float, float]] = None
    sunday: Optional[Tuple[float, float]] = None
    breaks: List[BreakTime] = Field(default_factory=list)

    def for_weekday(self, weekday: int) -> Optional[Tuple[float, float]]:
        return getattr(self, WEEKDAYS[weekday].value)

    def working_days(self) -> List[Weekday]:
        return [day for day in WEEKDAYS if getattr(self, day.value) is not None]


def default_preferred_task_times() -> Dict[Priority, PreferredTimeOfDay]:
    return {
        Priority.ASAP: PreferredTimeOfDay.MORNING,
        Priority.HIGH: PreferredTimeOfDay.MORNING,
        Priority.MEDIUM: PreferredTimeOfDay.AFTERNOON,
        Priority.LOW: PreferredTimeOfDay.ANYTIME,
    }

class UserSchedule(BaseModel):
    working_hours: WorkingHours
    buffer_between_tasks: int = Config.DEFAULT_BUFFER_MINUTES
    preferred_task_times: Dict[Priority, PreferredTimeOfDay] = Field(default_factory=default_preferred_task_times)
    timezone: str = Config.DEFAULT_TIMEZONE

    def preference_for(self, priority: Priority) -> PreferredTimeOfDay:
        return self.preferred_task_times.get(priority, PreferredTimeOfDay.ANYTIME)


# ----------------- Tasks and events ---------------------

class Task(BaseModel):
    id: str = Field(default_factory=generate_id)
    name: str
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    estimated_minutes: int = Field(gt=0)
    deadline: Optional[datetime] = None
    is_flexible: bool = True
    chunkable: bool = False
    min_chunk_minutes: int = Field(default=30, gt=0)
    max_chunk_minutes: Optional[int] = Field(default=None, gt=0)
    dependencies: Set[str] = Field(default_factory=set)
    type: TaskType = TaskType.GENERAL
    state: TaskState = TaskState.TODO
    scheduled_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    score: Optional[float] = None
    happiness_contribution: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class ScheduledTask(Task):
    """A committed placement. Chunks share parent_task_id with their parent."""
    scheduled_time: datetime
    end_time: datetime
    score: float
    happiness_contribution: float
    parent_task_id: str
    chunk_index: int = 0
    chunk_count: int = 1

    @property
    def is_chunk(self) -> bool:
        return self.chunk_count > 1

class Event(BaseModel):
    id: str = Field(default_factory=generate_id)
    title: str = "Busy"
    start: datetime
    end: datetime
    source: EventSource = EventSource.HARD_BLOCK
    busy: bool = True
    external_id: Optional[str] = None
    provider: Optional[str] = None


# ----------------- Optimization output ---------------------

class TaskScore(BaseModel):
    task: Task
    urgency: float
    priority_weight: float
    duration_weight: float
    combined: float

class UnscheduledTask(BaseModel):
    task_id: str
    name: str
    reason: str

class OptimizationResult(BaseModel):
    schedule: List[ScheduledTask] = Field(default_factory=list)
    unscheduled_tasks: List[str] = Field(default_factory=list)
    unscheduled: List[UnscheduledTask] = Field(default_factory=list)
    happiness_score: float = 0.0
    confidence: float = 1.0
    warnings: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    generated_at: Optional[datetime] = None


# ----------------- Disruptions ---------------------

class TaskCompleted(BaseModel):
    kind: Literal["task-completed"] = "task-completed"
    task_id: str

class TaskMissed(BaseModel):
    kind: Literal["task-missed"] = "task-missed"
    task_id: str

class UrgentTaskAdded(BaseModel):
    kind: Literal["urgent-task-added"] = "urgent-task-added"
    task: Task

class MeetingAdded(BaseModel):
    kind: Literal["meeting-added"] = "meeting-added"
    event: Event

class TaskOverrun(BaseModel):
    kind: Literal["task-overrun"] = "task-overrun"
    task_id: str
    additional_minutes: int = Field(gt=0)

DisruptionPayload = Annotated[
    Union[TaskCompleted, TaskMissed, UrgentTaskAdded, MeetingAdded, TaskOverrun],
    Field(discriminator="kind"),
]

class Disruption(BaseModel):
    id: str = Field(default_factory=generate_id)
    payload: DisruptionPayload
    priority: DisruptionPriority = DisruptionPriority.MEDIUM
    submitted_at: Optional[datetime] = None
    sequence: int = 0
    status: DisruptionStatus = DisruptionStatus.QUEUED
    error: Optional[str] = None

    @property
    def kind(self) -> str:
        return self.payload.kind


# ----------------- Meetings ---------------------

class BookingLinkSettings(BaseModel):
    require_confirmation: bool = False
    allow_rescheduling: bool = True
    send_reminders: bool = True
    collect_attendee_info: bool = True

class BookingLink(BaseModel):
    id: str = Field(default_factory=generate_id)
    name: str
    description: Optional[str] = None
    slug: str
    duration: int = Field(default=60, gt=0)
    buffer_before: int = Field(default=15, ge=0)
    buffer_after: int = Field(default=15, ge=0)
    meeting_kind: MeetingKind = MeetingKind.VIDEO
    max_meetings_per_day: int = Field(default=8, gt=0)
    advance_notice_hours: int = Field(default=24, ge=0)
    is_active: bool = True
    settings: BookingLinkSettings = Field(default_factory=BookingLinkSettings)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class Attendee(BaseModel):
    name: str
    email: str
    notes: Optional[str] = None

class Meeting(BaseModel):
    id: str = Field(default_factory=generate_id)
    booking_link_id: str
    title: str
    attendee_name: str
    attendee_email: str
    start: datetime
    end: datetime
    status: MeetingStatus = MeetingStatus.SCHEDULED
    meeting_link: Optional[str] = None
    notes: Optional[str] = None
    event_ids: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None

class AvailabilitySlot(BaseModel):
    start: datetime
    end: datetime
    score: float
    is_optimal: bool
    conflicts: List[str] = Field(default_factory=list)
    slot_type: SlotType = SlotType.MEETING

class Participant(BaseModel):
    """Someone whose working hours constrain a multi-party meeting search."""
    id: Optional[str] = None
    name: Optional[str] = None
    working_hours: WorkingHours
