"""
Main scheduler classes that orchestrate scoring, slot generation and placement.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ...config import Config
from ...models import (
    Event, OptimizationResult, PreferredTimeOfDay, ScheduledTask, Task, TaskScore, TaskState, TaskType,
    UnscheduledTask, UserSchedule
)
from ..algorithms.chunking import plan_chunks
from ..algorithms.dependencies import order_by_dependencies
from ..constraints.time_constraints import busy_intervals, preference_filter
from ..constraints.validation import validate_positive, validate_tasks, validate_user_schedule
from ..scoring.schedule_metrics import (
    calculate_confidence, calculate_happiness_contribution, calculate_overall_happiness,
    calculate_placement_score, generate_recommendations, identify_warnings
)
from ..scoring.task_scoring import score_tasks
from ..utils.slot_utils import covers_interval, find_contiguous_run, reserve_interval, widen
from ..utils.time_utils import at_hour, local_now, minutes_between
from .slot_generator import SlotSequence
from .time_slot import TimeSlot

logger = logging.getLogger(__name__)


class PlacementOutcome:
    def __init__(self, scheduled: List[ScheduledTask], unscheduled: List[UnscheduledTask]):
        self.scheduled = scheduled
        self.unscheduled = unscheduled

    @property
    def placed_task_ids(self) -> Set[str]:
        return {p.parent_task_id for p in self.scheduled}

    def __repr__(self):
        return f"PlacementOutcome(scheduled={len(self.scheduled)}, unscheduled={len(self.unscheduled)})"


# ================================
# PLACEMENT ENGINE
# ================================

class PlacementEngine:
    """
    Greedy single-pass placement. Tasks are taken in score order, each one
    goes into the earliest contiguous free run that honours its preferred time
    of day (falling back to the earliest run at all), and the free slot list
    is cut around every reservation plus the buffer. No backtracking, so the
    same inputs always give the same schedule.
    """
    def __init__(self, user_schedule: UserSchedule, granularity_minutes: int = Config.SLOT_GRANULARITY_MINUTES,
                 default_max_chunk_minutes: int = Config.DEFAULT_MAX_CHUNK_MINUTES):
        self.user_schedule = user_schedule
        self.granularity_minutes = granularity_minutes
        self.default_max_chunk_minutes = default_max_chunk_minutes
        self.buffer_minutes = user_schedule.buffer_between_tasks

        self.slots: List[TimeSlot] = []
        self.scheduled: List[ScheduledTask] = []
        self.unscheduled: List[UnscheduledTask] = []
        self._placed_end: Dict[str, datetime] = {}
        self._last_type_by_day: Dict = {}

    def place(self, scored_tasks: Sequence[TaskScore], slots: Iterable[TimeSlot],
              events: Iterable[Event] = ()) -> PlacementOutcome:
        self.slots = sorted(slots)
        self.scheduled = []
        self.unscheduled = []
        self._placed_end = {}
        self._last_type_by_day = {}

        self._reserve_events(events)

        pinned = [s for s in scored_tasks if not s.task.is_flexible and s.task.scheduled_time is not None]
        flexible = [s for s in scored_tasks if s.task.is_flexible or s.task.scheduled_time is None]

        for scored in pinned:
            self._place_pinned(scored)

        known_ids = {s.task.id for s in scored_tasks}
        ordered, cycles = order_by_dependencies(flexible)
        for scored in flexible:
            if scored.task.id in cycles:
                self._mark_unscheduled(
                    scored.task, f"Circular dependency between tasks: {', '.join(cycles[scored.task.id])}"
                )

        for scored in ordered:
            ready, not_before = self._dependency_ready_time(scored.task, known_ids)
            if not ready:
                continue
            self._place_flexible(scored, not_before)

        self.scheduled.sort(key=lambda p: (p.scheduled_time, p.chunk_index))
        logger.info(f"Placed {len({p.parent_task_id for p in self.scheduled})} of {len(scored_tasks)} tasks "
                    f"({len(self.scheduled)} pieces), {len(self.unscheduled)} unscheduled")
        return PlacementOutcome(self.scheduled, self.unscheduled)

# ================================
# SETUP
# ================================

    def _reserve_events(self, events: Iterable[Event]):
        """Busy events block their own time plus the buffer on either side."""
        for start, end in busy_intervals(events):
            reserve_interval(self.slots, *widen(start, end, self.buffer_minutes))

    def _longest_working_day(self) -> int:
        working_hours = self.user_schedule.working_hours
        reference = datetime(2000, 1, 1)
        longest = 0
        for day in working_hours.working_days():
            start_hour, end_hour = getattr(working_hours, day.value)
            longest = max(longest, minutes_between(at_hour(reference, start_hour), at_hour(reference, end_hour)))
        return longest

# ================================
# DEPENDENCIES
# ================================

    def _dependency_ready_time(self, task: Task, known_ids: Set[str]) -> Tuple[bool, Optional[datetime]]:
        """
        (ready, not_before): ready is False once the task has been marked
        unscheduled because a dependency did not fit; not_before is the
        latest dependency end, None when unconstrained.
        """
        not_before = None
        unscheduled_ids = {u.task_id for u in self.unscheduled}
        for dependency_id in sorted(task.dependencies):
            if dependency_id not in known_ids:
                # Completed or removed, either way satisfied
                continue
            if dependency_id in unscheduled_ids or dependency_id not in self._placed_end:
                self._mark_unscheduled(task, f"Depends on unscheduled task {dependency_id}")
                return False, None
            end = self._placed_end[dependency_id]
            if not_before is None or end > not_before:
                not_before = end
        return True, not_before

# ================================
# CORE PLACEMENT LOGIC
# ================================

    def _place_pinned(self, scored: TaskScore):
        """Inflexible tasks keep their time or are dropped; they are never moved."""
        task = scored.task
        start = task.scheduled_time
        end = start + timedelta(minutes=task.estimated_minutes)

        if not covers_interval(self.slots, start, end):
            self._mark_unscheduled(task, f"Pinned time {start.strftime('%Y-%m-%d %H:%M')} is no longer available")
            return

        used = [s for s in self.slots if s.overlaps(start, end)]
        preference = self.user_schedule.preference_for(task.priority)
        self._commit_piece(scored, preference, start, end, used, index=0, count=1)

    def _place_flexible(self, scored: TaskScore, not_before: Optional[datetime]):
        task = scored.task
        minutes = task.estimated_minutes
        preference = self.user_schedule.preference_for(task.priority)
        chunk_sizes = plan_chunks(task, self.default_max_chunk_minutes)

        if not task.chunkable:
            longest_day = self._longest_working_day()
            if minutes > longest_day:
                self._mark_unscheduled(
                    task,
                    f"Requires {minutes} minutes but the longest working day is {longest_day} minutes "
                    f"and the task is not chunkable",
                )
                return

        # All or nothing: remember the free list so earlier chunks can be undone
        slots_snapshot = list(self.slots)
        scheduled_count = len(self.scheduled)
        context_snapshot = dict(self._last_type_by_day)
        placed_end_snapshot = dict(self._placed_end)

        cursor = not_before
        for index, chunk_minutes in enumerate(chunk_sizes):
            run = self._find_run(chunk_minutes, preference, cursor)
            if run is None:
                self.slots[:] = slots_snapshot
                del self.scheduled[scheduled_count:]
                self._last_type_by_day = context_snapshot
                self._placed_end = placed_end_snapshot
                if len(chunk_sizes) > 1:
                    reason = f"Only {index} of {len(chunk_sizes)} chunks could be placed in the scheduling horizon"
                else:
                    reason = f"No contiguous free window of {minutes} minutes is available in the scheduling horizon"
                self._mark_unscheduled(task, reason)
                return

            start, used = run
            end = start + timedelta(minutes=chunk_minutes)
            self._commit_piece(scored, preference, start, end, used, index=index, count=len(chunk_sizes),
                               minutes=chunk_minutes)
            cursor = end

    def _find_run(self, minutes: int, preference: PreferredTimeOfDay, not_before: Optional[datetime]):
        run = None
        start_filter = preference_filter(preference)
        if start_filter is not None:
            run = find_contiguous_run(self.slots, minutes, not_before, start_filter)
        if run is None:
            run = find_contiguous_run(self.slots, minutes, not_before)
        if run is None:
            return None

        first, last = run
        return self.slots[first].start, self.slots[first:last]

# ================================
# COMMIT & BOOKKEEPING
# ================================

    def _commit_piece(self, scored: TaskScore, preference: PreferredTimeOfDay, start: datetime, end: datetime,
                      used: List[TimeSlot], index: int, count: int, minutes: Optional[int] = None):
        task = scored.task
        day = start.date()
        previous_type: Optional[TaskType] = self._last_type_by_day.get(day)
        context_switch = 1.0 if previous_type in (None, task.type) else 0.5

        piece = build_scheduled_task(
            task,
            start=start,
            end=end,
            score=calculate_placement_score(scored, preference, start, used, context_switch),
            happiness=calculate_happiness_contribution(task, start, end, preference),
            index=index,
            count=count,
            minutes=minutes,
        )

        reserve_interval(self.slots, *widen(start, end, self.buffer_minutes))
        self.scheduled.append(piece)
        self._placed_end[task.id] = max(end, self._placed_end.get(task.id, end))
        self._last_type_by_day[day] = task.type
        logger.debug(f"Placed '{piece.name}' at {start.strftime('%a %H:%M')}-{end.strftime('%H:%M')} "
                     f"(score={piece.score:.3f}, happiness={piece.happiness_contribution:.2f})")

    def _mark_unscheduled(self, task: Task, reason: str):
        logger.warning(f"Could not schedule '{task.name}': {reason}")
        self.unscheduled.append(UnscheduledTask(task_id=task.id, name=task.name, reason=reason))


def build_scheduled_task(task: Task, start: datetime, end: datetime, score: float, happiness: float,
                         index: int = 0, count: int = 1, minutes: Optional[int] = None) -> ScheduledTask:
    data = task.model_dump(exclude={"id", "name", "estimated_minutes", "scheduled_time", "end_time",
                                    "score", "happiness_contribution"})
    if count > 1:
        piece_id = f"{task.id}-chunk-{index + 1}"
        name = f"{task.name} (Part {index + 1}/{count})"
    else:
        piece_id = task.id
        name = task.name

    return ScheduledTask(
        **data,
        id=piece_id,
        name=name,
        estimated_minutes=minutes or task.estimated_minutes,
        scheduled_time=start,
        end_time=end,
        score=score,
        happiness_contribution=happiness,
        parent_task_id=task.id,
        chunk_index=index,
        chunk_count=count,
    )


# ================================
# FULL OPTIMIZATION PASS
# ================================

class HappinessScheduler:
    """
    One optimization pass end to end: validate, score, generate slots, place,
    write the placement back onto the tasks and summarise the result.
    """
    def __init__(self, user_schedule: UserSchedule, granularity_minutes: int = Config.SLOT_GRANULARITY_MINUTES,
                 horizon_days: int = Config.SCHEDULING_HORIZON_DAYS,
                 default_max_chunk_minutes: int = Config.DEFAULT_MAX_CHUNK_MINUTES,
                 clock: Optional[Callable[[], datetime]] = None):
        validate_user_schedule(user_schedule)
        validate_positive("Slot granularity", granularity_minutes)
        validate_positive("Scheduling horizon", horizon_days)
        validate_positive("Default max chunk", default_max_chunk_minutes)

        self.user_schedule = user_schedule
        self.granularity_minutes = granularity_minutes
        self.horizon_days = horizon_days
        self.default_max_chunk_minutes = default_max_chunk_minutes
        self.clock = clock or (lambda: local_now(user_schedule.timezone))

    def optimize(self, tasks: Sequence[Task], events: Sequence[Event] = (), now: Optional[datetime] = None,
                 commit: bool = True) -> OptimizationResult:
        now = now or self.clock()
        active = [t for t in tasks if t.state != TaskState.DONE]
        validate_tasks(active, self.default_max_chunk_minutes)

        scored = score_tasks(active, now)
        slots = SlotSequence(self.user_schedule.working_hours, events, now, self.horizon_days,
                             self.granularity_minutes)
        engine = PlacementEngine(self.user_schedule, self.granularity_minutes, self.default_max_chunk_minutes)
        outcome = engine.place(scored, slots.to_list(), events)

        result = self.summarize(active, outcome, now, events)
        if commit:
            commit_schedule(active, result)
        logger.info(f"Optimization pass: {len(result.schedule)} pieces, happiness={result.happiness_score:.2f}, "
                    f"confidence={result.confidence:.2f}")
        return result

    def summarize(self, tasks: Sequence[Task], outcome: PlacementOutcome, now: datetime,
                  events: Sequence[Event] = ()) -> OptimizationResult:
        placed_ids = outcome.placed_task_ids
        placed = [t for t in tasks if t.id in placed_ids]

        return OptimizationResult(
            schedule=outcome.scheduled,
            unscheduled_tasks=[u.task_id for u in outcome.unscheduled],
            unscheduled=outcome.unscheduled,
            happiness_score=calculate_overall_happiness(outcome.scheduled),
            confidence=calculate_confidence(placed, tasks),
            warnings=identify_warnings(outcome.scheduled, outcome.unscheduled, self.user_schedule.buffer_between_tasks,
                                       list(events)),
            recommendations=generate_recommendations(tasks, outcome.scheduled, outcome.unscheduled),
            generated_at=now,
        )


def commit_schedule(tasks: Iterable[Task], result: OptimizationResult):
    """
    Write each placement back onto its task: first piece start, last piece
    end, mean score and happiness over the pieces. Flexible tasks that did not
    fit lose their previous times.
    """
    pieces_by_task: Dict[str, List[ScheduledTask]] = {}
    for piece in result.schedule:
        pieces_by_task.setdefault(piece.parent_task_id, []).append(piece)

    for task in tasks:
        pieces = pieces_by_task.get(task.id)
        if pieces:
            task.scheduled_time = min(p.scheduled_time for p in pieces)
            task.end_time = max(p.end_time for p in pieces)
            task.score = sum(p.score for p in pieces) / len(pieces)
            task.happiness_contribution = sum(p.happiness_contribution for p in pieces) / len(pieces)
        elif task.is_flexible:
            task.scheduled_time = None
            task.end_time = None
            task.score = None
            task.happiness_contribution = None
