"""
Real-time re-optimization.

Disruptions (a task finishing, a missed task, an urgent arrival, a new
meeting, an overrun) go into a priority queue drained by a single consumer.
Each one is applied to a copy of the working set, the schedule is rebuilt,
and only then is the copy committed and the result published.
"""

import asyncio
import copy
import itertools
import logging
from collections import deque
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Union

from ..exceptions import DuplicateTaskError, TaskNotFoundError
from ..models import (
    Disruption, DisruptionPriority, DisruptionStatus, Event, MeetingAdded, OptimizationResult, OptimizerState,
    Priority, Task, TaskCompleted, TaskMissed, TaskOverrun, TaskState, UrgentTaskAdded, generate_id
)
from ..scheduling.core.constants import DISRUPTION_RANK
from ..scheduling.core.scheduler import HappinessScheduler
from ..scheduling.scoring.priority_scoring import escalate_priority

logger = logging.getLogger(__name__)

ResultCallback = Callable[[OptimizationResult], None]


class OptimizerStatus(NamedTuple):
    state: OptimizerState
    queue_length: int


class Subscription:
    """
    A registered result sink. With a callback, results are pushed to it;
    without one they collect in an inbox for `receive()`.
    """
    def __init__(self, optimizer: "RealTimeOptimizer", callback: Optional[ResultCallback] = None):
        self.id = generate_id()
        self.callback = callback
        self.inbox = deque()
        self._optimizer = optimizer

    def deliver(self, result: OptimizationResult):
        if self.callback is not None:
            self.callback(result)
        else:
            self.inbox.append(result)

    def receive(self) -> Optional[OptimizationResult]:
        """Oldest undelivered result, or None when the inbox is empty."""
        return self.inbox.popleft() if self.inbox else None

    def unsubscribe(self):
        self._optimizer.unsubscribe(self)


class RealTimeOptimizer:
    def __init__(self, scheduler: HappinessScheduler, tasks: Sequence[Task] = (), events: Sequence[Event] = (),
                 clock: Optional[Callable[[], datetime]] = None):
        self.scheduler = scheduler
        self.clock = clock or scheduler.clock

        self.tasks: List[Task] = copy.deepcopy(list(tasks))
        self.events: List[Event] = copy.deepcopy(list(events))
        self.completed: Dict[str, Task] = {}

        self.state = OptimizerState.IDLE
        self.latest_result: Optional[OptimizationResult] = None
        self.history: List[Disruption] = []

        self._queue: asyncio.PriorityQueue = asyncio.PriorityQueue()
        self._sequence = itertools.count()
        self._worker: Optional[asyncio.Task] = None
        self._draining_inline = False
        self._subscriptions: List[Subscription] = []

# ================================
# QUEUE
# ================================

    def submit(self, disruption: Union[Disruption, TaskCompleted, TaskMissed, UrgentTaskAdded, MeetingAdded, TaskOverrun],
               priority: DisruptionPriority = DisruptionPriority.MEDIUM) -> Disruption:
        """
        Enqueue a disruption. When idle this also starts draining: inside a
        running event loop a single worker task is scheduled, otherwise the
        queue is drained before returning. While optimizing it only enqueues.
        """
        if not isinstance(disruption, Disruption):
            disruption = Disruption(payload=disruption, priority=priority)

        disruption.sequence = next(self._sequence)
        disruption.submitted_at = self.clock()
        disruption.status = DisruptionStatus.QUEUED
        disruption.error = None
        self._queue.put_nowait((DISRUPTION_RANK[disruption.priority], disruption.sequence, disruption))
        logger.info(f"Queued {disruption.kind} disruption {disruption.id} "
                    f"(priority={disruption.priority.value}, pending={self._queue.qsize()})")

        if self.state == OptimizerState.IDLE and not self._draining_inline:
            self.state = OptimizerState.OPTIMIZING
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None

            if loop is not None:
                self._worker = loop.create_task(self._drain())
            else:
                self._drain_inline()

        return disruption

    async def _drain(self):
        worker = asyncio.current_task()
        try:
            while not self._queue.empty():
                self._process_next()
                # Let producers in this loop enqueue before the next pick
                await asyncio.sleep(0)
        finally:
            if self._worker is worker:
                self._worker = None
                self.state = OptimizerState.IDLE

    def _drain_inline(self):
        self._draining_inline = True
        try:
            while not self._queue.empty():
                self._process_next()
        finally:
            self._draining_inline = False
            self.state = OptimizerState.IDLE

    def _process_next(self):
        _, _, disruption = self._queue.get_nowait()
        try:
            self._process(disruption)
        finally:
            self._queue.task_done()

    async def join(self):
        """Wait until the current worker has drained the queue."""
        while self._worker is not None and not self._worker.done():
            await asyncio.wait({self._worker})

    def clear_queue(self) -> List[Disruption]:
        """
        Emergency stop: drop everything still pending and go idle at once.
        Disruptions already applied stay applied.
        """
        discarded = []
        while not self._queue.empty():
            _, _, disruption = self._queue.get_nowait()
            disruption.status = DisruptionStatus.DISCARDED
            self._queue.task_done()
            discarded.append(disruption)

        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
        self._worker = None
        self.state = OptimizerState.IDLE

        logger.warning(f"Cleared disruption queue, {len(discarded)} pending disruptions discarded")
        return discarded

    def status(self) -> OptimizerStatus:
        return OptimizerStatus(self.state, self._queue.qsize())

# ================================
# DISRUPTION HANDLING
# ================================

    def _process(self, disruption: Disruption) -> Optional[OptimizationResult]:
        disruption.status = DisruptionStatus.PROCESSING
        self.history.append(disruption)

        tasks = copy.deepcopy(self.tasks)
        events = copy.deepcopy(self.events)
        completed = dict(self.completed)

        try:
            self._apply(disruption, tasks, events, completed)
            result = self.scheduler.optimize(tasks, events)
        except Exception as e:
            disruption.status = DisruptionStatus.FAILED
            disruption.error = str(e)
            logger.exception(f"Failed to apply {disruption.kind} disruption {disruption.id}, "
                             f"keeping the previous schedule")
            return None

        self.tasks, self.events, self.completed = tasks, events, completed
        disruption.status = DisruptionStatus.APPLIED
        self.latest_result = result
        logger.info(f"Applied {disruption.kind} disruption {disruption.id}: "
                    f"{len(result.schedule)} pieces scheduled, {len(result.unscheduled_tasks)} unscheduled")
        self.publish(result)
        return result

    def _apply(self, disruption: Disruption, tasks: List[Task], events: List[Event], completed: Dict[str, Task]):
        payload = disruption.payload

        if isinstance(payload, TaskCompleted):
            task = _find_task(tasks, payload.task_id)
            if task is None:
                logger.info(f"Task {payload.task_id} already completed or removed, nothing to do")
                return
            task.state = TaskState.DONE
            completed[task.id] = task
            tasks.remove(task)

        elif isinstance(payload, TaskMissed):
            task = _require_task(tasks, payload.task_id)
            previous = task.priority
            task.priority = escalate_priority(task.priority)
            task.scheduled_time = None
            task.end_time = None
            logger.info(f"Task '{task.name}' missed, priority {previous.value} -> {task.priority.value}")

        elif isinstance(payload, UrgentTaskAdded):
            if _find_task(tasks, payload.task.id) is not None:
                raise DuplicateTaskError(payload.task.id)
            task = payload.task.model_copy(deep=True)
            task.priority = Priority.ASAP
            tasks.append(task)

        elif isinstance(payload, MeetingAdded):
            event = payload.event.model_copy(deep=True)
            events[:] = [e for e in events if e.id != event.id]
            events.append(event)

        elif isinstance(payload, TaskOverrun):
            task = _require_task(tasks, payload.task_id)
            task.estimated_minutes += payload.additional_minutes

    def optimize(self) -> OptimizationResult:
        """Full pass over the current working set, published to subscribers."""
        tasks = copy.deepcopy(self.tasks)
        result = self.scheduler.optimize(tasks, self.events)
        self.tasks = tasks
        self.latest_result = result
        self.publish(result)
        return result

    def update_state(self, tasks: Sequence[Task], events: Sequence[Event]):
        """Replace the working set wholesale, e.g. after the host reloads from storage."""
        self.tasks = copy.deepcopy(list(tasks))
        self.events = copy.deepcopy(list(events))

    def remove_events(self, event_ids: Sequence[str]):
        ids = set(event_ids)
        self.events = [e for e in self.events if e.id not in ids]

# ================================
# SUBSCRIBERS
# ================================

    def subscribe(self, callback: Optional[ResultCallback] = None) -> Subscription:
        subscription = Subscription(self, callback)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription):
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, result: OptimizationResult) -> List[Subscription]:
        """Fire-and-forget delivery in subscription order; a failing sink does not stop the rest."""
        delivered = []
        for subscription in list(self._subscriptions):
            try:
                subscription.deliver(result)
            except Exception:
                logger.exception(f"Subscriber {subscription.id} failed to handle optimization result")
                continue
            delivered.append(subscription)
        return delivered


def _find_task(tasks: List[Task], task_id: str) -> Optional[Task]:
    return next((t for t in tasks if t.id == task_id), None)


def _require_task(tasks: List[Task], task_id: str) -> Task:
    task = _find_task(tasks, task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return task
