"""
Schedule API endpoints: register working hours, load the working set and
run optimization passes.
"""

from fastapi import APIRouter, Depends

from ..models import OptimizationResult, UserSchedule
from ..scheduling import HappinessScheduler
from ..schemas import SchedulePreviewRequest, WorkingSetSummary, WorkingSetUpdate
from ..services.scheduler_service import SchedulerService, get_scheduler_service

router = APIRouter()


@router.put("/users/{user_id}/schedule", response_model=WorkingSetSummary)
async def register_schedule(
    user_id: str,
    user_schedule: UserSchedule,
    service: SchedulerService = Depends(get_scheduler_service),
):
    """Register or replace a user's working hours and preferences."""
    engines = service.register_user(user_id, user_schedule)
    return WorkingSetSummary(
        user_id=user_id,
        task_count=len(engines.optimizer.tasks),
        event_count=len(engines.optimizer.events),
    )


@router.put("/users/{user_id}/state", response_model=WorkingSetSummary)
async def update_state(
    user_id: str,
    working_set: WorkingSetUpdate,
    service: SchedulerService = Depends(get_scheduler_service),
):
    engines = service.update_state(user_id, working_set.tasks, working_set.events)
    return WorkingSetSummary(
        user_id=user_id,
        task_count=len(engines.optimizer.tasks),
        event_count=len(engines.optimizer.events),
    )


@router.post("/users/{user_id}/optimize", response_model=OptimizationResult)
async def optimize(
    user_id: str,
    service: SchedulerService = Depends(get_scheduler_service),
):
    return service.optimize(user_id)


@router.post("/schedule/preview", response_model=OptimizationResult)
async def preview_schedule(request: SchedulePreviewRequest):
    """One-off optimization that touches no stored state."""
    scheduler = HappinessScheduler(request.user_schedule)
    return scheduler.optimize(request.tasks, request.events, now=request.now)
