"""
Disruption API endpoints for live re-optimization.
"""

from fastapi import APIRouter, Depends

from ..models import Disruption
from ..schemas import ClearQueueOut, DisruptionCreate, DisruptionOut, OptimizerStatusOut
from ..services.scheduler_service import SchedulerService, get_scheduler_service

router = APIRouter()


@router.post("/users/{user_id}/disruptions", response_model=DisruptionOut)
async def submit_disruption(
    user_id: str,
    disruption_in: DisruptionCreate,
    service: SchedulerService = Depends(get_scheduler_service),
):
    """
    Queue a disruption and wait for the queue to drain. A disruption that
    failed is reported with status "failed" and its error; the previous
    schedule stays in place.
    """
    disruption = Disruption(payload=disruption_in.payload, priority=disruption_in.priority)
    await service.submit_disruption(user_id, disruption)
    optimizer = service.get_engines(user_id).optimizer
    return DisruptionOut(disruption=disruption, result=optimizer.latest_result)


@router.get("/users/{user_id}/optimizer", response_model=OptimizerStatusOut)
async def optimizer_status(
    user_id: str,
    service: SchedulerService = Depends(get_scheduler_service),
):
    optimizer = service.get_engines(user_id).optimizer
    state, queue_length = optimizer.status()
    return OptimizerStatusOut(
        state=state,
        queue_length=queue_length,
        task_count=len(optimizer.tasks),
        completed_task_ids=sorted(optimizer.completed),
    )


@router.delete("/users/{user_id}/disruptions", response_model=ClearQueueOut)
async def clear_disruptions(
    user_id: str,
    service: SchedulerService = Depends(get_scheduler_service),
):
    """Emergency stop: discard pending disruptions."""
    optimizer = service.get_engines(user_id).optimizer
    discarded = optimizer.clear_queue()
    return ClearQueueOut(discarded=discarded, state=optimizer.status().state)
