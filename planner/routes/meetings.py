"""
Meeting API endpoints: booking links, availability, booking and
multi-participant search.
"""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from ..config import Config
from ..models import AvailabilitySlot, BookingLink, Meeting
from ..schemas import BookingLinkCreate, BookingRequest, OptimalTimesRequest
from ..services.scheduler_service import SchedulerService, get_scheduler_service

router = APIRouter()


@router.post("/users/{user_id}/booking-links", response_model=BookingLink)
async def create_booking_link(
    user_id: str,
    link_in: BookingLinkCreate,
    service: SchedulerService = Depends(get_scheduler_service),
):
    engines = service.get_engines(user_id)
    return engines.meetings.create_booking_link(**link_in.model_dump(exclude_none=True))


@router.get("/booking-links/{link_id}/availability", response_model=List[AvailabilitySlot])
async def get_availability(
    link_id: str,
    day: date = Query(..., alias="date", description="Day to list bookable slots for"),
    service: SchedulerService = Depends(get_scheduler_service),
):
    engines = service.find_meeting_engines(booking_link_id=link_id)
    if engines is None:
        raise HTTPException(status_code=404, detail=f"Booking link {link_id} not found")
    return engines.meetings.available_slots(link_id, day)


@router.post("/booking-links/{link_id}/book", response_model=Meeting)
async def book_meeting(
    link_id: str,
    booking: BookingRequest,
    service: SchedulerService = Depends(get_scheduler_service),
):
    engines = service.find_meeting_engines(booking_link_id=link_id)
    if engines is None:
        raise HTTPException(status_code=404, detail=f"Booking link {link_id} not found")
    meeting = engines.meetings.book(link_id, booking.slot_start, booking.attendee)
    await engines.optimizer.join()
    return meeting


@router.post("/meetings/{meeting_id}/cancel", response_model=Meeting)
async def cancel_meeting(
    meeting_id: str,
    service: SchedulerService = Depends(get_scheduler_service),
):
    engines = service.find_meeting_engines(meeting_id=meeting_id)
    if engines is None:
        raise HTTPException(status_code=404, detail=f"Meeting {meeting_id} not found")
    return engines.meetings.cancel_meeting(meeting_id)


@router.post("/meetings/optimal-times", response_model=List[AvailabilitySlot])
async def find_optimal_times(
    request: OptimalTimesRequest,
    service: SchedulerService = Depends(get_scheduler_service),
):
    engines = service.get_engines(request.user_id)
    return engines.meetings.find_optimal_meeting_times(
        request.duration,
        request.participants,
        preferred_time_ranges=request.time_ranges(),
        max_suggestions=request.max_suggestions,
        start_date=request.start_date,
        horizon_days=request.horizon_days or Config.MEETING_SEARCH_DAYS,
        busy_events=request.busy_events,
    )
