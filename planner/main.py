import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import Config
from .exceptions import (
    BookingConflictError, BookingLinkNotFoundError, InvalidConfigurationError, MeetingNotFoundError,
    TaskNotFoundError
)
from .routes import disruptions, meetings, schedule
from .services.scheduler_service import UserNotRegisteredError

logging.basicConfig(
    level=Config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Happiness Scheduler API",
    description="Task placement, live re-optimization and meeting booking",
    version="1.0.0"
)

# Include routers
app.include_router(schedule.router, tags=["schedule"])
app.include_router(disruptions.router, tags=["disruptions"])
app.include_router(meetings.router, tags=["meetings"])


@app.exception_handler(InvalidConfigurationError)
async def invalid_configuration_handler(request: Request, exc: InvalidConfigurationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(BookingConflictError)
async def booking_conflict_handler(request: Request, exc: BookingConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc), "retryable": exc.retryable})


@app.exception_handler(UserNotRegisteredError)
@app.exception_handler(BookingLinkNotFoundError)
@app.exception_handler(MeetingNotFoundError)
@app.exception_handler(TaskNotFoundError)
async def not_found_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}


# This allows running the app directly with: python -m planner.main
if __name__ == "__main__":
    import uvicorn
    logger.info("Starting Happiness Scheduler API on http://localhost:8000 (docs at /docs)")
    uvicorn.run("planner.main:app", host="0.0.0.0", port=8000, reload=True)
