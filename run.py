#!/usr/bin/env python3
"""
Simple launcher script for the Happiness Scheduler API.
Run this from the root directory to start the application.
"""

import logging

import uvicorn

from planner.config import Config

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logging.basicConfig(level=Config.LOG_LEVEL)
    logger.info("Starting Happiness Scheduler API with auto-reload")
    logger.info("API Documentation: http://localhost:8000/docs")

    # Import string format so reload works
    uvicorn.run(
        "planner.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        reload_dirs=["planner"],
        log_level=Config.LOG_LEVEL.lower()
    )
