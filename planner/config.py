import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    # Slot search
    SLOT_GRANULARITY_MINUTES = int(os.getenv("SLOT_GRANULARITY_MINUTES", "15"))
    MEETING_SLOT_STRIDE_MINUTES = int(os.getenv("MEETING_SLOT_STRIDE_MINUTES", "30"))
    SCHEDULING_HORIZON_DAYS = int(os.getenv("SCHEDULING_HORIZON_DAYS", "7"))
    MEETING_SEARCH_DAYS = int(os.getenv("MEETING_SEARCH_DAYS", "14"))

    # Placement defaults
    DEFAULT_BUFFER_MINUTES = int(os.getenv("DEFAULT_BUFFER_MINUTES", "15"))
    DEFAULT_MAX_CHUNK_MINUTES = int(os.getenv("DEFAULT_MAX_CHUNK_MINUTES", "120"))

    # Wall clock used when the host does not inject one
    DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "UTC")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
