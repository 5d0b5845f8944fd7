"""Publish worker status response."""
from typing import Optional

from pydantic import BaseModel


class SchedulerStatusResponse(BaseModel):
    """GET /scheduler/status."""

    enabled: bool
    running: bool = False
    interval_seconds: int
    last_tick_at: Optional[str] = None
    pending_count: Optional[int] = None


class SchedulerTickResponse(BaseModel):
    """POST /scheduler/tick."""

    processed: int
    succeeded: int
    failed: int
    skipped: int
    errors: int = 0
