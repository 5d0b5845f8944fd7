"""Pydantic request/response schemas."""
from publication_service.schemas.common import ApiResponse, ErrorBody
from publication_service.schemas.post import PostCreate, PostOut, PostStatusUpdate
from publication_service.schemas.scheduled_post import (
    CalendarEventOut,
    CancelRequest,
    LinkedInOptions,
    RescheduleRequest,
    ScheduledPostCreate,
    ScheduledPostList,
    ScheduledPostOut,
    StatsOut,
    XOptions,
)
from publication_service.schemas.scheduler import SchedulerStatusResponse, SchedulerTickResponse

__all__ = [
    "ApiResponse",
    "ErrorBody",
    "PostCreate",
    "PostOut",
    "PostStatusUpdate",
    "CalendarEventOut",
    "CancelRequest",
    "LinkedInOptions",
    "RescheduleRequest",
    "ScheduledPostCreate",
    "ScheduledPostList",
    "ScheduledPostOut",
    "StatsOut",
    "XOptions",
    "SchedulerStatusResponse",
    "SchedulerTickResponse",
]
