"""Scheduled post request/response schemas."""
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from publication_service.enums import Platform, ScheduledPostStatus


class LinkedInOptions(BaseModel):
    platform: Literal["linkedin"] = "linkedin"
    visibility: Literal["PUBLIC", "CONNECTIONS"] = "PUBLIC"


class XOptions(BaseModel):
    platform: Literal["x"] = "x"
    max_tweet_length: int = Field(280, ge=20, le=4000)


PlatformOptions = Annotated[Union[LinkedInOptions, XOptions], Field(discriminator="platform")]


class ScheduledPostCreate(BaseModel):
    """
    Body for POST /api/scheduled-posts.
    Either content or post_id (of an approved post) is required; the check
    against the posts table happens in the lifecycle.
    """

    platform: Platform
    scheduled_time: datetime
    content: Optional[str] = None
    post_id: Optional[str] = None
    options: Optional[PlatformOptions] = None

    @model_validator(mode="after")
    def _options_match_platform(self) -> "ScheduledPostCreate":
        if self.options is not None and self.options.platform != self.platform.value:
            raise ValueError(f"options are for {self.options.platform!r}, post is for {self.platform.value!r}")
        return self

    def platform_options(self) -> Optional[Dict[str, Any]]:
        return self.options.model_dump() if self.options is not None else None


class RescheduleRequest(BaseModel):
    scheduled_time: datetime


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class ScheduledPostOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    post_id: Optional[str] = None
    platform: str
    content: str
    platform_options: Optional[Dict[str, Any]] = None
    scheduled_time: datetime
    status: ScheduledPostStatus
    retry_count: int
    last_attempt: Optional[datetime] = None
    error_message: Optional[str] = None
    cancel_reason: Optional[str] = None
    external_post_id: Optional[str] = None
    queue_job_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CalendarEventOut(BaseModel):
    id: str
    post_id: Optional[str] = None
    title: str
    scheduled_time: datetime
    platform: str
    content: str
    status: ScheduledPostStatus
    retry_count: int
    last_attempt: Optional[datetime] = None
    error: Optional[str] = None


class StatsOut(BaseModel):
    """Pending totals plus a breakdown of all rows by status."""

    total: int
    by_status: Dict[str, int]
    by_platform: Dict[str, int]
    upcoming_24h: int


class ScheduledPostList(BaseModel):
    items: List[ScheduledPostOut]
    count: int
