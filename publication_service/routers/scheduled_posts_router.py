"""Scheduled posts API: schedule, list, calendar, stats and lifecycle actions."""
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from publication_service.enums import Platform, ScheduledPostStatus
from publication_service.repositories import ScheduledPostFilter
from publication_service.routers.deps import get_publish_worker, get_scheduling_service
from publication_service.schemas.common import ApiResponse, ok
from publication_service.schemas.scheduled_post import (
    CalendarEventOut,
    CancelRequest,
    RescheduleRequest,
    ScheduledPostCreate,
    ScheduledPostList,
    ScheduledPostOut,
    StatsOut,
)
from publication_service.services import PublishWorker, SchedulingService

router = APIRouter(prefix="/api/scheduled-posts", tags=["scheduled-posts"])

SortBy = Literal["scheduled_time", "created_at", "platform", "status"]


def _out(scheduled_post) -> dict:
    return ScheduledPostOut.model_validate(scheduled_post).model_dump(mode="json")


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse[ScheduledPostOut])
async def create_scheduled_post(
    payload: ScheduledPostCreate,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """
    Schedule content (or an approved post) for a platform. scheduled_time must
    be in the future; the source post becomes `scheduled`.
    """
    scheduled_post = await service.schedule(
        platform=payload.platform,
        scheduled_time=payload.scheduled_time,
        content=payload.content,
        post_id=payload.post_id,
        platform_options=payload.platform_options(),
    )
    return ok(_out(scheduled_post))


@router.get("", response_model=ApiResponse[ScheduledPostList])
async def list_scheduled_posts(
    status_filter: Optional[ScheduledPostStatus] = Query(None, alias="status"),
    platform: Optional[Platform] = Query(None),
    scheduled_after: Optional[datetime] = Query(None),
    scheduled_before: Optional[datetime] = Query(None),
    post_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    sort_by: SortBy = Query("scheduled_time"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: SchedulingService = Depends(get_scheduling_service),
):
    filters = ScheduledPostFilter(
        status=status_filter.value if status_filter else None,
        platform=platform.value if platform else None,
        scheduled_after=scheduled_after,
        scheduled_before=scheduled_before,
        post_id=post_id,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    items = [_out(sp) for sp in await service.list_scheduled(filters)]
    return ok({"items": items, "count": len(items)})


@router.get("/calendar", response_model=ApiResponse[list[CalendarEventOut]])
async def get_calendar(
    start: Optional[datetime] = Query(None, description="Events at or after this time"),
    end: Optional[datetime] = Query(None, description="Events at or before this time"),
    status_filter: Optional[ScheduledPostStatus] = Query(None, alias="status"),
    platform: Optional[Platform] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Calendar events ordered by scheduled_time; title is '<Platform>: <snippet>'."""
    filters = ScheduledPostFilter(
        status=status_filter.value if status_filter else None,
        platform=platform.value if platform else None,
        scheduled_after=start,
        scheduled_before=end,
        sort_by="scheduled_time",
        sort_order="asc",
        limit=limit,
    )
    events = await service.calendar_events(filters)
    return ok([CalendarEventOut(**event).model_dump(mode="json") for event in events])


@router.get("/stats", response_model=ApiResponse[StatsOut])
async def get_stats(service: SchedulingService = Depends(get_scheduling_service)):
    stats = await service.stats()
    return ok(
        StatsOut(
            total=stats.total,
            by_status=stats.by_status,
            by_platform=stats.by_platform,
            upcoming_24h=stats.upcoming_24h,
        ).model_dump()
    )


@router.get("/{scheduled_post_id}", response_model=ApiResponse[ScheduledPostOut])
async def get_scheduled_post(
    scheduled_post_id: str,
    service: SchedulingService = Depends(get_scheduling_service),
):
    return ok(_out(await service.get(scheduled_post_id)))


@router.post("/{scheduled_post_id}/reschedule", response_model=ApiResponse[ScheduledPostOut])
async def reschedule_scheduled_post(
    scheduled_post_id: str,
    payload: RescheduleRequest,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Move a pending post to a new (future) time. 409 from any other status."""
    return ok(_out(await service.reschedule(scheduled_post_id, payload.scheduled_time)))


@router.post("/{scheduled_post_id}/cancel", response_model=ApiResponse[ScheduledPostOut])
async def cancel_scheduled_post(
    scheduled_post_id: str,
    payload: Optional[CancelRequest] = None,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Cancel a pending or failed post. An in-flight publish cannot be cancelled (409)."""
    reason = payload.reason if payload else None
    return ok(_out(await service.cancel(scheduled_post_id, reason)))


@router.post("/{scheduled_post_id}/retry", response_model=ApiResponse[ScheduledPostOut])
async def retry_scheduled_post(
    scheduled_post_id: str,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Put a failed post back to pending. retry_count is kept."""
    return ok(_out(await service.retry(scheduled_post_id)))


@router.post("/{scheduled_post_id}/publish-now", response_model=ApiResponse[ScheduledPostOut])
async def publish_scheduled_post_now(
    scheduled_post_id: str,
    worker: PublishWorker = Depends(get_publish_worker),
):
    """
    Publish a pending post immediately. The response carries the outcome
    (published, or failed/pending-again with error_message), not an HTTP error.
    """
    return ok(_out(await worker.publish_now(scheduled_post_id)))


@router.delete("/{scheduled_post_id}", response_model=ApiResponse[dict])
async def delete_scheduled_post(
    scheduled_post_id: str,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Hard delete. The source post goes back to `approved`."""
    await service.delete(scheduled_post_id)
    return ok({"id": scheduled_post_id, "deleted": True})
