"""Publish worker status API."""
from fastapi import APIRouter, Depends

from publication_service.routers.deps import get_publish_worker
from publication_service.schemas.scheduler import SchedulerStatusResponse, SchedulerTickResponse
from publication_service.services import PublishWorker

router = APIRouter(prefix="/scheduler", tags=["scheduler"])


@router.get("/status", response_model=SchedulerStatusResponse)
async def get_scheduler_status(
    worker: PublishWorker = Depends(get_publish_worker),
) -> SchedulerStatusResponse:
    """Worker state: enabled, running, interval, last_tick_at, pending_count (due now)."""
    return SchedulerStatusResponse(**await worker.status())


@router.post("/tick", response_model=SchedulerTickResponse)
async def run_scheduler_tick(
    worker: PublishWorker = Depends(get_publish_worker),
) -> SchedulerTickResponse:
    """Run one pass over due posts now (ops / local use when SCHEDULER_ENABLED is off)."""
    return SchedulerTickResponse(**await worker.tick())
