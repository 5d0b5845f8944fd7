"""Shared FastAPI dependencies: services built per request from app.state collaborators."""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from publication_service.db import get_db
from publication_service.services import PublishWorker, SchedulingService


def get_scheduling_service(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SchedulingService:
    return SchedulingService(db, queue=request.app.state.publish_queue)


def get_publish_worker(request: Request) -> PublishWorker:
    return request.app.state.publish_worker
