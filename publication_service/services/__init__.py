"""Business logic services."""
from publication_service.services.publish_worker import PublishWorker
from publication_service.services.scheduling_service import SchedulingService, calendar_title

__all__ = [
    "PublishWorker",
    "SchedulingService",
    "calendar_title",
]
