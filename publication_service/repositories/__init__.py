"""Data access for posts and scheduled posts."""
from publication_service.repositories.post_repository import PostRepository
from publication_service.repositories.scheduled_post_repository import (
    ScheduledPostFilter,
    ScheduledPostRepository,
    ScheduledPostStats,
)

__all__ = [
    "PostRepository",
    "ScheduledPostFilter",
    "ScheduledPostRepository",
    "ScheduledPostStats",
]
