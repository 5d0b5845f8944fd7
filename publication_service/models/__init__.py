"""SQLAlchemy models for the publication service."""
from publication_service.models.post import Post
from publication_service.models.scheduled_post import ScheduledPost
from publication_service.models.publish_attempt import PublishAttempt

__all__ = [
    "Post",
    "ScheduledPost",
    "PublishAttempt",
]
