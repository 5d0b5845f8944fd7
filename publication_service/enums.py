"""Closed enumerations shared by models, schemas and the lifecycle."""
from enum import Enum


class Platform(str, Enum):
    LINKEDIN = "linkedin"
    X = "x"


class ScheduledPostStatus(str, Enum):
    """Lifecycle status of a scheduled post.

    pending -> publishing -> published
                          -> failed -> pending (retry)
    pending | failed -> cancelled
    """

    PENDING = "pending"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        """Still owns its source post: another schedule for the same post is refused."""
        return self in (ScheduledPostStatus.PENDING, ScheduledPostStatus.PUBLISHING, ScheduledPostStatus.FAILED)


class LifecycleEvent(str, Enum):
    START_PUBLISHING = "start_publishing"
    MARK_PUBLISHED = "mark_published"
    MARK_FAILED = "mark_failed"
    RETRY = "retry"
    CANCEL = "cancel"
    RESCHEDULE = "reschedule"
    ATTACH_QUEUE_JOB = "attach_queue_job"


class PostStatus(str, Enum):
    """Status of the source post owned by the content pipeline."""

    DRAFT = "draft"
    NEEDS_REVIEW = "needs_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
