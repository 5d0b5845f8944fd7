"""
Publication lifecycle for scheduled posts.

All status changes for a ScheduledPost go through PublicationStateMachine. The
legal moves live in TRANSITIONS; each move is executed as one conditional
update in the repository, so two racing callers can never both succeed.

The machine is mechanism only: it never decides whether a failed post should
be retried (see publication_service.retry_policy) and it never talks to a
platform or a queue.
"""
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from publication_service.enums import LifecycleEvent, Platform, PostStatus, ScheduledPostStatus
from publication_service.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    StaleStateError,
    ValidationError,
)
from publication_service.logging_config import get_logger
from publication_service.models import ScheduledPost
from publication_service.repositories import PostRepository, ScheduledPostRepository
from publication_service.utils.time import ensure_utc, utcnow

logger = get_logger(__name__)

S = ScheduledPostStatus
E = LifecycleEvent

# from-status -> {event: to-status}
TRANSITIONS: Dict[ScheduledPostStatus, Dict[LifecycleEvent, ScheduledPostStatus]] = {
    S.PENDING: {
        E.START_PUBLISHING: S.PUBLISHING,
        E.CANCEL: S.CANCELLED,
        E.RESCHEDULE: S.PENDING,
        E.ATTACH_QUEUE_JOB: S.PENDING,
    },
    S.PUBLISHING: {
        E.MARK_PUBLISHED: S.PUBLISHED,
        E.MARK_FAILED: S.FAILED,
    },
    S.FAILED: {
        E.RETRY: S.PENDING,
        E.CANCEL: S.CANCELLED,
    },
    S.PUBLISHED: {},
    S.CANCELLED: {},
}

DEFAULT_CANCEL_REASON = "Cancelled by user"


def build_targets(
    transitions: Dict[ScheduledPostStatus, Dict[LifecycleEvent, ScheduledPostStatus]],
) -> Dict[LifecycleEvent, ScheduledPostStatus]:
    """Every event has exactly one destination regardless of source; checked once at import."""
    targets: Dict[LifecycleEvent, ScheduledPostStatus] = {}
    for moves in transitions.values():
        for event, to_status in moves.items():
            if targets.setdefault(event, to_status) != to_status:
                raise ValueError(f"Event {event.value} leads to both {targets[event].value} and {to_status.value}")
    return targets


TARGETS = build_targets(TRANSITIONS)


def allowed_sources(event: LifecycleEvent) -> list[ScheduledPostStatus]:
    """Statuses from which `event` is legal."""
    return [status for status, moves in TRANSITIONS.items() if event in moves]


def target_status(event: LifecycleEvent) -> ScheduledPostStatus:
    return TARGETS[event]


def can_transition(current: ScheduledPostStatus, event: LifecycleEvent) -> bool:
    return event in TRANSITIONS.get(ScheduledPostStatus(current), {})


class PublicationStateMachine:
    """
    Enforces the scheduled post lifecycle on top of an injected repository.

    Args:
        repository: ScheduledPostRepository bound to the caller's session.
        posts: PostRepository for the source post side effects (schedule -> scheduled).
        clock: returns aware UTC "now"; injectable for tests.
    """

    def __init__(
        self,
        repository: ScheduledPostRepository,
        posts: Optional[PostRepository] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repository = repository
        self.posts = posts
        self.clock = clock

    def _require_future(self, value: datetime, field: str) -> datetime:
        if value is None:
            raise ValidationError(f"{field} is required", field=field)
        value = ensure_utc(value)
        now = self.clock()
        if value <= now:
            raise ValidationError(
                f"{field} must be in the future",
                field=field,
                value=value.isoformat(),
                now=now.isoformat(),
            )
        return value

    async def get(self, scheduled_post_id: str) -> ScheduledPost:
        scheduled_post = await self.repository.find_by_id(scheduled_post_id)
        if scheduled_post is None:
            raise NotFoundError("Scheduled post", scheduled_post_id)
        return scheduled_post

    async def _apply(self, scheduled_post_id: str, event: LifecycleEvent, **values: Any) -> ScheduledPost:
        """Run one conditional update; on a miss, work out which error the caller deserves."""
        current = await self.get(scheduled_post_id)
        seen_status = current.status
        if not can_transition(seen_status, event):
            raise InvalidTransitionError(scheduled_post_id, event.value, seen_status)

        updated = await self.repository.transition(
            scheduled_post_id,
            allowed_sources(event),
            target_status(event),
            **values,
        )
        if updated is None:
            latest = await self.repository.find_by_id(scheduled_post_id)
            if latest is None:
                raise NotFoundError("Scheduled post", scheduled_post_id)
            logger.info(
                "lifecycle.stale_state",
                scheduled_post_id=scheduled_post_id,
                lifecycle_event=event.value,
                seen_status=seen_status,
                status=latest.status,
            )
            raise StaleStateError(scheduled_post_id, event.value, latest.status)

        logger.info(
            "lifecycle.transition",
            scheduled_post_id=scheduled_post_id,
            lifecycle_event=event.value,
            from_status=seen_status,
            to_status=updated.status,
        )
        return updated

    async def schedule(
        self,
        *,
        platform: Platform,
        scheduled_time: datetime,
        content: Optional[str] = None,
        post_id: Optional[str] = None,
        platform_options: Optional[dict[str, Any]] = None,
    ) -> ScheduledPost:
        """
        Create a pending scheduled post.

        Content defaults to the source post's content. The source post must be
        approved and must not already have an active schedule; on success it
        becomes `scheduled` in the same transaction.
        """
        scheduled_time = self._require_future(scheduled_time, "scheduled_time")
        try:
            platform = Platform(platform)
        except ValueError:
            raise ValidationError(f"Unsupported platform {platform!r}", field="platform")
        if content is not None and not content.strip():
            content = None

        post = None
        if post_id is not None:
            if self.posts is None:
                raise ValidationError("post_id given but no post repository configured", field="post_id")
            post = await self.posts.get_by_id(post_id)
            if post is None:
                if content is None:
                    raise ValidationError("Either content or an existing post_id is required", field="post_id")
                raise NotFoundError("Post", post_id)
            if post.status != PostStatus.APPROVED.value:
                raise ValidationError(
                    f"Only approved posts can be scheduled (post is {post.status!r})",
                    field="post_id",
                    status=post.status,
                )
            active = await self.repository.find_active_for_post(post_id)
            if active is not None:
                raise ValidationError(
                    f"Post {post_id} already has an active schedule {active.id}",
                    field="post_id",
                    scheduled_post_id=active.id,
                )
            if content is None:
                content = post.content

        if content is None:
            raise ValidationError("Either content or an existing post_id is required", field="content")

        scheduled_post = await self.repository.create(
            post_id=post_id,
            platform=platform.value,
            content=content,
            scheduled_time=scheduled_time,
            platform_options=platform_options,
        )
        if post is not None:
            await self.posts.update_status(post.id, PostStatus.SCHEDULED)
        await self.repository.session.commit()
        return scheduled_post

    async def start_publishing(self, scheduled_post_id: str) -> ScheduledPost:
        return await self._apply(scheduled_post_id, E.START_PUBLISHING, last_attempt=self.clock())

    async def mark_published(self, scheduled_post_id: str, external_post_id: str) -> ScheduledPost:
        if not external_post_id:
            raise ValidationError("external_post_id is required", field="external_post_id")
        return await self._apply(
            scheduled_post_id,
            E.MARK_PUBLISHED,
            external_post_id=external_post_id,
            error_message=None,
            queue_job_id=None,
        )

    async def mark_failed(self, scheduled_post_id: str, reason: str) -> ScheduledPost:
        """Reason is stored verbatim; retry_count is incremented inside the same UPDATE."""
        return await self._apply(
            scheduled_post_id,
            E.MARK_FAILED,
            error_message=reason or "Unknown publish error",
            retry_count=ScheduledPost.retry_count + 1,
            queue_job_id=None,
        )

    async def retry(
        self,
        scheduled_post_id: str,
        not_before: Optional[datetime] = None,
        queue_job_id: Optional[str] = None,
    ) -> ScheduledPost:
        """
        failed -> pending. retry_count is kept. `not_before` pushes scheduled_time
        out (retry backoff); without it the post is due again immediately.
        """
        values: dict[str, Any] = {"queue_job_id": queue_job_id}
        if not_before is not None:
            values["scheduled_time"] = self._require_future(not_before, "not_before")
        return await self._apply(scheduled_post_id, E.RETRY, **values)

    async def cancel(self, scheduled_post_id: str, reason: Optional[str] = None) -> ScheduledPost:
        """error_message keeps the last publish failure; the cancel reason is stored on its own."""
        return await self._apply(
            scheduled_post_id,
            E.CANCEL,
            cancel_reason=reason or DEFAULT_CANCEL_REASON,
            queue_job_id=None,
        )

    async def reschedule(self, scheduled_post_id: str, new_time: datetime) -> ScheduledPost:
        new_time = self._require_future(new_time, "scheduled_time")
        return await self._apply(scheduled_post_id, E.RESCHEDULE, scheduled_time=new_time)

    async def attach_queue_job(self, scheduled_post_id: str, queue_job_id: Optional[str]) -> ScheduledPost:
        """Record (or clear, with None) the external queue job correlated with a pending post."""
        return await self._apply(scheduled_post_id, E.ATTACH_QUEUE_JOB, queue_job_id=queue_job_id)

    def retry_deadline(self, delay_seconds: float) -> datetime:
        return self.clock() + timedelta(seconds=delay_seconds)
