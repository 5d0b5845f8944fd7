"""
Scheduling use cases behind the HTTP API.

Wraps PublicationStateMachine with the collaborators it deliberately does not
own: the Redis publish queue and the delete-with-revert of the source post.
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from publication_service.enums import Platform, PostStatus, ScheduledPostStatus
from publication_service.exceptions import InvalidTransitionError, NotFoundError
from publication_service.infrastructure.publish_queue import PublishQueue
from publication_service.lifecycle import PublicationStateMachine
from publication_service.logging_config import get_logger
from publication_service.models import ScheduledPost
from publication_service.repositories import (
    PostRepository,
    ScheduledPostFilter,
    ScheduledPostRepository,
    ScheduledPostStats,
)
from publication_service.utils.time import utcnow

logger = get_logger(__name__)

CALENDAR_TITLE_CHARS = 50
CALENDAR_DEFAULT_LIMIT = 100


def calendar_title(platform: str, content: str) -> str:
    """'Linkedin: first fifty characters...'"""
    snippet = content[:CALENDAR_TITLE_CHARS]
    if len(content) > CALENDAR_TITLE_CHARS:
        snippet += "..."
    return f"{platform.capitalize()}: {snippet}"


class SchedulingService:
    def __init__(
        self,
        session: AsyncSession,
        queue: Optional[PublishQueue] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.queue = queue or PublishQueue(None)
        self.repository = ScheduledPostRepository(session)
        self.posts = PostRepository(session)
        self.machine = PublicationStateMachine(self.repository, self.posts, clock=clock)

    async def _enqueue(self, scheduled_post: ScheduledPost) -> ScheduledPost:
        job_id = await self.queue.enqueue(scheduled_post.id, scheduled_post.scheduled_time)
        if job_id is None:
            return scheduled_post
        return await self.machine.attach_queue_job(scheduled_post.id, job_id)

    async def schedule(
        self,
        *,
        platform: Platform,
        scheduled_time: datetime,
        content: Optional[str] = None,
        post_id: Optional[str] = None,
        platform_options: Optional[dict[str, Any]] = None,
    ) -> ScheduledPost:
        scheduled_post = await self.machine.schedule(
            platform=platform,
            scheduled_time=scheduled_time,
            content=content,
            post_id=post_id,
            platform_options=platform_options,
        )
        return await self._enqueue(scheduled_post)

    async def get(self, scheduled_post_id: str) -> ScheduledPost:
        return await self.machine.get(scheduled_post_id)

    async def reschedule(self, scheduled_post_id: str, new_time: datetime) -> ScheduledPost:
        scheduled_post = await self.machine.reschedule(scheduled_post_id, new_time)
        if scheduled_post.queue_job_id:
            await self.queue.discard(scheduled_post.queue_job_id)
        return await self._enqueue(scheduled_post)

    async def retry(self, scheduled_post_id: str, not_before: Optional[datetime] = None) -> ScheduledPost:
        """failed -> pending with a fresh queue job. Used by the API and by the worker backoff."""
        scheduled_post = await self.machine.retry(scheduled_post_id, not_before=not_before)
        return await self._enqueue(scheduled_post)

    async def cancel(self, scheduled_post_id: str, reason: Optional[str] = None) -> ScheduledPost:
        job_id = (await self.machine.get(scheduled_post_id)).queue_job_id
        scheduled_post = await self.machine.cancel(scheduled_post_id, reason)
        if job_id:
            await self.queue.discard(job_id)
        return scheduled_post

    async def delete(self, scheduled_post_id: str) -> None:
        """
        Hard delete; the source post goes back to approved so it can be scheduled
        again. A record that is being published is refused, its outcome is not known yet.
        """
        scheduled_post = await self.machine.get(scheduled_post_id)
        if scheduled_post.status == ScheduledPostStatus.PUBLISHING.value:
            raise InvalidTransitionError(scheduled_post_id, "delete", scheduled_post.status)
        post_id, job_id = scheduled_post.post_id, scheduled_post.queue_job_id
        deleted = await self.repository.delete(scheduled_post_id)
        if not deleted:
            await self.session.rollback()
            latest = await self.repository.find_by_id(scheduled_post_id)
            if latest is None:
                raise NotFoundError("Scheduled post", scheduled_post_id)
            raise InvalidTransitionError(scheduled_post_id, "delete", latest.status)
        if post_id:
            await self.posts.update_status(post_id, PostStatus.APPROVED)
        await self.session.commit()
        if job_id:
            await self.queue.discard(job_id)
        logger.info("scheduled_post.deleted", scheduled_post_id=scheduled_post_id, post_id=post_id)

    async def list_scheduled(self, filters: ScheduledPostFilter) -> List[ScheduledPost]:
        return await self.repository.find_all(filters)

    async def calendar_events(self, filters: ScheduledPostFilter) -> List[Dict[str, Any]]:
        if not filters.limit:
            filters.limit = CALENDAR_DEFAULT_LIMIT
        return [
            {
                "id": sp.id,
                "post_id": sp.post_id,
                "title": calendar_title(sp.platform, sp.content),
                "scheduled_time": sp.scheduled_time,
                "platform": sp.platform,
                "content": sp.content,
                "status": sp.status,
                "retry_count": sp.retry_count,
                "last_attempt": sp.last_attempt,
                "error": sp.error_message,
            }
            for sp in await self.repository.find_all(filters)
        ]

    async def stats(self) -> ScheduledPostStats:
        return await self.repository.stats()
