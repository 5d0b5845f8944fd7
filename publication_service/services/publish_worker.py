"""
Publish worker: publishes pending scheduled posts whose scheduled_time has passed.

Runs inside the FastAPI process (started from lifespan). Each tick selects due
posts, claims each one with start_publishing (a conditional update, so two
workers never publish the same post), calls the platform client and records
the outcome. Failed posts go back to pending with a backoff while the retry
policy allows it, otherwise they stay failed. A claimed post's queue job is
discarded; a retry enqueues a fresh one, the same way the API retry does.
ENV: SCHEDULER_ENABLED, SCHEDULER_INTERVAL_SECONDS, SCHEDULER_BATCH_SIZE.
"""
import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from publication_service.config import Settings, get_settings
from publication_service.enums import Platform, PostStatus, ScheduledPostStatus
from publication_service.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    PartialPublishError,
    PublishError,
)
from publication_service.infrastructure.publish_queue import PublishQueue
from publication_service.logging_config import get_logger
from publication_service.models import PublishAttempt, ScheduledPost
from publication_service.platforms import PlatformClient
from publication_service.retry_policy import RetryPolicy
from publication_service.services.scheduling_service import SchedulingService
from publication_service.utils.time import utcnow

logger = get_logger(__name__)


class PublishWorker:
    """Owns its session factory, platform clients, queue and retry policy; no module level state."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clients: Dict[Platform, PlatformClient],
        policy: RetryPolicy,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
        queue: Optional[PublishQueue] = None,
    ) -> None:
        self.session_factory = session_factory
        self.clients = clients
        self.policy = policy
        self.settings = settings or get_settings()
        self.clock = clock
        self.queue = queue or PublishQueue(None)
        self.last_tick_at: Optional[datetime] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _service(self, session: AsyncSession) -> SchedulingService:
        return SchedulingService(session, self.queue, clock=self.clock)

    async def tick(self) -> Dict[str, int]:
        """One pass over due posts. Returns processed/succeeded/failed/skipped/errors counts."""
        self.last_tick_at = self.clock()
        async with self.session_factory() as session:
            due = await self._service(session).repository.find_due(
                self.last_tick_at, self.settings.scheduler_batch_size
            )
            due_ids = [sp.id for sp in due]
        logger.info("worker.tick", at=self.last_tick_at.isoformat(), due=len(due_ids))

        summary = {"processed": 0, "succeeded": 0, "failed": 0, "skipped": 0, "errors": 0}
        for scheduled_post_id in due_ids:
            try:
                result = await self.publish_one(scheduled_post_id)
            except Exception as e:
                summary["errors"] += 1
                logger.exception("worker.publish_error", scheduled_post_id=scheduled_post_id, error=str(e))
                continue
            if result is None:
                summary["skipped"] += 1
                continue
            summary["processed"] += 1
            if result.status == ScheduledPostStatus.PUBLISHED.value:
                summary["succeeded"] += 1
            else:
                summary["failed"] += 1
        return summary

    async def publish_now(self, scheduled_post_id: str) -> ScheduledPost:
        """Publish a pending post immediately, ignoring scheduled_time. Raises if it is not pending."""
        logger.info("worker.publish_now", scheduled_post_id=scheduled_post_id)
        scheduled_post = await self.publish_one(scheduled_post_id, raise_on_claim_lost=True)
        if scheduled_post is None:
            raise NotFoundError("Scheduled post", scheduled_post_id)
        return scheduled_post

    async def publish_one(self, scheduled_post_id: str, raise_on_claim_lost: bool = False) -> Optional[ScheduledPost]:
        """
        Claim and publish one pending post. Returns the final row, or None when
        the claim was lost (another worker, a cancel, a reschedule or a delete
        in between) or the record disappeared while the platform call ran.
        """
        async with self.session_factory() as session:
            service = self._service(session)
            machine = service.machine
            try:
                scheduled_post = await machine.start_publishing(scheduled_post_id)
            except (InvalidTransitionError, NotFoundError) as e:
                if raise_on_claim_lost:
                    raise
                logger.info(
                    "worker.claim_lost",
                    scheduled_post_id=scheduled_post_id,
                    status=getattr(e, "current_status", None),
                )
                return None
            if scheduled_post.queue_job_id:
                await self.queue.discard(scheduled_post.queue_job_id)

            platform = scheduled_post.platform
            started_at = scheduled_post.last_attempt or self.clock()
            attempt_number = scheduled_post.retry_count + 1
            external_post_id: Optional[str] = None
            error: Optional[PublishError] = None

            client = self.clients.get(Platform(platform))
            try:
                if client is None:
                    raise PublishError(f"No client configured for platform {platform}", kind="config")
                external_post_id = await client.publish(scheduled_post.content, scheduled_post.platform_options)
            except PartialPublishError as e:
                # The first part is live; publishing again would duplicate it.
                external_post_id = e.external_post_id
                error = e
                logger.warning(
                    "worker.thread_incomplete",
                    scheduled_post_id=scheduled_post_id,
                    external_post_id=external_post_id,
                    posted=len(e.posted_ids),
                    error=e.message,
                )
            except PublishError as e:
                error = e
            except Exception as e:
                logger.warning("worker.unexpected_publish_error", scheduled_post_id=scheduled_post_id, error=str(e))
                error = PublishError(str(e) or type(e).__name__, kind="api")
            if not external_post_id and error is None:
                error = PublishError(f"{platform} returned no post id", kind="api")

            repository = machine.repository
            try:
                if external_post_id:
                    scheduled_post = await machine.mark_published(scheduled_post_id, external_post_id)
                else:
                    scheduled_post = await machine.mark_failed(scheduled_post_id, error.message)
            except NotFoundError:
                logger.warning(
                    "worker.record_gone",
                    scheduled_post_id=scheduled_post_id,
                    platform=platform,
                    external_post_id=external_post_id,
                )
                return None

            if external_post_id:
                if scheduled_post.post_id:
                    await machine.posts.update_status(scheduled_post.post_id, PostStatus.PUBLISHED)
                await repository.add_attempt(
                    PublishAttempt(
                        scheduled_post_id=scheduled_post_id,
                        platform=platform,
                        attempt_number=attempt_number,
                        status="partial" if error else "success",
                        external_post_id=external_post_id,
                        error_message=error.message if error else None,
                        error_kind=error.kind if error else None,
                        started_at=started_at,
                        finished_at=self.clock(),
                    )
                )
                logger.info(
                    "worker.published",
                    scheduled_post_id=scheduled_post_id,
                    platform=platform,
                    external_post_id=external_post_id,
                )
                return scheduled_post

            await repository.add_attempt(
                PublishAttempt(
                    scheduled_post_id=scheduled_post_id,
                    platform=platform,
                    attempt_number=attempt_number,
                    status="fail",
                    error_message=error.message,
                    error_kind=error.kind,
                    started_at=started_at,
                    finished_at=self.clock(),
                )
            )
            logger.warning(
                "worker.publish_failed",
                scheduled_post_id=scheduled_post_id,
                platform=platform,
                kind=error.kind,
                retry_count=scheduled_post.retry_count,
                error=error.message,
            )
            return await self._apply_retry_policy(service, scheduled_post)

    async def _apply_retry_policy(self, service: SchedulingService, scheduled_post: ScheduledPost) -> ScheduledPost:
        if not self.policy.should_retry(scheduled_post.platform, scheduled_post.retry_count):
            logger.warning(
                "worker.permanently_failed",
                scheduled_post_id=scheduled_post.id,
                retry_count=scheduled_post.retry_count,
            )
            return scheduled_post
        delay = self.policy.next_delay(scheduled_post.platform, scheduled_post.retry_count)
        not_before = self.clock() + timedelta(seconds=delay) if delay > 0 else None
        try:
            scheduled_post = await service.retry(scheduled_post.id, not_before=not_before)
        except InvalidTransitionError as e:
            # Cancelled by a user between mark_failed and here.
            logger.info("worker.retry_skipped", scheduled_post_id=scheduled_post.id, status=e.current_status)
            return await service.get(scheduled_post.id)
        logger.info(
            "worker.retry_scheduled",
            scheduled_post_id=scheduled_post.id,
            retry_count=scheduled_post.retry_count,
            next_at=scheduled_post.scheduled_time.isoformat(),
        )
        return scheduled_post

    async def pending_count(self) -> int:
        async with self.session_factory() as session:
            return await self._service(session).repository.count_due(self.clock())

    async def status(self) -> Dict[str, Any]:
        return {
            "enabled": self.settings.scheduler_enabled,
            "running": self.running,
            "interval_seconds": self.settings.scheduler_interval_seconds,
            "last_tick_at": self.last_tick_at.isoformat() if self.last_tick_at else None,
            "pending_count": await self.pending_count(),
        }

    async def _loop(self) -> None:
        interval = max(1, self.settings.scheduler_interval_seconds)
        while not self._stop_event.is_set():
            try:
                await self.tick()
            except Exception as e:
                logger.warning("worker.loop_error", error=str(e))
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    async def start(self) -> None:
        """Start the polling loop (called from lifespan startup). No-op when disabled or running."""
        if not self.settings.scheduler_enabled or self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())
        logger.info("worker.started", interval_seconds=self.settings.scheduler_interval_seconds)

    async def stop(self) -> None:
        if self._stop_event:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("worker.stopped")
