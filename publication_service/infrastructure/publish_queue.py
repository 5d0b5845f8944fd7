"""
Redis publish queue: sorted set of job ids scored by run time.

The lifecycle only stores the returned queue_job_id; dispatch happens in the
worker. Without REDIS_URL every call is a no-op (enqueue returns None).
"""
import uuid
from datetime import datetime
from typing import Optional

from publication_service.logging_config import get_logger

logger = get_logger(__name__)

QUEUE_KEY = "publish_queue"
JOB_KEY_PREFIX = "publish_job:"
JOB_TTL_SECONDS = 7 * 24 * 3600


class PublishQueue:
    """Thin async wrapper over redis.asyncio for publish jobs."""

    def __init__(self, redis_url: Optional[str]) -> None:
        self.redis_url = redis_url

    @property
    def enabled(self) -> bool:
        return bool(self.redis_url)

    def _client(self):
        from redis.asyncio import Redis

        return Redis.from_url(self.redis_url, decode_responses=True)

    async def enqueue(self, scheduled_post_id: str, run_at: datetime) -> Optional[str]:
        """Add a job for scheduled_post_id due at run_at. Returns the job id, or None when disabled/failed."""
        if not self.enabled:
            return None
        job_id = f"job_{uuid.uuid4().hex}"
        try:
            client = self._client()
            try:
                pipe = client.pipeline()
                pipe.zadd(QUEUE_KEY, {job_id: run_at.timestamp()})
                pipe.setex(JOB_KEY_PREFIX + job_id, JOB_TTL_SECONDS, scheduled_post_id)
                await pipe.execute()
            finally:
                await client.aclose()
        except Exception as e:
            logger.warning("publish_queue.enqueue_error", scheduled_post_id=scheduled_post_id, error=str(e))
            return None
        logger.info("publish_queue.enqueued", scheduled_post_id=scheduled_post_id, job_id=job_id)
        return job_id

    async def discard(self, job_id: Optional[str]) -> bool:
        """Remove a job. False when disabled, unknown job id, or Redis error."""
        if not self.enabled or not job_id:
            return False
        try:
            client = self._client()
            try:
                pipe = client.pipeline()
                pipe.zrem(QUEUE_KEY, job_id)
                pipe.delete(JOB_KEY_PREFIX + job_id)
                removed, _ = await pipe.execute()
            finally:
                await client.aclose()
        except Exception as e:
            logger.warning("publish_queue.discard_error", job_id=job_id, error=str(e))
            return False
        return bool(removed)
