"""
Data access for scheduled posts.

Status changes go through `transition`, a single conditional UPDATE
("... WHERE id = :id AND status IN (:allowed)") committed immediately. A zero
rowcount means either the row is gone or another writer moved it first; the
caller distinguishes the two with `find_by_id`.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from publication_service.enums import ScheduledPostStatus
from publication_service.logging_config import get_logger
from publication_service.models import PublishAttempt, ScheduledPost
from publication_service.utils.time import utcnow

logger = get_logger(__name__)

SORTABLE_COLUMNS = {
    "scheduled_time": ScheduledPost.scheduled_time,
    "created_at": ScheduledPost.created_at,
    "platform": ScheduledPost.platform,
    "status": ScheduledPost.status,
}
ACTIVE_STATUSES = tuple(s.value for s in ScheduledPostStatus if s.is_active)


@dataclass
class ScheduledPostFilter:
    status: Optional[str] = None
    platform: Optional[str] = None
    scheduled_after: Optional[datetime] = None
    scheduled_before: Optional[datetime] = None
    post_id: Optional[str] = None
    search: Optional[str] = None
    sort_by: str = "scheduled_time"
    sort_order: str = "desc"
    limit: Optional[int] = None
    offset: int = 0


@dataclass
class ScheduledPostStats:
    total: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    by_platform: dict[str, int] = field(default_factory=dict)
    upcoming_24h: int = 0


class ScheduledPostRepository:
    """Repository for ScheduledPost rows bound to one AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_id(self, scheduled_post_id: str) -> Optional[ScheduledPost]:
        return await self.session.get(ScheduledPost, scheduled_post_id, populate_existing=True)

    async def find_active_for_post(self, post_id: str) -> Optional[ScheduledPost]:
        result = await self.session.execute(
            select(ScheduledPost)
            .where(ScheduledPost.post_id == post_id, ScheduledPost.status.in_(ACTIVE_STATUSES))
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        *,
        post_id: Optional[str],
        platform: str,
        content: str,
        scheduled_time: datetime,
        platform_options: Optional[dict[str, Any]] = None,
    ) -> ScheduledPost:
        scheduled_post = ScheduledPost(
            post_id=post_id,
            platform=platform,
            content=content,
            scheduled_time=scheduled_time,
            platform_options=platform_options,
            status=ScheduledPostStatus.PENDING.value,
            retry_count=0,
        )
        self.session.add(scheduled_post)
        await self.session.flush()
        logger.info(
            "scheduled_post.created",
            scheduled_post_id=scheduled_post.id,
            platform=platform,
            scheduled_time=scheduled_time.isoformat(),
        )
        return scheduled_post

    async def update(self, scheduled_post_id: str, **values: Any) -> Optional[ScheduledPost]:
        """Unconditional partial update (non-status fields). Returns None when the row does not exist."""
        values.setdefault("updated_at", utcnow())
        result = await self.session.execute(
            update(ScheduledPost)
            .where(ScheduledPost.id == scheduled_post_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        if result.rowcount == 0:
            return None
        return await self.find_by_id(scheduled_post_id)

    async def transition(
        self,
        scheduled_post_id: str,
        from_statuses: Iterable[ScheduledPostStatus],
        to_status: ScheduledPostStatus,
        **values: Any,
    ) -> Optional[ScheduledPost]:
        """
        Compare-and-set on status. Returns the refreshed row, or None when no row
        matched (missing, or its status is not in from_statuses any more).
        """
        allowed = [s.value for s in from_statuses]
        values["status"] = to_status.value
        values.setdefault("updated_at", utcnow())
        result = await self.session.execute(
            update(ScheduledPost)
            .where(ScheduledPost.id == scheduled_post_id, ScheduledPost.status.in_(allowed))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        # Commit either way: the UPDATE took the write lock even when it matched nothing.
        await self.session.commit()
        if result.rowcount == 0:
            return None
        return await self.find_by_id(scheduled_post_id)

    async def delete(self, scheduled_post_id: str) -> bool:
        """Delete the row and its attempts unless it is mid-publish. Not committed here."""
        result = await self.session.execute(
            delete(ScheduledPost)
            .where(
                ScheduledPost.id == scheduled_post_id,
                ScheduledPost.status != ScheduledPostStatus.PUBLISHING.value,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return False
        await self.session.execute(
            delete(PublishAttempt).where(PublishAttempt.scheduled_post_id == scheduled_post_id)
        )
        await self.session.flush()
        return True

    async def find_due(self, now: datetime, limit: int) -> list[ScheduledPost]:
        """Pending rows whose scheduled_time has passed, oldest first."""
        result = await self.session.execute(
            select(ScheduledPost)
            .where(
                ScheduledPost.status == ScheduledPostStatus.PENDING.value,
                ScheduledPost.scheduled_time <= now,
            )
            .order_by(ScheduledPost.scheduled_time.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def find_all(self, filters: Optional[ScheduledPostFilter] = None) -> list[ScheduledPost]:
        filters = filters or ScheduledPostFilter()
        stmt = select(ScheduledPost)
        if filters.status and filters.status != "all":
            stmt = stmt.where(ScheduledPost.status == filters.status)
        if filters.platform and filters.platform != "all":
            stmt = stmt.where(ScheduledPost.platform == filters.platform)
        if filters.scheduled_after:
            stmt = stmt.where(ScheduledPost.scheduled_time >= filters.scheduled_after)
        if filters.scheduled_before:
            stmt = stmt.where(ScheduledPost.scheduled_time <= filters.scheduled_before)
        if filters.post_id:
            stmt = stmt.where(ScheduledPost.post_id == filters.post_id)
        if filters.search:
            stmt = stmt.where(func.lower(ScheduledPost.content).contains(filters.search.lower()))

        column = SORTABLE_COLUMNS.get(filters.sort_by, ScheduledPost.scheduled_time)
        stmt = stmt.order_by(column.asc() if filters.sort_order == "asc" else column.desc())
        if filters.offset:
            stmt = stmt.offset(filters.offset)
        if filters.limit:
            stmt = stmt.limit(filters.limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_due(self, now: datetime) -> int:
        result = await self.session.execute(
            select(func.count(ScheduledPost.id)).where(
                ScheduledPost.status == ScheduledPostStatus.PENDING.value,
                ScheduledPost.scheduled_time <= now,
            )
        )
        return result.scalar() or 0

    async def stats(self, now: Optional[datetime] = None) -> ScheduledPostStats:
        now = now or utcnow()
        pending = ScheduledPostStatus.PENDING.value

        by_status_rows = await self.session.execute(
            select(ScheduledPost.status, func.count(ScheduledPost.id)).group_by(ScheduledPost.status)
        )
        by_platform_rows = await self.session.execute(
            select(ScheduledPost.platform, func.count(ScheduledPost.id))
            .where(ScheduledPost.status == pending)
            .group_by(ScheduledPost.platform)
        )
        upcoming = await self.session.execute(
            select(func.count(ScheduledPost.id)).where(
                ScheduledPost.status == pending,
                ScheduledPost.scheduled_time >= now,
                ScheduledPost.scheduled_time <= now + timedelta(hours=24),
            )
        )
        by_status = {status: int(n) for status, n in by_status_rows.all()}
        return ScheduledPostStats(
            total=by_status.get(pending, 0),
            by_status=by_status,
            by_platform={platform: int(n) for platform, n in by_platform_rows.all()},
            upcoming_24h=upcoming.scalar() or 0,
        )

    async def add_attempt(self, attempt: PublishAttempt) -> None:
        self.session.add(attempt)
        await self.session.commit()
