"""Data access helpers for source posts."""
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from publication_service.enums import PostStatus
from publication_service.models import Post
from publication_service.utils.time import utcnow


class PostRepository:
    """Thin wrapper around database access for source posts."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, post_id: str) -> Optional[Post]:
        return await self.session.get(Post, post_id, populate_existing=True)

    async def find_all(self, status: Optional[str] = None, platform: Optional[str] = None, limit: int = 100) -> list[Post]:
        stmt = select(Post)
        if status:
            stmt = stmt.where(Post.status == status)
        if platform:
            stmt = stmt.where(Post.platform == platform)
        stmt = stmt.order_by(Post.created_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, *, content: str, platform: str, title: str = "", status: str = PostStatus.DRAFT.value) -> Post:
        post = Post(content=content, platform=platform, title=title, status=status)
        self.session.add(post)
        await self.session.flush()
        return post

    async def update_status(self, post_id: str, status: PostStatus) -> bool:
        """Set the post status. Returns False when the post does not exist."""
        result = await self.session.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(status=status.value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount > 0
