"""Source posts: the minimal surface the scheduler needs (create, read, status changes)."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from publication_service.db import get_db
from publication_service.enums import Platform, PostStatus
from publication_service.exceptions import NotFoundError
from publication_service.logging_config import get_logger
from publication_service.repositories import PostRepository
from publication_service.schemas.common import ApiResponse, ok
from publication_service.schemas.post import PostCreate, PostOut, PostStatusUpdate

router = APIRouter(prefix="/api/posts", tags=["posts"])
logger = get_logger(__name__)


def _out(post) -> dict:
    return PostOut.model_validate(post).model_dump(mode="json")


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse[PostOut])
async def create_post(payload: PostCreate, db: AsyncSession = Depends(get_db)):
    repo = PostRepository(db)
    post = await repo.create(
        content=payload.content,
        platform=payload.platform.value,
        title=payload.title,
        status=payload.status.value,
    )
    await db.commit()
    logger.info("post.created", post_id=post.id, status=post.status)
    return ok(_out(post))


@router.get("", response_model=ApiResponse[list[PostOut]])
async def list_posts(
    status_filter: Optional[PostStatus] = Query(None, alias="status"),
    platform: Optional[Platform] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    posts = await PostRepository(db).find_all(
        status=status_filter.value if status_filter else None,
        platform=platform.value if platform else None,
        limit=limit,
    )
    return ok([_out(p) for p in posts])


@router.get("/{post_id}", response_model=ApiResponse[PostOut])
async def get_post(post_id: str, db: AsyncSession = Depends(get_db)):
    post = await PostRepository(db).get_by_id(post_id)
    if post is None:
        raise NotFoundError("Post", post_id)
    return ok(_out(post))


@router.patch("/{post_id}/status", response_model=ApiResponse[PostOut])
async def update_post_status(
    post_id: str,
    payload: PostStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Review decisions (approve/reject). `scheduled`/`published` are normally set by the scheduler."""
    repo = PostRepository(db)
    if not await repo.update_status(post_id, payload.status):
        raise NotFoundError("Post", post_id)
    await db.commit()
    logger.info("post.status_changed", post_id=post_id, status=payload.status.value)
    return ok(_out(await repo.get_by_id(post_id)))
