"""Scheduled post model: a post bound to a platform and a publish time."""
import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from publication_service.db import Base
from publication_service.enums import ScheduledPostStatus
from publication_service.utils.time import UtcDateTime, utcnow


def new_scheduled_post_id() -> str:
    return f"sched_{uuid.uuid4().hex}"


class ScheduledPost(Base):
    """
    status: pending | publishing | published | failed | cancelled.
    Only publication_service.lifecycle writes status, always through a conditional update.
    """

    __tablename__ = "scheduled_posts"
    __table_args__ = (
        Index("ix_scheduled_posts_status_time", "status", "scheduled_time"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_scheduled_post_id)
    # SET NULL: a hard-deleted source post leaves the publication history intact.
    post_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        ForeignKey("posts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    platform: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    platform_options: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    scheduled_time: Mapped[datetime] = mapped_column(UtcDateTime(), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default=ScheduledPostStatus.PENDING.value, nullable=False)
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_attempt: Mapped[Optional[datetime]] = mapped_column(UtcDateTime(), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancel_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    external_post_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    queue_job_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, onupdate=utcnow, nullable=False)

    post = relationship("Post", back_populates="scheduled_posts")
    attempts = relationship(
        "PublishAttempt",
        back_populates="scheduled_post",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
