"""Publish attempt log: one row per platform call made by the worker (success or fail)."""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from publication_service.db import Base
from publication_service.utils.time import UtcDateTime, utcnow


class PublishAttempt(Base):
    """status: success | fail | partial (a thread cut short; its first part is live). error_kind mirrors PublishError.kind."""

    __tablename__ = "publish_attempts"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    scheduled_post_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("scheduled_posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    platform: Mapped[str] = mapped_column(String(16), nullable=False)
    attempt_number: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    external_post_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    error_kind: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    started_at: Mapped[datetime] = mapped_column(UtcDateTime(), nullable=False)
    finished_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)

    scheduled_post = relationship("ScheduledPost", back_populates="attempts")
