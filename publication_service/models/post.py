"""Source post model (content owned by the generation pipeline)."""
import uuid
from datetime import datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from publication_service.db import Base
from publication_service.enums import PostStatus
from publication_service.utils.time import UtcDateTime, utcnow


def new_post_id() -> str:
    return f"post_{uuid.uuid4().hex}"


class Post(Base):
    """
    Platform specific post generated from an insight.
    status: draft | needs_review | approved | rejected | scheduled | published.
    Scheduling flips approved -> scheduled; deleting the schedule flips it back.
    """

    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_post_id)
    title: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    platform: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(32), default=PostStatus.DRAFT.value, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, onupdate=utcnow, nullable=False)

    scheduled_posts = relationship("ScheduledPost", back_populates="post")
