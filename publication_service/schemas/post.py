"""Source post request/response schemas."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from publication_service.enums import Platform, PostStatus


class PostCreate(BaseModel):
    """Body for POST /api/posts."""

    content: str = Field(..., min_length=1)
    platform: Platform
    title: str = Field("", max_length=512)
    status: PostStatus = PostStatus.DRAFT


class PostStatusUpdate(BaseModel):
    """Body for PATCH /api/posts/{id}/status."""

    status: PostStatus


class PostOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    content: str
    platform: str
    status: str
    created_at: datetime
    updated_at: datetime
