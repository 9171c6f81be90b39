"""Bookmark-related Pydantic schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from bookspark.models.bookmark import BookmarkStatus


class BookmarkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tweet_id: str
    content: str
    cleaned_content: str | None = None
    author_name: str | None = None
    author_username: str | None = None
    author_avatar_url: str | None = None
    author_verified: bool = False
    url: str | None = None
    expanded_urls: list[str] = []
    media: list[dict[str, Any]] = []
    metrics: dict[str, Any] = {}
    content_type: str
    posted_at: datetime | None = None
    summary: str | None = None
    category: str | None = None
    topics: list[str] = []
    suggested_actions: list[str] = []
    status: str
    snooze_until: datetime | None = None
    processed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class BookmarkUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bookmark_id: int = Field(alias="bookmarkId")
    status: BookmarkStatus | None = None
    snooze_until: datetime | None = Field(None, alias="snoozeUntil")
