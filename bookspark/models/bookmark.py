"""Bookmark model: one saved X post per (user, tweet) pair."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookspark.utils import now_utc
from .base import Base


class BookmarkStatus(StrEnum):
    NEW = "new"
    PENDING = "pending"
    DONE = "done"
    SNOOZED = "snoozed"
    ARCHIVED = "archived"


# Statuses a user may set from the dashboard or an action link.
# PENDING is reserved for the digest send step.
USER_SETTABLE_STATUSES = frozenset(
    {BookmarkStatus.NEW, BookmarkStatus.DONE, BookmarkStatus.SNOOZED, BookmarkStatus.ARCHIVED}
)

STATUS_TRANSITIONS: dict[BookmarkStatus, frozenset[BookmarkStatus]] = {
    status: USER_SETTABLE_STATUSES for status in BookmarkStatus
}

DIGEST_CANDIDATE_STATUSES = (BookmarkStatus.NEW, BookmarkStatus.PENDING)


def can_transition(current: str, target: str, via_digest: bool = False) -> bool:
    """Whether ``current`` may move to ``target``.

    Only the digest send path may set PENDING, and only on digest candidates.
    """
    current_status = BookmarkStatus(current)
    target_status = BookmarkStatus(target)
    if target_status == BookmarkStatus.PENDING:
        return via_digest and current_status in DIGEST_CANDIDATE_STATUSES
    return target_status in STATUS_TRANSITIONS[current_status]


class Bookmark(Base):
    __tablename__ = "bookmarks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    tweet_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # Content (refreshed on every sync)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cleaned_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    author_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    author_username: Mapped[str | None] = mapped_column(String(64), nullable=True)
    author_avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    author_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    expanded_urls: Mapped[list] = mapped_column(JSON, default=list)
    media: Mapped[list] = mapped_column(JSON, default=list)
    metrics: Mapped[dict] = mapped_column(JSON, default=dict)
    content_type: Mapped[str] = mapped_column(String(16), default="tweet")
    posted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # AI enrichment (null until the content processor runs)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(32), nullable=True)
    topics: Mapped[list] = mapped_column(JSON, default=list)
    suggested_actions: Mapped[list] = mapped_column(JSON, default=list)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Triage
    status: Mapped[str] = mapped_column(String(16), default=BookmarkStatus.NEW.value, index=True)
    snooze_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        UniqueConstraint("user_id", "tweet_id", name="uq_bookmark_user_tweet"),
    )

    user: Mapped["User"] = relationship(back_populates="bookmarks")

    def set_status(self, status: str, snooze_until: datetime | None = None, via_digest: bool = False) -> None:
        """Apply a status change, keeping snooze_until in step with SNOOZED."""
        if not can_transition(self.status, status, via_digest=via_digest):
            raise ValueError(f"Cannot move bookmark from '{self.status}' to '{status}'")
        self.status = BookmarkStatus(status).value
        if self.status == BookmarkStatus.SNOOZED:
            if snooze_until is not None:
                self.snooze_until = snooze_until
        else:
            self.snooze_until = None
