"""User model: X OAuth credentials, profile, and digest preferences."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookspark.utils import now_utc
from .base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    x_user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    x_username: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Provider email; contact_email overrides it for digests when set
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    x_access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    x_refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    x_token_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    digest_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    digest_time: Mapped[str] = mapped_column(String(8), default="08:00:00")
    timezone: Mapped[str] = mapped_column(String(64), default="UTC")
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_digest_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    bookmarks: Mapped[list["Bookmark"]] = relationship(back_populates="user")

    @property
    def digest_email(self) -> str | None:
        """Address digests are delivered to."""
        return self.contact_email or self.email

    @property
    def digest_hour(self) -> int:
        return int(self.digest_time.split(":")[0])
