"""SQLAlchemy models for the web application."""

from .base import Base
from .user import User
from .bookmark import Bookmark, BookmarkStatus

__all__ = [
    "Base",
    "User",
    "Bookmark",
    "BookmarkStatus",
]
