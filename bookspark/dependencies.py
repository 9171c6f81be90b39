"""FastAPI providers for the service handles routes depend on (overridden in tests)."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.config import get_settings
from bookspark.db.session import get_db
from bookspark.services.content_analyzer import ContentAnalyzer
from bookspark.services.email_service import EmailService
from bookspark.services.feed_providers.base import BookmarkProvider
from bookspark.services.feed_providers.twitter_api import TwitterBookmarksProvider


def get_email_service() -> EmailService:
    return EmailService(get_settings())


def get_content_analyzer() -> ContentAnalyzer:
    return ContentAnalyzer(get_settings())


def get_bookmark_provider(db: AsyncSession = Depends(get_db)) -> BookmarkProvider:
    return TwitterBookmarksProvider(db)
