"""Content processor: runs the analyzer over bookmarks that have not been processed yet."""

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.errors import NotFoundError
from bookspark.models.bookmark import Bookmark
from bookspark.services.content_analyzer import AnalysisResult, ContentAnalyzer, fallback_analysis
from bookspark.utils import now_utc

logger = logging.getLogger(__name__)


def _apply_analysis(bookmark: Bookmark, analysis: AnalysisResult) -> None:
    bookmark.summary = analysis.summary
    bookmark.category = analysis.content_type
    bookmark.topics = list(analysis.topics)
    bookmark.suggested_actions = list(analysis.suggested_actions)
    bookmark.processed_at = now_utc()


class ContentProcessor:
    def __init__(self, db: AsyncSession, analyzer: ContentAnalyzer, delay_seconds: float = 1.0):
        self.db = db
        self.analyzer = analyzer
        self.delay_seconds = delay_seconds

    async def process_unanalyzed_bookmarks(self, batch_size: int = 10, user_id: int | None = None) -> int:
        """Analyze up to ``batch_size`` unprocessed bookmarks in insertion order.

        Returns the number analyzed successfully. Rows whose analysis fails get
        the fallback result and are marked processed so they are not retried.
        """
        query = select(Bookmark).where(Bookmark.processed_at.is_(None))
        if user_id is not None:
            query = query.where(Bookmark.user_id == user_id)
        result = await self.db.execute(query.order_by(Bookmark.id).limit(batch_size))
        bookmarks = list(result.scalars().all())

        if not bookmarks:
            logger.info("No unprocessed bookmarks found")
            return 0

        logger.info("Processing %d bookmarks", len(bookmarks))
        processed = 0
        for i, bookmark in enumerate(bookmarks):
            if i > 0 and self.delay_seconds:
                await asyncio.sleep(self.delay_seconds)
            if await self._analyze(bookmark):
                processed += 1
            await self.db.commit()

        logger.info("Successfully processed %d/%d bookmarks", processed, len(bookmarks))
        return processed

    async def process_bookmark(self, bookmark_id: int) -> bool:
        """Analyze one bookmark. Returns False when the fallback was stored."""
        bookmark = await self.db.get(Bookmark, bookmark_id)
        if not bookmark:
            raise NotFoundError("Bookmark not found")
        ok = await self._analyze(bookmark)
        await self.db.commit()
        return ok

    async def reprocess_bookmark(self, bookmark_id: int) -> bool:
        """Clear the AI fields of a bookmark and analyze it again."""
        bookmark = await self.db.get(Bookmark, bookmark_id)
        if not bookmark:
            raise NotFoundError("Bookmark not found")
        bookmark.summary = None
        bookmark.category = None
        bookmark.topics = []
        bookmark.suggested_actions = []
        bookmark.processed_at = None
        await self.db.commit()
        return await self.process_bookmark(bookmark_id)

    async def _analyze(self, bookmark: Bookmark) -> bool:
        """Store an analysis on ``bookmark``. Never raises; returns False when the fallback was stored."""
        try:
            analysis = await self.analyzer.analyze_or_fallback(bookmark.content, bookmark.url)
            if not analysis.fallback and not analysis.suggested_actions:
                analysis.suggested_actions = await self.analyzer.suggest_actions(
                    bookmark.content, analysis.content_type
                )
        except Exception as e:
            logger.error("Error processing bookmark %s: %s", bookmark.id, e, exc_info=True)
            analysis = fallback_analysis(bookmark.content)

        _apply_analysis(bookmark, analysis)
        if analysis.fallback:
            logger.warning("Stored fallback analysis for bookmark %s", bookmark.id)
            return False
        logger.debug("Processed bookmark %s as %s", bookmark.id, analysis.content_type)
        return True
