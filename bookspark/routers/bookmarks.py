"""Bookmark API: list, triage, sync from X, re-run analysis."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.config import get_settings
from bookspark.constants import BOOKMARKS_DEFAULT_LIMIT, BOOKMARKS_MAX_LIMIT
from bookspark.db.session import get_db
from bookspark.dependencies import get_bookmark_provider, get_content_analyzer
from bookspark.models.user import User
from bookspark.schemas.bookmark import BookmarkOut, BookmarkUpdate
from bookspark.services.auth_service import get_current_user
from bookspark.services.bookmark_service import (
    get_user_bookmark,
    list_bookmarks,
    update_bookmark_status,
)
from bookspark.services.bookmark_sync import BookmarkSyncService
from bookspark.services.content_analyzer import ContentAnalyzer
from bookspark.services.content_processor import ContentProcessor
from bookspark.services.feed_providers.base import BookmarkProvider

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/bookmarks", tags=["bookmarks"])


def _serialize(bookmark) -> dict:
    return BookmarkOut.model_validate(bookmark).model_dump(mode="json")


@router.get("")
async def get_bookmarks(
    status: str = Query("new"),
    limit: int = Query(BOOKMARKS_DEFAULT_LIMIT, ge=1, le=BOOKMARKS_MAX_LIMIT),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    bookmarks = await list_bookmarks(db, user.id, status=status, limit=limit, offset=offset)
    return {
        "success": True,
        "bookmarks": [_serialize(b) for b in bookmarks],
        "count": len(bookmarks),
    }


@router.patch("")
async def patch_bookmark(
    body: BookmarkUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    bookmark = await update_bookmark_status(
        db, user.id, body.bookmark_id, status=body.status, snooze_until=body.snooze_until
    )
    return {
        "success": True,
        "message": "Bookmark updated successfully",
        "bookmark": _serialize(bookmark),
    }


@router.post("/sync")
async def sync_bookmarks(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    provider: BookmarkProvider = Depends(get_bookmark_provider),
    analyzer: ContentAnalyzer = Depends(get_content_analyzer),
):
    """Import the user's X bookmarks, then analyze a batch of the new ones."""
    settings = get_settings()
    sync = BookmarkSyncService(db, provider, max_results=settings.sync_max_results)
    result = await sync.sync_user_bookmarks(user.id)

    processor = ContentProcessor(db, analyzer, delay_seconds=settings.analyzer_delay_seconds)
    ai_processed = await processor.process_unanalyzed_bookmarks(
        batch_size=settings.sync_process_batch_size, user_id=user.id
    )

    return {
        "success": True,
        "message": f"Synced {result.processed} bookmarks ({result.new} new, {result.updated} updated)",
        "processed": result.processed,
        "new": result.new,
        "updated": result.updated,
        "aiProcessed": ai_processed,
    }


@router.post("/{bookmark_id}/reprocess")
async def reprocess_bookmark(
    bookmark_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    analyzer: ContentAnalyzer = Depends(get_content_analyzer),
):
    """Clear a bookmark's AI fields and analyze it again."""
    await get_user_bookmark(db, user.id, bookmark_id)
    processor = ContentProcessor(db, analyzer)
    analyzed = await processor.reprocess_bookmark(bookmark_id)
    bookmark = await get_user_bookmark(db, user.id, bookmark_id)
    return {
        "success": True,
        "message": "Bookmark reprocessed" if analyzed else "Analysis failed, fallback stored",
        "analyzed": analyzed,
        "bookmark": _serialize(bookmark),
    }
