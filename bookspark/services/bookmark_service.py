"""Bookmark queries and triage updates scoped to one user."""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.errors import NotFoundError, ValidationError
from bookspark.models.bookmark import Bookmark, BookmarkStatus

STATUS_ALL = "all"


async def list_bookmarks(
    db: AsyncSession,
    user_id: int,
    status: str = BookmarkStatus.NEW.value,
    limit: int = 50,
    offset: int = 0,
) -> list[Bookmark]:
    """Newest-first page of a user's bookmarks; ``status="all"`` disables the filter."""
    query = select(Bookmark).where(Bookmark.user_id == user_id)
    if status != STATUS_ALL:
        query = query.where(Bookmark.status == status)
    result = await db.execute(
        query.order_by(Bookmark.created_at.desc(), Bookmark.id.desc()).offset(offset).limit(limit)
    )
    return list(result.scalars().all())


async def count_by_status(db: AsyncSession, user_id: int) -> dict[str, int]:
    result = await db.execute(
        select(Bookmark.status, func.count())
        .where(Bookmark.user_id == user_id)
        .group_by(Bookmark.status)
    )
    counts = {s.value: 0 for s in BookmarkStatus}
    counts.update({status: n for status, n in result.all()})
    return counts


async def get_user_bookmark(db: AsyncSession, user_id: int, bookmark_id: int) -> Bookmark:
    """Load a bookmark owned by ``user_id``; anything else is NotFoundError."""
    result = await db.execute(
        select(Bookmark).where(Bookmark.id == bookmark_id, Bookmark.user_id == user_id)
    )
    bookmark = result.scalar_one_or_none()
    if not bookmark:
        raise NotFoundError("Bookmark not found")
    return bookmark


async def update_bookmark_status(
    db: AsyncSession,
    user_id: int,
    bookmark_id: int,
    status: str | None = None,
    snooze_until: datetime | None = None,
) -> Bookmark:
    """Apply a user triage change. A snooze date always means SNOOZED."""
    if snooze_until is not None:
        status = BookmarkStatus.SNOOZED
    if status is None:
        raise ValidationError("Nothing to update: provide status or snoozeUntil")

    bookmark = await get_user_bookmark(db, user_id, bookmark_id)
    try:
        bookmark.set_status(status, snooze_until=snooze_until)
    except ValueError as e:
        raise ValidationError(str(e)) from e

    await db.commit()
    await db.refresh(bookmark)
    return bookmark
