"""Tests for the local admin seed."""
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.admin_seed import ADMIN_X_USER_ID, SAMPLE_BOOKMARKS, seed_admin
from bookspark.models.bookmark import Bookmark


async def test_seed_creates_admin_once(db_session: AsyncSession) -> None:
    user, created = await seed_admin(db_session)
    assert created is True
    assert user.x_user_id == ADMIN_X_USER_ID

    again, created_again = await seed_admin(db_session)
    assert created_again is False
    assert again.id == user.id

    count = await db_session.scalar(select(func.count()).select_from(Bookmark).where(Bookmark.user_id == user.id))
    assert count == len(SAMPLE_BOOKMARKS)


async def test_seeded_bookmarks_are_digest_ready(db_session: AsyncSession) -> None:
    user, _ = await seed_admin(db_session)
    rows = (await db_session.execute(select(Bookmark).where(Bookmark.user_id == user.id))).scalars().all()

    assert all(b.summary and b.processed_at and b.suggested_actions for b in rows)
    assert {b.status for b in rows} == {"new"}
