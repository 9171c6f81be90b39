"""Admin seed script: creates a local admin user with sample bookmarks.

Bypasses X OAuth so the dashboard, triage actions and digest emails can be
tried locally without an X developer app.

Usage:
    python -m bookspark.admin_seed

Then open http://localhost:8000/auth/admin-login (requires DEBUG=true).
"""

import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.models.bookmark import Bookmark
from bookspark.models.user import User
from bookspark.utils import now_utc

ADMIN_X_USER_ID = "admin_local"

SAMPLE_BOOKMARKS = [
    {
        "tweet_id": "admin_sample_1",
        "content": "Just shipped a new feature using Next.js 15! The app directory is incredibly powerful.",
        "author_name": "Sarah Chen",
        "author_username": "sarahcodes",
        "summary": "Developer shares excitement about Next.js 15 app directory features",
        "category": "tweet",
        "topics": ["development", "nextjs", "web"],
        "suggested_actions": ["Add to learning list", "Try Next.js 15"],
    },
    {
        "tweet_id": "admin_sample_2",
        "content": "The key to productivity is not working harder, but working on the right things.",
        "author_name": "Alex Morgan",
        "author_username": "alexproductivity",
        "summary": "Productivity insight about focusing on the right priorities",
        "category": "inspiration",
        "topics": ["productivity", "focus"],
        "suggested_actions": ["Reflect on current priorities", "Share with team"],
    },
    {
        "tweet_id": "admin_sample_3",
        "content": "Thread: 10 habits that made me a better engineer. 1/ Read code every morning https://t.co/x",
        "cleaned_content": "Thread: 10 habits that made me a better engineer. 1/ Read code every morning",
        "author_name": "Jordan Lee",
        "author_username": "jordanbuilds",
        "url": "https://example.com/habits",
        "expanded_urls": ["https://example.com/habits"],
        "content_type": "link",
        "summary": "Ten daily habits for growing as a software engineer",
        "category": "habit",
        "topics": ["habits", "career"],
        "suggested_actions": ["Set daily reminder", "Create routine"],
    },
]


async def seed_admin(db: AsyncSession) -> tuple[User, bool]:
    """Create the admin user and sample bookmarks. Returns (user, created)."""
    result = await db.execute(select(User).where(User.x_user_id == ADMIN_X_USER_ID))
    existing = result.scalar_one_or_none()
    if existing:
        return existing, False

    user = User(
        x_user_id=ADMIN_X_USER_ID,
        x_username="admin",
        name="Local Admin",
        email="admin@localhost",
        is_active=True,
    )
    db.add(user)
    await db.flush()

    now = now_utc()
    for sample in SAMPLE_BOOKMARKS:
        db.add(Bookmark(user_id=user.id, processed_at=now, **sample))

    await db.commit()
    await db.refresh(user)
    return user, True


async def main():
    # Ensure .env is loaded before importing settings
    from dotenv import load_dotenv
    load_dotenv()

    from bookspark.db.session import async_session_factory, engine
    from bookspark.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as db:
        user, created = await seed_admin(db)

    if created:
        print(f"Admin user created (id={user.id})")
        print(f"  username:  @{user.x_username}")
        print(f"  bookmarks: {len(SAMPLE_BOOKMARKS)} processed samples")
    else:
        print(f"Admin user already exists (id={user.id}, @{user.x_username})")
    print()
    print("Next steps:")
    print("  1. Start the web app:  uvicorn bookspark.app:app --reload")
    print("  2. Open:  http://localhost:8000/auth/admin-login")
    print("     This logs you in as admin and redirects to the dashboard.")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
